import unittest
from datetime import datetime, timedelta, timezone

import strokecoach.storage.sqlite_store as memory
from strokecoach.models import AISettingsSnapshot, SessionRecord, User
from tests.fakes import TempDbTestCase

T0 = datetime(2024, 3, 4, 8, 0, tzinfo=timezone.utc)


def record(i, user_id="u_1", minutes=0):
    return SessionRecord(
        id=f"r{i}",
        user_id=user_id,
        language="english",
        character="A",
        level="beginner",
        score=70 + i,
        timestamp_created=T0 + timedelta(minutes=minutes),
        duration_seconds=30,
    )


class UserTests(TempDbTestCase):
    def test_save_and_get(self):
        memory.save_user(User(user_id="u_1", name="Sam", created_at=T0, preferred_language="korean"))
        user = memory.get_user("u_1")
        self.assertEqual(user.name, "Sam")
        self.assertEqual(user.preferred_language, "korean")
        self.assertEqual(user.created_at, T0)

    def test_missing_user(self):
        with self.assertRaises(KeyError):
            memory.get_user("nobody")

    def test_upsert(self):
        memory.save_user(User(user_id="u_1", name="Sam", created_at=T0))
        memory.save_user(User(user_id="u_1", name="Sam L.", created_at=T0, level="advanced"))
        users = memory.list_users()
        self.assertEqual(len(users), 1)
        self.assertEqual(users[0].level, "advanced")


class SessionTests(TempDbTestCase):
    def test_append_and_list_chronological(self):
        memory.append_session(record(2, minutes=10))
        memory.append_session(record(1, minutes=0))
        memory.append_session(record(3, user_id="u_2"))

        rows = memory.list_sessions("u_1")
        self.assertEqual([r.id for r in rows], ["r1", "r2"])
        self.assertEqual(rows[0], record(1, minutes=0))
        self.assertEqual(memory.count_sessions("u_1"), 2)

    def test_limit_keeps_most_recent(self):
        for i in range(5):
            memory.append_session(record(i, minutes=i))
        self.assertEqual([r.id for r in memory.list_sessions("u_1", limit=2)], ["r3", "r4"])

    def test_clear_user_data(self):
        memory.append_session(record(1))
        memory.append_session(record(2, user_id="u_2"))
        memory.save_ai_settings("u_1", AISettingsSnapshot(), language="english", level="beginner")

        self.assertEqual(memory.clear_user_data("u_1"), 1)
        self.assertEqual(memory.list_sessions("u_1"), [])
        self.assertIsNone(memory.get_ai_settings("u_1"))
        self.assertEqual(memory.count_sessions("u_2"), 1)


class AISettingsTests(TempDbTestCase):
    def test_round_trip(self):
        snap = AISettingsSnapshot(persona="strict", video_assisted=True, feedback_delay_ms=0)
        memory.save_ai_settings("u_1", snap, language="japanese", level="intermediate")
        saved = memory.get_ai_settings("u_1")
        self.assertEqual(AISettingsSnapshot(**saved["ai"]), snap)
        self.assertEqual(saved["language"], "japanese")
        self.assertEqual(saved["level"], "intermediate")


if __name__ == "__main__":
    unittest.main()
