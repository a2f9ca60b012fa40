import unittest
from datetime import date, datetime, timedelta, timezone

import strokecoach.storage.sqlite_store as memory
from strokecoach.agents.gateway import CapabilityGateway
from strokecoach.agents.study_plan import _parse_plan
from strokecoach.analytics.aggregator import AnalyticsSummary
from strokecoach.credentials import CredentialStore
from strokecoach.models import AISettingsSnapshot, EvaluationResult, PracticeAttempt, SessionRecord
from strokecoach.plan_manager import GOAL_TIMELINES, GOAL_TYPES, describe_goal, generate_plan, new_goal
from strokecoach.scoring import finalize_session
from strokecoach.settings_context import SettingsContext
from strokecoach.ui_actions import Services, action_list_goals, action_set_goal, action_study_plan
from tests.fakes import FakeClient, TempDbTestCase, json_reply, mistral_on, sdk_error

PLAN_REPLY = """- Trace 你 and 好 five times each
- Write 中 from memory, then compare
* Review stroke order before each attempt

"""

T0 = datetime(2024, 3, 4, 8, 0, tzinfo=timezone.utc)


def gateway_for(client, api_key="sk-test"):
    created = []

    def factory(key):
        created.append(key)
        return client

    return CapabilityGateway(CredentialStore(api_key), client_factory=factory), created


def context(language="chinese", level="beginner"):
    ctx = SettingsContext(persist=False)
    ctx.set_language(language)
    ctx.set_level(level)
    return ctx


class NewGoalTests(unittest.TestCase):
    def test_goal_fields(self):
        goal = new_goal(
            "u_1",
            goal_type=GOAL_TYPES[1],
            timeline=GOAL_TIMELINES[2],
            target_date=date(2024, 6, 1),
            custom_goals=[" Write my name ", "", "Learn 10 radicals"],
            language="chinese",
        )
        self.assertTrue(goal.goal_id.startswith("g_"))
        self.assertEqual(goal.goal_type, "Achieve 90% accuracy")
        self.assertEqual(goal.timeline, "1 month")
        self.assertEqual(goal.custom_goals, ["Write my name", "Learn 10 radicals"])

    def test_custom_goal_alone_is_enough(self):
        goal = new_goal("u_1", custom_goals=["Write a postcard"])
        self.assertEqual(goal.goal_type, "")

    def test_rejects_empty_and_unknown_choices(self):
        with self.assertRaises(ValueError):
            new_goal("u_1")
        with self.assertRaises(ValueError):
            new_goal("u_1", custom_goals=["  "])
        with self.assertRaises(ValueError):
            new_goal("u_1", goal_type="Become fluent overnight")
        with self.assertRaises(ValueError):
            new_goal("u_1", goal_type=GOAL_TYPES[0], timeline="forever")

    def test_describe_goal(self):
        goal = new_goal("u_1", goal_type=GOAL_TYPES[0], target_date=date(2024, 6, 1), custom_goals=["a", "b"])
        text = describe_goal(goal)
        self.assertIn("GOAL_TYPE: Master 50 new characters", text)
        self.assertIn("TARGET_DATE: 2024-06-01", text)
        self.assertIn("CUSTOM_GOALS: a; b", text)
        self.assertNotIn("TIMELINE", text)
        self.assertEqual(describe_goal(None), "(no goal set)")


class GoalStoreTests(TempDbTestCase):
    def test_save_list_delete(self):
        first = new_goal("u_1", goal_type=GOAL_TYPES[0], goal_id="g_1")
        second = new_goal("u_1", custom_goals=["Write 你好"], target_date=date(2024, 6, 1), goal_id="g_2")
        memory.save_goal(first)
        memory.save_goal(second)
        memory.save_goal(new_goal("u_2", goal_type=GOAL_TYPES[2], goal_id="g_3"))

        goals = memory.list_goals("u_1")
        self.assertEqual([g.goal_id for g in goals], ["g_2", "g_1"])
        self.assertEqual(goals[0].custom_goals, ["Write 你好"])
        self.assertEqual(goals[0].target_date, date(2024, 6, 1))
        self.assertIsNone(goals[0].plan)

        self.assertTrue(memory.delete_goal("g_1"))
        self.assertFalse(memory.delete_goal("g_1"))
        self.assertEqual([g.goal_id for g in memory.list_goals("u_1")], ["g_2"])

    def test_plan_is_stored_on_goal(self):
        memory.save_goal(new_goal("u_1", goal_type=GOAL_TYPES[0], goal_id="g_1"))
        memory.save_goal_plan("g_1", "- step one")
        self.assertEqual(memory.get_goal("g_1").plan, "- step one")
        with self.assertRaises(KeyError):
            memory.save_goal_plan("g_missing", "- step")
        with self.assertRaises(KeyError):
            memory.get_goal("g_missing")

    def test_clear_user_data_removes_goals(self):
        memory.save_goal(new_goal("u_1", goal_type=GOAL_TYPES[0], goal_id="g_1"))
        memory.save_goal(new_goal("u_2", goal_type=GOAL_TYPES[0], goal_id="g_2"))
        memory.clear_user_data("u_1")
        self.assertEqual(memory.list_goals("u_1"), [])
        self.assertEqual(len(memory.list_goals("u_2")), 1)

        memory.reset_db()
        self.assertEqual(memory.list_goals("u_2"), [])


class StudyPlanTests(unittest.IsolatedAsyncioTestCase):
    def test_parse_plan_normalizes_bullets(self):
        self.assertEqual(
            _parse_plan(PLAN_REPLY),
            [
                "- Trace 你 and 好 five times each",
                "- Write 中 from memory, then compare",
                "- Review stroke order before each attempt",
            ],
        )
        self.assertEqual(len(_parse_plan("\n".join(f"step {i}" for i in range(20)))), 8)

    async def test_provider_plan(self):
        client = FakeClient(PLAN_REPLY)
        gateway, _ = gateway_for(client)
        goal = new_goal("u_1", goal_type=GOAL_TYPES[0], timeline="2 weeks")
        summary = AnalyticsSummary(total_sessions=3, total_duration_seconds=600, average_score=72.5, streak_days=2)

        plan = await generate_plan(
            gateway, goal, summary, AISettingsSnapshot(model_type="openai/gpt-4-turbo"),
            language="chinese", level="beginner", request="focus on 中",
        )

        self.assertTrue(plan.succeeded)
        self.assertEqual(plan.goal_id, goal.goal_id)
        self.assertEqual(len(plan.lines), 3)
        call = client.chat.calls[0]
        self.assertEqual(call["model"], "openai/gpt-4-turbo")
        prompt = call["messages"][1]["content"]
        self.assertIn("TIMELINE: 2 weeks", prompt)
        self.assertIn("average score 73%", prompt)
        self.assertIn("LEARNER_REQUEST: focus on 中", prompt)

    async def test_no_credential_gives_basic_plan_inline(self):
        gateway, created = gateway_for(FakeClient("unused"), api_key=None)
        goal = new_goal("u_1", goal_type=GOAL_TYPES[0], timeline="1 month", target_date=date(2024, 6, 1))

        plan = await generate_plan(
            gateway, goal, AnalyticsSummary(total_sessions=2, average_score=65.0), AISettingsSnapshot(),
            language="english", level="beginner",
        )

        self.assertEqual(created, [])
        self.assertFalse(plan.succeeded)
        self.assertEqual(plan.error_kind, "AuthError")
        self.assertIn("- Work toward your goal over 1 month", plan.lines)
        self.assertIn("- Check your progress before 2024-06-01", plan.lines)
        self.assertIn("- Redo characters that scored under 80% before starting new ones", plan.lines)
        self.assertTrue(plan.lines[-1].startswith("AuthError:"))

    async def test_provider_errors_become_inline_text(self):
        cases = [
            (FakeClient(sdk_error(500)), "NetworkError"),
            (FakeClient("   "), "ProviderResponseError"),
            (FakeClient("- \n*\n"), "ProviderResponseError"),
            (mistral_on(json_reply({"choices": "oops"})), "ProviderResponseError"),
        ]
        for client, kind in cases:
            gateway = CapabilityGateway(CredentialStore("sk-test"), client_factory=lambda key, c=client: c)
            plan = await generate_plan(
                gateway, None, AnalyticsSummary(), AISettingsSnapshot(), language="english", level="beginner"
            )
            self.assertFalse(plan.succeeded)
            self.assertEqual(plan.error_kind, kind)
            self.assertIsNone(plan.goal_id)
            self.assertTrue(plan.lines[-1].startswith(f"{kind}:"))
            self.assertIn("- Practice 10-15 minutes every day to build your streak", plan.lines)

    def test_plan_results_never_reach_the_record(self):
        attempt = PracticeAttempt(attempt_id="a_1", character="A", language="english", level="beginner", started_at=T0)
        outcome = finalize_session(
            attempt,
            AISettingsSnapshot(),
            [EvaluationResult.ok("plan", narrative="- secret plan")],
            user_id="u_1",
            credential_present=True,
            now=T0 + timedelta(seconds=30),
        )
        self.assertNotIn("- secret plan", outcome.narrative)


class StudyPlanActionTests(TempDbTestCase):
    def services(self, client):
        services = Services(CredentialStore("sk-test"))
        services.gateway = CapabilityGateway(services.credentials, client_factory=lambda key: client)
        return services

    def test_plan_is_saved_on_latest_goal(self):
        ctx = context()
        action_set_goal("u_1", ctx, goal_type=GOAL_TYPES[0])
        latest = action_set_goal("u_1", ctx, custom_goals=["Write 你好 neatly"])
        memory.append_session(
            SessionRecord(
                id="r1", user_id="u_1", language="chinese", character="好", level="beginner",
                score=90, timestamp_created=T0, duration_seconds=120,
            )
        )
        client = FakeClient(PLAN_REPLY)

        plan = action_study_plan(self.services(client), "u_1", ctx, request="two weeks")

        self.assertTrue(plan.succeeded)
        self.assertEqual(plan.goal_id, latest.goal_id)
        self.assertIn("CUSTOM_GOALS: Write 你好 neatly", client.chat.calls[0]["messages"][1]["content"])
        stored = {g.goal_id: g for g in action_list_goals("u_1")}
        self.assertEqual(stored[latest.goal_id].plan, plan.text)
        self.assertEqual(len(stored), 2)

    def test_plan_without_goal_is_not_stored(self):
        plan = action_study_plan(self.services(FakeClient(sdk_error(401))), "u_1", context())
        self.assertFalse(plan.succeeded)
        self.assertEqual(plan.error_kind, "AuthError")
        self.assertEqual(action_list_goals("u_1"), [])


if __name__ == "__main__":
    unittest.main()
