# strokecoach/storage/sqlite_store.py
from __future__ import annotations

import json
import logging
import os
import sqlite3
from datetime import date, datetime
from typing import List, Optional

from strokecoach.config import settings
from strokecoach.models import AISettingsSnapshot, LearningGoal, SessionRecord, User, utc_now

logger = logging.getLogger(__name__)

_DB_PATH = settings.DB_PATH


def _connect() -> sqlite3.Connection:
    folder = os.path.dirname(_DB_PATH)
    if folder:
        os.makedirs(folder, exist_ok=True)
    conn = sqlite3.connect(_DB_PATH)
    conn.row_factory = sqlite3.Row
    return conn


def _to_iso(dt: datetime) -> str:
    return dt.isoformat(timespec="microseconds")


def _from_iso(s: str) -> datetime:
    return datetime.fromisoformat(s)


def get_db_path() -> str:
    return _DB_PATH


def init_db() -> None:
    with _connect() as conn:
        cur = conn.cursor()

        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS users (
                user_id TEXT PRIMARY KEY,
                name TEXT,
                created_at TEXT NOT NULL,
                preferred_language TEXT NOT NULL DEFAULT 'english',
                level TEXT NOT NULL DEFAULT 'beginner'
            )
            """
        )

        # append-only: one row per finalized attempt
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS practice_sessions (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                language TEXT NOT NULL,
                character TEXT NOT NULL,
                level TEXT NOT NULL,
                score INTEGER NOT NULL,
                timestamp_created TEXT NOT NULL,
                duration_seconds INTEGER NOT NULL,
                attempts_count INTEGER NOT NULL DEFAULT 1
            )
            """
        )
        cur.execute(
            "CREATE INDEX IF NOT EXISTS idx_practice_sessions_user "
            "ON practice_sessions(user_id, timestamp_created)"
        )

        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS ai_settings (
                user_id TEXT PRIMARY KEY,
                settings_json TEXT NOT NULL,
                current_language TEXT NOT NULL DEFAULT 'english',
                current_level TEXT NOT NULL DEFAULT 'beginner',
                updated_at TEXT NOT NULL
            )
            """
        )

        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS goals (
                goal_id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                goal_type TEXT NOT NULL DEFAULT '',
                timeline TEXT NOT NULL DEFAULT '',
                target_date TEXT,
                custom_goals_json TEXT NOT NULL DEFAULT '[]',
                language TEXT NOT NULL DEFAULT 'english',
                created_at TEXT NOT NULL,
                plan_text TEXT,
                plan_updated_at TEXT
            )
            """
        )

        conn.commit()


# --------------------
# Users
# --------------------
def save_user(user: User) -> None:
    init_db()
    with _connect() as conn:
        conn.execute(
            """
            INSERT INTO users(user_id, name, created_at, preferred_language, level)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(user_id) DO UPDATE SET
                name=excluded.name,
                preferred_language=excluded.preferred_language,
                level=excluded.level
            """,
            (user.user_id, user.name, _to_iso(user.created_at), user.preferred_language, user.level),
        )
        conn.commit()


def get_user(user_id: str) -> User:
    init_db()
    with _connect() as conn:
        row = conn.execute(
            "SELECT user_id, name, created_at, preferred_language, level FROM users WHERE user_id=?",
            (user_id,),
        ).fetchone()

    if row is None:
        raise KeyError(f"User not found: {user_id}")

    return User(
        user_id=row["user_id"],
        name=row["name"],
        created_at=_from_iso(row["created_at"]),
        preferred_language=row["preferred_language"],
        level=row["level"],
    )


def list_users(limit: int = 50) -> List[User]:
    init_db()
    with _connect() as conn:
        rows = conn.execute(
            """
            SELECT user_id, name, created_at, preferred_language, level
            FROM users
            ORDER BY created_at DESC
            LIMIT ?
            """,
            (limit,),
        ).fetchall()

    return [
        User(
            user_id=r["user_id"],
            name=r["name"],
            created_at=_from_iso(r["created_at"]),
            preferred_language=r["preferred_language"],
            level=r["level"],
        )
        for r in rows
    ]


# --------------------
# Practice sessions
# --------------------
def append_session(record: SessionRecord) -> None:
    init_db()
    with _connect() as conn:
        conn.execute(
            """
            INSERT INTO practice_sessions(
                id, user_id, language, character, level, score,
                timestamp_created, duration_seconds, attempts_count
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                record.id,
                record.user_id,
                record.language,
                record.character,
                record.level,
                int(record.score),
                _to_iso(record.timestamp_created),
                int(record.duration_seconds),
                int(record.attempts_count),
            ),
        )
        conn.commit()
    logger.info("Stored session %s for user %s (score=%d)", record.id, record.user_id, record.score)


def list_sessions(user_id: str, limit: Optional[int] = None) -> List[SessionRecord]:
    """Chronological (oldest first). With limit, the most recent `limit` records."""
    init_db()
    with _connect() as conn:
        if limit is None:
            rows = conn.execute(
                "SELECT * FROM practice_sessions WHERE user_id=? ORDER BY timestamp_created ASC, rowid ASC",
                (user_id,),
            ).fetchall()
        else:
            rows = conn.execute(
                """
                SELECT * FROM practice_sessions
                WHERE user_id=?
                ORDER BY timestamp_created DESC, rowid DESC
                LIMIT ?
                """,
                (user_id, limit),
            ).fetchall()
            # rows are newest-first; reverse to keep chronological
            rows = list(rows)[::-1]

    return [
        SessionRecord(
            id=r["id"],
            user_id=r["user_id"],
            language=r["language"],
            character=r["character"],
            level=r["level"],
            score=int(r["score"]),
            timestamp_created=_from_iso(r["timestamp_created"]),
            duration_seconds=int(r["duration_seconds"]),
            attempts_count=int(r["attempts_count"]),
        )
        for r in rows
    ]


def count_sessions(user_id: str) -> int:
    init_db()
    with _connect() as conn:
        row = conn.execute(
            "SELECT COUNT(*) AS n FROM practice_sessions WHERE user_id=?",
            (user_id,),
        ).fetchone()
    return int(row["n"]) if row else 0


# --------------------
# AI settings (per user)
# --------------------
def save_ai_settings(user_id: str, snapshot: AISettingsSnapshot, *, language: str, level: str) -> None:
    init_db()
    with _connect() as conn:
        conn.execute(
            """
            INSERT INTO ai_settings(user_id, settings_json, current_language, current_level, updated_at)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(user_id) DO UPDATE SET
                settings_json=excluded.settings_json,
                current_language=excluded.current_language,
                current_level=excluded.current_level,
                updated_at=excluded.updated_at
            """,
            (user_id, snapshot.model_dump_json(), language, level, _to_iso(utc_now())),
        )
        conn.commit()


def get_ai_settings(user_id: str) -> Optional[dict]:
    init_db()
    with _connect() as conn:
        row = conn.execute(
            "SELECT settings_json, current_language, current_level FROM ai_settings WHERE user_id=?",
            (user_id,),
        ).fetchone()
    if row is None:
        return None
    return {
        "ai": json.loads(row["settings_json"]),
        "language": row["current_language"],
        "level": row["current_level"],
    }


# --------------------
# Learning goals
# --------------------
def _row_to_goal(r: sqlite3.Row) -> LearningGoal:
    return LearningGoal(
        goal_id=r["goal_id"],
        user_id=r["user_id"],
        goal_type=r["goal_type"],
        timeline=r["timeline"],
        target_date=date.fromisoformat(r["target_date"]) if r["target_date"] else None,
        custom_goals=json.loads(r["custom_goals_json"] or "[]"),
        language=r["language"],
        created_at=_from_iso(r["created_at"]),
        plan=r["plan_text"],
    )


def save_goal(goal: LearningGoal) -> None:
    init_db()
    with _connect() as conn:
        conn.execute(
            """
            INSERT INTO goals(goal_id, user_id, goal_type, timeline, target_date,
                              custom_goals_json, language, created_at, plan_text)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(goal_id) DO UPDATE SET
                goal_type=excluded.goal_type,
                timeline=excluded.timeline,
                target_date=excluded.target_date,
                custom_goals_json=excluded.custom_goals_json,
                language=excluded.language
            """,
            (
                goal.goal_id,
                goal.user_id,
                goal.goal_type,
                goal.timeline,
                goal.target_date.isoformat() if goal.target_date else None,
                json.dumps(goal.custom_goals, ensure_ascii=False),
                goal.language,
                _to_iso(goal.created_at),
                goal.plan,
            ),
        )
        conn.commit()


def get_goal(goal_id: str) -> LearningGoal:
    init_db()
    with _connect() as conn:
        row = conn.execute("SELECT * FROM goals WHERE goal_id=?", (goal_id,)).fetchone()
    if row is None:
        raise KeyError(f"Goal not found: {goal_id}")
    return _row_to_goal(row)


def list_goals(user_id: str) -> List[LearningGoal]:
    """Newest first."""
    init_db()
    with _connect() as conn:
        rows = conn.execute(
            "SELECT * FROM goals WHERE user_id=? ORDER BY created_at DESC, rowid DESC",
            (user_id,),
        ).fetchall()
    return [_row_to_goal(r) for r in rows]


def save_goal_plan(goal_id: str, plan_text: str) -> None:
    init_db()
    with _connect() as conn:
        cur = conn.execute(
            "UPDATE goals SET plan_text=?, plan_updated_at=? WHERE goal_id=?",
            (plan_text, _to_iso(utc_now()), goal_id),
        )
        conn.commit()
    if cur.rowcount == 0:
        raise KeyError(f"Goal not found: {goal_id}")


def delete_goal(goal_id: str) -> bool:
    init_db()
    with _connect() as conn:
        cur = conn.execute("DELETE FROM goals WHERE goal_id=?", (goal_id,))
        conn.commit()
    return cur.rowcount > 0


# --------------------
# Bulk clearing
# --------------------
def clear_user_data(user_id: str) -> int:
    """Delete every record, setting and goal of one user. Returns deleted session count."""
    init_db()
    with _connect() as conn:
        cur = conn.execute("DELETE FROM practice_sessions WHERE user_id=?", (user_id,))
        deleted = cur.rowcount
        conn.execute("DELETE FROM ai_settings WHERE user_id=?", (user_id,))
        conn.execute("DELETE FROM goals WHERE user_id=?", (user_id,))
        conn.commit()
    logger.info("Cleared %d sessions for user %s", deleted, user_id)
    return deleted


def reset_db() -> None:
    init_db()
    with _connect() as conn:
        conn.execute("DELETE FROM practice_sessions")
        conn.execute("DELETE FROM ai_settings")
        conn.execute("DELETE FROM goals")
        conn.execute("DELETE FROM users")
        conn.commit()
