"""Read-only statistics over a user's SessionRecords."""
from __future__ import annotations

import math
from datetime import date, datetime, timedelta, tzinfo
from typing import Dict, List, Optional, Sequence

import pandas as pd
from pydantic import BaseModel, Field

from strokecoach.models import SessionRecord, User, utc_now

DAY_NAMES = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]


class DayBucket(BaseModel):
    day: str
    score: int = 0
    time: int = 0  # mean duration, seconds


class AnalyticsSummary(BaseModel):
    total_sessions: int = 0
    total_duration_seconds: int = 0
    average_score: float = 0.0
    streak_days: int = 0
    by_day_of_week: List[DayBucket] = Field(default_factory=list)
    by_language: Dict[str, int] = Field(default_factory=dict)


class ProgressReport(BaseModel):
    user: Optional[User] = None
    generated_at: datetime
    summary: AnalyticsSummary
    sessions: List[SessionRecord] = Field(default_factory=list)


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def local_timezone() -> tzinfo:
    return datetime.now().astimezone().tzinfo


def _in_zone(ts: pd.Series, tz: Optional[tzinfo]) -> pd.Series:
    return ts.dt.tz_convert(tz or local_timezone())


def to_frame(records: Sequence[SessionRecord]) -> pd.DataFrame:
    cols = ["id", "user_id", "language", "character", "level", "score",
            "timestamp_created", "duration_seconds", "attempts_count"]
    if not records:
        return pd.DataFrame(columns=cols)
    df = pd.DataFrame([r.model_dump() for r in records], columns=cols)
    df["timestamp_created"] = pd.to_datetime(df["timestamp_created"], utc=True)
    return df


def total_sessions(records: Sequence[SessionRecord]) -> int:
    return len(records)


def total_duration_seconds(records: Sequence[SessionRecord]) -> int:
    if not records:
        return 0
    return int(to_frame(records)["duration_seconds"].sum())


def average_score(records: Sequence[SessionRecord]) -> float:
    """Unrounded mean score; 0.0 for no sessions."""
    if not records:
        return 0.0
    return float(to_frame(records)["score"].mean())


def by_day_of_week(records: Sequence[SessionRecord], tz: Optional[tzinfo] = None) -> List[DayBucket]:
    """
    Seven buckets Mon..Sun. Days without sessions report zeros.
    Weekday is taken in `tz`, or in the machine's local zone when omitted.
    """
    buckets = [DayBucket(day=name) for name in DAY_NAMES]
    if not records:
        return buckets

    df = to_frame(records)
    df["weekday"] = _in_zone(df["timestamp_created"], tz).dt.weekday

    grouped = df.groupby("weekday").agg(score=("score", "mean"), time=("duration_seconds", "mean"))
    for weekday, row in grouped.iterrows():
        buckets[int(weekday)] = DayBucket(
            day=DAY_NAMES[int(weekday)],
            score=round_half_up(float(row["score"])),
            time=round_half_up(float(row["time"])),
        )
    return buckets


def by_language(records: Sequence[SessionRecord]) -> Dict[str, int]:
    """Share of sessions per language, in first-appearance order. Rounded values may not sum to 100."""
    if not records:
        return {}
    df = to_frame(records)
    counts = df["language"].value_counts(sort=False)
    total = len(df)
    out: Dict[str, int] = {}
    for lang in df["language"].drop_duplicates():
        out[lang] = round_half_up(counts[lang] / total * 100)
    return out


def current_streak_days(
    records: Sequence[SessionRecord],
    today: Optional[date] = None,
    tz: Optional[tzinfo] = None,
) -> int:
    """
    Consecutive practice days ending today, or yesterday if today has no session yet.
    Calendar days are taken in `tz`, or the local zone when omitted.
    """
    if not records:
        return 0
    zone = tz or local_timezone()
    days = set(_in_zone(to_frame(records)["timestamp_created"], zone).dt.date)

    day = today or datetime.now(zone).date()
    if day not in days:
        day -= timedelta(days=1)

    streak = 0
    while day in days:
        streak += 1
        day -= timedelta(days=1)
    return streak


def summarize(
    records: Sequence[SessionRecord],
    *,
    today: Optional[date] = None,
    tz: Optional[tzinfo] = None,
) -> AnalyticsSummary:
    return AnalyticsSummary(
        total_sessions=total_sessions(records),
        total_duration_seconds=total_duration_seconds(records),
        average_score=average_score(records),
        streak_days=current_streak_days(records, today, tz),
        by_day_of_week=by_day_of_week(records, tz),
        by_language=by_language(records),
    )


def build_report(
    user: Optional[User],
    records: Sequence[SessionRecord],
    *,
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
) -> ProgressReport:
    now = now or utc_now()
    zone = tz or local_timezone()
    return ProgressReport(
        user=user,
        generated_at=now,
        summary=summarize(records, today=now.astimezone(zone).date(), tz=zone),
        sessions=list(records),
    )


def share_text(summary: AnalyticsSummary) -> str:
    minutes = summary.total_duration_seconds // 60
    return (
        "My Language Learning Progress:\n"
        f"{summary.total_sessions} practice sessions\n"
        f"{minutes} minutes practiced\n"
        f"{round_half_up(summary.average_score)}% average score\n"
        f"{summary.streak_days}-day streak\n"
        "\n"
        "Keep learning! #LanguageLearning"
    )
