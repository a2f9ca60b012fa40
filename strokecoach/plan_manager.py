# strokecoach/plan_manager.py
import logging
from datetime import date
from typing import Iterable, List, Optional

from strokecoach.agents.gateway import CapabilityGateway
from strokecoach.analytics.aggregator import AnalyticsSummary, round_half_up
from strokecoach.controller import new_id
from strokecoach.models import AISettingsSnapshot, EvaluationResult, LearningGoal, StudyPlan, utc_now
from strokecoach.scoring import failure_line

logger = logging.getLogger(__name__)

GOAL_TYPES = (
    "Master 50 new characters",
    "Achieve 90% accuracy",
    "Practice daily for 30 days",
    "Complete all beginner lessons",
)

GOAL_TIMELINES = ("1 week", "2 weeks", "1 month", "3 months")


def new_goal(
    user_id: str,
    *,
    goal_type: str = "",
    timeline: str = "",
    target_date: Optional[date] = None,
    custom_goals: Optional[Iterable[str]] = None,
    language: str = "english",
    goal_id: Optional[str] = None,
) -> LearningGoal:
    """
    Validate and build a goal. A goal needs a goal type or at least one
    custom goal; goal type and timeline come from the fixed choices.
    """
    custom = [g.strip() for g in (custom_goals or []) if g and g.strip()]
    if goal_type and goal_type not in GOAL_TYPES:
        raise ValueError(f"goal_type must be one of {GOAL_TYPES}")
    if timeline and timeline not in GOAL_TIMELINES:
        raise ValueError(f"timeline must be one of {GOAL_TIMELINES}")
    if not goal_type and not custom:
        raise ValueError("Pick a goal type or add a custom goal")

    return LearningGoal(
        goal_id=goal_id or new_id("g"),
        user_id=user_id,
        goal_type=goal_type,
        timeline=timeline,
        target_date=target_date,
        custom_goals=custom,
        language=language,
        created_at=utc_now(),
    )


def describe_goal(goal: Optional[LearningGoal]) -> str:
    if goal is None:
        return "(no goal set)"
    lines = []
    if goal.goal_type:
        lines.append(f"GOAL_TYPE: {goal.goal_type}")
    if goal.timeline:
        lines.append(f"TIMELINE: {goal.timeline}")
    if goal.target_date:
        lines.append(f"TARGET_DATE: {goal.target_date.isoformat()}")
    if goal.custom_goals:
        lines.append(f"CUSTOM_GOALS: {'; '.join(goal.custom_goals)}")
    return "\n".join(lines)


def describe_progress(summary: AnalyticsSummary) -> str:
    if summary.total_sessions == 0:
        return "No practice sessions yet."
    return (
        f"{summary.total_sessions} sessions, "
        f"{summary.total_duration_seconds // 60} minutes, "
        f"average score {round_half_up(summary.average_score)}%, "
        f"{summary.streak_days}-day streak"
    )


def fallback_plan(goal: Optional[LearningGoal], summary: AnalyticsSummary, level: str) -> List[str]:
    """Plan built from the goal and progress alone, used when the provider is not available."""
    lines = []
    if goal is not None and goal.timeline:
        lines.append(f"- Work toward your goal over {goal.timeline}")
    if goal is not None and goal.target_date:
        lines.append(f"- Check your progress before {goal.target_date.isoformat()}")
    lines.append("- Practice 10-15 minutes every day to build your streak")
    lines.append(f"- Start each session with {level} characters and review their stroke order")
    if summary.total_sessions and summary.average_score < 80:
        lines.append("- Redo characters that scored under 80% before starting new ones")
    elif summary.total_sessions:
        lines.append("- Your scores are solid: add two new characters each week")
    return lines


async def generate_plan(
    gateway: CapabilityGateway,
    goal: Optional[LearningGoal],
    summary: AnalyticsSummary,
    snapshot: AISettingsSnapshot,
    *,
    language: str,
    level: str,
    request: str = "",
) -> StudyPlan:
    result = await gateway.generate_study_plan(
        request,
        goal_summary=describe_goal(goal),
        language=language,
        level=level,
        progress=describe_progress(summary),
        model=snapshot.model_type,
    )
    goal_id = goal.goal_id if goal else None

    if result.succeeded and result.narrative:
        return StudyPlan(goal_id=goal_id, request=request, lines=result.narrative.splitlines(), succeeded=True)

    if result.succeeded:
        # an empty plan counts as an unusable reply
        result = EvaluationResult.failure("plan", "ProviderResponseError", "No valid response from AI.")
    logger.info("Study plan fell back to the basic plan (%s)", result.error_kind)
    lines = fallback_plan(goal, summary, level) + [failure_line(result)]
    return StudyPlan(
        goal_id=goal_id,
        request=request,
        lines=lines,
        succeeded=False,
        error_kind=result.error_kind,
        error_reason=result.error_reason,
    )
