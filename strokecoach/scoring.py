"""Fallback scoring and the merge step that turns evaluation results into a SessionRecord."""
import random
import uuid
from datetime import datetime
from typing import List, Optional

from strokecoach.config import settings
from strokecoach.models import (
    AISettingsSnapshot,
    EvaluationResult,
    PracticeAttempt,
    SessionRecord,
    SubmissionOutcome,
    utc_now,
)
from strokecoach.reference.characters import get_character_info


def pseudo_score(attempt_id: str) -> int:
    """Uniform integer in [PSEUDO_SCORE_MIN, PSEUDO_SCORE_MAX], fixed per attempt."""
    rng = random.Random(attempt_id)
    return rng.randint(settings.PSEUDO_SCORE_MIN, settings.PSEUDO_SCORE_MAX)


def fallback_tips(language: str, character: str) -> List[str]:
    info = get_character_info(language, character)
    return [
        f'Practice writing "{character}" with smooth, confident strokes',
        f"Definition: {info.definition}" if info else "Focus on proper stroke order for better muscle memory",
        f"Usage: {info.usage}" if info else "Try to maintain consistent character size and spacing",
        "Configure AI settings to get personalized feedback",
    ]


def failure_line(result: EvaluationResult) -> str:
    return f"{result.error_kind}: {result.error_reason}"


def elapsed_seconds(started_at: datetime, now: datetime) -> int:
    return max(1, int((now - started_at).total_seconds()))


def finalize_session(
    attempt: PracticeAttempt,
    snapshot: AISettingsSnapshot,
    results: List[EvaluationResult],
    *,
    user_id: str,
    credential_present: bool,
    now: Optional[datetime] = None,
    record_id: Optional[str] = None,
) -> SubmissionOutcome:
    """
    Merge whatever results came back into exactly one SessionRecord.

    Only a successful vision result yields a measured score; every other path
    uses the pseudo-score, so the record always carries a score.
    """
    now = now or utc_now()
    score = pseudo_score(attempt.attempt_id)
    measured = False
    guess = None
    verdict = None
    narrative: List[str] = []

    if not credential_present:
        narrative.extend(fallback_tips(attempt.language, attempt.character))
        narrative.append("AuthError: no API key configured, AI feedback is off and a basic score was used")

    for r in results:
        if r.capability == "vision":
            if r.succeeded and r.score is not None:
                score = r.score
                measured = True
                guess = r.model_guess
                verdict = r.verdict
                narrative.insert(0, f"AI Analysis: {r.narrative}")
                narrative.append(f"Model Guess: {guess or '?'}")
                narrative.append(f"Accuracy Score: {score}%")
                if verdict:
                    narrative.append(f"Grade: {verdict}")
            else:
                narrative.append("AI analysis failed - using basic scoring")
                narrative.append(failure_line(r))

        elif r.capability == "text":
            if r.succeeded and r.narrative:
                narrative.extend(l.strip() for l in r.narrative.splitlines() if l.strip())
            else:
                info = get_character_info(attempt.language, attempt.character)
                narrative.append(f'Practice writing "{attempt.character}" with smooth, confident strokes')
                narrative.append(f"Tip: {info.usage}" if info else "AI tips unavailable - check your API key in settings")
                narrative.append(failure_line(r))

        elif r.capability in ("qa", "plan"):
            # Q&A goes to the question log and plans to the goal, never into the record
            continue

        else:
            raise ValueError(f"Unhandled capability: {r.capability}")

    if not measured:
        narrative.append(f"Score: {score}% (basic scoring)")
        if credential_present and not snapshot.video_assisted:
            narrative.append("Vision scoring is off - enable it in AI settings for a measured score")

    record = SessionRecord(
        id=record_id or uuid.uuid4().hex,
        user_id=user_id,
        language=attempt.language,
        character=attempt.character,
        level=attempt.level,
        score=score,
        timestamp_created=now,
        duration_seconds=elapsed_seconds(attempt.started_at, now),
        attempts_count=1,
    )
    return SubmissionOutcome(
        record=record,
        narrative=narrative,
        results=list(results),
        model_guess=guess,
        verdict=verdict,
        measured=measured,
    )
