# strokecoach/agents/study_plan.py
from __future__ import annotations

from typing import List

from strokecoach.agents.provider import call_provider, response_text
from strokecoach.models import EvaluationResult

STUDY_PLAN_SYSTEM_PROMPT = """
You are a language learning coach. Build a study plan for handwriting practice.

You are given:
- LANGUAGE and LEVEL
- GOALS (goal type, timeline, target date, the learner's own goals)
- PROGRESS (sessions so far, average score, streak)
- LEARNER_REQUEST (optional free text)

STRICT FORMAT:
Return plain text, one step per line, each line starting with "- ".
At most 8 lines. No headings, no numbering, no closing remarks.

Rules:
- Every step must be something the learner can do in a practice session.
- Fit the steps to the TIMELINE and TARGET_DATE when given.
- If the average score is under 80, start with review before new characters.
"""

MAX_PLAN_LINES = 8


def _parse_plan(text: str) -> List[str]:
    lines = []
    for line in (text or "").splitlines():
        line = line.strip().lstrip("-*•").strip()
        if line:
            lines.append(f"- {line}")
    return lines[:MAX_PLAN_LINES]


async def call_study_plan_agent(
    client,
    *,
    request: str,
    goal_summary: str,
    language: str,
    level: str,
    progress: str,
    model: str,
) -> EvaluationResult:
    user_prompt = f"""
LANGUAGE: {language}
LEVEL: {level}

GOALS:
{goal_summary}

PROGRESS:
{progress}

LEARNER_REQUEST: {request.strip() or "none"}
""".strip()

    resp = await call_provider(
        lambda: client.chat.complete_async(
            model=model,
            messages=[
                {"role": "system", "content": STUDY_PLAN_SYSTEM_PROMPT},
                {"role": "user", "content": user_prompt},
            ],
            temperature=0.3,
        )
    )
    return EvaluationResult.ok("plan", narrative="\n".join(_parse_plan(response_text(resp))))
