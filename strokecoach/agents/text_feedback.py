# strokecoach/agents/text_feedback.py
from __future__ import annotations

from strokecoach.agents.provider import call_provider, response_text
from strokecoach.context_builder import build_practice_context
from strokecoach.models import EvaluationResult

TEXT_FEEDBACK_SYSTEM_PROMPT = """
You are an expert language learning assistant.
Give concise, actionable feedback for handwriting practice.

Rules:
- 2 to 4 short tips, one per line, no numbering.
- Focus on stroke order, proportions and spacing for the given CHARACTER.
- Adapt vocabulary to LEVEL.
- Follow the PERSONA tone exactly.
"""


async def call_text_feedback_agent(
    client,
    *,
    character: str,
    language: str,
    level: str,
    persona: str,
    model: str,
) -> EvaluationResult:
    context = build_practice_context(character=character, language=language, level=level, persona=persona)
    user_prompt = f"{context}\n\nGive feedback for practicing this character."

    resp = await call_provider(
        lambda: client.chat.complete_async(
            model=model,
            messages=[
                {"role": "system", "content": TEXT_FEEDBACK_SYSTEM_PROMPT},
                {"role": "user", "content": user_prompt},
            ],
            temperature=0.4,
        )
    )
    return EvaluationResult.ok("text", narrative=response_text(resp))
