# strokecoach/agents/handwriting.py
import re
from typing import Optional

from pydantic import BaseModel

from strokecoach.agents.provider import call_provider, response_text
from strokecoach.context_builder import build_practice_context, image_data_url
from strokecoach.errors import ProviderResponseError
from strokecoach.models import EvaluationResult

PASS_THRESHOLD = 70


class HandwritingReply(BaseModel):
    guess: Optional[str] = None
    score: int
    verdict: str
    feedback: str


HANDWRITING_SYSTEM_PROMPT = """
You are a handwriting examiner for language learners.
You receive a picture of a hand-drawn character and the CHARACTER the student intended to write.

Judge:
- which character the drawing actually looks like,
- how accurately it matches the intended CHARACTER (shape, proportions, stroke order cues),
- whether it would be accepted as legible at the student's LEVEL.

STRICT FORMAT:
Respond in plain text with EXACTLY these fields, one per line:

GUESS: the character you read in the drawing
SCORE: integer from 0 to 100
VERDICT: Pass or Fail
FEEDBACK: 1-3 sentences following the PERSONA tone

Never add anything else.
"""

_SCORE_RE = re.compile(r"-?\d+(?:\.\d+)?")


def _parse_handwriting(text: str) -> HandwritingReply:
    guess = None
    score = None
    verdict = None
    feedback_lines = []
    in_feedback = False

    for line in [l.strip() for l in (text or "").splitlines() if l.strip()]:
        up = line.upper()
        if up.startswith("GUESS:"):
            in_feedback = False
            guess = line.split(":", 1)[1].strip() or None
        elif up.startswith("SCORE:"):
            in_feedback = False
            m = _SCORE_RE.search(line.split(":", 1)[1])
            if m:
                score = int(round(float(m.group(0))))
        elif up.startswith("VERDICT:"):
            in_feedback = False
            val = line.split(":", 1)[1].strip().lower()
            if val.startswith("pass"):
                verdict = "Pass"
            elif val.startswith("fail"):
                verdict = "Fail"
        elif up.startswith("FEEDBACK:"):
            in_feedback = True
            feedback_lines.append(line.split(":", 1)[1].strip())
        elif in_feedback:
            feedback_lines.append(line)

    if score is None:
        raise ProviderResponseError("Vision model reply had no SCORE")

    # clamp
    score = max(0, min(100, score))
    if verdict is None:
        verdict = "Pass" if score >= PASS_THRESHOLD else "Fail"
    feedback = "\n".join(l for l in feedback_lines if l).strip() or f"Scored {score}/100."

    return HandwritingReply(guess=guess, score=score, verdict=verdict, feedback=feedback)


async def call_handwriting_agent(
    client,
    *,
    character: str,
    language: str,
    level: str,
    persona: str,
    model: str,
    image: Optional[bytes],
) -> EvaluationResult:
    if not image:
        raise ProviderResponseError("Nothing drawn to analyze")

    context = build_practice_context(character=character, language=language, level=level, persona=persona)

    resp = await call_provider(
        lambda: client.chat.complete_async(
            model=model,
            messages=[
                {"role": "system", "content": HANDWRITING_SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": context},
                        {"type": "image_url", "image_url": {"url": image_data_url(image)}},
                    ],
                },
            ],
            temperature=0.1,
        )
    )

    reply = _parse_handwriting(response_text(resp))
    return EvaluationResult.ok(
        "vision",
        score=reply.score,
        model_guess=reply.guess,
        verdict=reply.verdict,
        narrative=reply.feedback,
    )
