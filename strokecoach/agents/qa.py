# strokecoach/agents/qa.py
from strokecoach.agents.provider import call_provider, response_text
from strokecoach.context_builder import build_practice_context
from strokecoach.models import EvaluationResult

QA_SYSTEM_PROMPT = """
You are an expert language learning assistant. Give concise, actionable tips.
Answer the STUDENT_QUESTION about the CHARACTER being practiced.
Keep it under 120 words. If the question is unrelated to writing or the language, answer briefly anyway.
"""


async def call_qa_agent(
    client,
    question: str,
    *,
    character: str,
    language: str,
    level: str,
    model: str,
) -> EvaluationResult:
    context = build_practice_context(
        character=character, language=language, level=level, persona="neutral", question=question
    )

    resp = await call_provider(
        lambda: client.chat.complete_async(
            model=model,
            messages=[
                {"role": "system", "content": QA_SYSTEM_PROMPT},
                {"role": "user", "content": context},
            ],
            temperature=0.5,
        )
    )
    return EvaluationResult.ok("qa", narrative=response_text(resp))
