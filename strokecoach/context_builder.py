import base64
from typing import Optional

from strokecoach.reference.characters import get_character_info

PERSONA_STYLE = {
    "encouraging": "Be warm and motivating. Lead with what went well, then give one thing to improve.",
    "strict": "Be direct and exacting. Point out every flaw in stroke order, proportion and balance.",
    "neutral": "Be factual and concise. No praise, no criticism beyond what the drawing shows.",
}


def persona_instruction(persona: str) -> str:
    return PERSONA_STYLE.get(persona, PERSONA_STYLE["neutral"])


def build_reference_block(language: str, character: str) -> str:
    info = get_character_info(language, character)
    if info is None:
        return "(no reference entry)"

    lines = [f"DEFINITION: {info.definition}"]
    if info.pronunciation:
        lines.append(f"PRONUNCIATION: {info.pronunciation}")
    if info.stroke_order:
        lines.append(f"STROKE_COMPONENTS: {' '.join(info.stroke_order)}")
    if info.examples:
        lines.append(f"EXAMPLES: {'; '.join(info.examples[:3])}")
    return "\n".join(lines)


def build_practice_context(
    *,
    character: str,
    language: str,
    level: str,
    persona: str,
    question: Optional[str] = None,
) -> str:
    ctx = f"""
CHARACTER: {character}
LANGUAGE: {language}
LEVEL: {level}
PERSONA: {persona} - {persona_instruction(persona)}

REFERENCE:
{build_reference_block(language, character)}
""".strip()
    if question:
        ctx += f"\n\nSTUDENT_QUESTION:\n{question.strip()}"
    return ctx


def image_data_url(image: bytes, mime: str = "image/png") -> str:
    return f"data:{mime};base64,{base64.b64encode(image).decode('ascii')}"
