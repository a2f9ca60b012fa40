# strokecoach/reference/characters.py
"""Read-only character reference content, keyed by (language, character).

Lookups never raise: a missing language or character yields None / [].
"""
from __future__ import annotations

import random
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

Difficulty = Literal["beginner", "intermediate", "advanced"]


class CharacterInfo(BaseModel):
    character: str
    category: str
    difficulty: Difficulty
    definition: str
    pronunciation: Optional[str] = None
    synonyms: List[str] = Field(default_factory=list)
    antonyms: List[str] = Field(default_factory=list)
    usage: str
    examples: List[str] = Field(default_factory=list)
    stroke_order: List[str] = Field(default_factory=list)
    cultural_notes: Optional[str] = None
    related_characters: List[str] = Field(default_factory=list)


class CharacterCategory(BaseModel):
    id: str
    name: str
    description: str
    characters: List[CharacterInfo]


def _cat(cat_id: str, name: str, description: str, *chars: dict) -> CharacterCategory:
    return CharacterCategory(
        id=cat_id,
        name=name,
        description=description,
        characters=[CharacterInfo(category=cat_id, **c) for c in chars],
    )


CHARACTER_DATA: Dict[str, List[CharacterCategory]] = {
    "english": [
        _cat(
            "basic-letters", "Basic Letters", "Fundamental alphabet letters",
            dict(
                character="A", difficulty="beginner",
                definition="The first letter of the English alphabet", pronunciation="/eɪ/",
                synonyms=["Alpha"], antonyms=["Z (last letter)"],
                usage="Used as the first letter in many words and as an indefinite article",
                examples=["Apple", "Amazing", "A book"],
                cultural_notes="Represents excellence in grading systems",
            ),
            dict(
                character="B", difficulty="beginner",
                definition="The second letter of the English alphabet", pronunciation="/biː/",
                synonyms=["Beta"], antonyms=["A (previous letter)"],
                usage="Common starting letter for many words",
                examples=["Book", "Beautiful", "Big"],
                cultural_notes="Often represents second place or grade B",
            ),
        ),
        _cat(
            "common-words", "Common Words", "Frequently used English words",
            dict(
                character="Hello", difficulty="beginner",
                definition="A greeting used when meeting someone", pronunciation="/həˈloʊ/",
                synonyms=["Hi", "Hey", "Greetings"], antonyms=["Goodbye", "Farewell"],
                usage="Used to greet someone or answer the phone",
                examples=["Hello, how are you?", "Hello world!"],
                cultural_notes="Universal greeting in English-speaking countries",
            ),
            dict(
                character="World", difficulty="beginner",
                definition="The earth and all its inhabitants", pronunciation="/wɜːrld/",
                synonyms=["Earth", "Globe", "Planet"], antonyms=["Universe (larger scope)"],
                usage="Refers to the planet Earth or global community",
                examples=["Around the world", "World peace"],
                cultural_notes='Often used in programming as "Hello World"',
            ),
        ),
    ],
    "chinese": [
        _cat(
            "basic-characters", "Basic Characters (基本字)", "Fundamental Chinese characters for beginners",
            dict(
                character="你", difficulty="beginner",
                definition="You (informal)", pronunciation="nǐ",
                synonyms=["您 (formal you)"], antonyms=["我 (I/me)"],
                usage="Used to address someone informally",
                examples=["你好 (Hello)", "你是谁？(Who are you?)"],
                stroke_order=["丿", "亻", "小"],
                cultural_notes='Most common way to say "you" in Mandarin',
                related_characters=["您", "我", "他"],
            ),
            dict(
                character="好", difficulty="beginner",
                definition="Good, well, fine", pronunciation="hǎo",
                synonyms=["棒 (great)", "不错 (not bad)"], antonyms=["坏 (bad)", "差 (poor)"],
                usage="Expresses positive quality or greeting",
                examples=["你好 (Hello)", "很好 (Very good)"],
                stroke_order=["女", "子"],
                cultural_notes='Combines "woman" and "child" radicals meaning harmony',
                related_characters=["很", "非常", "太"],
            ),
            dict(
                character="中", difficulty="beginner",
                definition="Middle, center, China", pronunciation="zhōng",
                synonyms=["中间 (middle)", "中央 (center)"], antonyms=["边 (side)", "外 (outside)"],
                usage="Indicates center position or refers to China",
                examples=["中国 (China)", "中间 (middle)"],
                stroke_order=["丨", "口", "丨"],
                cultural_notes='Central to Chinese identity - "Middle Kingdom"',
                related_characters=["国", "心", "央"],
            ),
        ),
        _cat(
            "numbers", "Numbers (数字)", "Chinese numerical characters",
            dict(
                character="一", difficulty="beginner",
                definition="One", pronunciation="yī",
                synonyms=["壹 (formal one)"], antonyms=["多 (many)"],
                usage="The number one, also used in counting",
                examples=["一个 (one piece)", "第一 (first)"],
                stroke_order=["一"],
                cultural_notes="Simplest Chinese character, represents unity",
                related_characters=["二", "三", "十"],
            ),
        ),
    ],
    "japanese": [
        _cat(
            "hiragana-basic", "Basic Hiragana (ひらがな)", "Fundamental hiragana characters",
            dict(
                character="あ", difficulty="beginner",
                definition='Hiragana character "a"', pronunciation="a",
                synonyms=["ア (katakana a)"],
                usage="Basic vowel sound, used in many words",
                examples=["あり (ant)", "あか (red)"],
                cultural_notes="First character in hiragana syllabary",
                related_characters=["い", "う", "え", "お"],
            ),
            dict(
                character="か", difficulty="beginner",
                definition='Hiragana character "ka"', pronunciation="ka",
                synonyms=["カ (katakana ka)"],
                usage="Consonant-vowel combination, common in Japanese",
                examples=["かき (persimmon)", "かみ (paper/god)"],
                cultural_notes="Part of the ka-gyō (ka column) in hiragana",
                related_characters=["き", "く", "け", "こ"],
            ),
        ),
        _cat(
            "katakana-basic", "Basic Katakana (カタカナ)", "Fundamental katakana characters",
            dict(
                character="ア", difficulty="beginner",
                definition='Katakana character "a"', pronunciation="a",
                synonyms=["あ (hiragana a)"],
                usage="Used for foreign words and emphasis",
                examples=["アメリカ (America)", "アイス (ice)"],
                cultural_notes="More angular than hiragana, used for loanwords",
                related_characters=["イ", "ウ", "エ", "オ"],
            ),
        ),
    ],
    "korean": [
        _cat(
            "basic-consonants", "Basic Consonants (자음)", "Fundamental Korean consonants",
            dict(
                character="ㄱ", difficulty="beginner",
                definition='Korean consonant "g/k"', pronunciation="g/k",
                synonyms=["기역 (giyeok)"],
                usage="Basic consonant, changes sound based on position",
                examples=["가 (ga)", "국 (guk)"],
                cultural_notes="First consonant in Korean alphabet order",
                related_characters=["ㄴ", "ㄷ", "ㄹ"],
            ),
            dict(
                character="ㄴ", difficulty="beginner",
                definition='Korean consonant "n"', pronunciation="n",
                synonyms=["니은 (nieun)"],
                usage="Nasal consonant, consistent sound",
                examples=["나 (na)", "눈 (nun)"],
                cultural_notes="Represents the tongue touching the roof of mouth",
                related_characters=["ㄱ", "ㄷ", "ㅁ"],
            ),
        ),
        _cat(
            "basic-vowels", "Basic Vowels (모음)", "Fundamental Korean vowels",
            dict(
                character="ㅏ", difficulty="beginner",
                definition='Korean vowel "a"', pronunciation="a",
                synonyms=["아 (a sound)"],
                usage="Basic vowel sound, bright and open",
                examples=["가 (ga)", "사 (sa)"],
                cultural_notes="Represents yang (positive) energy in Korean philosophy",
                related_characters=["ㅓ", "ㅗ", "ㅜ"],
            ),
        ),
        _cat(
            "common-words", "Common Words (일반 단어)", "Frequently used Korean words",
            dict(
                character="안", difficulty="intermediate",
                definition="Inside, peace, safety", pronunciation="an",
                synonyms=["내부 (inside)", "평안 (peace)"], antonyms=["밖 (outside)", "위험 (danger)"],
                usage="Used in greetings and to express safety",
                examples=["안녕 (hello/goodbye)", "안전 (safety)"],
                cultural_notes="Essential part of Korean greetings",
                related_characters=["녕", "전", "심"],
            ),
        ),
    ],
}

LANGUAGES = list(CHARACTER_DATA.keys())


def get_characters_by_language(language: str) -> List[CharacterCategory]:
    return CHARACTER_DATA.get(language, [])


def get_characters_by_category(language: str, category_id: str) -> List[CharacterInfo]:
    for cat in get_characters_by_language(language):
        if cat.id == category_id:
            return list(cat.characters)
    return []


def get_character_info(language: str, character: str) -> Optional[CharacterInfo]:
    for cat in get_characters_by_language(language):
        for info in cat.characters:
            if info.character == character:
                return info
    return None


def get_characters_by_difficulty(language: str, difficulty: str) -> List[CharacterInfo]:
    return [
        info
        for cat in get_characters_by_language(language)
        for info in cat.characters
        if info.difficulty == difficulty
    ]


def search_characters(language: str, query: str) -> List[CharacterInfo]:
    q = (query or "").lower()
    out: List[CharacterInfo] = []
    for cat in get_characters_by_language(language):
        for info in cat.characters:
            if (
                query in info.character
                or q in info.definition.lower()
                or q in info.usage.lower()
                or any(q in ex.lower() for ex in info.examples)
            ):
                out.append(info)
    return out


def get_random_character(
    language: str,
    difficulty: Optional[str] = None,
    rng: Optional[random.Random] = None,
) -> Optional[CharacterInfo]:
    if difficulty:
        pool = get_characters_by_difficulty(language, difficulty)
    else:
        pool = [info for cat in get_characters_by_language(language) for info in cat.characters]
    if not pool:
        return None
    return (rng or random).choice(pool)


def get_related_characters(language: str, character: str) -> List[CharacterInfo]:
    info = get_character_info(language, character)
    if info is None:
        return []
    related = [get_character_info(language, c) for c in info.related_characters]
    return [r for r in related if r is not None]


def first_character(language: str) -> Optional[str]:
    """Default practice character for a language (first entry of its first category)."""
    cats = get_characters_by_language(language)
    if cats and cats[0].characters:
        return cats[0].characters[0].character
    return None
