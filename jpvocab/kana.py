"""Japanese script helpers and display-mode rendering."""

import re

from jpvocab.models import DisplayMode, Word

HIRAGANA_PATTERN = re.compile(r"^[\u3040-\u309F]+$")
KATAKANA_PATTERN = re.compile(r"^[\u30A0-\u30FF]+$")
KANJI_PATTERN = re.compile(r"^[\u4E00-\u9FAF]+$")


def is_hiragana(text: str) -> bool:
    return bool(HIRAGANA_PATTERN.match(text))


def is_katakana(text: str) -> bool:
    return bool(KATAKANA_PATTERN.match(text))


def is_kanji(text: str) -> bool:
    return bool(KANJI_PATTERN.match(text))


def create_furigana(kanji: str, reading: str) -> str:
    """Kanji with its reading in brackets, e.g. 学生(がくせい)."""
    if not kanji:
        return reading
    if not reading:
        return kanji
    return f"{kanji}({reading})"


def display_text(word: Word, mode: DisplayMode, show_furigana: bool = True) -> str:
    """
    Render a word the way the learner asked to see it.

    Args:
        word: The word to render
        mode: Reading only, kanji only, or mixed
        show_furigana: In mixed mode, attach the reading to the kanji

    Returns:
        Display string; falls back to whichever form exists
    """
    mode = DisplayMode(mode)
    if mode == DisplayMode.READING:
        return word.reading or word.kanji
    if mode == DisplayMode.KANJI:
        return word.kanji or word.reading
    if show_furigana:
        return create_furigana(word.kanji, word.reading)
    return word.kanji or word.reading
