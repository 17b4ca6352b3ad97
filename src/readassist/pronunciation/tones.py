"""Tone-mark to tone-number transliteration for pinyin syllables."""

from __future__ import annotations

import re
import unicodedata

UMLAUT_U = "u:"

TONE_MARKS = {
    "ā": ("a", 1),
    "á": ("a", 2),
    "ǎ": ("a", 3),
    "à": ("a", 4),
    "ē": ("e", 1),
    "é": ("e", 2),
    "ě": ("e", 3),
    "è": ("e", 4),
    "ī": ("i", 1),
    "í": ("i", 2),
    "ǐ": ("i", 3),
    "ì": ("i", 4),
    "ō": ("o", 1),
    "ó": ("o", 2),
    "ǒ": ("o", 3),
    "ò": ("o", 4),
    "ū": ("u", 1),
    "ú": ("u", 2),
    "ǔ": ("u", 3),
    "ù": ("u", 4),
    "ǖ": (UMLAUT_U, 1),
    "ǘ": (UMLAUT_U, 2),
    "ǚ": (UMLAUT_U, 3),
    "ǜ": (UMLAUT_U, 4),
    "ń": ("n", 2),
    "ň": ("n", 3),
    "ǹ": ("n", 4),
    "ḿ": ("m", 2),
    "ê": ("e", 0),
    "ế": ("e", 2),
    "ề": ("e", 4),
}

UMLAUT_SPELLINGS = {"ü": UMLAUT_U, "v": UMLAUT_U}
NEUTRAL_TONE = 5
NUMBERED_SYLLABLE_RE = re.compile(r"^([a-z:]+)([1-5])$")
# CJK unified ideographs, extension A, compatibility ideographs, extensions B-F
HAN_CLASS = r"[\u3400-\u4dbf\u4e00-\u9fff\uf900-\ufaff\U00020000-\U0002ebef]"
CJK_RE = re.compile(HAN_CLASS)

COMBINING_TONE_MARKS = {"\u0304": 1, "\u0301": 2, "\u030c": 3, "\u0300": 4}


def is_chinese_char(char: str) -> bool:
    """Return whether ``char`` is a Han ideograph."""

    return bool(CJK_RE.fullmatch(char))


def contains_chinese(text: str) -> bool:
    """Return whether ``text`` holds at least one Han ideograph."""

    return bool(CJK_RE.search(text))


def _normalize_umlaut(text: str) -> str:
    for spelling, replacement in UMLAUT_SPELLINGS.items():
        text = text.replace(spelling, replacement)
    return text


def to_tone_number(syllable: str) -> str:
    """Convert one tone-marked syllable to tone-number form.

    Marked vowels become the bare vowel and the tone digit is appended; a
    syllable without a tone mark is neutral and gets ``5``. ``ü`` and ``v``
    are spelled ``u:``. A syllable that already ends in a tone digit is only
    re-spelled, so converting an already numbered syllable is a no-op.

    Args:
        syllable: Pinyin such as ``nǐ``, ``lǜ``, ``ma`` or ``hao3``.

    Returns:
        Numbered pinyin such as ``ni3``, ``lu:4``, ``ma5`` or ``hao3``.

    Raises:
        ValueError: If the syllable carries more than one distinct tone mark.
    """

    syllable = unicodedata.normalize("NFC", syllable.strip())
    if not syllable:
        return ""
    if syllable[-1].isdigit():
        return _normalize_umlaut(syllable)

    chars: list[str] = []
    tones: set[int] = set()
    for ch in syllable:
        # marks NFC cannot compose, such as m + U+0304
        if ch in COMBINING_TONE_MARKS:
            tones.add(COMBINING_TONE_MARKS[ch])
            continue
        mapped = TONE_MARKS.get(ch) or TONE_MARKS.get(ch.lower())
        if mapped is None:
            chars.append(ch)
            continue
        base, tone = mapped
        chars.append(base.upper() if ch.isupper() and base != UMLAUT_U else base)
        if tone:
            tones.add(tone)

    if len(tones) > 1:
        raise ValueError(f"Multiple tone marks in syllable '{syllable}'.")
    tone = tones.pop() if tones else NEUTRAL_TONE
    return f"{_normalize_umlaut(''.join(chars))}{tone}"


def normalize_syllable(syllable: str) -> str:
    """Lowercase a numbered syllable and spell ``ü`` as ``u:`` for comparison."""

    return _normalize_umlaut(syllable.strip().lower())


def tone_of(syllable: str) -> int | None:
    """Return the tone digit of a numbered syllable, or ``None`` if malformed."""

    match = NUMBERED_SYLLABLE_RE.fullmatch(normalize_syllable(syllable))
    if match is None:
        return None
    return int(match.group(2))
