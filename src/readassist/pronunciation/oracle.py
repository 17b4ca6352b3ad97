"""Context-aware pronunciation for tokens located inside a full sentence.

The oracle runs pypinyin once over the whole sentence, so phrase-level
polyphone disambiguation sees the full context, and stores one numbered
syllable per Chinese character offset. Tones are then settled against the
CC-CEDICT readings. Tokens streamed later by the segmenter are located in the
sentence and read back from that map without re-running the analysis.
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Iterable, Sequence

from pypinyin import Style, lazy_pinyin

from readassist.cedict.cache import LookupCache, LruCache
from readassist.models import PronunciationPositionMap, Segment
from readassist.pronunciation.tones import (
    HAN_CLASS,
    NUMBERED_SYLLABLE_RE,
    contains_chinese,
    is_chinese_char,
    normalize_syllable,
    to_tone_number,
)

logger = logging.getLogger(__name__)

HAN_RUN_RE = re.compile(HAN_CLASS + "+")
NOT_FOUND = -1

Analyzer = Callable[[str], Sequence[str]]


class AnalysisError(RuntimeError):
    """Raised when the sentence-level analysis cannot be run."""


class PypinyinAnalyzer:
    """Tone-marked syllables for a run of Han characters, one per character."""

    def __init__(self, tone_sandhi: bool = False) -> None:
        self.tone_sandhi = tone_sandhi

    def __call__(self, text: str) -> list[str]:
        return lazy_pinyin(text, style=Style.TONE, tone_sandhi=self.tone_sandhi)


def _numbered_or_none(marked: str) -> str | None:
    """Transliterate one analyzer syllable, rejecting anything that is not pinyin."""

    try:
        numbered = normalize_syllable(to_tone_number(marked))
    except ValueError:
        return None
    if not NUMBERED_SYLLABLE_RE.fullmatch(numbered):
        return None
    return numbered


def _base(syllable: str) -> str:
    return syllable[:-1] if syllable[-1:].isdigit() else syllable


def match_reading(syllables: Sequence[str], readings: Iterable[str]) -> str | None:
    """Pick the dictionary reading that agrees with analysed syllables.

    A reading equal to the analysis wins; otherwise the first reading whose
    syllables have the same bases, so only the tones come from the dictionary.

    Args:
        syllables: Normalized numbered syllables from the analysis.
        readings: Normalized dictionary pronunciations in entry order.

    Returns:
        The chosen reading, or ``None`` when no reading lines up.
    """

    candidates = list(readings)
    wanted = " ".join(syllables)
    if wanted in candidates:
        return wanted
    bases = [_base(syllable) for syllable in syllables]
    for reading in candidates:
        if [_base(part) for part in reading.split()] == bases:
            return reading
    return None


class PronunciationOracle:
    """Builds position maps and resolves token pronunciations against them.

    The analysis chooses between readings from context; the dictionary, when
    one is given, settles the tone of the chosen reading. Sandhi tones and
    missing neutral tones from the analysis are therefore replaced by the
    citation tones CC-CEDICT lists.

    Args:
        analyzer: Callable returning tone-marked syllables for a Han run;
            defaults to pypinyin without tone sandhi.
        cache: Optional dictionary cache used to reconcile syllables with
            dictionary readings and as the last-resort reading source.
    """

    def __init__(
        self,
        analyzer: Analyzer | None = None,
        cache: LookupCache | None = None,
        isolated_cache_size: int = 5000,
    ) -> None:
        self.analyzer = analyzer or PypinyinAnalyzer()
        self.cache = cache
        self._isolated: LruCache[str] = LruCache(isolated_cache_size)

    def build_map(self, sentence: str) -> PronunciationPositionMap:
        """Analyse ``sentence`` once and index numbered syllables by offset.

        Each maximal run of Han characters is analysed as a unit. If the
        analyzer returns a syllable count that does not line up with the run,
        that run is analysed character by character instead. Every syllable is
        then reconciled with the dictionary readings of its character.

        Args:
            sentence: Full input sentence.

        Returns:
            Immutable position map; only Chinese-character offsets are set.

        Raises:
            AnalysisError: If the analyzer itself fails on the sentence.
        """

        syllable_at: dict[int, str] = {}
        for match in HAN_RUN_RE.finditer(sentence):
            run = match.group()
            try:
                marked = list(self.analyzer(run))
                if len(marked) != len(run):
                    logger.debug(
                        "Analyzer returned %d syllables for %d characters in %r",
                        len(marked),
                        len(run),
                        run,
                    )
                    marked = [self._first_syllable(char) for char in run]
            except Exception as exc:
                raise AnalysisError(f"Pronunciation analysis failed for {sentence!r}") from exc

            for idx, syllable in enumerate(marked):
                numbered = _numbered_or_none(syllable)
                if numbered is not None:
                    syllable_at[match.start() + idx] = self.reconcile(run[idx], numbered)

        return PronunciationPositionMap(sentence=sentence, syllable_at=syllable_at)

    def _first_syllable(self, char: str) -> str:
        result = self.analyzer(char)
        return result[0] if result else ""

    def dictionary_readings(self, token: str) -> list[str]:
        """Return the distinct normalized pronunciations of ``token`` in entry order."""

        if self.cache is None:
            return []
        readings: list[str] = []
        for entry in self.cache.lookup(token):
            reading = normalize_syllable(entry.pronunciation)
            if reading not in readings:
                readings.append(reading)
        return readings

    def reconcile(self, char: str, syllable: str) -> str:
        """Replace the tone of ``syllable`` with the dictionary's for ``char``.

        ``syllable`` is kept when it equals a reading of ``char`` or when no
        reading has the same base syllable.
        """

        readings = [reading for reading in self.dictionary_readings(char) if " " not in reading]
        return match_reading([syllable], readings) or syllable

    def isolated(self, char: str) -> str | None:
        """Return a numbered syllable for ``char`` analysed without context.

        Falls back to the first dictionary reading when the analyzer has no
        answer. Results are cached per character.
        """

        cached = self._isolated.get(char)
        if cached is not None:
            return cached or None

        syllable = _numbered_or_none(self._first_syllable(char))
        if syllable is not None:
            syllable = self.reconcile(char, syllable)
        else:
            readings = [r for r in self.dictionary_readings(char) if " " not in r]
            syllable = readings[0] if readings else None

        self._isolated.set(char, syllable or "")
        return syllable

    def resolve(self, position_map: PronunciationPositionMap, token: str, start: int) -> str:
        """Return the space-separated numbered pinyin of ``token`` at ``start``.

        Non-Chinese characters contribute nothing. A Chinese character whose
        offset is unpopulated, or does not hold that character, is looked up in
        isolation. When the whole token is a dictionary word, the reading that
        agrees with those syllables is returned instead, so word-level neutral
        tones (``peng2 you5``) survive. The map is never modified.

        Args:
            position_map: Map built for the sentence containing ``token``.
            token: Token text as emitted by the segmenter.
            start: Offset of ``token`` in ``position_map.sentence``.

        Returns:
            Numbered pinyin such as ``ni3 hao3``; empty for tokens without
            Chinese characters.
        """

        if not token or not contains_chinese(token):
            return ""

        syllables: list[str] = []
        missing = False
        for idx, char in enumerate(token):
            if not is_chinese_char(char):
                continue
            offset = start + idx
            syllable = None
            if position_map.sentence[offset : offset + 1] == char:
                syllable = position_map.get(offset)
            if syllable is None:
                syllable = self.isolated(char)
            if syllable:
                syllables.append(syllable)
            else:
                missing = True

        readings = self.dictionary_readings(token)
        if readings:
            word_reading = match_reading(syllables, readings)
            if word_reading is None and missing:
                word_reading = readings[0]
            if word_reading is not None:
                return word_reading
        return " ".join(syllables)

    @staticmethod
    def find_token_position(sentence: str, token: str, search_from: int = 0) -> int:
        """Return the first offset of ``token`` at or after ``search_from``.

        Returns:
            The offset, or ``NOT_FOUND`` (``-1``) when absent or empty.
        """

        if not token:
            return NOT_FOUND
        return sentence.find(token, max(search_from, 0))

    def cursor(self, position_map: PronunciationPositionMap | None) -> PronunciationCursor:
        """Start a left-to-right correction walk over one sentence."""

        return PronunciationCursor(self, position_map)

    def correct_segments(
        self,
        position_map: PronunciationPositionMap | None,
        segments: Iterable[Segment],
    ) -> list[Segment]:
        """Correct already-parsed segments in order.

        Segments whose correction is empty or impossible keep their original
        pronunciation.
        """

        walk = self.cursor(position_map)
        return [
            Segment(
                token=segment.token,
                pronunciation=walk.correct(segment.token, segment.pronunciation),
                definition=segment.definition,
            )
            for segment in segments
        ]


class PronunciationCursor:
    """Monotonic position tracker matching repeated tokens left to right."""

    def __init__(
        self,
        oracle: PronunciationOracle,
        position_map: PronunciationPositionMap | None,
    ) -> None:
        self.oracle = oracle
        self.position_map = position_map
        self.position = 0

    def correct(self, token: str, original: str) -> str:
        """Return the corrected pronunciation for the next occurrence of ``token``.

        The cursor only advances when the token is found, so an unmatched token
        does not disturb the alignment of the ones after it.
        """

        if self.position_map is None or not token:
            return original

        found = self.oracle.find_token_position(self.position_map.sentence, token, self.position)
        if found == NOT_FOUND:
            logger.debug("Token %r not found after offset %d", token, self.position)
            return original

        self.position = found + len(token)
        corrected = self.oracle.resolve(self.position_map, token, found)
        if corrected and corrected != original:
            logger.debug("Corrected %r: %r -> %r", token, original, corrected)
        return corrected or original
