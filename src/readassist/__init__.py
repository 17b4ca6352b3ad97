"""Chinese reading assistant: dictionary lookups and streamed pinyin correction."""

from .models import DictionaryEntry, LookupResult, PronunciationPositionMap, Segment

__all__ = ["DictionaryEntry", "LookupResult", "PronunciationPositionMap", "Segment"]
