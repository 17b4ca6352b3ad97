"""Dictionary lookup service behind the definition popup."""

from __future__ import annotations

import logging

from readassist.cedict.cache import LookupCache
from readassist.cedict.segmentation import SegmentationResolver
from readassist.models import DictionaryEntry, LookupResult

logger = logging.getLogger(__name__)

MAX_TOKEN_LENGTH = 100


def validate_lookup_token(token: str, max_length: int = MAX_TOKEN_LENGTH) -> str:
    """Trim a lookup token and enforce the length limit.

    Args:
        token: Raw token from the caller.
        max_length: Longest accepted token after trimming.

    Returns:
        The trimmed token, possibly empty.

    Raises:
        ValueError: If the trimmed token exceeds ``max_length`` characters.
    """

    trimmed = token.strip()
    if len(trimmed) > max_length:
        raise ValueError(f"Token exceeds maximum length of {max_length} characters.")
    return trimmed


class DictionaryService:
    """Direct lookups with a decomposition fallback.

    Args:
        cache: Shared lookup cache wrapping the entry store.
        max_token_length: Longest token :meth:`definition_lookup` accepts.
    """

    def __init__(self, cache: LookupCache, max_token_length: int = MAX_TOKEN_LENGTH) -> None:
        self.cache = cache
        self.resolver = SegmentationResolver(cache)
        self.max_token_length = max_token_length

    def lookup(self, token: str) -> tuple[DictionaryEntry, ...]:
        return self.cache.lookup(token)

    def definition_lookup(self, token: str) -> LookupResult | None:
        """Look up ``token``, decomposing it when there is no direct entry.

        Args:
            token: Token clicked by the user; surrounding whitespace is ignored.

        Returns:
            Direct entries when the token itself is a dictionary word; otherwise
            the decomposition with the entries of every piece. ``None`` for a
            blank token or when no piece has an entry.

        Raises:
            ValueError: If the token is longer than ``max_token_length``.
        """

        trimmed = validate_lookup_token(token, self.max_token_length)
        if not trimmed:
            return None

        direct = self.cache.lookup(trimmed)
        if direct:
            return LookupResult(entries=direct)

        segments = self.resolver.decompose(trimmed)
        entries: list[DictionaryEntry] = []
        for segment in segments:
            entries.extend(self.cache.lookup(segment))

        if not entries:
            logger.debug("No entries for %r after decomposition %s", trimmed, segments)
            return None
        return LookupResult(entries=tuple(entries), segments=segments)

    def token_pronunciation(self, token: str) -> str | None:
        """Return the first entry's pronunciation, or ``None`` when absent."""

        entries = self.cache.lookup(token)
        return entries[0].pronunciation if entries else None

    def character_readings(self, char: str) -> tuple[str, ...]:
        """Return every distinct dictionary reading of ``char`` in entry order."""

        readings: list[str] = []
        for entry in self.cache.lookup(char):
            if entry.pronunciation not in readings:
                readings.append(entry.pronunciation)
        return tuple(readings)
