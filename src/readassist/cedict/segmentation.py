"""Greedy dictionary-backed decomposition of tokens without a direct entry."""

from __future__ import annotations

import logging
from typing import Callable, Protocol

from readassist.cedict.cache import LookupCache

logger = logging.getLogger(__name__)


class Memo(Protocol):
    """Minimal mapping interface used to record decompositions."""

    def get(self, key: str) -> tuple[str, ...] | None: ...

    def __setitem__(self, key: str, value: tuple[str, ...]) -> None: ...


def decompose(
    token: str,
    is_known: Callable[[str], bool],
    memo: Memo | None = None,
) -> tuple[str, ...]:
    """Split ``token`` into dictionary-valid pieces, longest prefix first.

    At each position the whole remainder is taken when it is a dictionary word;
    otherwise the longest strictly shorter known prefix is taken; otherwise a
    single character is emitted. The first match wins and is never revisited,
    so the result is greedy rather than globally minimal.

    The remainder shrinks by at least one character per step, so the walk
    always terminates and never fails; ``"".join(result) == token`` holds.

    Args:
        token: Text to decompose.
        is_known: Predicate telling whether a string has a dictionary entry.
        memo: Optional table of earlier results keyed by input text. Every
            suffix that starts at a piece boundary is recorded, since its
            decomposition is exactly the tail of this one.

    Returns:
        Tuple of pieces in order.
    """

    pieces: list[str] = []
    boundaries: list[int] = []
    start = 0

    while start < len(token):
        rest = token[start:]
        if memo is not None:
            known_tail = memo.get(rest)
            if known_tail is not None:
                pieces.extend(known_tail)
                break

        boundaries.append(start)
        if is_known(rest):
            pieces.append(rest)
            break

        for split_size in range(len(rest) - 1, 0, -1):
            left = rest[:split_size]
            if is_known(left):
                pieces.append(left)
                start += split_size
                break
        else:
            pieces.append(rest[0])
            start += 1

    result = tuple(pieces)
    if memo is not None:
        # boundaries[i] is where result[i] starts
        for idx, boundary in enumerate(boundaries):
            memo[token[boundary:]] = result[idx:]
    return result


class SegmentationResolver:
    """Decomposition memoized through a shared :class:`LookupCache`."""

    def __init__(self, cache: LookupCache) -> None:
        self.cache = cache

    def decompose(self, token: str) -> tuple[str, ...]:
        """Return the decomposition of ``token``, reusing cached suffixes."""

        result = decompose(token, self.cache.contains, self.cache.decompositions)
        logger.debug("Decomposed %r into %s", token, result)
        return result
