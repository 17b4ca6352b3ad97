"""Data models shared by the dictionary, pronunciation and streaming layers.

Every record here is an immutable value object so instances can be cached
process-wide and handed across concurrent requests without copying.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping


@dataclass(frozen=True)
class DictionaryEntry:
    """One CC-CEDICT record keyed by its simplified and traditional forms.

    A surface form may own several entries (polyphonic words); an entry is
    identified by the form it matched together with ``pronunciation``, never
    by the form alone. ``pronunciation`` is the numbered pinyin exactly as the
    dictionary lists it, for example ``ni3 hao3`` or ``lu:4``.
    """

    id: int
    simplified: str
    traditional: str
    pronunciation: str
    definitions: tuple[str, ...]

    @property
    def syllables(self) -> tuple[str, ...]:
        """Return the pronunciation split into numbered syllables."""

        return tuple(self.pronunciation.split())

    def to_dict(self) -> dict[str, object]:
        """Render the entry as a JSON-ready mapping."""

        return {
            "id": self.id,
            "simplified": self.simplified,
            "traditional": self.traditional,
            "pinyin": self.pronunciation,
            "definitions": list(self.definitions),
        }


@dataclass(frozen=True)
class LookupResult:
    """Response for one dictionary lookup.

    ``segments`` is only set when the token had no direct entry and had to be
    decomposed into dictionary-valid pieces.
    """

    entries: tuple[DictionaryEntry, ...]
    segments: tuple[str, ...] | None = None

    def to_dict(self) -> dict[str, object]:
        """Render the result with ``segments`` omitted when unused."""

        payload: dict[str, object] = {"entries": [entry.to_dict() for entry in self.entries]}
        if self.segments is not None:
            payload["segments"] = list(self.segments)
        return payload


@dataclass(frozen=True)
class PronunciationPositionMap:
    """Context-aware syllables for one sentence, indexed by character offset.

    Only offsets holding a Chinese character are populated. Offsets use plain
    ``str`` indexing on ``sentence`` so the start offset of any substring can
    be used to read the syllables of each of its characters.
    """

    sentence: str
    syllable_at: Mapping[int, str] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "syllable_at", MappingProxyType(dict(self.syllable_at)))

    def get(self, offset: int) -> str | None:
        """Return the syllable at ``offset`` or ``None`` when unpopulated."""

        return self.syllable_at.get(offset)


@dataclass(frozen=True)
class Segment:
    """One parsed segment as produced by the upstream segmenter."""

    token: str
    pronunciation: str
    definition: str = ""
