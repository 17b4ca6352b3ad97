"""Read-only entry stores answering exact-form dictionary lookups."""

from __future__ import annotations

from dataclasses import dataclass
from functools import cached_property
import logging
from pathlib import Path
from typing import Iterable, Protocol

from readassist.cedict.parser import iter_cedict_lines
from readassist.models import DictionaryEntry

logger = logging.getLogger(__name__)


class EntryStore(Protocol):
    """Keyed, immutable view over dictionary entries."""

    def lookup(self, token: str) -> tuple[DictionaryEntry, ...]:
        """Return entries whose simplified or traditional form equals ``token``."""


def entries_from_lines(lines: Iterable[str]) -> tuple[DictionaryEntry, ...]:
    """Build entries from CC-CEDICT lines, numbering them in file order.

    Args:
        lines: Raw dictionary lines.

    Returns:
        Entries with 1-based ``id`` values following line order.
    """

    return tuple(
        DictionaryEntry(
            id=idx,
            simplified=parsed.simplified,
            traditional=parsed.traditional,
            pronunciation=parsed.pronunciation,
            definitions=parsed.definitions,
        )
        for idx, parsed in enumerate(iter_cedict_lines(lines), start=1)
    )


@dataclass(frozen=True)
class CedictEntryStore:
    """Entry store backed by a CC-CEDICT ``.u8`` file loaded into memory.

    The file is parsed once on first access and indexed by both written forms.
    Instances are path-scoped, deterministic and never mutated afterwards, so
    one instance can serve every request in the process.
    """

    path: Path

    @cached_property
    def entries(self) -> tuple[DictionaryEntry, ...]:
        """Load and cache all entries from disk.

        Returns:
            Immutable tuple of entries in file order.

        Raises:
            FileNotFoundError: If the configured dictionary file does not exist.
        """

        if not self.path.exists():
            raise FileNotFoundError(f"CC-CEDICT file not found: {self.path}")

        with self.path.open("r", encoding="utf-8") as handle:
            entries = entries_from_lines(handle)
        logger.info("Loaded %d dictionary entries from %s", len(entries), self.path)
        return entries

    @cached_property
    def entries_by_form(self) -> dict[str, tuple[DictionaryEntry, ...]]:
        """Index entries by simplified and traditional form.

        An entry whose two forms coincide is indexed once under that form.

        Returns:
            Dictionary mapping a written form to its entries in file order.
        """

        mapping: dict[str, list[DictionaryEntry]] = {}
        for entry in self.entries:
            mapping.setdefault(entry.simplified, []).append(entry)
            if entry.traditional != entry.simplified:
                mapping.setdefault(entry.traditional, []).append(entry)
        return {form: tuple(items) for form, items in mapping.items()}

    def open(self) -> CedictEntryStore:
        """Force the file load so a missing dictionary fails at startup."""

        _ = self.entries_by_form
        return self

    def lookup(self, token: str) -> tuple[DictionaryEntry, ...]:
        """Return entries matching ``token`` exactly; empty tuple when absent."""

        return self.entries_by_form.get(token, ())


@dataclass(frozen=True)
class StaticEntryStore:
    """In-memory store over already-built entries, used for fixtures."""

    entries: tuple[DictionaryEntry, ...]

    @classmethod
    def from_lines(cls, lines: Iterable[str]) -> StaticEntryStore:
        """Build a store from CC-CEDICT formatted lines."""

        return cls(entries_from_lines(lines))

    def lookup(self, token: str) -> tuple[DictionaryEntry, ...]:
        return tuple(
            entry for entry in self.entries if token in (entry.simplified, entry.traditional)
        )
