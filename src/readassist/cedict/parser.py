"""Parsing utilities for CC-CEDICT and compatible dictionary files."""

from __future__ import annotations

from dataclasses import dataclass
import re
from typing import Iterable, Iterator

CEDICT_ENTRY_RE = re.compile(r"^(\S+)\s+(\S+)\s+\[([^]]+)]\s*/(.*)/\s*$")


@dataclass(frozen=True)
class ParsedLine:
    """One CC-CEDICT line split into its four fields.

    Definitions keep their dictionary order; empty glosses between doubled
    slashes are dropped.
    """

    traditional: str
    simplified: str
    pronunciation: str
    definitions: tuple[str, ...]


def parse_cedict_line(line: str) -> ParsedLine | None:
    """Parse one ``Trad Simp [pin1 yin1] /gloss/gloss/`` line.

    Args:
        line: Raw dictionary line, with or without a trailing newline or CR.

    Returns:
        The parsed record, or ``None`` for blank, comment and malformed lines.
    """

    line = line.rstrip("\r\n")
    if not line.strip() or line.startswith("#"):
        return None

    match = CEDICT_ENTRY_RE.match(line.strip())
    if not match:
        return None

    traditional, simplified, pinyin_field, definition_payload = match.groups()
    pronunciation = " ".join(pinyin_field.split())
    if not pronunciation:
        return None

    glosses = tuple(part.strip() for part in definition_payload.split("/") if part.strip())
    return ParsedLine(
        traditional=traditional,
        simplified=simplified,
        pronunciation=pronunciation,
        definitions=glosses,
    )


def iter_cedict_lines(lines: Iterable[str]) -> Iterator[ParsedLine]:
    """Yield parsed records for every valid line, skipping the rest.

    Args:
        lines: Iterable of raw dictionary lines.

    Yields:
        Parsed records in file order.
    """

    for line in lines:
        parsed = parse_cedict_line(line)
        if parsed is not None:
            yield parsed
