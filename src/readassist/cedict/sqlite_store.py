"""SQLite-backed entry store and the CC-CEDICT import step that builds it."""

from __future__ import annotations

from dataclasses import dataclass
import json
import logging
from pathlib import Path
import sqlite3
import threading
import time

from readassist.cedict.parser import parse_cedict_line
from readassist.models import DictionaryEntry

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE entries (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    simplified TEXT NOT NULL,
    traditional TEXT NOT NULL,
    pinyin TEXT NOT NULL,
    definitions TEXT NOT NULL
);
"""

INDEX_SQL = """
CREATE INDEX idx_simplified ON entries(simplified);
CREATE INDEX idx_traditional ON entries(traditional);
CREATE INDEX idx_pinyin ON entries(pinyin);
"""

LOOKUP_SQL = """
SELECT id, simplified, traditional, pinyin, definitions FROM entries WHERE simplified = ?
UNION
SELECT id, simplified, traditional, pinyin, definitions FROM entries WHERE traditional = ?
ORDER BY id
"""


def _row_to_entry(row: sqlite3.Row) -> DictionaryEntry:
    return DictionaryEntry(
        id=int(row["id"]),
        simplified=row["simplified"],
        traditional=row["traditional"],
        pronunciation=row["pinyin"],
        definitions=tuple(json.loads(row["definitions"])),
    )


class SqliteEntryStore:
    """Entry store reading a pre-built ``cedict.sqlite`` database.

    The connection is opened read-only and shared across threads; SQLite
    serializes access internally and the store never writes, so a single lock
    around cursor use is all the bookkeeping needed.
    """

    def __init__(self, path: Path) -> None:
        if not path.exists():
            raise FileNotFoundError(f"Dictionary database not found: {path}")
        self.path = path
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(
            f"{path.resolve().as_uri()}?mode=ro", uri=True, check_same_thread=False
        )
        self._conn.row_factory = sqlite3.Row

    def lookup(self, token: str) -> tuple[DictionaryEntry, ...]:
        """Return entries whose simplified or traditional form equals ``token``.

        The ``UNION`` removes the duplicate row produced when both forms match.
        """

        with self._lock:
            rows = self._conn.execute(LOOKUP_SQL, (token, token)).fetchall()
        return tuple(_row_to_entry(row) for row in rows)

    def count(self) -> int:
        with self._lock:
            return int(self._conn.execute("SELECT COUNT(*) FROM entries").fetchone()[0])

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> SqliteEntryStore:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


@dataclass(frozen=True)
class ImportStats:
    """Summary of one :func:`build_database` run."""

    entries: int
    skipped: int
    comments: int
    empty: int
    elapsed_seconds: float


def build_database(cedict_path: Path, db_path: Path) -> ImportStats:
    """Import a CC-CEDICT ``.u8`` file into a fresh SQLite database.

    An existing database at ``db_path`` is moved aside to ``<name>.backup``
    before the new one is written. All rows are inserted in one transaction and
    the lookup indexes are created afterwards.

    Args:
        cedict_path: Source CC-CEDICT file.
        db_path: Destination database path; parent directories are created.

    Returns:
        Counts of imported, skipped, comment and empty lines.

    Raises:
        FileNotFoundError: If ``cedict_path`` does not exist.
    """

    started = time.perf_counter()
    if not cedict_path.exists():
        raise FileNotFoundError(f"CC-CEDICT file not found: {cedict_path}")

    db_path.parent.mkdir(parents=True, exist_ok=True)
    if db_path.exists():
        backup_path = db_path.with_name(db_path.name + ".backup")
        logger.info("Backing up existing database to %s", backup_path)
        db_path.replace(backup_path)

    rows: list[tuple[str, str, str, str]] = []
    skipped = comments = empty = 0
    with cedict_path.open("r", encoding="utf-8") as handle:
        for line in handle:
            if not line.strip():
                empty += 1
                continue
            if line.startswith("#"):
                comments += 1
                continue
            parsed = parse_cedict_line(line)
            if parsed is None:
                skipped += 1
                logger.warning("Could not parse line: %s", line[:80].rstrip())
                continue
            rows.append(
                (
                    parsed.simplified,
                    parsed.traditional,
                    parsed.pronunciation,
                    json.dumps(list(parsed.definitions), ensure_ascii=False),
                )
            )

    conn = sqlite3.connect(db_path)
    try:
        conn.executescript(SCHEMA_SQL)
        with conn:
            conn.executemany(
                "INSERT INTO entries (simplified, traditional, pinyin, definitions) "
                "VALUES (?, ?, ?, ?)",
                rows,
            )
        conn.executescript(INDEX_SQL)
    finally:
        conn.close()

    stats = ImportStats(
        entries=len(rows),
        skipped=skipped,
        comments=comments,
        empty=empty,
        elapsed_seconds=time.perf_counter() - started,
    )
    logger.info(
        "Imported %d entries into %s (skipped %d, comments %d, empty %d)",
        stats.entries,
        db_path,
        stats.skipped,
        stats.comments,
        stats.empty,
    )
    return stats
