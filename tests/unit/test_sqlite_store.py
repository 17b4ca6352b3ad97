"""Unit tests for the SQLite importer and entry store."""

from __future__ import annotations

from pathlib import Path

import pytest

from readassist.cedict.repository import CedictEntryStore
from readassist.cedict.sqlite_store import SqliteEntryStore, build_database


def test_build_database_reports_import_counts(mini_cedict_path: Path, tmp_path: Path) -> None:
    stats = build_database(mini_cedict_path, tmp_path / "db" / "cedict.sqlite")

    assert stats.entries == 19
    assert stats.comments == 2
    assert stats.empty == 1
    assert stats.skipped == 1
    assert stats.elapsed_seconds >= 0


def test_sqlite_store_matches_file_store(
    mini_cedict_path: Path, tmp_path: Path, store: CedictEntryStore
) -> None:
    db_path = tmp_path / "cedict.sqlite"
    build_database(mini_cedict_path, db_path)

    with SqliteEntryStore(db_path) as sqlite_store:
        assert sqlite_store.count() == 19
        for token in ("吗", "中國", "中国", "你", "括号", "绿", "不在"):
            assert sqlite_store.lookup(token) == store.lookup(token)


def test_build_database_backs_up_existing_file(mini_cedict_path: Path, tmp_path: Path) -> None:
    db_path = tmp_path / "cedict.sqlite"
    db_path.write_bytes(b"old")

    build_database(mini_cedict_path, db_path)

    assert (tmp_path / "cedict.sqlite.backup").read_bytes() == b"old"
    with SqliteEntryStore(db_path) as sqlite_store:
        assert sqlite_store.count() == 19


def test_missing_database_and_source_raise(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        SqliteEntryStore(tmp_path / "missing.sqlite")
    with pytest.raises(FileNotFoundError):
        build_database(tmp_path / "missing.u8", tmp_path / "out.sqlite")
