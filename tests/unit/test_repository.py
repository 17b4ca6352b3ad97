"""Unit tests for the in-memory CC-CEDICT entry stores."""

from __future__ import annotations

from pathlib import Path

import pytest

from readassist.cedict.repository import CedictEntryStore, StaticEntryStore, entries_from_lines


def test_lookup_matches_simplified_and_traditional(store: CedictEntryStore) -> None:
    simplified = store.lookup("中国")
    traditional = store.lookup("中國")

    assert simplified == traditional
    assert [entry.pronunciation for entry in simplified] == ["Zhong1 guo2"]


def test_lookup_returns_every_polyphonic_entry_in_file_order(store: CedictEntryStore) -> None:
    entries = store.lookup("吗")

    assert [entry.pronunciation for entry in entries] == ["ma2", "ma5"]
    assert entries[0].id < entries[1].id


def test_entry_with_identical_forms_is_indexed_once(store: CedictEntryStore) -> None:
    assert len(store.lookup("你")) == 1


def test_lookup_is_exact_and_returns_empty_tuple_when_absent(store: CedictEntryStore) -> None:
    assert store.lookup("你好吗") == ()
    assert store.lookup(" 你") == ()


def test_entries_skip_comments_and_malformed_lines(store: CedictEntryStore) -> None:
    assert len(store.entries) == 19
    assert [entry.id for entry in store.entries] == list(range(1, 20))


def test_missing_dictionary_fails_on_open(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        CedictEntryStore(tmp_path / "missing.u8").open()


def test_static_store_matches_file_store() -> None:
    lines = ["嗎 吗 [ma2] /what?/", "嗎 吗 [ma5] /question particle/"]
    static = StaticEntryStore.from_lines(lines)

    assert static.lookup("嗎") == entries_from_lines(lines)
    assert static.lookup("你") == ()


def test_entry_to_dict_uses_pinyin_key(store: CedictEntryStore) -> None:
    payload = store.lookup("绿")[0].to_dict()

    assert payload["pinyin"] == "lu:4"
    assert payload["traditional"] == "綠"
    assert payload["definitions"] == ["green"]
