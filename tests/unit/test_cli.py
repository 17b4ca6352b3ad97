"""Unit tests for the command-line entrypoint."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from readassist.cli import build_arg_parser, main


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for suffix in ("PRONUNCIATION_FIELD", "SEGMENTS_FIELD", "TOKEN_FIELD", "CACHE_SIZE"):
        monkeypatch.delenv(f"READASSIST_{suffix}", raising=False)


def test_parser_requires_a_command() -> None:
    with pytest.raises(SystemExit):
        build_arg_parser().parse_args([])


def test_lookup_prints_decomposition_json(mini_cedict_path: Path, capsys) -> None:
    code = main(["--dictionary", str(mini_cedict_path), "lookup", "你好吗"])

    payload = json.loads(capsys.readouterr().out)
    assert code == 0
    assert payload["segments"] == ["你好", "吗"]
    assert payload["entries"][0]["pinyin"] == "ni3 hao3"


def test_lookup_without_entries_returns_one(mini_cedict_path: Path, capsys) -> None:
    code = main(["--dictionary", str(mini_cedict_path), "lookup", "犇"])

    assert code == 1
    assert "No entries found" in capsys.readouterr().err


def test_missing_dictionary_exits(tmp_path: Path) -> None:
    with pytest.raises(SystemExit):
        main(["--dictionary", str(tmp_path / "missing.u8"), "lookup", "你"])


def test_correct_relays_recorded_stream(mini_cedict_path: Path, tmp_path: Path, capsys) -> None:
    content = '{"segments":[{"token":"中国","pinyin":"zhong1 guo3"},{"token":"吗","pinyin":"ma1"}]}'
    payload = {"choices": [{"delta": {"content": content}}]}
    recorded = tmp_path / "stream.sse"
    recorded.write_text(
        f"data: {json.dumps(payload, ensure_ascii=False)}\n\ndata: [DONE]\n\n", encoding="utf-8"
    )

    code = main(
        [
            "--dictionary",
            str(mini_cedict_path),
            "correct",
            "--sentence",
            "中国吗",
            "--input",
            str(recorded),
            "--chunk-size",
            "3",
        ]
    )

    out = capsys.readouterr().out
    assert code == 0
    assert "zhong1 guo2" in out
    assert "ma5" in out
    assert out.rstrip("\n").endswith("data: [DONE]")


def test_import_cedict_builds_database(mini_cedict_path: Path, tmp_path: Path, capsys) -> None:
    db_path = tmp_path / "cedict.sqlite"

    code = main(["import-cedict", "--cedict", str(mini_cedict_path), "--output", str(db_path)])

    assert code == 0
    assert db_path.exists()
    assert "Imported 19 entries" in capsys.readouterr().out
