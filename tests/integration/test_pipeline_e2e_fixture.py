"""Integration test from CC-CEDICT import through stream correction and lookup."""

from __future__ import annotations

import json
from pathlib import Path

from readassist.cedict.sqlite_store import SqliteEntryStore, build_database
from readassist.config import Settings
from readassist.pipeline import build_services


def test_imported_database_drives_lookup_and_correction(
    mini_cedict_path: Path, tmp_path: Path
) -> None:
    """A SQLite-backed service bundle should correct a streamed segmentation."""

    db_path = tmp_path / "cedict.sqlite"
    build_database(mini_cedict_path, db_path)
    services = build_services(Settings(dictionary_path=db_path))
    assert isinstance(services.store, SqliteEntryStore)

    sentence = "我是中国人。"
    content = json.dumps(
        {
            "translation": "I am Chinese.",
            "segments": [
                {"id": 0, "token": "我", "pinyin": "wo3", "definition": "I"},
                {"id": 1, "token": "是", "pinyin": "shi2", "definition": "am"},
                {"id": 2, "token": "中国人", "pinyin": "zhong1 guo2 ren1", "definition": "Chinese"},
                {"id": 3, "token": "。", "pinyin": "", "definition": ""},
            ],
        },
        ensure_ascii=False,
    )
    events = "".join(
        "data: "
        + json.dumps({"id": "c1", "choices": [{"delta": {"content": content[idx : idx + 4]}}]})
        + "\n\n"
        for idx in range(0, len(content), 4)
    )
    raw = (": upstream\n\n" + events + "data: [DONE]\n\n").encode("utf-8")

    out = b"".join(
        services.pipeline.run(sentence, (raw[idx : idx + 5] for idx in range(0, len(raw), 5)))
    )

    streamed = "".join(
        json.loads(line[len("data: ") :])["choices"][0]["delta"]["content"]
        for line in out.decode("utf-8").splitlines()
        if line.startswith("data: {")
    )
    segments = json.loads(streamed)["segments"]
    assert [segment["pinyin"] for segment in segments] == [
        "wo3",
        "shi4",
        "zhong1 guo2 ren2",
        "",
    ]

    lookup = services.dictionary.definition_lookup("中国人我")
    assert lookup is not None
    assert lookup.segments == ("中国人", "我")
    services.store.close()
