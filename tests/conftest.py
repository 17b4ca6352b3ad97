"""Shared fixtures for dictionary, oracle and stream tests."""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest

from readassist.cedict.cache import LookupCache
from readassist.cedict.repository import CedictEntryStore
from readassist.pronunciation.oracle import PronunciationOracle

FIXTURES = Path(__file__).parent / "fixtures"

# Tone-marked readings used where a test needs a deterministic analyzer.
MARKED_READINGS = {
    "你": "nǐ",
    "好": "hǎo",
    "吗": "ma",
    "中": "zhōng",
    "国": "guó",
    "人": "rén",
    "我": "wǒ",
    "是": "shì",
    "绿": "lǜ",
    "行": "háng",
    "银": "yín",
}


class FakeAnalyzer:
    """Per-character table lookup standing in for the sentence analyzer."""

    def __init__(self, readings: dict[str, str] | None = None) -> None:
        self.readings = dict(MARKED_READINGS if readings is None else readings)
        self.calls: list[str] = []

    def __call__(self, text: str) -> list[str]:
        self.calls.append(text)
        return [self.readings.get(char, "") for char in text]


@pytest.fixture
def mini_cedict_path() -> Path:
    return FIXTURES / "mini_cedict.u8"


@pytest.fixture
def store(mini_cedict_path: Path) -> CedictEntryStore:
    return CedictEntryStore(mini_cedict_path).open()


@pytest.fixture
def cache(store: CedictEntryStore) -> LookupCache:
    return LookupCache(store, max_size=64)


@pytest.fixture
def fake_analyzer() -> FakeAnalyzer:
    return FakeAnalyzer()


@pytest.fixture
def make_oracle(cache: LookupCache) -> Callable[..., PronunciationOracle]:
    """Build oracles over the fixture dictionary with a chosen analyzer."""

    def factory(analyzer=None) -> PronunciationOracle:
        return PronunciationOracle(analyzer=analyzer or FakeAnalyzer(), cache=cache)

    return factory


@pytest.fixture
def analyzer_factory() -> type[FakeAnalyzer]:
    return FakeAnalyzer
