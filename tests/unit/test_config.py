"""Unit tests for environment-driven settings."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path

import pytest

from readassist.config import Settings
from readassist.stream.transducer import FieldNames


def test_from_env_reads_prefixed_variables() -> None:
    settings = Settings.from_env(
        {
            "READASSIST_DICTIONARY_PATH": "data/cedict.sqlite",
            "READASSIST_CACHE_SIZE": "10",
            "READASSIST_TONE_SANDHI": "off",
            "READASSIST_UPSTREAM_MODEL": "seg-model",
            "READASSIST_UPSTREAM_TIMEOUT": "12.5",
            "READASSIST_PRONUNCIATION_FIELD": "pronunciation",
        }
    )

    assert settings.dictionary_path == Path("data/cedict.sqlite")
    assert settings.cache_size == 10
    assert settings.tone_sandhi is False
    assert settings.upstream_model == "seg-model"
    assert settings.upstream_timeout == 12.5
    assert settings.fields == FieldNames(pronunciation="pronunciation")


def test_from_env_defaults() -> None:
    settings = Settings.from_env({})

    assert settings.cache_size == 5000
    assert settings.max_token_length == 100
    assert settings.upstream_timeout == 90.0
    assert settings.tone_sandhi is False
    assert settings.fields == FieldNames()


def test_from_env_rejects_unparseable_values() -> None:
    with pytest.raises(ValueError):
        Settings.from_env({"READASSIST_CACHE_SIZE": "many"})
    with pytest.raises(ValueError):
        Settings.from_env({"READASSIST_TONE_SANDHI": "sometimes"})


def test_validate_collects_every_problem() -> None:
    settings = replace(
        Settings(),
        cache_size=0,
        upstream_timeout=0,
        fields=FieldNames(token="segments"),
    )

    with pytest.raises(ValueError) as excinfo:
        settings.validate(require_upstream=True)

    message = str(excinfo.value)
    assert "5 errors" in message
    assert "cache_size" in message
    assert "upstream_timeout" in message
    assert "distinct" in message
    assert "UPSTREAM_API_KEY" in message
    assert "UPSTREAM_MODEL" in message


def test_validate_accepts_defaults() -> None:
    Settings().validate()
