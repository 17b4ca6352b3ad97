"""Runtime settings read from the environment."""

from __future__ import annotations

from dataclasses import dataclass, field
import os
from pathlib import Path
from typing import Mapping

from readassist.stream.transducer import FieldNames

ENV_PREFIX = "READASSIST_"
TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off"}


def _resolve_default_dictionary_path() -> Path:
    """Prefer a built SQLite database, then a raw CC-CEDICT file, under ``data/``."""

    for candidate in (Path("data") / "cedict.sqlite", Path("data") / "cedict_ts.u8"):
        if candidate.exists():
            return candidate
    return Path("cedict_ts.u8")


def _as_bool(value: str, name: str) -> bool:
    lowered = value.strip().lower()
    if lowered in TRUE_VALUES:
        return True
    if lowered in FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean, got '{value}'.")


@dataclass(frozen=True)
class Settings:
    """Configuration for the dictionary, the oracle and the upstream client.

    Attributes:
        dictionary_path: ``.sqlite``/``.db`` database or CC-CEDICT ``.u8`` file.
        cache_size: Capacity of each lookup cache map.
        max_token_length: Longest token accepted by dictionary lookup.
        tone_sandhi: Whether sentence analysis applies tone sandhi.
        upstream_base_url: OpenAI-compatible API root for the segmenter.
        upstream_api_key: Bearer token for the segmenter API.
        upstream_model: Model name sent with each request.
        upstream_timeout: Request timeout in seconds.
        fields: JSON field names in the streamed segmentation object.
    """

    dictionary_path: Path = field(default_factory=_resolve_default_dictionary_path)
    cache_size: int = 5000
    max_token_length: int = 100
    tone_sandhi: bool = False
    upstream_base_url: str = "https://api.xiaomimimo.com/v1"
    upstream_api_key: str = ""
    upstream_model: str = ""
    upstream_timeout: float = 90.0
    fields: FieldNames = field(default_factory=FieldNames)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Build settings from ``READASSIST_*`` variables, keeping defaults otherwise.

        Args:
            environ: Mapping to read; defaults to ``os.environ``.

        Returns:
            Settings instance.

        Raises:
            ValueError: If a numeric or boolean variable cannot be parsed.
        """

        env = os.environ if environ is None else environ

        def get(name: str) -> str | None:
            value = env.get(ENV_PREFIX + name)
            return value if value not in (None, "") else None

        defaults = cls()
        try:
            cache_size = int(get("CACHE_SIZE") or defaults.cache_size)
            max_token_length = int(get("MAX_TOKEN_LENGTH") or defaults.max_token_length)
            upstream_timeout = float(get("UPSTREAM_TIMEOUT") or defaults.upstream_timeout)
        except ValueError as exc:
            raise ValueError(f"Invalid numeric setting: {exc}") from exc

        sandhi_raw = get("TONE_SANDHI")
        dictionary_raw = get("DICTIONARY_PATH")
        return cls(
            dictionary_path=Path(dictionary_raw) if dictionary_raw else defaults.dictionary_path,
            cache_size=cache_size,
            max_token_length=max_token_length,
            tone_sandhi=(
                _as_bool(sandhi_raw, ENV_PREFIX + "TONE_SANDHI")
                if sandhi_raw is not None
                else defaults.tone_sandhi
            ),
            upstream_base_url=get("UPSTREAM_BASE_URL") or defaults.upstream_base_url,
            upstream_api_key=get("UPSTREAM_API_KEY") or "",
            upstream_model=get("UPSTREAM_MODEL") or "",
            upstream_timeout=upstream_timeout,
            fields=FieldNames(
                segments=get("SEGMENTS_FIELD") or defaults.fields.segments,
                token=get("TOKEN_FIELD") or defaults.fields.token,
                pronunciation=get("PRONUNCIATION_FIELD") or defaults.fields.pronunciation,
            ),
        )

    def validate(self, require_upstream: bool = False) -> None:
        """Check settings for values that would fail later at runtime.

        Args:
            require_upstream: Whether the upstream API key and model must be set.

        Raises:
            ValueError: Listing every problem found.
        """

        errors: list[str] = []
        if self.cache_size < 1:
            errors.append(f"cache_size must be positive, got {self.cache_size}")
        if self.max_token_length < 1:
            errors.append(f"max_token_length must be positive, got {self.max_token_length}")
        if self.upstream_timeout <= 0:
            errors.append(f"upstream_timeout must be positive, got {self.upstream_timeout}")
        names = (self.fields.segments, self.fields.token, self.fields.pronunciation)
        if any(not name for name in names):
            errors.append("JSON field names must be non-empty")
        if len(set(names)) != len(names):
            errors.append(f"JSON field names must be distinct, got {names}")
        if require_upstream:
            if not self.upstream_api_key:
                errors.append(f"{ENV_PREFIX}UPSTREAM_API_KEY is required")
            if not self.upstream_model:
                errors.append(f"{ENV_PREFIX}UPSTREAM_MODEL is required")

        if errors:
            preview = "\n".join(f"- {item}" for item in errors)
            raise ValueError(f"Configuration invalid with {len(errors)} errors:\n{preview}")
