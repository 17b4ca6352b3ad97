"""Top-level orchestration from upstream bytes to corrected downstream bytes."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
from typing import AsyncIterable, AsyncIterator, Awaitable, Callable, Iterable, Iterator

from readassist.cedict.cache import LookupCache
from readassist.cedict.repository import CedictEntryStore, EntryStore
from readassist.cedict.sqlite_store import SqliteEntryStore
from readassist.config import Settings
from readassist.dictionary import DictionaryService
from readassist.pronunciation.oracle import AnalysisError, PronunciationOracle, PypinyinAnalyzer
from readassist.stream.sse import SseRelay
from readassist.stream.transducer import FieldNames, StreamTransducer

logger = logging.getLogger(__name__)

SQLITE_SUFFIXES = {".sqlite", ".sqlite3", ".db"}

Writer = Callable[[bytes], Awaitable[None]]
DisconnectCheck = Callable[[], Awaitable[bool]]


class CorrectionPipeline:
    """Relays one segmentation stream per sentence with corrected pronunciations.

    The position map is built once per sentence before the first upstream
    byte is read. If that analysis fails the stream is relayed unchanged.

    Args:
        oracle: Shared pronunciation oracle.
        fields: JSON field names of the segmentation object.
    """

    def __init__(self, oracle: PronunciationOracle, fields: FieldNames | None = None) -> None:
        self.oracle = oracle
        self.fields = fields or FieldNames()

    def prepare(self, sentence: str) -> SseRelay:
        """Build the per-request relay for ``sentence``."""

        try:
            position_map = self.oracle.build_map(sentence)
        except AnalysisError as exc:
            logger.warning("Pronunciation analysis unavailable, relaying unchanged: %s", exc)
            position_map = None
        transducer = StreamTransducer(self.oracle.cursor(position_map), self.fields)
        return SseRelay(transducer)

    def run(self, sentence: str, chunks: Iterable[bytes]) -> Iterator[bytes]:
        """Relay a synchronous byte source, yielding non-empty output chunks."""

        relay = self.prepare(sentence)
        for chunk in chunks:
            out = relay.feed(chunk)
            if out:
                yield out
        tail = relay.finish()
        if tail:
            yield tail

    async def stream(self, sentence: str, upstream: AsyncIterable[bytes]) -> AsyncIterator[bytes]:
        """Relay an asynchronous byte source.

        Each upstream chunk is processed completely before the next one is
        awaited. The upstream iterator is closed when this generator is closed
        early, so a cancelled consumer also cancels the upstream request.
        """

        relay = self.prepare(sentence)
        try:
            async for chunk in upstream:
                out = relay.feed(chunk)
                if out:
                    yield out
            tail = relay.finish()
            if tail:
                yield tail
        finally:
            aclose = getattr(upstream, "aclose", None)
            if aclose is not None:
                await aclose()

    async def pump(
        self,
        sentence: str,
        upstream: AsyncIterable[bytes],
        write: Writer,
        is_disconnected: DisconnectCheck | None = None,
    ) -> bool:
        """Drive :meth:`stream` into ``write`` until done or the client leaves.

        Args:
            sentence: Sentence the upstream is segmenting.
            upstream: Raw upstream byte source.
            write: Coroutine delivering bytes downstream.
            is_disconnected: Optional check run before each write.

        Returns:
            ``True`` when the whole stream was delivered, ``False`` when the
            downstream disconnected first.
        """

        relayed = self.stream(sentence, upstream)
        try:
            async for chunk in relayed:
                if is_disconnected is not None and await is_disconnected():
                    logger.info("Client disconnected; stopping relay for %r", sentence)
                    return False
                await write(chunk)
        finally:
            await relayed.aclose()
        return True


@dataclass(frozen=True)
class Services:
    """Process-wide singletons shared by every request.

    Attributes:
        store: Dictionary entry store.
        cache: Lookup cache over ``store``.
        dictionary: Definition lookup service.
        oracle: Pronunciation oracle.
        pipeline: Stream correction pipeline.
    """

    store: EntryStore
    cache: LookupCache
    dictionary: DictionaryService
    oracle: PronunciationOracle
    pipeline: CorrectionPipeline


def open_entry_store(path: Path) -> EntryStore:
    """Open a SQLite database or a CC-CEDICT text file depending on suffix.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
    """

    if path.suffix.lower() in SQLITE_SUFFIXES:
        return SqliteEntryStore(path)
    return CedictEntryStore(path).open()


def build_services(settings: Settings, store: EntryStore | None = None) -> Services:
    """Wire the dictionary, oracle and pipeline from ``settings``.

    Args:
        settings: Validated runtime settings.
        store: Optional pre-built store, replacing the one at
            ``settings.dictionary_path``.

    Returns:
        Shared service bundle.
    """

    settings.validate()
    entry_store = store if store is not None else open_entry_store(settings.dictionary_path)
    cache = LookupCache(entry_store, max_size=settings.cache_size)
    dictionary = DictionaryService(cache, max_token_length=settings.max_token_length)
    oracle = PronunciationOracle(
        analyzer=PypinyinAnalyzer(tone_sandhi=settings.tone_sandhi),
        cache=cache,
        isolated_cache_size=settings.cache_size,
    )
    pipeline = CorrectionPipeline(oracle, fields=settings.fields)
    logger.info("Services ready (dictionary=%s)", settings.dictionary_path)
    return Services(
        store=entry_store,
        cache=cache,
        dictionary=dictionary,
        oracle=oracle,
        pipeline=pipeline,
    )
