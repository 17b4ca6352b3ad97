"""Incremental rewriting of pronunciation values inside a streamed JSON object.

The segmenter streams one JSON object, fragment by fragment, of the form::

    {"translation": "...", "segments": [{"id": 0, "token": "你", "pinyin": "ni3", ...}, ...], ...}

:class:`StreamTransducer` forwards that text as soon as it is safe to do so,
replacing the value of every ``pinyin`` field inside ``segments`` with the
pronunciation computed for the preceding ``token``. It has no notion of JSON
validity beyond the anchors it looks for; anything it cannot interpret passes
through unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass
import enum
import json
import logging
import re
from typing import AsyncIterable, AsyncIterator, Iterable, Iterator, Protocol

logger = logging.getLogger(__name__)

JSON_WHITESPACE = " \t\r\n"
WITHHOLD_LIMIT = 64


class Mode(enum.Enum):
    """Parse modes of the transducer."""

    SEEKING = "seeking"
    AWAITING_TOKEN = "awaiting_token"
    CAPTURING_TOKEN = "capturing_token"
    AWAITING_PRONUNCIATION_KEY = "awaiting_pronunciation_key"
    CAPTURING_PRONUNCIATION = "capturing_pronunciation"


IN_ARRAY_MODES = frozenset(
    {
        Mode.AWAITING_TOKEN,
        Mode.CAPTURING_TOKEN,
        Mode.AWAITING_PRONUNCIATION_KEY,
        Mode.CAPTURING_PRONUNCIATION,
    }
)


class Corrector(Protocol):
    """Anything that maps ``(token, original pronunciation)`` to a replacement."""

    def correct(self, token: str, original: str) -> str: ...


@dataclass(frozen=True)
class FieldNames:
    """JSON field names the transducer tracks."""

    segments: str = "segments"
    token: str = "token"
    pronunciation: str = "pinyin"


@dataclass(frozen=True)
class Anchor:
    """A quoted field label, a colon, and the character opening its value."""

    label: str
    opener: str

    @property
    def literal(self) -> str:
        return f'"{self.label}"'

    @property
    def pattern(self) -> re.Pattern[str]:
        whitespace = "[ \\t\\r\\n]*"
        return re.compile(
            f"{re.escape(self.literal)}{whitespace}:{whitespace}{re.escape(self.opener)}"
        )

    def could_start(self, text: str, pos: int) -> bool:
        """Return whether ``text[pos:]`` is an incomplete prefix of this anchor."""

        fragment = text[pos:]
        literal = self.literal
        if len(fragment) <= len(literal):
            return literal.startswith(fragment)
        if not fragment.startswith(literal):
            return False
        rest = fragment[len(literal) :].lstrip(JSON_WHITESPACE)
        if not rest:
            return True
        if rest[0] != ":":
            return False
        return not rest[1:].lstrip(JSON_WHITESPACE)


def find_string_end(text: str, start: int, escaped: bool = False) -> tuple[int, bool]:
    """Find the unescaped closing quote of a JSON string.

    Args:
        text: Buffer holding the string body.
        start: Index of the first body character to examine.
        escaped: Whether the character at ``start`` follows a lone backslash.

    Returns:
        ``(index, escaped)`` where ``index`` is the closing quote position or
        ``-1`` when the body continues past the end of ``text``, and
        ``escaped`` is the escape state at the end of the scanned text.
    """

    idx = start
    while idx < len(text):
        char = text[idx]
        if escaped:
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == '"':
            return idx, False
        idx += 1
    return -1, escaped


def _unescape(raw: str) -> str:
    try:
        return json.loads(f'"{raw}"')
    except ValueError:
        return raw


def _escape(value: str) -> str:
    return json.dumps(value, ensure_ascii=False)[1:-1]


@dataclass
class TransducerState:
    """Mutable per-stream state.

    ``buffer`` holds text that has not been flushed yet. In the capturing modes
    ``value_start`` is the buffer index of the first value character and
    ``scan_offset`` how far the closing-quote search has progressed. The
    ``in_string``/``escaped``/``depth`` triple tracks JSON lexing inside the
    segments array so that brackets and labels inside string values are
    ignored.
    """

    buffer: str = ""
    mode: Mode = Mode.SEEKING
    token: str | None = None
    value_start: int = 0
    scan_offset: int = 0
    in_string: bool = False
    escaped: bool = False
    depth: int = 0


class StreamTransducer:
    """Rewrites pronunciation values in a fragmented JSON text stream.

    Call :meth:`feed` with every upstream text fragment and forward what it
    returns, then forward :meth:`finish` once the upstream ends. Output order
    always matches input order and concatenating every returned chunk yields
    the input with only the tracked pronunciation values replaced, whatever
    the fragment boundaries were.

    Args:
        corrector: Supplies the replacement value for each captured token;
            typically a :class:`~readassist.pronunciation.oracle.PronunciationCursor`.
        fields: JSON field names of the segments array and its members.
    """

    def __init__(self, corrector: Corrector, fields: FieldNames | None = None) -> None:
        self.corrector = corrector
        self.fields = fields or FieldNames()
        self.state = TransducerState()
        self._array_anchor = Anchor(self.fields.segments, "[")
        self._token_anchor = Anchor(self.fields.token, '"')
        self._pronunciation_anchor = Anchor(self.fields.pronunciation, '"')
        self._array_re = self._array_anchor.pattern
        self._token_re = self._token_anchor.pattern
        self._pronunciation_re = self._pronunciation_anchor.pattern

    @property
    def mode(self) -> Mode:
        return self.state.mode

    @property
    def in_array(self) -> bool:
        """Whether the segments array has been entered and not yet closed."""

        return self.state.mode in IN_ARRAY_MODES

    def feed(self, fragment: str) -> str:
        """Consume one fragment and return the text that is now safe to flush."""

        self.state.buffer += fragment
        return self._process()

    def finish(self) -> str:
        """Flush everything still withheld, verbatim."""

        state = self.state
        if state.mode in (Mode.CAPTURING_TOKEN, Mode.CAPTURING_PRONUNCIATION):
            logger.debug("Stream ended while in %s; flushing raw text", state.mode.value)
        tail = state.buffer
        self.state = TransducerState()
        return tail

    def _process(self) -> str:
        state = self.state
        text = state.buffer
        out: list[str] = []
        pos = 0

        while pos < len(text):
            if state.mode is Mode.SEEKING:
                pos, stop = self._seek_array(text, pos, out)
            elif state.mode is Mode.CAPTURING_TOKEN:
                pos, stop = self._capture_token(text, pos, out)
            elif state.mode is Mode.CAPTURING_PRONUNCIATION:
                pos, stop = self._capture_pronunciation(text, pos, out)
            else:
                pos, stop = self._scan_array(text, pos, out)
            if stop:
                break

        state.buffer = text[pos:]
        if state.mode in (Mode.CAPTURING_TOKEN, Mode.CAPTURING_PRONUNCIATION):
            state.value_start -= pos
            state.scan_offset -= pos
        return "".join(out)

    def _withhold_from(self, text: str, pos: int, anchors: Iterable[Anchor]) -> int:
        """Return the earliest index whose suffix may still become an anchor."""

        anchors = tuple(anchors)
        start = max(pos, len(text) - WITHHOLD_LIMIT)
        quote = text.find('"', start)
        while quote != -1:
            if any(anchor.could_start(text, quote) for anchor in anchors):
                return quote
            quote = text.find('"', quote + 1)
        return len(text)

    def _seek_array(self, text: str, pos: int, out: list[str]) -> tuple[int, bool]:
        match = self._array_re.search(text, pos)
        if match is None:
            cut = self._withhold_from(text, pos, (self._array_anchor,))
            out.append(text[pos:cut])
            return cut, True

        out.append(text[pos : match.end()])
        state = self.state
        state.mode = Mode.AWAITING_TOKEN
        state.token = None
        state.in_string = False
        state.escaped = False
        state.depth = 0
        return match.end(), False

    def _scan_array(self, text: str, pos: int, out: list[str]) -> tuple[int, bool]:
        """Pass through array content until the next anchor or the array end."""

        state = self.state
        start = pos
        while pos < len(text):
            if state.in_string:
                end, state.escaped = find_string_end(text, pos, state.escaped)
                if end == -1:
                    pos = len(text)
                    break
                state.in_string = False
                pos = end + 1
                continue

            char = text[pos]
            if char == '"':
                match = self._token_re.match(text, pos)
                if match is not None:
                    out.append(text[start:pos])
                    state.mode = Mode.CAPTURING_TOKEN
                    state.value_start = match.end()
                    state.scan_offset = match.end()
                    state.escaped = False
                    return pos, False

                if state.mode is Mode.AWAITING_PRONUNCIATION_KEY:
                    match = self._pronunciation_re.match(text, pos)
                    if match is not None:
                        out.append(text[start : match.end()])
                        state.mode = Mode.CAPTURING_PRONUNCIATION
                        state.value_start = match.end()
                        state.scan_offset = match.end()
                        state.escaped = False
                        return match.end(), False

                if len(text) - pos <= WITHHOLD_LIMIT and self._could_start_key(text, pos):
                    out.append(text[start:pos])
                    return pos, True

                state.in_string = True
                state.escaped = False
                pos += 1
            elif char == "[":
                state.depth += 1
                pos += 1
            elif char == "]":
                pos += 1
                if state.depth == 0:
                    out.append(text[start:pos])
                    state.mode = Mode.SEEKING
                    state.token = None
                    return pos, False
                state.depth -= 1
            else:
                pos += 1

        out.append(text[start:pos])
        return pos, True

    def _could_start_key(self, text: str, pos: int) -> bool:
        if self._token_anchor.could_start(text, pos):
            return True
        return (
            self.state.mode is Mode.AWAITING_PRONUNCIATION_KEY
            and self._pronunciation_anchor.could_start(text, pos)
        )

    def _capture_token(self, text: str, pos: int, out: list[str]) -> tuple[int, bool]:
        """Withhold the token label and value until the value is complete."""

        state = self.state
        end, state.escaped = find_string_end(text, state.scan_offset, state.escaped)
        if end == -1:
            state.scan_offset = len(text)
            return pos, True

        state.token = _unescape(text[state.value_start : end])
        out.append(text[pos : end + 1])
        state.mode = Mode.AWAITING_PRONUNCIATION_KEY
        state.in_string = False
        state.escaped = False
        return end + 1, False

    def _capture_pronunciation(self, text: str, pos: int, out: list[str]) -> tuple[int, bool]:
        """Withhold the value, then flush its replacement and the closing quote."""

        state = self.state
        end, state.escaped = find_string_end(text, state.scan_offset, state.escaped)
        if end == -1:
            state.scan_offset = len(text)
            return pos, True

        raw = text[state.value_start : end]
        original = _unescape(raw)
        corrected = self.corrector.correct(state.token or "", original)
        out.append(raw if corrected == original else _escape(corrected))
        out.append('"')
        state.mode = Mode.AWAITING_TOKEN
        state.token = None
        state.in_string = False
        state.escaped = False
        return end + 1, False


def transduce(fragments: Iterable[str], transducer: StreamTransducer) -> Iterator[str]:
    """Yield non-empty flush chunks for a synchronous fragment source."""

    for fragment in fragments:
        chunk = transducer.feed(fragment)
        if chunk:
            yield chunk
    tail = transducer.finish()
    if tail:
        yield tail


async def atransduce(
    fragments: AsyncIterable[str], transducer: StreamTransducer
) -> AsyncIterator[str]:
    """Asynchronous counterpart of :func:`transduce`."""

    async for fragment in fragments:
        chunk = transducer.feed(fragment)
        if chunk:
            yield chunk
    tail = transducer.finish()
    if tail:
        yield tail
