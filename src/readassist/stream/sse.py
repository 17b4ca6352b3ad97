"""Server-sent-event framing around :class:`StreamTransducer`.

The upstream speaks the OpenAI-compatible streaming format::

    : keep-alive comment
    data: {"id": "...", "choices": [{"delta": {"content": "{\\"segm"}}]}

    data: [DONE]

Only ``choices[0].delta.content`` is routed through the transducer. Comment
lines, blank separators, events without content and unparseable lines are
forwarded unchanged and in order.
"""

from __future__ import annotations

import codecs
import json
import logging
from typing import Any

from readassist.stream.transducer import StreamTransducer

logger = logging.getLogger(__name__)

DATA_FIELD = "data:"
DONE_SENTINEL = "[DONE]"
EVENT_END = "\n\n"


def _delta_content(event: Any) -> str | None:
    try:
        content = event["choices"][0]["delta"]["content"]
    except (KeyError, IndexError, TypeError):
        return None
    return content if isinstance(content, str) else None


def _finish_reason(event: Any) -> Any:
    try:
        return event["choices"][0].get("finish_reason")
    except (KeyError, IndexError, TypeError, AttributeError):
        return None


def _with_content(event: Any, content: str) -> Any:
    event["choices"][0]["delta"]["content"] = content
    return event


def _data_line(event: Any, ending: str) -> str:
    return f"{DATA_FIELD} {json.dumps(event, ensure_ascii=False, separators=(',', ':'))}{ending}"


def _default_event() -> dict[str, Any]:
    return {"choices": [{"delta": {"content": ""}}]}


class SseRelay:
    """Feeds SSE bytes through a transducer and re-frames what it releases.

    Text released while handling an upstream event is wrapped in a copy of that
    event, so ids and model fields survive. Text still withheld when an event
    carries a ``finish_reason`` is released ahead of that event's line.
    Anything withheld when the ``[DONE]`` sentinel (or the end of the stream)
    arrives is emitted as one extra event just before it.
    """

    def __init__(self, transducer: StreamTransducer) -> None:
        self.transducer = transducer
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._pending = ""
        self._last_payload: str | None = None
        self.done = False

    def feed(self, chunk: bytes) -> bytes:
        """Consume raw upstream bytes and return the bytes to forward."""

        return self._consume(self._decoder.decode(chunk)).encode("utf-8")

    def finish(self) -> bytes:
        """Flush a trailing partial line and any text the transducer withholds."""

        parts = [self._consume(self._decoder.decode(b"", final=True))]
        if self._pending:
            parts.append(self._handle_line(self._pending, ""))
            self._pending = ""
        if not self.done:
            parts.append(self._flush_transducer())
        return "".join(parts).encode("utf-8")

    def _consume(self, text: str) -> str:
        if not text:
            return ""
        lines = (self._pending + text).split("\n")
        self._pending = lines.pop()
        return "".join(self._handle_line(line, "\n") for line in lines)

    def _handle_line(self, line: str, terminator: str) -> str:
        body = line.rstrip("\r")
        ending = line[len(body) :] + terminator
        if not body.startswith(DATA_FIELD):
            return line + terminator

        payload = body[len(DATA_FIELD) :]
        if payload.startswith(" "):
            payload = payload[1:]

        if payload.strip() == DONE_SENTINEL:
            flushed = self._flush_transducer()
            self.done = True
            return flushed + line + terminator

        try:
            event = json.loads(payload)
        except ValueError:
            logger.debug("Forwarding unparseable data line unchanged: %.80s", payload)
            return line + terminator

        content = _delta_content(event)
        finishing = _finish_reason(event) is not None
        if content is None:
            if finishing:
                return self._flush_transducer() + line + terminator
            return line + terminator

        self._last_payload = payload
        released = self.transducer.feed(content)
        if finishing:
            # the choice is complete, nothing may stay withheld past it
            released += self.transducer.finish()
        elif not released:
            return ""
        if released == content:
            return line + terminator
        return _data_line(_with_content(event, released), ending)

    def _flush_transducer(self) -> str:
        tail = self.transducer.finish()
        if not tail:
            return ""
        event = json.loads(self._last_payload) if self._last_payload else _default_event()
        return _data_line(_with_content(event, tail), EVENT_END)
