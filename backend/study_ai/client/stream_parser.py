"""
Study AI - Chunk Stream Parser
Turns the study-ai event stream (``data: <json>`` lines) into text deltas.

The stream arrives in arbitrary chunks: lines and UTF-8 code points may be
split across reads. One parser instance owns one session's decoder and
buffer; sessions share nothing.
"""
import codecs
import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, AsyncIterable, Callable, List, Optional, AsyncIterator

from study_ai.core.config import settings

logger = logging.getLogger(__name__)


DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"

# Default for the parser bounds: read the current settings at construction
FROM_SETTINGS: Any = object()


class EventType(str, Enum):
    DELTA = "delta"
    DONE = "done"
    ERROR = "error"


@dataclass(frozen=True)
class StreamEvent:
    """A delta, or the single terminal event (done / error) of a session."""
    type: EventType
    text: str = ""

    @classmethod
    def delta(cls, text: str) -> "StreamEvent":
        return cls(EventType.DELTA, text)

    @classmethod
    def done(cls) -> "StreamEvent":
        return cls(EventType.DONE)

    @classmethod
    def error(cls, message: str) -> "StreamEvent":
        return cls(EventType.ERROR, message)

    @property
    def is_terminal(self) -> bool:
        return self.type is not EventType.DELTA


class ParserState(Enum):
    """Parser session states."""
    AWAITING_LINE = "awaiting_line"
    HAVE_UNPARSEABLE_FRAGMENT = "have_unparseable_fragment"
    DONE = "done"


class StreamStallError(Exception):
    """An unparseable line blocked the stream past the configured bound."""


def data_payload(line: str) -> Optional[str]:
    """Payload of a ``data: `` line, or None for comments, blanks and other fields."""
    if not line.strip() or line.startswith(":"):
        return None
    if not line.startswith(DATA_PREFIX):
        return None
    return line[len(DATA_PREFIX):].strip()


def extract_delta(parsed: Any) -> Optional[str]:
    """``choices[0].delta.content`` when it is a non-empty string."""
    try:
        content = parsed["choices"][0]["delta"]["content"]
    except (KeyError, IndexError, TypeError):
        return None
    if isinstance(content, str) and content:
        return content
    return None


class ChunkStreamParser:
    """
    Incremental parser for one streaming response.

    ``feed`` each chunk as it is read and ``finish`` once the source is
    exhausted. A complete line that is not valid JSON is pushed back and
    retried on the next read; ``max_stalled_reads`` and ``max_buffer_bytes``
    turn a permanent stall into a StreamStallError. Both default to the
    current settings; None or 0 disables a bound.
    """

    def __init__(
        self,
        max_stalled_reads: Optional[int] = FROM_SETTINGS,
        max_buffer_bytes: Optional[int] = FROM_SETTINGS,
    ):
        if max_stalled_reads is FROM_SETTINGS:
            max_stalled_reads = settings.STREAM_MAX_STALLED_READS
        if max_buffer_bytes is FROM_SETTINGS:
            max_buffer_bytes = settings.STREAM_MAX_BUFFER_BYTES
        self.max_stalled_reads = max_stalled_reads or None
        self.max_buffer_bytes = max_buffer_bytes or None

        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self._state = ParserState.AWAITING_LINE
        self._stalled_reads = 0

    @property
    def state(self) -> ParserState:
        return self._state

    @property
    def done(self) -> bool:
        return self._state is ParserState.DONE

    @property
    def pending(self) -> str:
        """Text received but not yet consumed as a line."""
        return self._buffer

    def feed(self, chunk: bytes) -> List[StreamEvent]:
        """
        Consume one chunk of raw bytes.

        Returns:
            Delta events for every complete line, followed by a done event if
            the ``[DONE]`` sentinel was reached.

        Raises:
            StreamStallError: when a stalled fragment exceeds a bound.
        """
        if self.done:
            return []

        self._buffer += self._decoder.decode(chunk)
        if self._state is ParserState.HAVE_UNPARSEABLE_FRAGMENT:
            self._stalled_reads += 1

        events = self._drain_lines()
        if not self.done:
            self._check_bounds()
        return events

    def finish(self) -> List[StreamEvent]:
        """
        Flush what is left once the source has no more data.

        Residual lines are parsed best-effort: a line that still fails to
        parse is dropped. Always ends with the done event unless the session
        already terminated.
        """
        if self.done:
            return []

        self._buffer += self._decoder.decode(b"", final=True)

        events: List[StreamEvent] = []
        for raw in self._buffer.split("\n"):
            if raw.endswith("\r"):
                raw = raw[:-1]
            payload = data_payload(raw)
            if payload is None or payload == DONE_SENTINEL:
                continue
            try:
                parsed = json.loads(payload)
            except ValueError:
                logger.debug(f"Dropping unparseable trailing line: {raw[:200]}")
                continue
            text = extract_delta(parsed)
            if text:
                events.append(StreamEvent.delta(text))

        self._terminate()
        events.append(StreamEvent.done())
        return events

    def _drain_lines(self) -> List[StreamEvent]:
        events: List[StreamEvent] = []

        while True:
            newline_index = self._buffer.find("\n")
            if newline_index == -1:
                break

            line = self._buffer[:newline_index]
            self._buffer = self._buffer[newline_index + 1:]
            if line.endswith("\r"):
                line = line[:-1]

            payload = data_payload(line)
            if payload is None:
                continue

            if payload == DONE_SENTINEL:
                self._terminate()
                events.append(StreamEvent.done())
                break

            try:
                parsed = json.loads(payload)
            except ValueError:
                # Wait for more bytes before retrying this line
                self._buffer = line + "\n" + self._buffer
                if self._state is not ParserState.HAVE_UNPARSEABLE_FRAGMENT:
                    self._state = ParserState.HAVE_UNPARSEABLE_FRAGMENT
                    self._stalled_reads = 0
                break

            self._state = ParserState.AWAITING_LINE
            self._stalled_reads = 0
            text = extract_delta(parsed)
            if text:
                events.append(StreamEvent.delta(text))

        return events

    def _check_bounds(self) -> None:
        stalled = self._state is ParserState.HAVE_UNPARSEABLE_FRAGMENT
        if stalled and self.max_stalled_reads is not None and self._stalled_reads > self.max_stalled_reads:
            self._terminate()
            raise StreamStallError(
                f"Stream stalled on an unparseable line after {self.max_stalled_reads} reads"
            )
        if self.max_buffer_bytes is not None and len(self._buffer.encode("utf-8")) > self.max_buffer_bytes:
            self._terminate()
            raise StreamStallError(
                f"Stream buffer exceeded {self.max_buffer_bytes} bytes without a parseable line"
            )

    def _terminate(self) -> None:
        self._state = ParserState.DONE
        self._buffer = ""


async def iter_stream_events(
    source: AsyncIterable[bytes],
    parser: Optional[ChunkStreamParser] = None,
) -> AsyncIterator[StreamEvent]:
    """
    Yield the events of one stream, ending with exactly one terminal event.

    Reading stops as soon as the ``[DONE]`` sentinel is seen.
    """
    parser = parser or ChunkStreamParser()

    try:
        async for chunk in source:
            for event in parser.feed(chunk):
                yield event
            if parser.done:
                return
    except StreamStallError as e:
        logger.warning(f"Stream parse failed: {e}")
        yield StreamEvent.error(str(e))
        return

    for event in parser.finish():
        yield event


async def parse_stream(
    source: AsyncIterable[bytes],
    on_delta: Callable[[str], None],
    on_done: Callable[[], None],
    on_error: Optional[Callable[[str], None]] = None,
    parser: Optional[ChunkStreamParser] = None,
) -> None:
    """
    Drive a stream through the parser, reporting through callbacks.

    ``on_delta`` is called in stream order; then exactly one of ``on_done``
    or ``on_error``.
    """
    async for event in iter_stream_events(source, parser):
        if event.type is EventType.DELTA:
            on_delta(event.text)
        elif event.type is EventType.DONE:
            on_done()
        elif on_error is not None:
            on_error(event.text)
