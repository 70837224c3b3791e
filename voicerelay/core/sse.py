"""SSE (Server-Sent Events) framing: inbound line/frame decoding and outbound encoding."""

import codecs
from dataclasses import dataclass
from typing import AsyncIterable, AsyncIterator, Optional

from .exceptions import StreamDecodeError

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"

# Comment frame; EventSource clients ignore it but intermediaries see traffic.
KEEPALIVE_FRAME = b": keepalive\n\n"


class LineFramer:
    """Turns arbitrary byte chunks into complete text lines.

    Partial lines and partial UTF-8 sequences are carried over to the next
    ``feed`` call. ``flush`` must be called once the source is exhausted to
    recover a final line that has no terminator.
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="strict")
        self._buffer = ""

    def feed(self, chunk: bytes) -> list[str]:
        if not chunk:
            return []
        self._buffer += self._decode(chunk, final=False)
        return self._drain()

    def flush(self) -> list[str]:
        self._buffer += self._decode(b"", final=True)
        lines = self._drain()
        if self._buffer:
            lines.append(self._buffer.rstrip("\r"))
            self._buffer = ""
        return lines

    def _decode(self, data: bytes, final: bool) -> str:
        try:
            return self._decoder.decode(data, final)
        except UnicodeDecodeError as exc:
            raise StreamDecodeError(f"upstream stream is not valid UTF-8: {exc}") from exc

    def _drain(self) -> list[str]:
        lines: list[str] = []
        while True:
            newline = self._buffer.find("\n")
            if newline == -1:
                break
            line = self._buffer[:newline]
            self._buffer = self._buffer[newline + 1:]
            if line.endswith("\r"):
                line = line[:-1]
            lines.append(line)
        return lines


async def aiter_lines(chunks: AsyncIterable[bytes]) -> AsyncIterator[str]:
    """Yield complete lines from an async byte stream."""
    framer = LineFramer()
    async for chunk in chunks:
        for line in framer.feed(chunk):
            yield line
    for line in framer.flush():
        yield line


def parse_data_line(line: str) -> Optional[str]:
    """Extract the payload of a ``data:`` line.

    Returns None for blank lines, lines without the ``data:`` prefix and
    empty payloads. The ``[DONE]`` sentinel is returned as-is so callers can
    recognise it.
    """
    if not line or not line.strip():
        return None
    if not line.startswith(DATA_PREFIX):
        return None
    payload = line[len(DATA_PREFIX):].strip()
    return payload or None


async def aiter_frames(lines: AsyncIterable[str]) -> AsyncIterator[str]:
    """Yield ``data:`` payloads until the stream ends or ``[DONE]`` arrives."""
    async for line in lines:
        payload = parse_data_line(line)
        if payload is None:
            continue
        if payload == DONE_SENTINEL:
            return
        yield payload


@dataclass
class SSEEvent:
    """One outbound event-stream message."""

    data: str
    event: Optional[str] = None

    def encode(self) -> bytes:
        lines: list[str] = []
        if self.event:
            lines.append(f"event: {self.event}")
        for item in self.data.split("\n"):
            if item:
                lines.append(f"data: {item}")
            else:
                lines.append("data:")
        text = "\n".join(lines) + "\n\n"
        return text.encode("utf-8")
