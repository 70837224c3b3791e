"""Pull the uploaded audio clip out of a multipart request.

The body is parsed straight off ``request.stream()`` so the audio part keeps
its exact bytes whether or not the client sent a filename, and the size
ceiling holds for chunked bodies too.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Request
from python_multipart.exceptions import MultipartParseError
from python_multipart.multipart import MultipartParser, parse_options_header

from ..core.exceptions import InvalidRequestError, MissingInputError, PayloadTooLargeError

logger = logging.getLogger("voicerelay")

AUDIO_FIELD = "audio"
DEFAULT_AUDIO_FILENAME = "audio.webm"
DEFAULT_AUDIO_CONTENT_TYPE = "audio/webm"


@dataclass
class ExtractedAudio:
    """Audio bytes held for the lifetime of one transcription request."""

    filename: str
    content: bytes
    content_type: str = DEFAULT_AUDIO_CONTENT_TYPE

    @property
    def size(self) -> int:
        return len(self.content)


def _too_large(size: int, max_body_bytes: int) -> PayloadTooLargeError:
    return PayloadTooLargeError(
        f"request body of {size} bytes exceeds limit of {max_body_bytes}",
        limit=max_body_bytes,
    )


def check_body_size(request: Request, max_body_bytes: Optional[int]) -> None:
    """Reject a request whose declared Content-Length exceeds the ceiling."""
    if not max_body_bytes:
        return
    declared = request.headers.get("content-length")
    if declared is None:
        return
    try:
        size = int(declared)
    except ValueError:
        return
    if size > max_body_bytes:
        raise _too_large(size, max_body_bytes)


def multipart_boundary(request: Request) -> bytes:
    content_type, options = parse_options_header(request.headers.get("content-type"))
    if content_type != b"multipart/form-data":
        raise InvalidRequestError("expected a multipart/form-data body", code="invalid_content_type")
    boundary = options.get(b"boundary")
    if not boundary:
        raise InvalidRequestError("multipart body has no boundary", code="invalid_content_type")
    return boundary


class AudioPartCollector:
    """MultipartParser callbacks keeping the raw bytes of the first matching part.

    Data of every other part is dropped as it arrives.
    """

    def __init__(self, field_name: str = AUDIO_FIELD) -> None:
        self.field_name = field_name
        self.audio: Optional[ExtractedAudio] = None
        self._header_field = bytearray()
        self._header_value = bytearray()
        self._headers: dict[bytes, bytes] = {}
        self._capturing = False
        self._chunks: list[bytes] = []
        self._filename: Optional[str] = None
        self._content_type: Optional[str] = None

    def callbacks(self) -> dict:
        return {
            "on_part_begin": self.on_part_begin,
            "on_header_field": self.on_header_field,
            "on_header_value": self.on_header_value,
            "on_header_end": self.on_header_end,
            "on_headers_finished": self.on_headers_finished,
            "on_part_data": self.on_part_data,
            "on_part_end": self.on_part_end,
        }

    def on_part_begin(self) -> None:
        self._headers = {}
        self._capturing = False
        self._chunks = []

    def on_header_field(self, data: bytes, start: int, end: int) -> None:
        self._header_field += data[start:end]

    def on_header_value(self, data: bytes, start: int, end: int) -> None:
        self._header_value += data[start:end]

    def on_header_end(self) -> None:
        self._headers[bytes(self._header_field).lower()] = bytes(self._header_value)
        self._header_field.clear()
        self._header_value.clear()

    def on_headers_finished(self) -> None:
        if self.audio is not None:
            return
        _, options = parse_options_header(self._headers.get(b"content-disposition"))
        name = options.get(b"name", b"").decode("utf-8", errors="replace")
        if name != self.field_name:
            return
        filename = options.get(b"filename")
        content_type = self._headers.get(b"content-type")
        self._filename = filename.decode("utf-8", errors="replace") if filename else None
        self._content_type = content_type.decode("latin-1").strip() if content_type else None
        self._capturing = True

    def on_part_data(self, data: bytes, start: int, end: int) -> None:
        if self._capturing:
            self._chunks.append(bytes(data[start:end]))

    def on_part_end(self) -> None:
        if not self._capturing:
            return
        self._capturing = False
        self.audio = ExtractedAudio(
            filename=self._filename or DEFAULT_AUDIO_FILENAME,
            content=b"".join(self._chunks),
            content_type=self._content_type or DEFAULT_AUDIO_CONTENT_TYPE,
        )
        self._chunks = []


async def extract_audio(
    request: Request,
    *,
    field_name: str = AUDIO_FIELD,
    max_body_bytes: Optional[int] = None,
) -> ExtractedAudio:
    """Return the first ``field_name`` part of a multipart body.

    Raises PayloadTooLargeError once more than ``max_body_bytes`` have been
    received, InvalidRequestError for a body that is not multipart, and
    MissingInputError when no such part exists.
    """
    check_body_size(request, max_body_bytes)

    collector = AudioPartCollector(field_name)
    parser = MultipartParser(multipart_boundary(request), collector.callbacks())
    received = 0
    try:
        async for chunk in request.stream():
            received += len(chunk)
            if max_body_bytes and received > max_body_bytes:
                raise _too_large(received, max_body_bytes)
            parser.write(chunk)
        parser.finalize()
    except MultipartParseError as exc:
        raise InvalidRequestError(f"malformed multipart body: {exc}", code="invalid_multipart") from exc

    audio = collector.audio
    if audio is None:
        raise MissingInputError(f"missing {field_name}")
    logger.debug(
        "Extracted %s field: filename=%s size=%d (body %d bytes)",
        field_name,
        audio.filename,
        audio.size,
        received,
    )
    return audio
