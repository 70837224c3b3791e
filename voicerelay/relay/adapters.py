"""Protocol adapters turning upstream stream frames into normalized events.

Two upstream wire shapes are understood:

Chat completion deltas:
    data: {"choices":[{"delta":{"content":"Hel"},"finish_reason":null}]}

Responses API events:
    data: {"type":"response.output_text.delta","delta":"Hel"}
    data: {"type":"response.error","error":"rate limited"}

Both adapters expose ``adapt(frame, accumulator)`` and return a (possibly
empty) list of events. A frame that doesn't match the expected shape yields
no events; it never fails the stream.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Protocol, Union

from .events import NormalizedEvent

logger = logging.getLogger("voicerelay")

DEBUG_HEAD_LIMIT = 400

RESPONSES_TEXT_DELTA = "response.output_text.delta"
RESPONSES_ERROR_TYPES = {"response.error", "error"}
RESPONSES_FAILED = "response.failed"
RESPONSES_ERROR_FALLBACK = "response.error"


@dataclass(frozen=True)
class FrameParse:
    """Outcome of decoding one ``data:`` payload.

    ``frame`` is None when the payload is not a JSON object; callers skip it.
    """

    frame: Optional[dict[str, Any]]
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.frame is not None


def parse_frame(payload: str) -> FrameParse:
    try:
        parsed = json.loads(payload)
    except json.JSONDecodeError as exc:
        return FrameParse(None, error=f"invalid json: {exc.msg}")
    if not isinstance(parsed, dict):
        return FrameParse(None, error=f"expected object, got {type(parsed).__name__}")
    return FrameParse(parsed)


@dataclass
class StreamAccumulator:
    """Answer text relayed so far within a single request."""

    parts: list[str] = field(default_factory=list)

    def append(self, text: str) -> None:
        self.parts.append(text)

    @property
    def text(self) -> str:
        return "".join(self.parts)

    @property
    def length(self) -> int:
        return sum(len(part) for part in self.parts)

    def head(self, limit: int = DEBUG_HEAD_LIMIT) -> str:
        return self.text[:limit]


@dataclass(frozen=True)
class ChoiceDelta:
    content: Optional[str]
    finish_reason: Optional[str]


@dataclass(frozen=True)
class ChatDeltaFrame:
    choices: tuple[ChoiceDelta, ...]

    @classmethod
    def from_payload(cls, frame: Mapping[str, Any]) -> Optional["ChatDeltaFrame"]:
        """Return None unless every choice carries an object ``delta``."""
        raw_choices = frame.get("choices")
        if not isinstance(raw_choices, list):
            return None
        choices: list[ChoiceDelta] = []
        for raw in raw_choices:
            if not isinstance(raw, dict):
                return None
            delta = raw.get("delta")
            if not isinstance(delta, dict):
                return None
            content = delta.get("content")
            finish_reason = raw.get("finish_reason")
            if content is not None and not isinstance(content, str):
                return None
            if finish_reason is not None and not isinstance(finish_reason, str):
                return None
            choices.append(ChoiceDelta(content, finish_reason))
        return cls(tuple(choices))


@dataclass(frozen=True)
class ResponsesEventFrame:
    type: str
    body: Mapping[str, Any]

    @classmethod
    def from_payload(cls, frame: Mapping[str, Any]) -> Optional["ResponsesEventFrame"]:
        event_type = frame.get("type")
        if not isinstance(event_type, str):
            return None
        return cls(event_type, frame)

    def error_message(self) -> str:
        """Pull a human readable message out of an error-type event."""
        error = self.body.get("error")
        if isinstance(error, str) and error:
            return error
        if isinstance(error, Mapping):
            message = error.get("message")
            if isinstance(message, str) and message:
                return message
        message = self.body.get("message")
        if isinstance(message, str) and message:
            return message
        if self.type != RESPONSES_FAILED:
            return RESPONSES_ERROR_FALLBACK
        response = self.body.get("response")
        if isinstance(response, Mapping):
            nested = response.get("error")
            if isinstance(nested, Mapping) and isinstance(nested.get("message"), str):
                return nested["message"]
        return RESPONSES_FAILED


UpstreamFrame = Union[ChatDeltaFrame, ResponsesEventFrame]


def classify_frame(frame: Mapping[str, Any]) -> Optional[UpstreamFrame]:
    """Resolve a decoded object into one of the known wire shapes.

    A ``choices`` list takes priority over the ``type`` discriminator.
    """
    if "choices" in frame:
        chat = ChatDeltaFrame.from_payload(frame)
        if chat is not None:
            return chat
    return ResponsesEventFrame.from_payload(frame)


class ProtocolAdapter(Protocol):
    name: str

    def adapt(
        self, frame: Mapping[str, Any], accumulator: StreamAccumulator
    ) -> list[NormalizedEvent]:
        ...


def _adapt_chat(chunk: ChatDeltaFrame, accumulator: StreamAccumulator) -> list[NormalizedEvent]:
    events: list[NormalizedEvent] = []
    for choice in chunk.choices:
        if choice.content is not None:
            accumulator.append(choice.content)
            events.append(NormalizedEvent.answer(choice.content))
        if choice.finish_reason:
            logger.debug("Upstream choice finished: %s", choice.finish_reason)
    return events


class ChatDeltaAdapter:
    """Adapter for chat-completions delta streams."""

    name = "chat"

    def adapt(
        self, frame: Mapping[str, Any], accumulator: StreamAccumulator
    ) -> list[NormalizedEvent]:
        chunk = ChatDeltaFrame.from_payload(frame)
        if chunk is None:
            logger.debug("Skipping frame without chat choices: keys=%s", sorted(frame))
            return []
        return _adapt_chat(chunk, accumulator)


class ResponsesAdapter:
    """Adapter for Responses API event streams (with chat-delta fallback)."""

    name = "responses"

    def adapt(
        self, frame: Mapping[str, Any], accumulator: StreamAccumulator
    ) -> list[NormalizedEvent]:
        classified = classify_frame(frame)
        if classified is None:
            return []
        if isinstance(classified, ChatDeltaFrame):
            return _adapt_chat(classified, accumulator)

        if classified.type == RESPONSES_TEXT_DELTA:
            delta = classified.body.get("delta")
            if isinstance(delta, str):
                accumulator.append(delta)
                return [NormalizedEvent.answer(delta)]
            return []

        if classified.type in RESPONSES_ERROR_TYPES or classified.type == RESPONSES_FAILED:
            message = classified.error_message()
            logger.warning("Upstream reported %s: %s", classified.type, message)
            return [NormalizedEvent.error(message)]

        # Tool calls, reasoning, lifecycle markers and so on
        return []
