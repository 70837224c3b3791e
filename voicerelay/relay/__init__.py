"""Streaming relay: frame adaptation, event emission and request helpers."""

from .adapters import (
    ChatDeltaAdapter,
    ChatDeltaFrame,
    FrameParse,
    ResponsesAdapter,
    ResponsesEventFrame,
    StreamAccumulator,
    classify_frame,
    parse_frame,
)
from .events import EventKind, NormalizedEvent
from .multipart import ExtractedAudio, extract_audio
from .stream import build_event_stream_response, encode_events, relay_events, with_keepalive
from .text import clip_text

__all__ = [
    "ChatDeltaAdapter",
    "ChatDeltaFrame",
    "EventKind",
    "ExtractedAudio",
    "FrameParse",
    "NormalizedEvent",
    "ResponsesAdapter",
    "ResponsesEventFrame",
    "StreamAccumulator",
    "build_event_stream_response",
    "classify_frame",
    "clip_text",
    "encode_events",
    "extract_audio",
    "parse_frame",
    "relay_events",
    "with_keepalive",
]
