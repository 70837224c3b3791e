"""Testing utilities for in-process relay simulations."""

from .fake_upstream import (
    CHAT_ROUTE,
    MODELS_ROUTE,
    RESPONSES_ROUTE,
    SPEECH_ROUTE,
    TRANSCRIPTIONS_ROUTE,
    FakeUpstream,
    UpstreamResponse,
)
from .harness import UPSTREAM_BASE_URL, RelayHarness
from .sse import ParsedEvent, parse_event_stream

__all__ = [
    "CHAT_ROUTE",
    "FakeUpstream",
    "MODELS_ROUTE",
    "ParsedEvent",
    "RESPONSES_ROUTE",
    "RelayHarness",
    "SPEECH_ROUTE",
    "TRANSCRIPTIONS_ROUTE",
    "UPSTREAM_BASE_URL",
    "UpstreamResponse",
    "parse_event_stream",
]
