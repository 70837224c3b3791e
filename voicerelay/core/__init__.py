"""Core module initialization."""

from .exceptions import (
    ClientDisconnectedError,
    ConfigurationError,
    InvalidRequestError,
    MissingInputError,
    PayloadTooLargeError,
    RelayError,
    StreamDecodeError,
)
from .registry import get_settings, set_settings
from .retry import AttemptOutcome, RetryAttempt, RetryController, RetryResult
from .settings import ModelSettings, RelaySettings
from .sse import LineFramer, SSEEvent, aiter_frames, aiter_lines, parse_data_line
from .upstream import Upstream, format_httpx_error

__all__ = [
    "AttemptOutcome",
    "ClientDisconnectedError",
    "ConfigurationError",
    "InvalidRequestError",
    "LineFramer",
    "MissingInputError",
    "ModelSettings",
    "PayloadTooLargeError",
    "RelayError",
    "RelaySettings",
    "RetryAttempt",
    "RetryController",
    "RetryResult",
    "SSEEvent",
    "StreamDecodeError",
    "Upstream",
    "aiter_frames",
    "aiter_lines",
    "format_httpx_error",
    "get_settings",
    "parse_data_line",
    "set_settings",
]
