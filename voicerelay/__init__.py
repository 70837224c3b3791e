"""voicerelay - streaming relay between voice clients and AI endpoints

Relays prompts to token-streaming upstream endpoints and re-emits a
normalized event stream (progress / answer / debug / error), plus speech
synthesis with bounded retry and audio transcription pass-through.

This module provides:
- build_app: FastAPI application factory around RelaySettings
- relay_events: the upstream-to-client streaming state machine
- ChatDeltaAdapter / ResponsesAdapter: upstream protocol adapters
- RetryController: fixed-schedule retry for non-streaming calls

Example:
    >>> from voicerelay.main import app
    >>> import uvicorn
    >>> uvicorn.run(app, host="0.0.0.0", port=8080)
"""

from .api import build_app
from .config_loader import load_config
from .core import RelaySettings, RetryController, Upstream
from .logging import setup_logging
from .relay import ChatDeltaAdapter, NormalizedEvent, ResponsesAdapter, relay_events

__all__ = [
    "build_app",
    "ChatDeltaAdapter",
    "load_config",
    "NormalizedEvent",
    "relay_events",
    "RelaySettings",
    "ResponsesAdapter",
    "RetryController",
    "setup_logging",
    "Upstream",
]
