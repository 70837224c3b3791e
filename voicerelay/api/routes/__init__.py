"""API routes for the relay."""

from .ask import ask_stream, search_stream
from .health import debug_env, debug_ping_upstream, health
from .speech import stt, tts_simple

__all__ = [
    "ask_stream",
    "debug_env",
    "debug_ping_upstream",
    "health",
    "search_stream",
    "stt",
    "tts_simple",
]
