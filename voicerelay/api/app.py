"""FastAPI application factory."""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..core.registry import set_settings
from ..core.settings import RelaySettings
from ..middleware import AccessLogMiddleware
from .routes import (
    ask_stream,
    debug_env,
    debug_ping_upstream,
    health,
    search_stream,
    stt,
    tts_simple,
)

logger = logging.getLogger("voicerelay")


def build_app(settings: RelaySettings) -> FastAPI:
    """Create the relay application around ``settings``.

    The settings are also published through the registry so route handlers
    can reach them.
    """
    set_settings(settings)

    app = FastAPI(title="voicerelay")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(AccessLogMiddleware)

    app.get("/health")(health)
    app.get("/debug/env")(debug_env)
    app.get("/debug/ping-upstream")(debug_ping_upstream)
    app.post("/api/stt")(stt)
    app.post("/api/ask")(ask_stream)
    app.post("/api/search")(search_stream)
    app.post("/api/tts")(tts_simple)

    logger.info(
        "Relay app built: upstream=%s keepalive=%.0fs",
        settings.upstream.base_url,
        settings.keepalive_interval,
    )
    return app
