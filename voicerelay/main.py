"""Main FastAPI application for the voice relay."""

import socket

from .api import build_app
from .config_loader import load_config
from .core.settings import RelaySettings
from .logging import setup_logging

# Initialize logging
logger = setup_logging()

# Load configuration
config = load_config()
settings = RelaySettings.from_config(config)
logger.info(
    "Relay configured: upstream=%s, api key present? %s",
    settings.upstream.base_url,
    settings.upstream.has_api_key,
)

SERVER_HOST = settings.host
SERVER_PORT = settings.port

app = build_app(settings)


@app.on_event("startup")
async def startup_event():
    """Handle application startup."""
    logger.info("voicerelay starting up...")
    logger.info("Configured bind address %s:%s", SERVER_HOST, SERVER_PORT)
    if SERVER_HOST == "0.0.0.0":
        hostname = socket.gethostname()
        logger.info("Reachable on local network at http://%s:%s", hostname, SERVER_PORT)
    logger.info(
        "Models: chat=%s search=%s tts=%s stt=%s",
        settings.models.chat,
        settings.models.search,
        settings.models.tts,
        settings.models.stt,
    )
    logger.info("voicerelay ready to handle requests")


@app.on_event("shutdown")
async def shutdown_event():
    """Handle application shutdown."""
    logger.info("shutdown signal received")


def create_app():
    """Factory function returning the configured application."""
    return app


__all__ = ["app", "create_app", "config", "settings", "SERVER_HOST", "SERVER_PORT"]
