"""Health and diagnostics routes."""

import logging

import httpx
from fastapi import Response
from fastapi.responses import JSONResponse, PlainTextResponse

from ...core.registry import get_settings
from ...core.upstream import format_httpx_error

logger = logging.getLogger("voicerelay")

BODY_HEAD_LIMIT = 300


async def health() -> dict:
    return {"ok": True}


async def debug_env() -> dict:
    settings = get_settings()
    return {
        "backend_port": settings.port,
        "has_openai_key": settings.upstream.has_api_key,
    }


async def debug_ping_upstream() -> Response:
    """List upstream models to verify connectivity and credentials."""
    upstream = get_settings().upstream
    url = upstream.build_url("/models")
    try:
        async with upstream.open_client() as client:
            resp = await client.get(url)
    except httpx.HTTPError as exc:
        detail = format_httpx_error(exc, upstream, url=url)
        logger.error(f"debug_ping_upstream error: {detail}")
        return PlainTextResponse(f"upstream ping error: {detail}", status_code=502)

    return JSONResponse(
        {
            "ok": resp.is_success,
            "status": resp.status_code,
            "body_head": resp.text[:BODY_HEAD_LIMIT],
        }
    )
