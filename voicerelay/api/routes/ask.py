"""Streaming question answering routes."""

import logging

from fastapi import Request
from fastapi.responses import StreamingResponse

from ...core.registry import get_settings
from ...relay import ChatDeltaAdapter, ResponsesAdapter, build_event_stream_response, relay_events
from .payloads import read_json_object, require_text_field

logger = logging.getLogger("voicerelay")

CHAT_COMPLETIONS_PATH = "/chat/completions"
RESPONSES_PATH = "/responses"
SEARCH_CONNECTING = "upstream: connecting (responses+web_search)"


async def ask_stream(request: Request) -> StreamingResponse:
    """Answer a prompt through the chat completions stream.

    POST /api/ask  {"prompt": "..."}
    """
    payload = await read_json_object(request)
    prompt = require_text_field(payload, "prompt")
    settings = get_settings()
    model = settings.models.chat
    logger.info(f"Relaying ask request to {model} ({len(prompt)} chars)")

    body = {
        "model": model,
        "stream": True,
        "messages": [
            {"role": "system", "content": settings.system_prompt},
            {"role": "user", "content": prompt},
        ],
    }
    events = relay_events(
        settings.upstream,
        CHAT_COMPLETIONS_PATH,
        body,
        ChatDeltaAdapter(),
        model=model,
        disconnect_checker=request.is_disconnected,
    )
    return build_event_stream_response(events, settings.keepalive_interval)


async def search_stream(request: Request) -> StreamingResponse:
    """Answer a query with the responses API and its web search tool.

    POST /api/search  {"query": "..."}
    """
    payload = await read_json_object(request)
    query = require_text_field(payload, "query")
    settings = get_settings()
    model = settings.models.search
    logger.info(f"Relaying search request to {model} ({len(query)} chars)")

    body = {
        "model": model,
        "input": settings.search_instructions.replace("{query}", query),
        "tools": [{"type": "web_search"}],
        "tool_choice": "auto",
        "stream": True,
    }
    events = relay_events(
        settings.upstream,
        RESPONSES_PATH,
        body,
        ResponsesAdapter(),
        model=model,
        connecting=SEARCH_CONNECTING,
        disconnect_checker=request.is_disconnected,
    )
    return build_event_stream_response(events, settings.keepalive_interval)
