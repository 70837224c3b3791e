"""Relay an upstream token stream to the client as normalized events."""

import asyncio
import logging
from typing import Any, AsyncIterable, AsyncIterator, Awaitable, Callable, Mapping, Optional

import httpx
from fastapi.responses import StreamingResponse

from ..core.exceptions import ClientDisconnectedError, StreamDecodeError
from ..core.sse import KEEPALIVE_FRAME, aiter_frames, aiter_lines
from ..core.upstream import Upstream, format_httpx_error
from .adapters import ProtocolAdapter, StreamAccumulator, parse_frame
from .events import NormalizedEvent

logger = logging.getLogger("voicerelay")

CONNECTING = "upstream: connecting"
CONNECTED = "upstream: connected"
DONE = "done"
KEEPALIVE_INTERVAL = 15.0

EVENT_STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
}


async def relay_events(
    upstream: Upstream,
    path: str,
    body: Mapping[str, Any],
    adapter: ProtocolAdapter,
    *,
    model: str,
    connecting: str = CONNECTING,
    disconnect_checker: Optional[Callable[[], Awaitable[bool]]] = None,
) -> AsyncIterator[NormalizedEvent]:
    """Run one streaming upstream call and yield the client-facing events.

    The sequence is ``progress(connecting)``, ``progress(connected)``, the
    adapted events in arrival order, then ``debug`` and ``progress(done)``.
    Any failure ends the sequence with a single ``error`` event instead.
    """
    accumulator = StreamAccumulator()
    url = upstream.build_url(path)

    yield NormalizedEvent.progress(connecting)

    async with upstream.open_client(streaming=True) as client:
        try:
            async with client.stream("POST", url, json=dict(body)) as resp:
                if not resp.is_success:
                    error_body = await resp.aread()
                    logger.error(
                        "%s upstream error: status=%s body=%s",
                        adapter.name,
                        resp.status_code,
                        error_body.decode("utf-8", errors="replace")[:1000],
                    )
                    yield NormalizedEvent.error(
                        f"upstream {resp.status_code} {resp.reason_phrase}".rstrip()
                    )
                    return

                logger.info(f"Streaming from {url} ({adapter.name}), status {resp.status_code}")
                yield NormalizedEvent.progress(CONNECTED)

                frame_count = 0
                async for payload in aiter_frames(_lines_until_disconnect(resp, disconnect_checker)):
                    frame_count += 1
                    parsed = parse_frame(payload)
                    if not parsed.ok:
                        logger.debug("Dropping frame %d: %s", frame_count, parsed.error)
                        continue
                    for event in adapter.adapt(parsed.frame, accumulator):
                        yield event
                        if event.is_error:
                            return
                logger.debug(f"Stream from {url} finished after {frame_count} frames")
        except httpx.HTTPError as exc:
            detail = format_httpx_error(exc, upstream, url=url)
            logger.error(f"{adapter.name} upstream request failed: {detail}")
            yield NormalizedEvent.error(f"upstream request failed: {detail}")
            return
        except StreamDecodeError as exc:
            logger.error(f"{adapter.name} upstream stream undecodable: {exc.message}")
            yield NormalizedEvent.error(exc.message)
            return

    yield NormalizedEvent.debug(
        {
            "ok": True,
            "model": model,
            "full_text_len": accumulator.length,
            "full_text_head": accumulator.head(),
        }
    )
    yield NormalizedEvent.progress(DONE)


async def _lines_until_disconnect(
    resp: httpx.Response,
    disconnect_checker: Optional[Callable[[], Awaitable[bool]]],
) -> AsyncIterator[str]:
    async for line in aiter_lines(resp.aiter_bytes()):
        if disconnect_checker and await disconnect_checker():
            raise ClientDisconnectedError("client disconnected")
        yield line


async def encode_events(events: AsyncIterable[NormalizedEvent]) -> AsyncIterator[bytes]:
    """Render events as event-stream bytes, stopping quietly if the client left."""
    iterator = events.__aiter__()
    try:
        async for event in iterator:
            yield event.encode()
    except ClientDisconnectedError:
        logger.info("Client disconnected; upstream stream closed")
    finally:
        # Closing the relay generator exits its upstream response context
        aclose = getattr(iterator, "aclose", None)
        if aclose is not None:
            await aclose()


async def with_keepalive(
    source: AsyncIterable[bytes],
    interval: float = KEEPALIVE_INTERVAL,
) -> AsyncIterator[bytes]:
    """Interleave keep-alive comments whenever ``source`` is idle for ``interval``.

    The pending read is shared across timeouts, so a keep-alive never drops
    or delays an item that is ready.
    """
    iterator = source.__aiter__()
    pending: Optional[asyncio.Future] = None
    try:
        while True:
            if pending is None:
                pending = asyncio.ensure_future(iterator.__anext__())
            done, _ = await asyncio.wait({pending}, timeout=interval)
            if not done:
                yield KEEPALIVE_FRAME
                continue
            finished, pending = pending, None
            try:
                item = finished.result()
            except StopAsyncIteration:
                return
            yield item
    finally:
        if pending is not None:
            pending.cancel()
            await asyncio.wait({pending})
        aclose = getattr(iterator, "aclose", None)
        if aclose is not None:
            await aclose()


def build_event_stream_response(
    events: AsyncIterable[NormalizedEvent],
    keepalive_interval: float = KEEPALIVE_INTERVAL,
) -> StreamingResponse:
    return StreamingResponse(
        with_keepalive(encode_events(events), keepalive_interval),
        media_type="text/event-stream",
        headers=dict(EVENT_STREAM_HEADERS),
    )
