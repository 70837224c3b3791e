"""Tests for the relay event emitter and keep-alive interleaving."""

import asyncio
import json

import httpx
import pytest

from voicerelay.core.sse import KEEPALIVE_FRAME
from voicerelay.core.upstream import Upstream, register_upstream_transport_for_url
from voicerelay.relay.adapters import ChatDeltaAdapter, ResponsesAdapter
from voicerelay.relay.events import EventKind, NormalizedEvent
from voicerelay.relay.stream import encode_events, relay_events, with_keepalive

BASE_URL = "http://mock.upstream/v1"


def _sse(*payloads: str) -> bytes:
    return "".join(f"data: {payload}\n\n" for payload in payloads).encode("utf-8")


def _chat(content: str) -> str:
    return json.dumps({"choices": [{"delta": {"content": content}, "finish_reason": None}]})


def _mock_upstream(handler) -> Upstream:
    register_upstream_transport_for_url(BASE_URL, httpx.MockTransport(handler))
    return Upstream(base_url=BASE_URL, api_key="sk-test", timeout=5.0)


async def _collect(events) -> list[NormalizedEvent]:
    return [event async for event in events]


def _kinds(events: list[NormalizedEvent]) -> list[tuple[str, str]]:
    return [(event.kind.value, event.payload) for event in events if event.kind is not EventKind.DEBUG]


@pytest.mark.asyncio
async def test_relay_emits_full_sequence(clear_transport_registry):
    seen_requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen_requests.append(request)
        return httpx.Response(200, content=_sse(_chat("frag1"), _chat("frag2"), "[DONE]"))

    upstream = _mock_upstream(handler)
    events = await _collect(
        relay_events(upstream, "/chat/completions", {"model": "m"}, ChatDeltaAdapter(), model="m")
    )

    assert [e.kind for e in events] == [
        EventKind.PROGRESS,
        EventKind.PROGRESS,
        EventKind.ANSWER,
        EventKind.ANSWER,
        EventKind.DEBUG,
        EventKind.PROGRESS,
    ]
    assert events[0].payload == "upstream: connecting"
    assert events[1].payload == "upstream: connected"
    assert [e.payload for e in events[2:4]] == ["frag1", "frag2"]
    assert events[-1].payload == "done"

    debug = json.loads(events[4].payload)
    assert debug == {"ok": True, "model": "m", "full_text_len": 10, "full_text_head": "frag1frag2"}

    assert seen_requests[0].url == "http://mock.upstream/v1/chat/completions"
    assert seen_requests[0].headers["authorization"] == "Bearer sk-test"


@pytest.mark.asyncio
async def test_malformed_frames_are_dropped(clear_transport_registry):
    body = (
        _sse(_chat("a"))
        + b"data: {broken json\n\n"
        + b"event: noise\n: comment\n\n"
        + _sse('"just a string"', _chat("b"), "[DONE]")
    )
    upstream = _mock_upstream(lambda request: httpx.Response(200, content=body))
    events = await _collect(
        relay_events(upstream, "/chat/completions", {}, ChatDeltaAdapter(), model="m")
    )
    assert [e.payload for e in events if e.kind is EventKind.ANSWER] == ["a", "b"]
    assert events[-1] == NormalizedEvent.progress("done")


@pytest.mark.asyncio
async def test_frames_after_done_are_ignored(clear_transport_registry):
    body = _sse(_chat("kept"), "[DONE]", _chat("ignored"))
    upstream = _mock_upstream(lambda request: httpx.Response(200, content=body))
    events = await _collect(
        relay_events(upstream, "/chat/completions", {}, ChatDeltaAdapter(), model="m")
    )
    assert [e.payload for e in events if e.kind is EventKind.ANSWER] == ["kept"]


@pytest.mark.asyncio
async def test_stream_without_done_still_completes(clear_transport_registry):
    body = _sse(_chat("x")) + b'data: {"choices": [{"delta": {"content": "tail"}}]}'
    upstream = _mock_upstream(lambda request: httpx.Response(200, content=body))
    events = await _collect(
        relay_events(upstream, "/chat/completions", {}, ChatDeltaAdapter(), model="m")
    )
    assert [e.payload for e in events if e.kind is EventKind.ANSWER] == ["x", "tail"]
    assert events[-1].payload == "done"


@pytest.mark.asyncio
async def test_non_success_status_yields_error_only(clear_transport_registry):
    upstream = _mock_upstream(lambda request: httpx.Response(429, text="slow down"))
    events = await _collect(
        relay_events(upstream, "/chat/completions", {}, ChatDeltaAdapter(), model="m")
    )
    assert _kinds(events) == [
        ("progress", "upstream: connecting"),
        ("error", "upstream 429 Too Many Requests"),
    ]


@pytest.mark.asyncio
async def test_transport_failure_yields_terminal_error(clear_transport_registry):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    upstream = _mock_upstream(handler)
    events = await _collect(
        relay_events(upstream, "/chat/completions", {}, ChatDeltaAdapter(), model="m")
    )
    assert [e.kind for e in events] == [EventKind.PROGRESS, EventKind.ERROR]
    assert "ConnectError" in events[-1].payload
    assert "connection refused" in events[-1].payload


@pytest.mark.asyncio
async def test_invalid_utf8_yields_terminal_error(clear_transport_registry):
    body = _sse(_chat("ok")) + b"data: \xff\xfe\n\n"
    upstream = _mock_upstream(lambda request: httpx.Response(200, content=body))
    events = await _collect(
        relay_events(upstream, "/chat/completions", {}, ChatDeltaAdapter(), model="m")
    )
    assert events[-1].kind is EventKind.ERROR
    assert "UTF-8" in events[-1].payload
    assert not any(e.kind is EventKind.DEBUG for e in events)


@pytest.mark.asyncio
async def test_responses_error_stops_stream(clear_transport_registry):
    body = _sse(
        json.dumps({"type": "response.output_text.delta", "delta": "partial"}),
        json.dumps({"type": "response.error", "error": "rate limited"}),
        json.dumps({"type": "response.output_text.delta", "delta": "never"}),
        "[DONE]",
    )
    upstream = _mock_upstream(lambda request: httpx.Response(200, content=body))
    events = await _collect(
        relay_events(
            upstream,
            "/responses",
            {},
            ResponsesAdapter(),
            model="m",
            connecting="upstream: connecting (responses+web_search)",
        )
    )
    assert _kinds(events) == [
        ("progress", "upstream: connecting (responses+web_search)"),
        ("progress", "upstream: connected"),
        ("answer", "partial"),
        ("error", "rate limited"),
    ]


@pytest.mark.asyncio
async def test_disconnected_client_stops_relay(clear_transport_registry):
    body = _sse(_chat("one"), _chat("two"), "[DONE]")
    upstream = _mock_upstream(lambda request: httpx.Response(200, content=body))
    checks = 0

    async def disconnect_checker() -> bool:
        nonlocal checks
        checks += 1
        return True

    events = relay_events(
        upstream,
        "/chat/completions",
        {},
        ChatDeltaAdapter(),
        model="m",
        disconnect_checker=disconnect_checker,
    )
    frames = [frame async for frame in encode_events(events)]

    assert frames == [
        b"event: progress\ndata: upstream: connecting\n\n",
        b"event: progress\ndata: upstream: connected\n\n",
    ]
    assert checks == 1


@pytest.mark.asyncio
async def test_encode_events_renders_event_stream():
    async def events():
        yield NormalizedEvent.answer("line one\nline two")
        yield NormalizedEvent.progress("done")

    frames = [frame async for frame in encode_events(events())]
    assert frames == [
        b"event: answer\ndata: line one\ndata: line two\n\n",
        b"event: progress\ndata: done\n\n",
    ]


class TestWithKeepalive:
    """Tests for idle keep-alive interleaving."""

    @pytest.mark.asyncio
    async def test_fast_source_gets_no_keepalives(self):
        async def source():
            yield b"a"
            yield b"b"

        assert [item async for item in with_keepalive(source(), interval=1.0)] == [b"a", b"b"]

    @pytest.mark.asyncio
    async def test_idle_source_gets_keepalives_without_losing_items(self):
        async def source():
            yield b"first"
            await asyncio.sleep(0.25)
            yield b"second"

        items = [item async for item in with_keepalive(source(), interval=0.1)]

        assert items[0] == b"first"
        assert items[-1] == b"second"
        keepalives = items[1:-1]
        assert keepalives
        assert all(item == KEEPALIVE_FRAME for item in keepalives)

    @pytest.mark.asyncio
    async def test_closing_consumer_closes_source(self):
        closed = asyncio.Event()

        async def source():
            try:
                yield b"first"
                await asyncio.sleep(10)
                yield b"never"
            finally:
                closed.set()

        stream = with_keepalive(source(), interval=0.05)
        assert await stream.__anext__() == b"first"
        assert await stream.__anext__() == KEEPALIVE_FRAME
        await stream.aclose()

        assert closed.is_set()

    @pytest.mark.asyncio
    async def test_source_errors_propagate(self):
        async def source():
            yield b"ok"
            raise RuntimeError("upstream exploded")

        stream = with_keepalive(source(), interval=1.0)
        assert await stream.__anext__() == b"ok"
        with pytest.raises(RuntimeError, match="upstream exploded"):
            await stream.__anext__()
