"""Upstream endpoint description, outbound HTTP client and transport registry."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import urlparse

import httpx

logger = logging.getLogger("voicerelay")

DEFAULT_API_BASE = "https://api.openai.com/v1"
DEFAULT_TIMEOUT = 60.0

# Per-host transports, used to route upstream traffic to in-process apps.
_TRANSPORTS: dict[str, httpx.AsyncBaseTransport] = {}


def _normalize_host(host: str) -> str:
    return host.strip().lower()


def register_upstream_transport(host: str, transport: httpx.AsyncBaseTransport) -> None:
    """Register a transport for a host (netloc, e.g. 'upstream.local:8000')."""
    if not host:
        raise ValueError("host is required")
    normalized = _normalize_host(host)
    _TRANSPORTS[normalized] = transport
    logger.debug("Registered upstream transport for host '%s'", normalized)


def register_upstream_transport_for_url(
    url: str, transport: httpx.AsyncBaseTransport
) -> None:
    """Register a transport for the netloc extracted from a URL."""
    register_upstream_transport(urlparse(url).netloc, transport)


def clear_upstream_transports() -> None:
    """Clear all registered transports (useful for tests)."""
    _TRANSPORTS.clear()


def get_upstream_transport(url: str) -> Optional[httpx.AsyncBaseTransport]:
    """Return a registered transport for the URL's netloc (if any)."""
    host = urlparse(url).netloc if url else ""
    if not host:
        return None
    return _TRANSPORTS.get(_normalize_host(host))


@dataclass
class Upstream:
    """The AI provider every relay route talks to."""

    base_url: str
    api_key: str
    timeout: Optional[float] = None

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key)

    def build_url(self, path: str) -> str:
        """Join a provider path such as ``/chat/completions`` onto the base URL."""
        base = self.base_url.rstrip("/")
        normalized_path = path or ""
        if not normalized_path.startswith("/"):
            normalized_path = f"/{normalized_path}"
        return f"{base}{normalized_path}"

    def auth_headers(self) -> dict[str, str]:
        headers: dict[str, str] = {}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def open_client(self, *, streaming: bool = False) -> httpx.AsyncClient:
        """Build a client for one request.

        Streaming clients have no read timeout; the relay may legitimately
        wait a long time between upstream chunks.
        """
        timeout = self.timeout or DEFAULT_TIMEOUT
        if streaming:
            client_timeout = httpx.Timeout(
                connect=timeout, read=None, write=timeout, pool=timeout
            )
        else:
            client_timeout = httpx.Timeout(timeout)
        transport = get_upstream_transport(self.base_url)
        return httpx.AsyncClient(
            timeout=client_timeout,
            transport=transport,
            headers=self.auth_headers(),
            follow_redirects=True,
        )


def format_httpx_error(exc: Any, upstream: Upstream, url: Optional[str] = None) -> str:
    """Produce a detailed, user-facing description of an httpx error."""
    parts = [exc.__class__.__name__]
    message = str(exc).strip()
    if message:
        parts.append(message)

    try:
        request = exc.request
    except (AttributeError, RuntimeError):
        # httpx raises RuntimeError when the request was never attached
        request = None
    if request is not None:
        parts.append(f"request={request.method} {request.url}")
    elif url:
        parts.append(f"url={url}")

    if isinstance(exc, httpx.TimeoutException):
        parts.append(f"timeout={upstream.timeout or DEFAULT_TIMEOUT}s")

    return "; ".join(parts)
