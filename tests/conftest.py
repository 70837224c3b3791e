"""Pytest configuration and fixtures for testing."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Generator

import pytest

# Make the project root importable without an editable install
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from voicerelay.core.upstream import clear_upstream_transports
from voicerelay.testing import RelayHarness


@pytest.fixture
def clear_transport_registry() -> Generator[None, None, None]:
    """Clear upstream transport registry after test.

    Use this fixture in tests that register fake transports directly.
    """
    yield
    clear_upstream_transports()


@pytest.fixture
def relay() -> Generator[RelayHarness, None, None]:
    """A relay app backed by a fresh FakeUpstream."""
    with RelayHarness() as harness:
        yield harness


class RecordingSleep:
    """Stand-in for asyncio.sleep that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()
