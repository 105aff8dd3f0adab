"""Shared test fixtures for backend tests.

Provides registries, consumers, an EventBus, and helpers for building agent
output and chunked text streams, so tests never touch real LLM APIs.
"""

import asyncio
import sys
from collections.abc import AsyncIterator, Iterable

import pytest

# Ensure the backend package root is on sys.path so that absolute imports
# like ``from protocol.decoder import ...`` resolve correctly when running
# pytest from the repository root.
_backend_root = str(
    __import__("pathlib").Path(__file__).resolve().parent.parent
)
if _backend_root not in sys.path:
    sys.path.insert(0, _backend_root)

from events.bus import EventBus  # noqa: E402
from events.types import AgentEvent  # noqa: E402
from protocol.consumer import StreamConsumer  # noqa: E402
from protocol.messages import ProtocolMessage  # noqa: E402
from protocol.registry import ComponentRegistry  # noqa: E402

# ---------------------------------------------------------------------------
# Event Bus
# ---------------------------------------------------------------------------


@pytest.fixture()
def event_bus() -> EventBus:
    """Return a fresh EventBus instance for each test."""
    return EventBus()


# ---------------------------------------------------------------------------
# Registry / Consumer
# ---------------------------------------------------------------------------


@pytest.fixture()
def registry() -> ComponentRegistry:
    """Return an empty ComponentRegistry."""
    return ComponentRegistry()


@pytest.fixture()
def consumer(registry: ComponentRegistry) -> StreamConsumer:
    """Return a StreamConsumer that owns the ``registry`` fixture."""
    return StreamConsumer(registry=registry)


# ---------------------------------------------------------------------------
# Stream helpers
# ---------------------------------------------------------------------------


async def aiter_chunks(chunks: Iterable[str]) -> AsyncIterator[str]:
    """Yield text chunks as an async stream."""
    for chunk in chunks:
        yield chunk


async def aiter_messages(messages: Iterable[ProtocolMessage]) -> AsyncIterator[ProtocolMessage]:
    """Yield protocol messages as an async stream."""
    for message in messages:
        yield message


def split_every(text: str, size: int) -> list[str]:
    """Split text into fixed-size chunks (the last one may be shorter)."""
    return [text[i:i + size] for i in range(0, len(text), size)]


async def collect(source: AsyncIterator) -> list:
    """Drain an async iterator into a list."""
    return [item async for item in source]


# ---------------------------------------------------------------------------
# Event Collection Helper
# ---------------------------------------------------------------------------


def collect_events(queue: asyncio.Queue[AgentEvent]) -> list[AgentEvent]:
    """Drain everything already delivered to a subscriber queue."""
    events: list[AgentEvent] = []
    while not queue.empty():
        events.append(queue.get_nowait())
    return events
