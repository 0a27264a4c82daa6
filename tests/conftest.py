"""
Shared pytest fixtures for scheduled_resource tests.

Provides stub providers and a fresh provider registry per test, so tests
never touch the global registry.
"""

import threading
from datetime import datetime, timezone
from typing import Any, Optional

import pytest

from scheduled_resource.providers import BlockRecord, ProviderRegistry


class StubProvider:
    """
    Provider returning a fixed table, recording each call.

    Returns only the requested sub-ids that appear in the table, in the
    table's own order.
    """

    def __init__(self, blocks: Optional[dict[str, list]] = None):
        self.blocks = blocks or {}
        self.calls: list[tuple] = []
        self._lock = threading.Lock()

    def get_all_blocks(self, sub_ids, t1, t2, inc):
        with self._lock:
            self.calls.append((list(sub_ids), t1, t2, inc))
        return {
            sid: [BlockRecord(b.start_time, b.end_time, dict(b.payload)) for b in blks]
            for sid, blks in self.blocks.items()
            if sid in sub_ids
        }


class FailingProvider:
    """Provider whose every call fails."""

    def __init__(self, message: str = "database unavailable"):
        self.message = message
        self.calls = 0

    def get_all_blocks(self, sub_ids, t1, t2, inc):
        self.calls += 1
        raise RuntimeError(self.message)


class BlockingProvider:
    """Provider that waits until released (or times out) before answering."""

    def __init__(self, blocks: Optional[dict[str, list]] = None):
        self.started = threading.Event()
        self.release = threading.Event()
        self.blocks = blocks or {}

    def get_all_blocks(self, sub_ids, t1, t2, inc):
        self.started.set()
        self.release.wait(timeout=5)
        return {sid: list(self.blocks.get(sid, [])) for sid in sub_ids}


def block(start: Any, end: Any, **payload) -> BlockRecord:
    return BlockRecord(start, end, payload)


@pytest.fixture
def t0():
    """A fixed reference time for manifests and queries."""
    return datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def program_provider():
    return StubProvider({
        "1": [block(100, 200, title="News")],
        "2": [],
    })


@pytest.fixture
def room_provider():
    return StubProvider({
        "101": [block(50, 80, title="Standup"), block(120, 240, title="Planning")],
    })


@pytest.fixture
def providers(program_provider, room_provider):
    """Fresh registry with stub providers for Channel and Room kinds."""
    registry = ProviderRegistry()
    registry.register_provider_instance("Program", program_provider)
    registry.register_provider_instance("Meeting", room_provider)
    return registry


@pytest.fixture
def manifest():
    return {
        "ResourceKinds": {"Channel": "Program", "Room": "Meeting"},
        "Resources": ["Channel 1, 2", "Room 101 102"],
    }
