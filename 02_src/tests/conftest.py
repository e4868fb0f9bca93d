"""Pytest configuration and fixtures."""

import sys
from pathlib import Path

import pytest

# Add source directory and this directory (shared samples) to path
sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent))

from timeline_samples import (  # noqa: E402
    LCP_ENTRIES,
    LONG_TASK_ENTRIES,
    PAINT_ENTRIES,
    RESOURCE_ENTRIES,
    TIMING_LEVEL1_ENTRY,
    USER_TIMING_ENTRIES,
)


class FakeClock:
    """Clock whose time only moves when a test says so."""

    def __init__(self, now: float = 0.0):
        self.current = now

    def now(self) -> float:
        return self.current

    def advance(self, ms: float) -> float:
        self.current += ms
        return self.current


@pytest.fixture
def clock():
    """Create a controllable clock starting at t=0."""
    return FakeClock()


@pytest.fixture
def config():
    """Create a config service with a valid service name."""
    from rum_core.config_service import ConfigService

    cs = ConfigService()
    cs.set_config({"serviceName": "test-service"})
    return cs


@pytest.fixture
def timeline():
    """Create a timeline preloaded with navigation, resource, measure and paint samples."""
    from rum_core.timeline import InMemoryTimeline

    tl = InMemoryTimeline(timing=TIMING_LEVEL1_ENTRY)
    tl.add_entries(RESOURCE_ENTRIES + USER_TIMING_ENTRIES + PAINT_ENTRIES)
    return tl


@pytest.fixture
def empty_timeline():
    """Create a timeline without any entries."""
    from rum_core.timeline import InMemoryTimeline

    return InMemoryTimeline()


@pytest.fixture
def recorder(timeline):
    """Create a recorder bound to the preloaded timeline."""
    from rum_core.performance import PerfEntryRecorder

    return PerfEntryRecorder(timeline)


@pytest.fixture
def transport():
    """Create an unbounded in-memory payload queue."""
    from rum_core.transactions import PayloadQueue

    return PayloadQueue()


@pytest.fixture
def transaction_service(config, recorder, timeline, transport, clock):
    """Create TransactionService wired to the test doubles."""
    from rum_core.transactions import TransactionService

    return TransactionService(config, recorder, timeline, transport=transport, clock=clock)


@pytest.fixture
def long_task_entries():
    return LONG_TASK_ENTRIES


@pytest.fixture
def lcp_entries():
    return LCP_ENTRIES
