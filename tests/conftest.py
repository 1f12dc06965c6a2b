"""Pytest configuration and shared fixtures."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from whale.common.models import ContainerIdentity, RawCounterSample
from whale.sources import ContainerLister, StatsSource


class FakeLister(ContainerLister):
    """In-memory container lister."""

    def __init__(self, containers=None, error=None):
        self.containers = list(containers or [])
        self.error = error
        self.calls = []

    async def list_containers(self, all=False):
        self.calls.append(all)
        if self.error is not None:
            raise self.error
        if all:
            return list(self.containers)
        return [c for c in self.containers if c.is_running]


class FakeStatsSource(StatsSource):
    """In-memory stats source that records call concurrency."""

    def __init__(self, samples=None, errors=None, delays=None, default_delay=0.01):
        self.samples = samples or {}
        self.errors = errors or {}
        self.delays = delays or {}
        self.default_delay = default_delay
        self.calls = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def fetch_stats(self, container_id):
        self.calls.append(container_id)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(container_id, self.default_delay))
            if container_id in self.errors:
                raise self.errors[container_id]
            return self.samples.get(container_id, RawCounterSample())
        finally:
            self.in_flight -= 1


@pytest.fixture
def make_sample():
    """Factory for RawCounterSample built from the counters a test cares about."""

    def factory(
        cpu_total=0,
        precpu_total=0,
        system=0,
        presystem=0,
        online_cpus=0,
        percpu=None,
        mem_usage=0,
        mem_limit=0,
        networks=None,
        blkio=None,
        pids=0,
    ):
        return RawCounterSample.model_validate(
            {
                "cpu_stats": {
                    "cpu_usage": {"total_usage": cpu_total, "percpu_usage": percpu},
                    "system_cpu_usage": system,
                    "online_cpus": online_cpus,
                },
                "precpu_stats": {
                    "cpu_usage": {"total_usage": precpu_total},
                    "system_cpu_usage": presystem,
                },
                "memory_stats": {"usage": mem_usage, "limit": mem_limit},
                "networks": networks or {},
                "blkio_stats": {"io_service_bytes_recursive": blkio or []},
                "pids_stats": {"current": pids},
            }
        )

    return factory


@pytest.fixture
def running_container():
    """Create a running container identity."""
    return ContainerIdentity(
        id="abc123def4567890",
        name="web",
        state="running",
        status="Up 5 minutes",
        networks=["bridge"],
    )


@pytest.fixture
def stopped_container():
    """Create an exited container identity."""
    return ContainerIdentity(
        id="fed987cba6543210",
        name="batch-job",
        state="exited",
        status="Exited (0) 2 hours ago",
    )


@pytest.fixture
def stats_payload():
    """A one-shot stats document as returned by the daemon."""
    return {
        "read": "2025-01-01T00:00:01Z",
        "cpu_stats": {
            "cpu_usage": {"total_usage": 150, "percpu_usage": None},
            "system_cpu_usage": 1500,
            "online_cpus": 4,
        },
        "precpu_stats": {
            "cpu_usage": {"total_usage": 100},
            "system_cpu_usage": 1000,
        },
        "memory_stats": {"usage": 104857600, "limit": 2147483648, "stats": {}},
        "networks": {
            "eth0": {"rx_bytes": 1000, "tx_bytes": 500},
            "eth1": {"rx_bytes": 24, "tx_bytes": 12},
        },
        "blkio_stats": {
            "io_service_bytes_recursive": [
                {"major": 8, "minor": 0, "op": "Read", "value": 1024},
                {"major": 8, "minor": 0, "op": "Write", "value": 2048},
            ]
        },
        "pids_stats": {"current": 7},
    }


@pytest.fixture
def container_list_entry():
    """One ``GET /containers/json`` entry."""
    return {
        "Id": "abc123def4567890",
        "Names": ["/web"],
        "State": "running",
        "Status": "Up 5 minutes",
        "NetworkSettings": {"Networks": {"frontend": {}, "backend": {}}},
    }


@pytest.fixture
def mock_aiodocker(monkeypatch):
    """Patch aiodocker.Docker with a MagicMock whose daemon calls are awaitable."""
    import aiodocker

    client = MagicMock()
    client.version = AsyncMock(return_value={"Version": "27.0.0"})
    client.close = AsyncMock()
    client.containers.list = AsyncMock(return_value=[])

    factory = MagicMock(return_value=client)
    monkeypatch.setattr(aiodocker, "Docker", factory)
    return client


@pytest.fixture
def make_source():
    """Factory for in-memory stats sources."""
    return FakeStatsSource


@pytest.fixture
def make_lister():
    """Factory for in-memory container listers."""
    return FakeLister
