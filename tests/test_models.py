"""Tests for whale.common.models module."""

import pytest
from pydantic import ValidationError

from whale.common.models import (
    STATUS_ERROR,
    ContainerIdentity,
    NormalizedMetrics,
    RawCounterSample,
    Snapshot,
)


class TestContainerIdentity:
    """Tests for ContainerIdentity."""

    def test_running(self, running_container):
        """Test running state detection."""
        assert running_container.is_running

    def test_not_running(self, stopped_container):
        """Test exited container is not running."""
        assert not stopped_container.is_running

    def test_display_status_prefers_status(self, running_container):
        """Test the human status wins over the state token."""
        assert running_container.display_status == "Up 5 minutes"

    def test_display_status_falls_back_to_state(self):
        """Test state is used when status is empty."""
        ident = ContainerIdentity(id="abc", state="paused")
        assert ident.display_status == "paused"

    def test_display_status_empty(self):
        """Test both empty yields empty string."""
        assert ContainerIdentity(id="abc").display_status == ""

    def test_requires_id(self):
        """Test an empty ID is rejected."""
        with pytest.raises(ValidationError):
            ContainerIdentity(id="")

    def test_frozen(self, running_container):
        """Test identities cannot be mutated."""
        with pytest.raises(ValidationError):
            running_container.name = "other"


class TestRawCounterSample:
    """Tests for decoding stats payloads."""

    def test_full_payload(self, stats_payload):
        """Test a complete payload decodes every section."""
        sample = RawCounterSample.model_validate(stats_payload)
        assert sample.cpu_stats.cpu_usage.total_usage == 150
        assert sample.precpu_stats.system_cpu_usage == 1000
        assert sample.cpu_stats.online_cpus == 4
        assert sample.memory_stats.limit == 2147483648
        assert sample.networks["eth0"].rx_bytes == 1000
        assert sample.blkio_stats.io_service_bytes_recursive[1].op == "Write"
        assert sample.pids_stats.current == 7

    def test_empty_payload(self):
        """Test missing sections default to zero counters."""
        sample = RawCounterSample.model_validate({})
        assert sample.cpu_stats.cpu_usage.total_usage == 0
        assert sample.cpu_stats.cpu_usage.percpu_usage == []
        assert sample.memory_stats.usage == 0
        assert sample.networks == {}
        assert sample.blkio_stats.io_service_bytes_recursive == []
        assert sample.pids_stats.current == 0

    def test_nulls_become_defaults(self):
        """Test explicit nulls are treated as absent counters."""
        sample = RawCounterSample.model_validate(
            {
                "cpu_stats": {"cpu_usage": {"percpu_usage": None}, "online_cpus": None},
                "networks": None,
                "blkio_stats": {"io_service_bytes_recursive": None},
                "pids_stats": None,
            }
        )
        assert sample.cpu_stats.cpu_usage.percpu_usage == []
        assert sample.cpu_stats.online_cpus == 0
        assert sample.networks == {}
        assert sample.blkio_stats.io_service_bytes_recursive == []
        assert sample.pids_stats.current == 0

    def test_unknown_fields_ignored(self):
        """Test extra daemon fields do not break decoding."""
        sample = RawCounterSample.model_validate(
            {"num_procs": 0, "memory_stats": {"usage": 5, "max_usage": 9}}
        )
        assert sample.memory_stats.usage == 5

    def test_wrong_type_rejected(self):
        """Test non-numeric counters fail validation."""
        with pytest.raises(ValidationError):
            RawCounterSample.model_validate({"memory_stats": {"usage": "lots"}})

    @pytest.mark.parametrize(
        "payload",
        [
            {"memory_stats": {"usage": -5, "limit": 100}},
            {"networks": {"eth0": {"rx_bytes": -1}}},
            {"blkio_stats": {"io_service_bytes_recursive": [{"op": "Read", "value": -4}]}},
        ],
    )
    def test_negative_counter_rejected(self, payload):
        """Test raw counters below zero fail validation."""
        with pytest.raises(ValidationError):
            RawCounterSample.model_validate(payload)


class TestSnapshot:
    """Tests for Snapshot."""

    def test_successful_snapshot(self):
        """Test accessors expose metrics."""
        snap = Snapshot(
            id="abc",
            name="web",
            status="Up",
            metrics=NormalizedMetrics(cpu_percent=12.5, mem_usage_bytes=10, pids=3),
        )
        assert not snap.failed
        assert snap.cpu_percent == 12.5
        assert snap.mem_usage_bytes == 10
        assert snap.pids == 3
        assert snap.net_rx_bytes == 0

    def test_failed_snapshot(self):
        """Test failed snapshots expose no numeric fields."""
        snap = Snapshot(id="abc", name="web", status=STATUS_ERROR)
        assert snap.failed
        assert snap.cpu_percent is None
        assert snap.mem_percent is None
        assert snap.mem_limit_bytes is None
        assert snap.block_write_bytes is None
        assert snap.pids is None

    def test_negative_metrics_rejected(self):
        """Test normalized metrics are never negative."""
        with pytest.raises(ValidationError):
            NormalizedMetrics(cpu_percent=-1.0)
