"""Tests for whale.fetcher module."""

import asyncio
import time

import pytest

from whale.common.exceptions import (
    ConfigurationError,
    ContainerNotFoundError,
    FetchCancelledError,
    MalformedStatsError,
    StatsTimeoutError,
    StatsTransportError,
)
from whale.common.models import RawCounterSample
from whale.fetcher import BoundedFetcher, FetchOutcome


class TestBoundedFetcherInit:
    """Tests for fetcher construction."""

    def test_defaults(self, make_source):
        """Test default ceiling and deadline."""
        fetcher = BoundedFetcher(make_source())
        assert fetcher.max_concurrency == 16
        assert fetcher.timeout == 1.5

    def test_rejects_zero_concurrency(self, make_source):
        """Test a ceiling below 1 is rejected."""
        with pytest.raises(ConfigurationError):
            BoundedFetcher(make_source(), max_concurrency=0)

    def test_rejects_non_positive_timeout(self, make_source):
        """Test a non-positive deadline is rejected."""
        with pytest.raises(ConfigurationError):
            BoundedFetcher(make_source(), timeout=0)


class TestFetchAll:
    """Tests for BoundedFetcher.fetch_all."""

    @pytest.mark.asyncio
    async def test_empty_input(self, make_source):
        """Test no containers yields no outcomes and no calls."""
        source = make_source()
        assert await BoundedFetcher(source).fetch_all([]) == []
        assert source.calls == []

    @pytest.mark.asyncio
    async def test_one_outcome_per_container_in_order(self, make_source):
        """Test outcomes follow input order whatever the completion order."""
        ids = [f"c{i}" for i in range(10)]
        samples = {cid: RawCounterSample.model_validate({"pids_stats": {"current": i}}) for i, cid in enumerate(ids)}
        # Earlier containers finish last
        delays = {cid: 0.05 - i * 0.005 for i, cid in enumerate(ids)}
        source = make_source(samples=samples, delays=delays)

        outcomes = await BoundedFetcher(source).fetch_all(ids)

        assert [o.container_id for o in outcomes] == ids
        assert [o.sample.pids_stats.current for o in outcomes] == list(range(10))
        assert all(o.ok for o in outcomes)

    @pytest.mark.asyncio
    async def test_concurrency_ceiling(self, make_source):
        """Test 40 containers never have more than 16 calls in flight."""
        source = make_source(default_delay=0.02)
        ids = [f"c{i}" for i in range(40)]

        outcomes = await BoundedFetcher(source).fetch_all(ids)

        assert len(outcomes) == 40
        assert source.max_in_flight == 16
        assert sorted(source.calls) == sorted(ids)

    @pytest.mark.asyncio
    async def test_custom_ceiling(self, make_source):
        """Test a lower configured ceiling is honoured."""
        source = make_source(default_delay=0.02)
        await BoundedFetcher(source, max_concurrency=3).fetch_all([f"c{i}" for i in range(10)])
        assert source.max_in_flight == 3

    @pytest.mark.asyncio
    async def test_ceiling_smaller_batch(self, make_source):
        """Test a batch smaller than the ceiling runs fully in parallel."""
        source = make_source(default_delay=0.02)
        await BoundedFetcher(source).fetch_all(["a", "b", "c"])
        assert source.max_in_flight == 3

    @pytest.mark.asyncio
    async def test_timeout_isolated(self, make_source):
        """Test a stuck call times out without delaying its siblings."""
        source = make_source(delays={"slow": 10.0}, default_delay=0.01)
        fetcher = BoundedFetcher(source, timeout=0.1)

        started = time.monotonic()
        outcomes = await fetcher.fetch_all(["a", "slow", "b"])
        elapsed = time.monotonic() - started

        assert elapsed < 1.0
        assert outcomes[0].ok and outcomes[2].ok
        assert not outcomes[1].ok
        assert outcomes[1].sample is None
        assert isinstance(outcomes[1].error, StatsTimeoutError)
        assert outcomes[1].error.details["container_id"] == "slow"

    @pytest.mark.asyncio
    async def test_failures_isolated(self, make_source):
        """Test each failure only marks its own outcome."""
        source = make_source(
            errors={
                "gone": ContainerNotFoundError("gone"),
                "bad": MalformedStatsError("bad"),
            }
        )
        outcomes = await BoundedFetcher(source).fetch_all(["ok1", "gone", "bad", "ok2"])

        assert [o.ok for o in outcomes] == [True, False, False, True]
        assert isinstance(outcomes[1].error, ContainerNotFoundError)
        assert isinstance(outcomes[2].error, MalformedStatsError)

    @pytest.mark.asyncio
    async def test_unexpected_error_wrapped(self, make_source):
        """Test arbitrary exceptions become transport errors."""
        source = make_source(errors={"x": RuntimeError("socket closed")})
        outcomes = await BoundedFetcher(source).fetch_all(["x"])

        assert isinstance(outcomes[0].error, StatsTransportError)
        assert "socket closed" in outcomes[0].error.details["error"]

    @pytest.mark.asyncio
    async def test_cancel_already_set(self, make_source):
        """Test no calls start once the batch is cancelled."""
        source = make_source()
        cancel = asyncio.Event()
        cancel.set()

        outcomes = await BoundedFetcher(source).fetch_all(["a", "b"], cancel=cancel)

        assert source.calls == []
        assert all(isinstance(o.error, FetchCancelledError) for o in outcomes)

    @pytest.mark.asyncio
    async def test_cancel_abandons_in_flight(self, make_source):
        """Test setting cancel mid-batch abandons outstanding calls promptly."""
        source = make_source(delays={"slow": 10.0}, default_delay=0.0)
        cancel = asyncio.Event()
        fetcher = BoundedFetcher(source, timeout=5.0)

        async def trigger():
            await asyncio.sleep(0.05)
            cancel.set()

        started = time.monotonic()
        outcomes, _ = await asyncio.gather(fetcher.fetch_all(["fast", "slow"], cancel=cancel), trigger())

        assert time.monotonic() - started < 1.0
        assert outcomes[0].ok
        assert isinstance(outcomes[1].error, FetchCancelledError)
        assert source.in_flight == 0

    @pytest.mark.asyncio
    async def test_task_cancel_propagates(self, make_source):
        """Test cancelling the caller cancels every worker before re-raising."""
        source = make_source(default_delay=10.0)
        task = asyncio.create_task(BoundedFetcher(source, timeout=30.0).fetch_all(["a", "b"]))
        await asyncio.sleep(0.05)

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert source.in_flight == 0


class TestFetchOutcome:
    """Tests for FetchOutcome."""

    def test_ok(self):
        """Test a sample without error is ok."""
        assert FetchOutcome("a", sample=RawCounterSample()).ok

    def test_error(self):
        """Test an error outcome is not ok."""
        assert not FetchOutcome("a", error=StatsTimeoutError("slow")).ok
