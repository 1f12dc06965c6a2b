"""Bounded parallel stats fetching.

Issues one ``StatsSource.fetch_stats`` call per container with:
- a counting semaphore capping the number of in-flight calls
- a per-call deadline, so one stuck container cannot stall the batch
- failure isolation: a failed call only marks its own result slot

Results land in a list pre-sized to the number of containers. Each worker
writes only the slot whose index it was given at submission, so the output
order matches the input order whatever the completion order.
"""

import asyncio
import logging
import time
from dataclasses import dataclass

from whale.common.exceptions import (
    ConfigurationError,
    FetchCancelledError,
    StatsError,
    StatsTimeoutError,
    StatsTransportError,
)
from whale.common.models import RawCounterSample
from whale.sources import StatsSource

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENCY = 16
DEFAULT_FETCH_TIMEOUT = 1.5


@dataclass(frozen=True)
class FetchOutcome:
    """Result of one stats fetch: a sample or the error that prevented it."""

    container_id: str
    sample: RawCounterSample | None = None
    error: StatsError | None = None

    @property
    def ok(self) -> bool:
        """Whether the fetch produced a sample."""
        return self.sample is not None and self.error is None


class BoundedFetcher:
    """Fetches stats for many containers under a concurrency ceiling.

    Parameters
    ----------
    source : StatsSource
        Where samples come from.
    max_concurrency : int
        Upper bound on simultaneous in-flight calls (default: 16).
    timeout : float
        Per-call deadline in seconds (default: 1.5).

    Examples
    --------
    >>> fetcher = BoundedFetcher(client, max_concurrency=8)
    >>> outcomes = await fetcher.fetch_all(["abc123", "def456"])
    >>> [o.ok for o in outcomes]
    [True, True]
    """

    def __init__(
        self,
        source: StatsSource,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        timeout: float = DEFAULT_FETCH_TIMEOUT,
    ):
        if max_concurrency < 1:
            raise ConfigurationError(
                "Fetch concurrency must be at least 1",
                details={"max_concurrency": max_concurrency},
            )
        if timeout <= 0:
            raise ConfigurationError(
                "Fetch timeout must be positive",
                details={"timeout": timeout},
            )
        self.source = source
        self.max_concurrency = max_concurrency
        self.timeout = timeout

    async def fetch_all(
        self, container_ids: list[str], cancel: asyncio.Event | None = None
    ) -> list[FetchOutcome]:
        """Fetch one sample per container.

        Never raises for a single container's failure: each failure is
        recorded in that container's outcome. Returns only after every worker
        has finished.

        Parameters
        ----------
        container_ids : list[str]
            Containers to sample, expected to be running.
        cancel : asyncio.Event, optional
            When set, in-flight calls are abandoned and pending ones are not
            started; their outcomes carry ``FetchCancelledError``.

        Returns
        -------
        list[FetchOutcome]
            One outcome per container, in input order.
        """
        if not container_ids:
            return []

        started = time.monotonic()
        results: list[FetchOutcome | None] = [None] * len(container_ids)
        gate = asyncio.Semaphore(min(self.max_concurrency, len(container_ids)))

        async def worker(index: int, container_id: str) -> None:
            async with gate:
                results[index] = await self._fetch_one(container_id, cancel)

        tasks = [
            asyncio.create_task(worker(index, container_id))
            for index, container_id in enumerate(container_ids)
        ]
        await asyncio.gather(*tasks)

        outcomes = [outcome for outcome in results if outcome is not None]
        failed = sum(1 for outcome in outcomes if not outcome.ok)
        logger.debug(
            f"Fetched stats for {len(outcomes)} containers ({failed} failed) "
            f"in {time.monotonic() - started:.2f}s"
        )
        return outcomes

    async def _fetch_one(self, container_id: str, cancel: asyncio.Event | None) -> FetchOutcome:
        """Run one stats call racing its deadline and the cancel signal."""
        short_id = container_id[:12]
        if cancel is not None and cancel.is_set():
            return FetchOutcome(
                container_id,
                error=FetchCancelledError(
                    f"Stats fetch cancelled for container: {short_id}",
                    details={"container_id": container_id},
                ),
            )

        fetch = asyncio.ensure_future(self.source.fetch_stats(container_id))
        waiters: set[asyncio.Future] = {fetch}
        stop: asyncio.Future | None = None
        if cancel is not None:
            stop = asyncio.ensure_future(cancel.wait())
            waiters.add(stop)

        try:
            done, _ = await asyncio.wait(
                waiters, timeout=self.timeout, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            for fut in waiters:
                fut.cancel()
            await asyncio.gather(*waiters, return_exceptions=True)

        error: StatsError
        if fetch in done and not fetch.cancelled():
            exc = fetch.exception()
            if exc is None:
                return FetchOutcome(container_id, sample=fetch.result())
            if isinstance(exc, StatsError):
                error = exc
            else:
                error = StatsTransportError(
                    f"Failed to get stats for container: {short_id}",
                    details={"container_id": container_id, "error": str(exc)},
                )
        elif fetch in done or (stop is not None and stop in done):
            error = FetchCancelledError(
                f"Stats fetch cancelled for container: {short_id}",
                details={"container_id": container_id},
            )
        else:
            error = StatsTimeoutError(
                f"Stats fetch timed out after {self.timeout}s for container: {short_id}",
                details={"container_id": container_id, "timeout": self.timeout},
            )

        if isinstance(error, FetchCancelledError):
            logger.debug(error.message)
        else:
            logger.warning(f"Failed to get stats for {short_id}: {error.message}")
        return FetchOutcome(container_id, error=error)
