"""Snapshot collection for whale.

Provides the collector that runs one list -> fetch -> assemble cycle and the
refresh loop that repeats it on a timer until cancelled.
"""

import asyncio
import inspect
import logging
import time
from collections.abc import Awaitable, Callable
from typing import TypeVar

from whale.common.config import CollectorSettings
from whale.common.exceptions import ConfigurationError
from whale.common.models import (
    STATUS_ERROR,
    ContainerIdentity,
    NormalizedMetrics,
    Snapshot,
)
from whale.fetcher import DEFAULT_FETCH_TIMEOUT, DEFAULT_MAX_CONCURRENCY, BoundedFetcher, FetchOutcome
from whale.normalize import normalize
from whale.sources import ContainerLister, StatsSource

logger = logging.getLogger(__name__)

T = TypeVar("T")
OnCycle = Callable[[list[Snapshot]], Awaitable[None] | None]


def assemble_snapshots(
    identities: list[ContainerIdentity], outcomes: dict[int, FetchOutcome]
) -> list[Snapshot]:
    """Join container identities with their fetch outcomes.

    Parameters
    ----------
    identities : list[ContainerIdentity]
        Containers in lister order.
    outcomes : dict[int, FetchOutcome]
        Fetch outcomes keyed by index into ``identities``; only running
        containers are expected to have one.

    Returns
    -------
    list[Snapshot]
        One snapshot per identity, in the same order.

    Notes
    -----
    - Non-running containers get zeroed metrics and their lister status.
    - Running containers without a successful fetch get the ERROR status and
      no metrics, even though the lister still reports them as alive.
    """
    snapshots: list[Snapshot] = []
    for index, ident in enumerate(identities):
        if not ident.is_running:
            snapshots.append(
                Snapshot(
                    id=ident.id,
                    name=ident.name,
                    status=ident.display_status,
                    metrics=NormalizedMetrics(),
                )
            )
            continue

        outcome = outcomes.get(index)
        if outcome is None or outcome.sample is None:
            snapshots.append(Snapshot(id=ident.id, name=ident.name, status=STATUS_ERROR))
            continue

        snapshots.append(
            Snapshot(
                id=ident.id,
                name=ident.name,
                status=ident.display_status,
                metrics=normalize(outcome.sample),
            )
        )
    return snapshots


class MetricsCollector:
    """Collects one snapshot per container.

    Parameters
    ----------
    lister : ContainerLister
        Source of container identities.
    source : StatsSource
        Source of raw stats samples.
    max_concurrency : int
        Ceiling on simultaneous stats calls (default: 16).
    fetch_timeout : float
        Per-call stats deadline in seconds (default: 1.5).

    Examples
    --------
    >>> async with AsyncDockerClientWrapper() as client:
    ...     collector = MetricsCollector(client, client)
    ...     snapshots = await collector.collect(include_stopped=True)
    """

    def __init__(
        self,
        lister: ContainerLister,
        source: StatsSource,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        fetch_timeout: float = DEFAULT_FETCH_TIMEOUT,
    ):
        self.lister = lister
        self.fetcher = BoundedFetcher(source, max_concurrency=max_concurrency, timeout=fetch_timeout)

    @classmethod
    def from_settings(
        cls, lister: ContainerLister, source: StatsSource, settings: CollectorSettings
    ) -> "MetricsCollector":
        """Build a collector using the configured concurrency and deadline."""
        return cls(
            lister,
            source,
            max_concurrency=settings.fetch_concurrency,
            fetch_timeout=settings.fetch_timeout_seconds,
        )

    async def collect(
        self, include_stopped: bool = False, cancel: asyncio.Event | None = None
    ) -> list[Snapshot]:
        """Run one collection cycle.

        Parameters
        ----------
        include_stopped : bool
            Include non-running containers (default: False)
        cancel : asyncio.Event, optional
            Abandons outstanding stats calls when set.

        Returns
        -------
        list[Snapshot]
            One snapshot per listed container, in lister order.

        Raises
        ------
        DaemonError
            If listing containers fails. Stats failures never raise.
        """
        started = time.monotonic()
        identities = await self.lister.list_containers(all=include_stopped)

        running = [index for index, ident in enumerate(identities) if ident.is_running]
        outcomes = await self.fetcher.fetch_all(
            [identities[index].id for index in running], cancel=cancel
        )
        snapshots = assemble_snapshots(identities, dict(zip(running, outcomes, strict=True)))

        logger.debug(
            f"Collected {len(snapshots)} snapshots ({len(running)} running) "
            f"in {time.monotonic() - started:.2f}s"
        )
        return snapshots

    async def watch(
        self,
        on_cycle: OnCycle,
        interval: float,
        cancel: asyncio.Event,
        include_stopped: bool = False,
    ) -> None:
        """Collect repeatedly until cancelled.

        Parameters
        ----------
        on_cycle : callable
            Receives each cycle's snapshots; may be a coroutine function.
        interval : float
            Seconds between cycle starts.
        cancel : asyncio.Event
            Stops the loop when set.
        include_stopped : bool
            Include non-running containers (default: False)

        Raises
        ------
        DaemonError
            If a cycle fails to list containers; the loop stops.
        """
        await refresh_loop(
            lambda: self.collect(include_stopped=include_stopped),
            on_cycle,
            interval,
            cancel,
        )


async def refresh_loop(
    produce: Callable[[], Awaitable[T]],
    on_cycle: Callable[[T], Awaitable[None] | None],
    interval: float,
    cancel: asyncio.Event,
) -> None:
    """Run ``produce`` then ``on_cycle`` on every timer tick until cancelled.

    After each cycle the loop blocks on whichever comes first: the next tick
    or ``cancel``. A cycle already in progress when ``cancel`` is set runs to
    completion, but no new cycle starts afterwards. An exception from either
    callable ends the loop and propagates.

    Parameters
    ----------
    produce : callable
        Coroutine function producing one cycle's result.
    on_cycle : callable
        Receives each result; may be a coroutine function.
    interval : float
        Seconds between cycle starts.
    cancel : asyncio.Event
        Stops the loop when set.
    """
    if interval <= 0:
        raise ConfigurationError("Refresh interval must be positive", details={"interval": interval})

    loop = asyncio.get_running_loop()
    next_tick = loop.time() + interval
    cycles = 0

    while not cancel.is_set():
        cycles += 1
        result = on_cycle(await produce())
        if inspect.isawaitable(result):
            await result

        if await _wait_for_tick(cancel, next_tick - loop.time()):
            break

        now = loop.time()
        next_tick += interval
        # A cycle that overran the interval drops the ticks it missed
        if next_tick <= now:
            next_tick = now + interval

    logger.info(f"Refresh loop stopped after {cycles} cycles")


async def _wait_for_tick(cancel: asyncio.Event, delay: float) -> bool:
    """Block until the next tick or cancellation; True when cancelled."""
    if cancel.is_set():
        return True
    try:
        await asyncio.wait_for(cancel.wait(), timeout=max(delay, 0.0))
    except TimeoutError:
        return False
    return True
