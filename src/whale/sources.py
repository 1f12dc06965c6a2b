"""Collaborator contracts consumed by the collector.

The collector never talks to Docker directly: it lists containers through a
``ContainerLister`` and samples them through a ``StatsSource``.
``AsyncDockerClientWrapper`` implements both against a real daemon; tests
plug in in-memory fakes.
"""

from abc import ABC, abstractmethod

from whale.common.models import ContainerIdentity, RawCounterSample


class ContainerLister(ABC):
    """Abstract base class for container listing."""

    @abstractmethod
    async def list_containers(self, all: bool = False) -> list[ContainerIdentity]:
        """List containers in daemon order.

        Parameters
        ----------
        all : bool
            Include stopped containers (default: False)

        Raises
        ------
        DaemonError
            If the daemon cannot be reached or refuses the request.
        """
        pass


class StatsSource(ABC):
    """Abstract base class for one-shot stats sampling."""

    @abstractmethod
    async def fetch_stats(self, container_id: str) -> RawCounterSample:
        """Fetch one stats sample for a container.

        Raises
        ------
        StatsError
            If the sample cannot be obtained or decoded.
        """
        pass
