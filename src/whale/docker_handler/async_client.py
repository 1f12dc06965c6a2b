"""
Async Docker client wrapper for whale.

This module provides an async interface to the Docker daemon using aiodocker.
It implements both collaborator contracts of the collector:
- ContainerLister: list containers with their lifecycle status and networks
- StatsSource: fetch one stats sample for a container

All operations use aiodocker for non-blocking I/O. Daemon and transport
errors are translated into the whale exception hierarchy.
"""

import asyncio
import logging
from typing import Any

import aiodocker
from aiodocker.exceptions import DockerError
from aiohttp import ClientError
from pydantic import ValidationError

from whale.common.config import DockerSettings
from whale.common.exceptions import (
    ConfigurationError,
    ContainerListError,
    ContainerNotFoundError,
    DaemonConnectionError,
    MalformedStatsError,
    StatsTransportError,
)
from whale.common.models import ContainerIdentity, RawCounterSample
from whale.sources import ContainerLister, StatsSource

logger = logging.getLogger(__name__)


def derive_name(names: list[str] | None) -> str:
    """Return the first container name without its leading slash."""
    if not names:
        return ""
    return names[0].removeprefix("/")


def extract_network_names(info: dict[str, Any]) -> list[str]:
    """Return the sorted network names from a container list entry."""
    settings = info.get("NetworkSettings") or {}
    networks = settings.get("Networks") or {}
    return sorted(networks)


LIST_ENTRY_KEYS = ("Id", "Names", "State", "Status", "NetworkSettings")


def list_entry_fields(container: Any) -> dict[str, Any]:
    """Copy the fields whale reads out of an aiodocker list item.

    Missing keys are left out, so callers see the same shape as a raw
    ``GET /containers/json`` entry that lacks them.
    """
    entry: dict[str, Any] = {}
    for key in LIST_ENTRY_KEYS:
        try:
            entry[key] = container[key]
        except KeyError:
            continue
    return entry


def identity_from_list_entry(info: dict[str, Any]) -> ContainerIdentity:
    """Build a ContainerIdentity from one ``GET /containers/json`` entry.

    Examples
    --------
    >>> ident = identity_from_list_entry(
    ...     {"Id": "abc123", "Names": ["/web"], "State": "running", "Status": "Up 5 minutes"}
    ... )
    >>> ident.name
    'web'
    """
    return ContainerIdentity(
        id=info.get("Id") or info.get("ID") or info.get("id") or "",
        name=derive_name(info.get("Names")),
        state=info.get("State") or "",
        status=info.get("Status") or "",
        networks=extract_network_names(info),
    )


class AsyncDockerClientWrapper(ContainerLister, StatsSource):
    """
    Async wrapper around aiodocker for whale operations.

    Provides async interface to Docker with:
    - Container listing
    - One-shot stats sampling
    - Context manager support

    Parameters
    ----------
    docker_url : str, optional
        Docker daemon URL (default: unix:///var/run/docker.sock)
    timeout : float, optional
        Timeout for listing and handshake requests in seconds (default: 10).
        Stats calls are bounded by the fetcher's per-call deadline instead.

    Examples
    --------
    >>> async def example():
    ...     async with AsyncDockerClientWrapper() as client:
    ...         containers = await client.list_containers()
    ...         print(f"Found {len(containers)} containers")
    >>> asyncio.run(example())
    Found 0 containers
    """

    def __init__(self, docker_url: str = "unix:///var/run/docker.sock", timeout: float = 10.0):
        """
        Initialize async Docker client.

        Parameters
        ----------
        docker_url : str
            Docker daemon URL
        timeout : float
            Default request timeout (seconds)
        """
        self.docker_url = docker_url
        self.timeout = timeout
        self._client: aiodocker.Docker | None = None
        self._connected = False
        logger.debug(f"Initialized AsyncDockerClient with URL: {docker_url}")

    @classmethod
    def from_settings(cls, settings: DockerSettings) -> "AsyncDockerClientWrapper":
        """Create a client from Docker settings."""
        return cls(docker_url=settings.docker_host, timeout=settings.docker_timeout_seconds)

    async def connect(self) -> None:
        """
        Connect to Docker daemon and verify it answers.

        Raises
        ------
        DaemonConnectionError
            If connection fails
        """
        if self._connected and self._client:
            logger.debug("Already connected to Docker daemon")
            return

        self._client = aiodocker.Docker(url=self.docker_url)
        self._connected = True
        try:
            await self.ping()
        except DaemonConnectionError as e:
            logger.error(f"Failed to connect to Docker daemon: {e.details['error']}")
            await self.close()
            raise DaemonConnectionError(
                f"Cannot connect to Docker daemon at {self.docker_url}",
                details={"url": self.docker_url, "error": e.details["error"]},
            ) from e
        logger.info(f"Connected to Docker daemon at {self.docker_url}")

    async def close(self) -> None:
        """Close Docker client connection."""
        if self._client:
            await self._client.close()
            self._client = None
            self._connected = False
            logger.debug("Closed Docker client connection")

    @property
    def client(self) -> aiodocker.Docker:
        """
        Get Docker client instance.

        Raises
        ------
        ConfigurationError
            If not connected
        """
        if not self._connected or not self._client:
            raise ConfigurationError(
                "Docker client not connected. Call connect() first.",
                details={"connected": self._connected},
            )
        return self._client

    async def __aenter__(self) -> "AsyncDockerClientWrapper":
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()

    # =========================================================================
    # Container Listing
    # =========================================================================

    async def list_containers(self, all: bool = False) -> list[ContainerIdentity]:
        """
        List containers in daemon order.

        Parameters
        ----------
        all : bool
            Include stopped containers (default: False)

        Returns
        -------
        list[ContainerIdentity]
            Container identities

        Raises
        ------
        ContainerListError
            If listing fails

        Examples
        --------
        >>> async with AsyncDockerClientWrapper() as client:
        ...     containers = await client.list_containers(all=True)
        ...     [c.name for c in containers]
        ['web', 'db']
        """
        try:
            containers = await asyncio.wait_for(
                self.client.containers.list(all=all), timeout=self.timeout
            )
        except (DockerError, ClientError, OSError, TimeoutError) as e:
            raise ContainerListError(
                "Failed to list containers",
                details={"all": all, "error": str(e) or type(e).__name__},
            ) from e

        return [identity_from_list_entry(list_entry_fields(container)) for container in containers]

    # =========================================================================
    # Stats Operations
    # =========================================================================

    async def fetch_stats(self, container_id: str) -> RawCounterSample:
        """
        Fetch one stats sample for a container.

        Parameters
        ----------
        container_id : str
            Container ID or name

        Returns
        -------
        RawCounterSample
            Current and preceding counters

        Raises
        ------
        ContainerNotFoundError
            If the container no longer exists
        StatsTransportError
            If the daemon request fails
        MalformedStatsError
            If the payload cannot be decoded

        Examples
        --------
        >>> async with AsyncDockerClientWrapper() as client:
        ...     sample = await client.fetch_stats("web")
        ...     sample.pids_stats.current
        4
        """
        try:
            container = self.client.containers.container(container_id)
            payload = await container.stats(stream=False)
        except DockerError as e:
            if e.status == 404:
                raise ContainerNotFoundError(
                    f"Container not found: {container_id}",
                    details={"container_id": container_id},
                ) from e
            raise StatsTransportError(
                f"Failed to get stats for container: {container_id}",
                details={"container_id": container_id, "status": e.status, "error": str(e)},
            ) from e
        except (ClientError, OSError) as e:
            raise StatsTransportError(
                f"Failed to get stats for container: {container_id}",
                details={"container_id": container_id, "error": str(e)},
            ) from e
        except ValueError as e:
            # Body was not valid JSON
            raise MalformedStatsError(
                f"Undecodable stats for container: {container_id}",
                details={"container_id": container_id, "error": str(e)},
            ) from e

        return self._parse_stats(container_id, payload)

    def _parse_stats(self, container_id: str, payload: Any) -> RawCounterSample:
        """Decode a stats payload into a RawCounterSample."""
        # aiodocker returns a list even with stream=False
        if isinstance(payload, list):
            payload = payload[0] if payload else None
        if not isinstance(payload, dict):
            raise MalformedStatsError(
                f"Empty or non-object stats payload for container: {container_id}",
                details={"container_id": container_id, "type": type(payload).__name__},
            )
        try:
            return RawCounterSample.model_validate(payload)
        except ValidationError as e:
            raise MalformedStatsError(
                f"Malformed stats for container: {container_id}",
                details={"container_id": container_id, "error": str(e)},
            ) from e

    # =========================================================================
    # System Operations
    # =========================================================================

    async def ping(self) -> bool:
        """
        Ping Docker daemon.

        Returns
        -------
        bool
            True if daemon responds

        Raises
        ------
        DaemonConnectionError
            If ping fails
        """
        try:
            await asyncio.wait_for(self.client.version(), timeout=self.timeout)
            return True
        except (DockerError, ClientError, OSError, TimeoutError) as e:
            raise DaemonConnectionError(
                "Failed to ping Docker daemon",
                details={"error": str(e) or type(e).__name__},
            ) from e
