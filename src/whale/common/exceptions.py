"""
Custom exceptions for the whale stats collector.

This module defines the exception hierarchy for collection errors:
- Daemon errors (connection and listing failures, fatal for a cycle)
- Stats errors (one container's sample could not be obtained)
- Configuration errors

Every exception carries a message and an optional details dict for
structured error information.
"""

from typing import Any


class WhaleError(Exception):
    """
    Base exception for all whale errors.

    Parameters
    ----------
    message : str
        Human-readable error message
    details : dict[str, Any], optional
        Structured error details for logging/debugging

    Examples
    --------
    >>> error = WhaleError("Collection failed", details={"cycle": 3})
    >>> error.message
    'Collection failed'
    >>> error.details["cycle"]
    3
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        """
        Initialize whale error.

        Parameters
        ----------
        message : str
            Error message
        details : dict[str, Any], optional
            Additional error context
        """
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class DaemonError(WhaleError):
    """
    Base exception for Docker daemon errors.

    These abort the whole collection cycle and are surfaced to the caller.
    """

    pass


class DaemonConnectionError(DaemonError):
    """
    Raised when the Docker daemon cannot be reached.

    Examples include:
    - Socket missing or permission denied
    - TCP endpoint unreachable
    - Version handshake failure
    """

    pass


class ContainerListError(DaemonError):
    """Raised when the daemon fails to list containers."""

    pass


class StatsError(WhaleError):
    """
    Base exception for per-container stats failures.

    A StatsError only ever affects the owning container's snapshot, which is
    reported with the ERROR status.
    """

    pass


class StatsTimeoutError(StatsError):
    """Raised when a stats call exceeds its per-call deadline."""

    pass


class StatsTransportError(StatsError):
    """
    Raised when the stats request fails on the wire.

    Examples include:
    - Daemon returned a 5xx response
    - Connection reset mid-response
    """

    pass


class MalformedStatsError(StatsError):
    """
    Raised when a stats payload cannot be decoded.

    Examples include:
    - Empty response body
    - Counters with the wrong type
    """

    pass


class ContainerNotFoundError(StatsError):
    """Raised when a container disappears between listing and stats fetch."""

    pass


class FetchCancelledError(StatsError):
    """Raised for fetches abandoned because the batch was cancelled."""

    pass


class ConfigurationError(WhaleError):
    """
    Raised when configuration is invalid or missing.

    Examples include:
    - Invalid YAML config file
    - Client used before connect()
    """

    pass
