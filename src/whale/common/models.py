"""
Pydantic data models for the whale stats collector.

This module defines the data structures that flow through one collection
cycle:
- Container identity as reported by the daemon's container list
- Raw counter samples as returned by the one-shot stats endpoint
- Normalized per-container metrics
- Snapshots joining identity with metrics or an error marker

All models use Pydantic v2 and are frozen: a snapshot is never mutated after
assembly.
"""

from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    NonNegativeInt,
    ValidationInfo,
    field_validator,
)

STATUS_ERROR = "ERROR"
STATE_RUNNING = "running"

# =============================================================================
# Container Identity
# =============================================================================


class ContainerIdentity(BaseModel):
    """
    Identity and lifecycle status of a container.

    Parameters
    ----------
    id : str
        Daemon-assigned container ID
    name : str
        Display name (leading slash removed)
    state : str
        Lifecycle token ("running", "exited", "paused", ...)
    status : str
        Human status string ("Up 3 minutes", "Exited (0) 2 hours ago", ...)
    networks : list[str]
        Names of the networks the container is attached to

    Examples
    --------
    >>> ident = ContainerIdentity(id="abc123", name="web", state="running", status="Up 2 hours")
    >>> ident.is_running
    True
    >>> ident.display_status
    'Up 2 hours'
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Container ID")
    name: str = Field("", description="Container name")
    state: str = Field("", description="Lifecycle state token")
    status: str = Field("", description="Human readable status")
    networks: list[str] = Field(default_factory=list, description="Attached networks")

    @property
    def is_running(self) -> bool:
        """Whether the daemon reports the container as running."""
        return self.state == STATE_RUNNING

    @property
    def display_status(self) -> str:
        """Human status when set, else the lifecycle token, else empty."""
        if self.status:
            return self.status
        if self.state:
            return self.state
        return ""


# =============================================================================
# Raw Counter Sample (docker stats payload)
# =============================================================================


class _StatsSection(BaseModel):
    """Base for stats payload sections; null counters fall back to defaults."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    @field_validator("*", mode="before")
    @classmethod
    def null_to_default(cls, v: Any, info: ValidationInfo) -> Any:
        """Replace explicit nulls with the field default."""
        if v is None:
            return cls.model_fields[info.field_name].get_default(call_default_factory=True)
        return v


class CPUUsage(_StatsSection):
    """Cumulative CPU time consumed by the container (nanoseconds)."""

    total_usage: NonNegativeInt = 0
    # Only populated on cgroup v1 hosts
    percpu_usage: list[NonNegativeInt] = Field(default_factory=list)


class CPUStats(_StatsSection):
    """One CPU reading: container time, host time and online CPU count."""

    cpu_usage: CPUUsage = Field(default_factory=CPUUsage)
    system_cpu_usage: NonNegativeInt = 0
    online_cpus: NonNegativeInt = 0


class MemoryStats(_StatsSection):
    """Memory usage and limit in bytes; a limit of 0 means unknown."""

    usage: NonNegativeInt = 0
    limit: NonNegativeInt = 0


class NetworkStats(_StatsSection):
    """Cumulative byte counters of one network interface."""

    rx_bytes: NonNegativeInt = 0
    tx_bytes: NonNegativeInt = 0


class BlkioEntry(_StatsSection):
    """One block I/O counter keyed by operation label."""

    op: str = ""
    value: NonNegativeInt = 0


class BlkioStats(_StatsSection):
    """Block I/O counters."""

    io_service_bytes_recursive: list[BlkioEntry] = Field(default_factory=list)


class PidsStats(_StatsSection):
    """Live process count."""

    current: NonNegativeInt = 0


class RawCounterSample(_StatsSection):
    """
    One point-in-time stats sample for a container.

    Mirrors the JSON document returned by ``GET /containers/{id}/stats``
    with ``stream=false``. ``cpu_stats`` holds the current CPU reading and
    ``precpu_stats`` the immediately preceding one.

    Examples
    --------
    >>> sample = RawCounterSample.model_validate(
    ...     {"memory_stats": {"usage": 1024}, "networks": None}
    ... )
    >>> sample.memory_stats.usage
    1024
    >>> sample.networks
    {}
    """

    cpu_stats: CPUStats = Field(default_factory=CPUStats)
    precpu_stats: CPUStats = Field(default_factory=CPUStats)
    memory_stats: MemoryStats = Field(default_factory=MemoryStats)
    networks: dict[str, NetworkStats] = Field(default_factory=dict)
    blkio_stats: BlkioStats = Field(default_factory=BlkioStats)
    pids_stats: PidsStats = Field(default_factory=PidsStats)


# =============================================================================
# Normalized Metrics and Snapshots
# =============================================================================


class NormalizedMetrics(BaseModel):
    """
    Derived metrics for one container in one cycle.

    Parameters
    ----------
    cpu_percent : float
        CPU utilization relative to one core (can exceed 100 on multi-core hosts)
    mem_usage_bytes : int
        Memory usage in bytes
    mem_limit_bytes : int
        Memory limit in bytes (0 when unknown)
    mem_percent : float
        Memory usage relative to limit (0 when either input is 0)
    net_rx_bytes : int
        Bytes received across all interfaces
    net_tx_bytes : int
        Bytes transmitted across all interfaces
    block_read_bytes : int
        Bytes read from block devices
    block_write_bytes : int
        Bytes written to block devices
    pids : int
        Live process count

    Examples
    --------
    >>> NormalizedMetrics().cpu_percent
    0.0
    """

    model_config = ConfigDict(frozen=True)

    cpu_percent: float = Field(0.0, ge=0, description="CPU utilization %")
    mem_usage_bytes: int = Field(0, ge=0, description="Memory usage (bytes)")
    mem_limit_bytes: int = Field(0, ge=0, description="Memory limit (bytes)")
    mem_percent: float = Field(0.0, ge=0, description="Memory utilization %")
    net_rx_bytes: int = Field(0, ge=0, description="Network RX bytes")
    net_tx_bytes: int = Field(0, ge=0, description="Network TX bytes")
    block_read_bytes: int = Field(0, ge=0, description="Block read bytes")
    block_write_bytes: int = Field(0, ge=0, description="Block write bytes")
    pids: int = Field(0, ge=0, description="Process count")


class Snapshot(BaseModel):
    """
    One container's identity plus its metrics or an error marker.

    ``metrics`` is None exactly when the stats fetch failed, in which case
    ``status`` is ``ERROR`` and every numeric accessor returns None.

    Parameters
    ----------
    id : str
        Container ID
    name : str
        Container name
    status : str
        Status shown to the user
    metrics : NormalizedMetrics, optional
        Normalized metrics, None for failed fetches

    Examples
    --------
    >>> snap = Snapshot(id="abc", name="db", status="ERROR")
    >>> snap.failed, snap.cpu_percent
    (True, None)
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    status: str = ""
    metrics: NormalizedMetrics | None = None

    @property
    def failed(self) -> bool:
        """Whether metrics could not be obtained for this container."""
        return self.metrics is None

    @property
    def cpu_percent(self) -> float | None:
        return None if self.metrics is None else self.metrics.cpu_percent

    @property
    def mem_percent(self) -> float | None:
        return None if self.metrics is None else self.metrics.mem_percent

    @property
    def mem_usage_bytes(self) -> int | None:
        return None if self.metrics is None else self.metrics.mem_usage_bytes

    @property
    def mem_limit_bytes(self) -> int | None:
        return None if self.metrics is None else self.metrics.mem_limit_bytes

    @property
    def net_rx_bytes(self) -> int | None:
        return None if self.metrics is None else self.metrics.net_rx_bytes

    @property
    def net_tx_bytes(self) -> int | None:
        return None if self.metrics is None else self.metrics.net_tx_bytes

    @property
    def block_read_bytes(self) -> int | None:
        return None if self.metrics is None else self.metrics.block_read_bytes

    @property
    def block_write_bytes(self) -> int | None:
        return None if self.metrics is None else self.metrics.block_write_bytes

    @property
    def pids(self) -> int | None:
        return None if self.metrics is None else self.metrics.pids
