"""whale - Live resource usage of Docker containers."""

from whale.common.config import WhaleConfig, load_config
from whale.common.models import ContainerIdentity, NormalizedMetrics, RawCounterSample, Snapshot
from whale.docker_handler import AsyncDockerClientWrapper
from whale.fetcher import BoundedFetcher, FetchOutcome
from whale.metrics import MetricsCollector, refresh_loop
from whale.networks import collect_networks, group_by_network
from whale.normalize import normalize

__version__ = "0.1.0"

__all__ = [
    # Config
    "WhaleConfig",
    "load_config",
    # Models
    "ContainerIdentity",
    "NormalizedMetrics",
    "RawCounterSample",
    "Snapshot",
    # Docker
    "AsyncDockerClientWrapper",
    # Collection
    "BoundedFetcher",
    "FetchOutcome",
    "MetricsCollector",
    "normalize",
    "refresh_loop",
    # Networks
    "collect_networks",
    "group_by_network",
]
