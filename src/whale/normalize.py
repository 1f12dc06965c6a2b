"""Metric normalization for raw container stats samples.

Turns the cumulative counters of one ``RawCounterSample`` into comparable
percentages and byte totals. Every function here is pure, so workers can call
them concurrently without coordination.
"""

from whale.common.models import CPUStats, NormalizedMetrics, RawCounterSample


def online_cpu_count(cpu_stats: CPUStats) -> int:
    """Resolve the number of CPUs a reading was taken across.

    The explicit ``online_cpus`` counter wins; older cgroup v1 backends only
    expose the per-core breakdown; anything else counts as a single CPU.

    Parameters
    ----------
    cpu_stats : CPUStats
        Current CPU reading.

    Returns
    -------
    int
        CPU count, always at least 1.
    """
    if cpu_stats.online_cpus > 0:
        return cpu_stats.online_cpus
    if cpu_stats.cpu_usage.percpu_usage:
        return len(cpu_stats.cpu_usage.percpu_usage)
    return 1


def compute_cpu_percent(sample: RawCounterSample) -> float:
    """Calculate CPU percentage from the current and preceding readings.

    Uses the formula from the Docker CLI:
    cpu_percent = (delta_container / delta_system) * num_cpus * 100

    Returns 0.0 when either delta is non-positive, which covers a missing
    preceding reading and host clock skew.
    """
    cpu_delta = (
        sample.cpu_stats.cpu_usage.total_usage - sample.precpu_stats.cpu_usage.total_usage
    )
    system_delta = sample.cpu_stats.system_cpu_usage - sample.precpu_stats.system_cpu_usage

    if cpu_delta <= 0 or system_delta <= 0:
        return 0.0

    num_cpus = online_cpu_count(sample.cpu_stats)
    return (cpu_delta / system_delta) * num_cpus * 100.0


def compute_memory(sample: RawCounterSample) -> tuple[int, int, float]:
    """Return memory usage, limit and usage percentage.

    Usage is reported raw, without subtracting reclaimable cache, so hosts
    missing the cache breakdown never yield negative values.
    """
    usage = sample.memory_stats.usage
    limit = sample.memory_stats.limit
    if limit == 0 or usage == 0:
        return usage, limit, 0.0
    return usage, limit, (usage / limit) * 100.0


def compute_network(sample: RawCounterSample) -> tuple[int, int]:
    """Calculate total network bytes from all interfaces."""
    rx_bytes = 0
    tx_bytes = 0

    for iface_stats in sample.networks.values():
        rx_bytes += iface_stats.rx_bytes
        tx_bytes += iface_stats.tx_bytes

    return rx_bytes, tx_bytes


def compute_block_io(sample: RawCounterSample) -> tuple[int, int]:
    """Calculate block I/O bytes from blkio stats."""
    read_bytes = 0
    write_bytes = 0

    for entry in sample.blkio_stats.io_service_bytes_recursive:
        op = entry.op.lower()
        if op == "read":
            read_bytes += entry.value
        elif op == "write":
            write_bytes += entry.value

    return read_bytes, write_bytes


def normalize(sample: RawCounterSample) -> NormalizedMetrics:
    """Derive all per-container metrics from one raw sample.

    Parameters
    ----------
    sample : RawCounterSample
        Raw stats sample.

    Returns
    -------
    NormalizedMetrics
        Normalized metrics.

    Examples
    --------
    >>> sample = RawCounterSample.model_validate(
    ...     {"memory_stats": {"usage": 104857600, "limit": 2147483648}}
    ... )
    >>> round(normalize(sample).mem_percent, 4)
    4.8828
    """
    mem_usage, mem_limit, mem_percent = compute_memory(sample)
    net_rx, net_tx = compute_network(sample)
    blk_read, blk_write = compute_block_io(sample)

    return NormalizedMetrics(
        cpu_percent=compute_cpu_percent(sample),
        mem_usage_bytes=mem_usage,
        mem_limit_bytes=mem_limit,
        mem_percent=mem_percent,
        net_rx_bytes=net_rx,
        net_tx_bytes=net_tx,
        block_read_bytes=blk_read,
        block_write_bytes=blk_write,
        pids=sample.pids_stats.current,
    )
