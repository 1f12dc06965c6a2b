"""Rendering of snapshots and network groups.

Provides sorting, table output through rich, JSON output and the screen
clearing used by watch mode.
"""

import json
import math
from datetime import datetime
from enum import Enum
from typing import Any, TextIO

from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text

from whale.common.models import STATUS_ERROR, ContainerIdentity, Snapshot

PLACEHOLDER = "-"
ID_WIDTH = 12
NAME_WIDTH = 25
BAR_WIDTH = 10


class SortKey(str, Enum):
    """Snapshot ordering."""

    CPU = "cpu"
    MEM = "mem"
    NAME = "name"


class OutputFormat(str, Enum):
    """Supported output formats."""

    TABLE = "table"
    JSON = "json"


def sort_snapshots(snapshots: list[Snapshot], key: SortKey) -> list[Snapshot]:
    """Return snapshots ordered by ``key``.

    CPU and memory sort descending, name ascending case-insensitively. Failed
    snapshots count as 0% usage.
    """
    if key == SortKey.NAME:
        return sorted(snapshots, key=lambda s: s.name.lower())
    if key == SortKey.MEM:
        return sorted(snapshots, key=lambda s: s.mem_percent or 0.0, reverse=True)
    return sorted(snapshots, key=lambda s: s.cpu_percent or 0.0, reverse=True)


def truncate_id(container_id: str, no_trunc: bool = False) -> str:
    """Return a 12 character Docker-like ID unless ``no_trunc`` is set."""
    if no_trunc or len(container_id) <= ID_WIDTH:
        return container_id
    return container_id[:ID_WIDTH]


def truncate_name(name: str, no_trunc: bool = False, max_len: int = NAME_WIDTH) -> str:
    """Trim long names to ``max_len`` characters, ending with an ellipsis."""
    if max_len <= 0:
        max_len = NAME_WIDTH
    if no_trunc or len(name) <= max_len:
        return name
    if max_len <= 1:
        return name[:max_len]
    return name[: max_len - 1] + "…"


def humanize_bytes(num: int) -> str:
    """Format bytes using IEC units.

    Examples
    --------
    >>> humanize_bytes(1536)
    '1.50KiB'
    >>> humanize_bytes(512)
    '512B'
    """
    for unit, size in (("TiB", 1024**4), ("GiB", 1024**3), ("MiB", 1024**2), ("KiB", 1024)):
        if num >= size:
            return f"{num / size:.2f}{unit}"
    return f"{num}B"


def round1(value: float) -> float:
    """Round half up to one decimal place."""
    return math.floor(value * 10 + 0.5) / 10


def severity_style(percent: float) -> str:
    """Colour for a usage percentage: red from 80%, yellow from 50%."""
    if percent >= 80.0:
        return "bright_red"
    if percent >= 50.0:
        return "yellow"
    return "green"


def status_style(status: str) -> str:
    """Colour for a status string."""
    s = status.lower()
    if s == STATUS_ERROR.lower():
        return "bright_red"
    if "up" in s or "running" in s:
        return "green"
    if "paused" in s:
        return "yellow"
    if "exit" in s or "dead" in s or "stopped" in s:
        return "red"
    return ""


def percentage_bar(percent: float, width: int = BAR_WIDTH) -> str:
    """Draw a bar of ``width`` cells filled in eighth-cell steps."""
    percent = min(max(percent, 0.0), 100.0)
    ramp = " ▏▎▍▌▋▊▉"
    total = percent / 100.0 * width
    full = int(total)
    partial = ramp[min(int((total - full) * (len(ramp) - 1) + 0.5), len(ramp) - 1)]
    cells = "█" * full
    if full < width:
        cells += partial + " " * (width - full - 1)
    return f"[{cells}]"


def format_percent(percent: float, bar_width: int = BAR_WIDTH) -> Text:
    """Coloured percentage with an optional bar; a dash for zero."""
    if percent == 0:
        return Text(PLACEHOLDER)
    style = severity_style(percent)
    text = Text(f"{percent:.1f}", style=style)
    if bar_width > 0:
        text.append(" ")
        text.append(percentage_bar(percent, bar_width), style=style)
    return text


def format_io(first: int, second: int) -> str:
    """Render a pair of byte counters, or a dash when both are zero."""
    if first == 0 and second == 0:
        return PLACEHOLDER
    return f"{humanize_bytes(first)} / {humanize_bytes(second)}"


def _snapshot_row(snapshot: Snapshot, no_trunc: bool) -> list[Text | str]:
    name = truncate_name(snapshot.name, no_trunc)
    container_id = truncate_id(snapshot.id, no_trunc)
    status = Text(snapshot.status, style=status_style(snapshot.status))

    metrics = snapshot.metrics
    if metrics is None:
        # Stats could not be read: leave every numeric cell blank
        return [name, container_id, status, "", "", "", "", ""]

    memory = Text(PLACEHOLDER + " / " + PLACEHOLDER)
    if metrics.mem_limit_bytes > 0:
        memory = Text(
            f"{humanize_bytes(metrics.mem_usage_bytes)} / {humanize_bytes(metrics.mem_limit_bytes)}"
        )
    if metrics.mem_percent != 0:
        memory.append("  ")
        memory.append_text(format_percent(metrics.mem_percent))

    return [
        name,
        container_id,
        status,
        format_percent(metrics.cpu_percent),
        memory,
        format_io(metrics.net_rx_bytes, metrics.net_tx_bytes),
        format_io(metrics.block_read_bytes, metrics.block_write_bytes),
        str(metrics.pids) if metrics.pids > 0 else PLACEHOLDER,
    ]


def render_table(
    snapshots: list[Snapshot], no_trunc: bool = False, console: Console | None = None
) -> None:
    """Print snapshots as a table."""
    console = console or Console()
    table = Table(
        title=f"whale · {len(snapshots)} containers · {datetime.now():%I:%M%p}",
        box=box.ROUNDED,
        show_lines=True,
        header_style="bold bright_white",
    )
    table.add_column("NAME", overflow="ellipsis")
    table.add_column("ID", overflow="fold", max_width=None if no_trunc else ID_WIDTH)
    table.add_column("STATUS", max_width=24)
    table.add_column("CPU %", justify="right")
    table.add_column("MEM")
    table.add_column("NET I/O")
    table.add_column("BLOCK I/O")
    table.add_column("PIDS", justify="right", max_width=5)

    if not snapshots:
        table.caption = "no containers"
    for snapshot in snapshots:
        table.add_row(*_snapshot_row(snapshot, no_trunc))

    console.print(table)


def snapshot_to_dict(snapshot: Snapshot) -> dict[str, Any]:
    """Machine-friendly view of a snapshot with snake_case keys.

    Failed snapshots carry ``None`` for every metric.
    """
    metrics = snapshot.metrics
    return {
        "name": snapshot.name,
        "id": snapshot.id,
        "status": snapshot.status,
        "cpu_percent": None if metrics is None else round1(metrics.cpu_percent),
        "mem_usage": snapshot.mem_usage_bytes,
        "mem_limit": snapshot.mem_limit_bytes,
        "mem_percent": None if metrics is None else round1(metrics.mem_percent),
        "net_rx": snapshot.net_rx_bytes,
        "net_tx": snapshot.net_tx_bytes,
        "block_read": snapshot.block_read_bytes,
        "block_write": snapshot.block_write_bytes,
        "pids": snapshot.pids,
    }


def render_json(snapshots: list[Snapshot], stream: TextIO) -> None:
    """Write snapshots as an indented JSON array."""
    json.dump([snapshot_to_dict(s) for s in snapshots], stream, indent=2, ensure_ascii=False)
    stream.write("\n")


def render(
    snapshots: list[Snapshot],
    output_format: OutputFormat,
    no_trunc: bool,
    stream: TextIO,
) -> None:
    """Render snapshots to ``stream`` in the requested format."""
    if output_format == OutputFormat.JSON:
        render_json(snapshots, stream)
        return
    render_table(snapshots, no_trunc, Console(file=stream))


def render_networks(
    groups: dict[str, list[ContainerIdentity]],
    no_trunc: bool = False,
    console: Console | None = None,
) -> None:
    """Print containers grouped by network."""
    console = console or Console()
    table = Table(
        title=f"whale · networks: {len(groups)} · {datetime.now():%I:%M%p}",
        box=box.ROUNDED,
        show_lines=True,
        header_style="bold bright_white",
    )
    table.add_column("NETWORK", style="cyan", max_width=24)
    table.add_column("NAME", max_width=None if no_trunc else 40)
    table.add_column("ID", overflow="fold", max_width=None if no_trunc else ID_WIDTH)
    table.add_column("STATUS", max_width=24)

    if not groups:
        table.caption = "no networks"
    for network, members in groups.items():
        for index, container in enumerate(members):
            status = container.display_status
            table.add_row(
                network if index == 0 else "",
                truncate_name(container.name, no_trunc, 40),
                truncate_id(container.id, no_trunc),
                Text(status, style=status_style(status)),
            )

    console.print(table)


def clear_screen(stream: TextIO) -> None:
    """Clear the terminal and move the cursor home, for redraws in watch mode."""
    stream.write("\x1b[2J\x1b[H")
    stream.flush()


def render_networks_json(groups: dict[str, list[ContainerIdentity]], stream: TextIO) -> None:
    """Write network groups as a JSON object of network name to members."""
    payload = {
        network: [
            {"name": c.name, "id": c.id, "status": c.display_status} for c in members
        ]
        for network, members in groups.items()
    }
    json.dump(payload, stream, indent=2, ensure_ascii=False)
    stream.write("\n")
