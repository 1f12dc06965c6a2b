"""CLI entry point for whale.

Shows live resource usage of Docker containers, once or continuously.
"""

import asyncio
import contextlib
import signal
import sys
from collections.abc import Coroutine
from pathlib import Path
from typing import Annotated, Any, NoReturn

import typer
from rich.console import Console
from rich.text import Text

from whale.common.config import WhaleConfig, load_config
from whale.common.exceptions import ConfigurationError, WhaleError
from whale.common.models import ContainerIdentity, Snapshot
from whale.docker_handler import AsyncDockerClientWrapper
from whale.metrics import MetricsCollector, refresh_loop
from whale.networks import collect_networks
from whale.ui import (
    OutputFormat,
    SortKey,
    clear_screen,
    render,
    render_networks,
    render_networks_json,
    render_table,
    sort_snapshots,
)
from whale.utils import setup_logging

# Create CLI app
app = typer.Typer(
    name="whale",
    help="whale - Live resource usage of Docker containers",
)

console = Console()
err_console = Console(stderr=True)

AllOption = Annotated[
    bool, typer.Option("--all", "-a", help="Include stopped containers in the list")
]
NoTruncOption = Annotated[
    bool, typer.Option("--no-trunc", help="Do not truncate container IDs and names")
]
WatchOption = Annotated[
    bool, typer.Option("--watch", "-w", help="Continuously refresh until interrupted")
]
IntervalOption = Annotated[
    float | None,
    typer.Option("--interval", "-i", help="Refresh interval for --watch, in seconds"),
]
FormatOption = Annotated[
    OutputFormat,
    typer.Option("--format", "-f", case_sensitive=False, help="Output format"),
]


def _fail(message: str, code: int = 1) -> NoReturn:
    """Print ``Error: <message>`` to stderr and exit."""
    message = message.strip() or "unknown error"
    err_console.print(Text.assemble(("Error:", "red"), f" {message}"), soft_wrap=True)
    raise typer.Exit(code)


def _load_settings(config_path: Path | None, log_level: str | None) -> WhaleConfig:
    try:
        config = WhaleConfig.from_yaml(config_path) if config_path else load_config()
    except ConfigurationError as e:
        _fail(e.message)

    if log_level:
        level = log_level.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise typer.BadParameter(f"Unknown log level: {log_level}", param_hint="--log-level")
        config.logging.log_level = level

    setup_logging(
        level=config.logging.log_level,
        log_file=config.logging.log_file,
        rich_console=config.logging.log_format == "console",
        json_format=config.logging.log_format == "json",
    )
    return config


def _resolve_interval(interval: float | None, config: WhaleConfig) -> float:
    if interval is None:
        return config.collector.refresh_interval_seconds
    if interval <= 0:
        raise typer.BadParameter("must be positive", param_hint="--interval")
    return interval


def _run(main: Coroutine[Any, Any, Any], timeout: float | None = None) -> Any:
    """Run ``main`` to completion, turning batch-fatal errors into exit code 1."""
    try:
        if timeout is None:
            return asyncio.run(main)
        return asyncio.run(asyncio.wait_for(main, timeout=timeout))
    except TimeoutError:
        _fail("timed out" if timeout is None else f"timed out after {timeout:g}s")
    except WhaleError as e:
        _fail(e.message)


def _install_stop_handlers() -> asyncio.Event:
    """Return an event set by SIGINT or SIGTERM."""
    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()

    def signal_handler() -> None:
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)
    return stop_event


# =============================================================================
# Container stats
# =============================================================================


async def _collect_once(config: WhaleConfig, include_stopped: bool) -> list[Snapshot]:
    async with AsyncDockerClientWrapper.from_settings(config.docker) as client:
        collector = MetricsCollector.from_settings(client, client, config.collector)
        return await collector.collect(include_stopped=include_stopped)


async def _watch_stats(
    config: WhaleConfig, include_stopped: bool, sort: SortKey, no_trunc: bool, interval: float
) -> None:
    stop_event = _install_stop_handlers()

    def redraw(snapshots: list[Snapshot]) -> None:
        clear_screen(sys.stdout)
        render_table(sort_snapshots(snapshots, sort), no_trunc, console)

    async with AsyncDockerClientWrapper.from_settings(config.docker) as client:
        collector = MetricsCollector.from_settings(client, client, config.collector)
        await collector.watch(redraw, interval, stop_event, include_stopped=include_stopped)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    all_: AllOption = False,
    sort: Annotated[
        SortKey,
        typer.Option("--sort", "-s", case_sensitive=False, help="Sort by cpu, mem or name"),
    ] = SortKey.CPU,
    output_format: FormatOption = OutputFormat.TABLE,
    no_trunc: NoTruncOption = False,
    watch: WatchOption = False,
    interval: IntervalOption = None,
    config_path: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Path to a whale.yaml config file"),
    ] = None,
    log_level: Annotated[
        str | None,
        typer.Option("--log-level", help="DEBUG, INFO, WARNING, ERROR or CRITICAL"),
    ] = None,
) -> None:
    """Show CPU, memory, network and block I/O usage per container."""
    config = _load_settings(config_path, log_level)
    ctx.obj = config
    if ctx.invoked_subcommand is not None:
        return

    if watch:
        if output_format == OutputFormat.JSON:
            _fail("--watch is not supported with --format=json", code=2)
        refresh = _resolve_interval(interval, config)
        with contextlib.suppress(KeyboardInterrupt):
            _run(_watch_stats(config, all_, sort, no_trunc, refresh))
        return

    snapshots = _run(_collect_once(config, all_), timeout=config.collector.collect_timeout_seconds)
    render(sort_snapshots(snapshots, sort), output_format, no_trunc, sys.stdout)


# =============================================================================
# Networks
# =============================================================================


async def _networks_once(
    config: WhaleConfig, include_stopped: bool
) -> dict[str, list[ContainerIdentity]]:
    async with AsyncDockerClientWrapper.from_settings(config.docker) as client:
        return await collect_networks(client, include_stopped=include_stopped)


async def _watch_networks(
    config: WhaleConfig, include_stopped: bool, no_trunc: bool, interval: float
) -> None:
    stop_event = _install_stop_handlers()

    def redraw(groups: dict[str, list[ContainerIdentity]]) -> None:
        clear_screen(sys.stdout)
        render_networks(groups, no_trunc, console)

    async with AsyncDockerClientWrapper.from_settings(config.docker) as client:
        await refresh_loop(
            lambda: collect_networks(client, include_stopped=include_stopped),
            redraw,
            interval,
            stop_event,
        )


@app.command("net")
def cmd_net(
    ctx: typer.Context,
    all_: AllOption = False,
    output_format: FormatOption = OutputFormat.TABLE,
    no_trunc: NoTruncOption = False,
    watch: WatchOption = False,
    interval: IntervalOption = None,
) -> None:
    """Show containers grouped by network."""
    config: WhaleConfig = ctx.obj

    if watch:
        if output_format == OutputFormat.JSON:
            _fail("--watch is not supported with --format=json for networks", code=2)
        refresh = _resolve_interval(interval, config)
        with contextlib.suppress(KeyboardInterrupt):
            _run(_watch_networks(config, all_, no_trunc, refresh))
        return

    groups = _run(_networks_once(config, all_), timeout=config.collector.collect_timeout_seconds)
    if output_format == OutputFormat.JSON:
        render_networks_json(groups, sys.stdout)
    else:
        render_networks(groups, no_trunc, console)


# Entry point for the CLI
if __name__ == "__main__":
    app()
