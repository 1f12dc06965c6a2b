"""Terminal and JSON rendering."""

from whale.ui.printer import (
    OutputFormat,
    SortKey,
    clear_screen,
    render,
    render_json,
    render_networks,
    render_networks_json,
    render_table,
    sort_snapshots,
)

__all__ = [
    "OutputFormat",
    "SortKey",
    "clear_screen",
    "render",
    "render_json",
    "render_networks",
    "render_networks_json",
    "render_table",
    "sort_snapshots",
]
