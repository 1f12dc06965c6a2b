"""Utils module - Shared utilities."""

from whale.utils.logging import setup_logging

__all__ = ["setup_logging"]
