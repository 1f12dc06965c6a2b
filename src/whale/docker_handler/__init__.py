"""Docker handler with connection management and error handling."""

from .async_client import AsyncDockerClientWrapper, identity_from_list_entry

__all__ = [
    "AsyncDockerClientWrapper",
    "identity_from_list_entry",
]
