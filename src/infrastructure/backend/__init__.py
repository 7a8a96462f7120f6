"""
Backend Infrastructure Module

HTTP forwarding to the backend REST service (httpx).
"""

from .backend_client import (
    BackendClient,
    BackendUnavailableError,
    close_backend_client,
    get_backend_client,
)

__all__ = [
    "BackendClient",
    "BackendUnavailableError",
    "get_backend_client",
    "close_backend_client",
]
