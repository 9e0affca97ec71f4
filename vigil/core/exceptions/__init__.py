"""Exception handling module."""

from vigil.core.exceptions.base import (
    CheckTimeoutError,
    LifecycleError,
    StorageError,
    TransportError,
    VigilError,
)

__all__ = [
    "VigilError",
    "LifecycleError",
    "TransportError",
    "StorageError",
    "CheckTimeoutError",
]
