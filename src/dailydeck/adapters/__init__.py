"""Adapters - I/O implementations of ports."""

from .json_store import JsonFileStore, StorageError

__all__ = [
    "JsonFileStore",
    "StorageError",
]
