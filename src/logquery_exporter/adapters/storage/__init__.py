"""Storage adapters implementing core ports."""

from pathlib import Path

from logquery_exporter.adapters.storage.file import FileCheckpointStore
from logquery_exporter.adapters.storage.in_memory import (
    InMemoryCheckpointStore,
    InMemoryLogStorage,
)
from logquery_exporter.adapters.storage.ring_buffer import RingBufferLogStorage
from logquery_exporter.adapters.storage.sqlite import SQLiteCheckpointStore
from logquery_exporter.core.ports import CheckpointStorePort

_SQLITE_SUFFIXES = {".db", ".sqlite", ".sqlite3"}


def open_checkpoint_store(path: str, key: str = "default") -> CheckpointStorePort:
    """Pick a checkpoint backend from the path: SQLite for database suffixes, else a text file."""
    if path == ":memory:" or Path(path).suffix.lower() in _SQLITE_SUFFIXES:
        return SQLiteCheckpointStore(path, key=key)
    return FileCheckpointStore(path)


__all__ = [
    "FileCheckpointStore",
    "InMemoryCheckpointStore",
    "InMemoryLogStorage",
    "RingBufferLogStorage",
    "SQLiteCheckpointStore",
    "open_checkpoint_store",
]
