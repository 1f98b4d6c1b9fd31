"""In-memory storage adapters, for tests and single-process runs."""

from collections.abc import AsyncIterator, Iterable

from logquery_exporter.core.models import LogEntry


def select_entries(
    entries: Iterable[LogEntry], since: float, level: str | None
) -> list[LogEntry]:
    """Entries newer than ``since`` at ``level`` (any if None), oldest first."""
    return sorted(
        (
            entry
            for entry in entries
            if entry.timestamp > since and (level is None or entry.level == level)
        ),
        key=lambda entry: entry.timestamp,
    )


class InMemoryCheckpointStore:
    """CheckpointStorePort holding the checkpoint in process memory.

    Every write is also appended to ``writes`` so callers can check how
    often the checkpoint advanced.
    """

    def __init__(self, checkpoint: int | None = None) -> None:
        self.checkpoint = checkpoint
        self.writes: list[int] = []

    async def read(self) -> int | None:
        return self.checkpoint

    async def write(self, checkpoint: int) -> None:
        self.checkpoint = checkpoint
        self.writes.append(checkpoint)


class InMemoryLogStorage:
    """Unbounded LogStoragePort backed by a list."""

    def __init__(self) -> None:
        self._entries: list[LogEntry] = []

    def write(self, entry: LogEntry) -> None:
        self._entries.append(entry)

    async def read(
        self, since: float = 0, level: str | None = None
    ) -> AsyncIterator[LogEntry]:
        for entry in select_entries(self._entries, since, level):
            yield entry
