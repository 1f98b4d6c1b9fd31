"""Port interfaces for adapters.

These protocols define the contracts that adapters must implement.
The core domain depends only on these interfaces, not concrete implementations.
"""

from collections.abc import AsyncIterable
from typing import Protocol, runtime_checkable

from logquery_exporter.core.models import LogEntry, QueryResults


@runtime_checkable
class CheckpointStorePort(Protocol):
    """Port for the persisted end time of the last completed window.

    Implementations never raise: read failures return None and write
    failures are logged.
    Examples: FileCheckpointStore, SQLiteCheckpointStore, InMemoryCheckpointStore.
    """

    async def read(self) -> int | None:
        """Return the stored checkpoint in epoch seconds, or None if unset."""
        ...

    async def write(self, checkpoint: int) -> None:
        """Persist the checkpoint."""
        ...


@runtime_checkable
class LogQueryServicePort(Protocol):
    """Port for an asynchronous log query service.

    Implementations raise QueryError when a call fails.
    Examples: CloudWatchLogsService.
    """

    async def start_query(
        self, group: str, query: str, start_time: int, end_time: int
    ) -> str:
        """Submit a query and return its opaque handle."""
        ...

    async def get_query_results(self, query_id: str) -> QueryResults:
        """Return the current status and rows for a submitted query."""
        ...

    async def stop_query(self, query_id: str) -> None:
        """Ask the service to abandon a running query."""
        ...


@runtime_checkable
class LogStoragePort(Protocol):
    """Port for the exporter's diagnostic log buffer.

    write() is synchronous so logging handlers can call it from any thread.
    """

    def write(self, entry: LogEntry) -> None:
        """Write a log entry to storage."""
        ...

    def read(
        self, since: float = 0, level: str | None = None
    ) -> AsyncIterable[LogEntry]:
        """Read log entries with timestamp > since, optionally filtered by level.

        Returns:
            Async iterable of LogEntry objects, ordered by timestamp ascending.
        """
        ...
