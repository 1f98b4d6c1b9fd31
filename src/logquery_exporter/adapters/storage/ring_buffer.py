"""Bounded diagnostic log buffer.

The exporter runs indefinitely, so the buffer behind /logs keeps only the
most recent entries and drops the oldest once full.
"""

import threading
from collections import deque
from collections.abc import AsyncIterator

from logquery_exporter.adapters.storage.in_memory import select_entries
from logquery_exporter.core.models import LogEntry


class RingBufferLogStorage:
    """LogStoragePort keeping at most ``max_size`` entries.

    write() may be called from any thread (logging handlers run in the
    caller's thread, including asyncio.to_thread workers).

    Args:
        max_size: Number of entries retained.
    """

    def __init__(self, max_size: int = 1000) -> None:
        self._buffer: deque[LogEntry] = deque(maxlen=max_size)
        self._lock = threading.Lock()

    def write(self, entry: LogEntry) -> None:
        with self._lock:
            self._buffer.append(entry)

    async def read(
        self, since: float = 0, level: str | None = None
    ) -> AsyncIterator[LogEntry]:
        with self._lock:
            selected = select_entries(self._buffer, since, level)
        for entry in selected:
            yield entry
