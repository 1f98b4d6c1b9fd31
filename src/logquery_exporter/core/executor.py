"""Windowed query execution against an asynchronous log query service.

One call to QueryExecutor.run_cycle() moves through
PENDING -> RUNNING -> {COMPLETE, FAILED, CANCELLED, TIMEOUT}:

- the window is derived from the checkpoint and the clock captured at the
  start of the cycle;
- the query is submitted, then polled every ``poll_interval`` seconds until
  the service reports a terminal status;
- the whole submit/poll sequence runs under a ``max_wait`` deadline;
- only a COMPLETE cycle returns records and advances the checkpoint, to the
  clock value captured at the start of the cycle.

Nothing is retried within a cycle. The next cycle starts fresh.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

from logquery_exporter.core.models import (
    CycleState,
    QueryOutcome,
    QueryResults,
    QueryStatus,
    QueryWindow,
)
from logquery_exporter.core.ports import CheckpointStorePort, LogQueryServicePort
from logquery_exporter.core.records import normalize_rows
from logquery_exporter.core.window import compute_window

logger = logging.getLogger(__name__)

_TERMINAL_STATES = {
    QueryStatus.FAILED: CycleState.FAILED,
    QueryStatus.CANCELLED: CycleState.CANCELLED,
    QueryStatus.TIMEOUT: CycleState.TIMEOUT,
}


class QueryExecutor:
    """Runs one windowed query cycle per call and owns the checkpoint.

    Args:
        service: Log query service adapter.
        checkpoints: Store holding the end time of the last completed window.
        group: Log source identifier passed to the service.
        query: Query expression, opaque to the executor.
        lookback_seconds: Window length when no checkpoint exists.
        poll_interval: Seconds between result polls.
        max_wait: Deadline in seconds for submit plus polling.
        clock: Returns the current epoch time in seconds.
        sleep: Coroutine used to wait between polls.
    """

    def __init__(
        self,
        service: LogQueryServicePort,
        checkpoints: CheckpointStorePort,
        group: str,
        query: str,
        lookback_seconds: int = 86400,
        poll_interval: float = 2.0,
        max_wait: float = 300.0,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._service = service
        self._checkpoints = checkpoints
        self._group = group
        self._query = query
        self._lookback_seconds = lookback_seconds
        self._poll_interval = poll_interval
        self._max_wait = max_wait
        self._clock = clock
        self._sleep = sleep
        self.state = CycleState.PENDING

    async def run_cycle(self) -> QueryOutcome:
        """Execute one cycle and return its outcome. Never raises ExporterError."""
        self.state = CycleState.PENDING
        cycle_start = int(self._clock())
        checkpoint = await self._checkpoints.read()
        window = compute_window(checkpoint, cycle_start, self._lookback_seconds)
        if window is None:
            logger.info(
                "Checkpoint %s is not behind %s, nothing to query", checkpoint, cycle_start
            )
            return self._finish(QueryOutcome(state=CycleState.COMPLETE))

        query_id: str | None = None
        polls = 0
        deadline = asyncio.timeout(self._max_wait)
        try:
            async with deadline:
                query_id = await self._service.start_query(
                    self._group, self._query, window.start_time, window.end_time
                )
                self.state = CycleState.RUNNING
                logger.info(
                    "Started query %s on %s for window [%d, %d]",
                    query_id,
                    self._group,
                    window.start_time,
                    window.end_time,
                )
                while True:
                    results = await self._service.get_query_results(query_id)
                    polls += 1
                    logger.debug("Query %s status %s", query_id, results.status.value)
                    if results.status.terminal:
                        break
                    await self._sleep(self._poll_interval)
        except TimeoutError as exc:
            if not deadline.expired():
                # Raised by the service itself, not by the deadline.
                return self._failed(window, query_id, polls, exc)
            logger.error(
                "Query %s did not finish within %.1fs after %d polls",
                query_id,
                self._max_wait,
                polls,
            )
            await self._stop(query_id)
            return self._finish(
                QueryOutcome(
                    state=CycleState.TIMEOUT,
                    window=window,
                    query_id=query_id,
                    polls=polls,
                    error=f"no terminal status within {self._max_wait}s",
                )
            )
        except Exception as exc:
            return self._failed(window, query_id, polls, exc)

        return await self._complete(results, window, query_id, polls, cycle_start)

    async def _complete(
        self,
        results: QueryResults,
        window: QueryWindow,
        query_id: str,
        polls: int,
        cycle_start: int,
    ) -> QueryOutcome:
        if results.status is not QueryStatus.COMPLETE:
            state = _TERMINAL_STATES[results.status]
            logger.warning("Query %s ended with status %s", query_id, results.status.value)
            return self._finish(
                QueryOutcome(
                    state=state,
                    window=window,
                    query_id=query_id,
                    polls=polls,
                    error=f"query status {results.status.value}",
                )
            )

        records = normalize_rows(results.rows)
        await self._checkpoints.write(cycle_start)
        logger.info(
            "Query %s complete with %d records after %d polls", query_id, len(records), polls
        )
        return self._finish(
            QueryOutcome(
                state=CycleState.COMPLETE,
                records=records,
                window=window,
                query_id=query_id,
                polls=polls,
            )
        )

    def _failed(
        self,
        window: QueryWindow,
        query_id: str | None,
        polls: int,
        exc: Exception,
    ) -> QueryOutcome:
        phase = "polling" if query_id is not None else "submitting"
        logger.error("Error %s query on %s: %s", phase, self._group, exc, exc_info=exc)
        return self._finish(
            QueryOutcome(
                state=CycleState.FAILED,
                window=window,
                query_id=query_id,
                polls=polls,
                error=f"{type(exc).__name__}: {exc}",
            )
        )

    async def _stop(self, query_id: str | None) -> None:
        if query_id is None:
            return
        try:
            await self._service.stop_query(query_id)
        except Exception as exc:
            logger.warning("Could not stop query %s: %s", query_id, exc)

    def _finish(self, outcome: QueryOutcome) -> QueryOutcome:
        self.state = outcome.state
        return outcome
