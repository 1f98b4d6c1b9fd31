"""Tests for the query executor state machine."""

import asyncio

import pytest

from logquery_exporter.adapters.storage.in_memory import InMemoryCheckpointStore
from logquery_exporter.core.errors import QueryError
from logquery_exporter.core.executor import QueryExecutor
from logquery_exporter.core.models import (
    CycleState,
    QueryResults,
    QueryStatus,
    QueryWindow,
)
from tests.helpers import FakeLogQueryService, FixedClock, no_sleep, row

pytestmark = [pytest.mark.core, pytest.mark.tier(0)]

NOW = 1_700_000_000


def _executor(
    service: FakeLogQueryService,
    checkpoints: InMemoryCheckpointStore,
    **kwargs: object,
) -> QueryExecutor:
    options: dict[str, object] = {
        "group": "app-logs",
        "query": "fields code",
        "lookback_seconds": 3600,
        "clock": FixedClock(NOW + 0.75),
        "sleep": no_sleep,
    }
    options.update(kwargs)
    return QueryExecutor(service, checkpoints, **options)  # type: ignore[arg-type]


def _complete(*rows: object) -> QueryResults:
    return QueryResults(status=QueryStatus.COMPLETE, rows=list(rows))  # type: ignore[arg-type]


RUNNING = QueryResults(status=QueryStatus.RUNNING)


class TestCompleteCycle:
    """Cycles where the service reaches Complete."""

    async def test_returns_all_rows_as_records(
        self, checkpoints: InMemoryCheckpointStore
    ) -> None:
        service = FakeLogQueryService([_complete(row(a="1"), row(a="2"), row(a="3"))])

        outcome = await _executor(service, checkpoints).run_cycle()

        assert outcome.state is CycleState.COMPLETE
        assert outcome.records == [{"a": "1"}, {"a": "2"}, {"a": "3"}]

    async def test_advances_checkpoint_to_cycle_start(
        self, checkpoints: InMemoryCheckpointStore
    ) -> None:
        service = FakeLogQueryService([_complete()])

        await _executor(service, checkpoints).run_cycle()

        assert checkpoints.writes == [NOW]

    async def test_unset_checkpoint_uses_lookback_window(
        self, checkpoints: InMemoryCheckpointStore
    ) -> None:
        service = FakeLogQueryService([_complete()])

        outcome = await _executor(service, checkpoints).run_cycle()

        assert service.started == [("app-logs", "fields code", NOW - 3600, NOW)]
        assert outcome.window == QueryWindow(NOW - 3600, NOW)

    async def test_checkpoint_bounds_next_window(self) -> None:
        checkpoints = InMemoryCheckpointStore(checkpoint=NOW - 60)
        service = FakeLogQueryService([_complete()])

        await _executor(service, checkpoints).run_cycle()

        assert service.started[0][2:] == (NOW - 60, NOW)

    async def test_waits_through_running_polls(
        self, checkpoints: InMemoryCheckpointStore
    ) -> None:
        service = FakeLogQueryService([RUNNING, RUNNING, RUNNING, _complete(row(a="1"))])
        sleeps: list[float] = []

        async def record_sleep(seconds: float) -> None:
            sleeps.append(seconds)

        outcome = await _executor(
            service, checkpoints, sleep=record_sleep, poll_interval=2.0
        ).run_cycle()

        assert outcome.polls == 4
        assert sleeps == [2.0, 2.0, 2.0]
        assert outcome.records == [{"a": "1"}]
        assert checkpoints.writes == [NOW]

    async def test_scheduled_and_unknown_are_not_terminal(
        self, checkpoints: InMemoryCheckpointStore
    ) -> None:
        service = FakeLogQueryService(
            [
                QueryResults(status=QueryStatus.SCHEDULED),
                QueryResults(status=QueryStatus.UNKNOWN),
                _complete(),
            ]
        )

        outcome = await _executor(service, checkpoints).run_cycle()

        assert outcome.state is CycleState.COMPLETE
        assert outcome.polls == 3

    async def test_no_window_skips_submission(self) -> None:
        checkpoints = InMemoryCheckpointStore(checkpoint=NOW)
        service = FakeLogQueryService()

        outcome = await _executor(service, checkpoints).run_cycle()

        assert outcome.state is CycleState.COMPLETE
        assert outcome.records == []
        assert service.started == []
        assert checkpoints.writes == []


class TestFailedCycle:
    """Cycles that end without results."""

    async def test_submission_error_is_failed_without_polling(
        self, checkpoints: InMemoryCheckpointStore
    ) -> None:
        service = FakeLogQueryService(start_error=QueryError("access denied"))
        executor = _executor(service, checkpoints)

        outcome = await executor.run_cycle()

        assert outcome.state is CycleState.FAILED
        assert outcome.records == []
        assert outcome.query_id is None
        assert "access denied" in (outcome.error or "")
        assert service.polls == 0
        assert checkpoints.writes == []
        assert executor.state is CycleState.FAILED

    async def test_polling_error_discards_rows(
        self, checkpoints: InMemoryCheckpointStore
    ) -> None:
        service = FakeLogQueryService([RUNNING, QueryError("throttled")])

        outcome = await _executor(service, checkpoints).run_cycle()

        assert outcome.state is CycleState.FAILED
        assert outcome.records == []
        assert outcome.query_id == "query-1"
        assert checkpoints.writes == []

    async def test_unexpected_exception_is_failed(
        self, checkpoints: InMemoryCheckpointStore
    ) -> None:
        service = FakeLogQueryService([RuntimeError("boom")])

        outcome = await _executor(service, checkpoints).run_cycle()

        assert outcome.state is CycleState.FAILED
        assert "RuntimeError" in (outcome.error or "")

    @pytest.mark.parametrize(
        ("status", "state"),
        [
            (QueryStatus.FAILED, CycleState.FAILED),
            (QueryStatus.CANCELLED, CycleState.CANCELLED),
            (QueryStatus.TIMEOUT, CycleState.TIMEOUT),
        ],
    )
    async def test_terminal_service_status(
        self,
        checkpoints: InMemoryCheckpointStore,
        status: QueryStatus,
        state: CycleState,
    ) -> None:
        service = FakeLogQueryService(
            [QueryResults(status=status, rows=[row(a="1")])]
        )

        outcome = await _executor(service, checkpoints).run_cycle()

        assert outcome.state is state
        assert outcome.records == []
        assert checkpoints.writes == []


class TestDeadline:
    """The poll loop is bounded by max_wait."""

    async def test_endless_running_times_out_and_stops_query(
        self, checkpoints: InMemoryCheckpointStore
    ) -> None:
        service = FakeLogQueryService([RUNNING])

        outcome = await _executor(
            service, checkpoints, sleep=asyncio.sleep, poll_interval=0.01, max_wait=0.05
        ).run_cycle()

        assert outcome.state is CycleState.TIMEOUT
        assert outcome.records == []
        assert service.stopped == ["query-1"]
        assert checkpoints.writes == []

    async def test_hanging_submission_times_out(
        self, checkpoints: InMemoryCheckpointStore
    ) -> None:
        service = FakeLogQueryService()
        service.gate = asyncio.Event()

        outcome = await _executor(service, checkpoints, max_wait=0.05).run_cycle()

        assert outcome.state is CycleState.TIMEOUT
        assert outcome.query_id is None
        assert service.stopped == []

    async def test_service_timeout_before_deadline_is_failed(
        self, checkpoints: InMemoryCheckpointStore
    ) -> None:
        service = FakeLogQueryService([RUNNING, TimeoutError("read timed out")])

        outcome = await _executor(service, checkpoints, max_wait=60).run_cycle()

        assert outcome.state is CycleState.FAILED
        assert outcome.error == "TimeoutError: read timed out"
        assert service.stopped == []
        assert checkpoints.writes == []

    async def test_submission_timeout_before_deadline_is_failed(
        self, checkpoints: InMemoryCheckpointStore
    ) -> None:
        service = FakeLogQueryService(start_error=TimeoutError("connect timed out"))

        outcome = await _executor(service, checkpoints, max_wait=60).run_cycle()

        assert outcome.state is CycleState.FAILED
        assert outcome.query_id is None
        assert service.stopped == []
