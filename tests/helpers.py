"""Test doubles and builders shared across test modules."""

import asyncio
from collections.abc import Sequence

from logquery_exporter.core.models import QueryResults, QueryStatus, ResultField


def row(**fields: str | None) -> list[ResultField]:
    """Build a raw result row from keyword fields."""
    return [ResultField(field=name, value=value) for name, value in fields.items()]


class FakeLogQueryService:
    """Scripted LogQueryServicePort.

    Each get_query_results() call returns the next scripted response; the
    last one repeats. A scripted exception is raised instead of returned.
    Setting ``gate`` holds start_query() until the event is set.
    """

    def __init__(
        self,
        responses: Sequence[QueryResults | Exception] = (),
        start_error: Exception | None = None,
    ) -> None:
        self.responses = list(responses) or [QueryResults(status=QueryStatus.COMPLETE)]
        self.start_error = start_error
        self.started: list[tuple[str, str, int, int]] = []
        self.stopped: list[str] = []
        self.polls = 0
        self.gate: asyncio.Event | None = None

    async def start_query(
        self, group: str, query: str, start_time: int, end_time: int
    ) -> str:
        if self.start_error is not None:
            raise self.start_error
        self.started.append((group, query, start_time, end_time))
        if self.gate is not None:
            await self.gate.wait()
        return f"query-{len(self.started)}"

    async def get_query_results(self, query_id: str) -> QueryResults:
        response = self.responses[min(self.polls, len(self.responses) - 1)]
        self.polls += 1
        if isinstance(response, Exception):
            raise response
        return response

    async def stop_query(self, query_id: str) -> None:
        self.stopped.append(query_id)


async def no_sleep(seconds: float) -> None:
    """Stand-in for asyncio.sleep that only yields control."""
    await asyncio.sleep(0)


class FixedClock:
    """Callable clock returning a settable epoch time."""

    def __init__(self, now: float) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now
