"""CloudWatch Logs Insights adapter for LogQueryServicePort.

boto3 clients are blocking, so every call runs in a worker thread.
"""

import asyncio
import logging
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from logquery_exporter.core.errors import QueryError
from logquery_exporter.core.models import (
    QueryResults,
    QueryStatus,
    RawRow,
    ResultField,
)

logger = logging.getLogger(__name__)


def _parse_status(raw: str | None) -> QueryStatus:
    try:
        return QueryStatus(raw)
    except ValueError:
        logger.warning("Unrecognized query status %r, treating as Unknown", raw)
        return QueryStatus.UNKNOWN


def _parse_rows(results: list[list[dict[str, Any]]]) -> list[RawRow]:
    return [
        [ResultField(field=item.get("field"), value=item.get("value")) for item in row]
        for row in results
    ]


class CloudWatchLogsService:
    """LogQueryServicePort backed by a boto3 ``logs`` client.

    Args:
        client: boto3 CloudWatch Logs client (see create_logs_client).
        limit: Optional maximum number of rows the query may return.
    """

    def __init__(self, client: Any, limit: int | None = None) -> None:
        self._client = client
        self._limit = limit

    async def _call(self, operation: str, **kwargs: Any) -> dict[str, Any]:
        method = getattr(self._client, operation)
        try:
            response: dict[str, Any] = await asyncio.to_thread(method, **kwargs)
        except (BotoCoreError, ClientError) as exc:
            raise QueryError(f"{operation} failed: {exc}") from exc
        return response

    async def start_query(
        self, group: str, query: str, start_time: int, end_time: int
    ) -> str:
        """Submit a Logs Insights query and return its query id."""
        kwargs: dict[str, Any] = {
            "logGroupName": group,
            "startTime": start_time,
            "endTime": end_time,
            "queryString": query,
        }
        if self._limit is not None:
            kwargs["limit"] = self._limit
        response = await self._call("start_query", **kwargs)
        query_id = response.get("queryId")
        if not query_id:
            raise QueryError("start_query returned no queryId")
        return str(query_id)

    async def get_query_results(self, query_id: str) -> QueryResults:
        """Fetch the current status and rows of a query."""
        response = await self._call("get_query_results", queryId=query_id)
        return QueryResults(
            status=_parse_status(response.get("status")),
            rows=_parse_rows(response.get("results") or []),
        )

    async def stop_query(self, query_id: str) -> None:
        """Stop a running query."""
        await self._call("stop_query", queryId=query_id)
