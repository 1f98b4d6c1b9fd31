"""FastAPI router exposing the pull endpoint inside an existing application."""

from fastapi import APIRouter, Query, Response
from prometheus_client import CONTENT_TYPE_LATEST

from logquery_exporter.adapters.frameworks.log_filters import level_filter
from logquery_exporter.core.collection import CoalescingCollector
from logquery_exporter.core.encoding.ndjson import NDJSON_CONTENT_TYPE, encode_logs
from logquery_exporter.core.encoding.prometheus import encode_report
from logquery_exporter.core.ports import LogStoragePort


def create_exporter_router(
    collector: CoalescingCollector,
    log_storage: LogStoragePort | None = None,
    metrics_path: str = "/metrics",
) -> APIRouter:
    """Create a router with the metrics endpoint and, optionally, /logs.

    Args:
        collector: Coalescing collector running one pass per scrape.
        log_storage: Diagnostic log buffer served at /logs.
        metrics_path: Path of the metrics endpoint.
    """
    router = APIRouter()
    namespace = collector.pipeline.engine.namespace

    @router.get(metrics_path)
    async def get_metrics() -> Response:
        """Run a collection pass and render it in the Prometheus text format."""
        report = await collector.collect()
        return Response(encode_report(namespace, report), media_type=CONTENT_TYPE_LATEST)

    if log_storage is not None:

        @router.get("/logs")
        async def get_logs(
            since: float = Query(default=0, ge=0),
            level: str | None = Query(default=None),
        ) -> Response:
            """Diagnostic log entries newer than ``since`` as NDJSON."""
            body = await encode_logs(log_storage.read(since=since, level=level_filter(level)))
            return Response(body, media_type=NDJSON_CONTENT_TYPE)

    return router
