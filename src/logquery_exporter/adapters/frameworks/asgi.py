"""ASGI application serving the pull endpoint.

Runs under any ASGI server (uvicorn, hypercorn, daphne). Each request to
the metrics path renders one coalesced collection pass; /logs serves the
exporter's own diagnostics when a log buffer is attached.
"""

import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any
from urllib.parse import parse_qs

from prometheus_client import CONTENT_TYPE_LATEST

from logquery_exporter.adapters.frameworks.log_filters import level_filter, since_filter
from logquery_exporter.core.collection import CoalescingCollector
from logquery_exporter.core.encoding.ndjson import NDJSON_CONTENT_TYPE, encode_logs
from logquery_exporter.core.encoding.prometheus import encode_report
from logquery_exporter.core.ports import LogStoragePort

logger = logging.getLogger(__name__)

Scope = dict[str, Any]
Message = dict[str, Any]
Receive = Callable[[], Awaitable[Message]]
Send = Callable[[Message], Awaitable[None]]
ASGIApp = Callable[[Scope, Receive, Send], Awaitable[None]]
Renderer = Callable[[Scope], Awaitable[str]]


def _parse_query_params(scope: Scope) -> dict[str, list[str]]:
    """Decode the raw query string; undecodable bytes become U+FFFD."""
    raw: bytes = scope.get("query_string") or b""
    return parse_qs(raw.decode("utf-8", errors="replace"))


def _first(params: dict[str, list[str]], name: str) -> str | None:
    values = params.get(name)
    return values[0] if values else None


async def _send_response(send: Send, status: int, content_type: str, body: str) -> None:
    await send(
        {
            "type": "http.response.start",
            "status": status,
            "headers": [(b"content-type", content_type.encode("latin-1"))],
        }
    )
    await send({"type": "http.response.body", "body": body.encode("utf-8")})


async def _handle_endpoint(
    send: Send,
    render: Callable[[], Awaitable[str]],
    content_type: str,
    error_message: str,
) -> None:
    """Send the rendered body, or a JSON 500 if rendering raises."""
    try:
        body = await render()
    except Exception:
        logger.exception(error_message)
        error_body = json.dumps({"error": "Internal Server Error"})
        await _send_response(send, 500, "application/json", error_body)
        return
    await _send_response(send, 200, content_type, body)


def create_asgi_app(
    collector: CoalescingCollector,
    log_storage: LogStoragePort | None = None,
    metrics_path: str = "/metrics",
) -> ASGIApp:
    """Create the exporter's ASGI application.

    Args:
        collector: Coalescing collector running one pass per scrape.
        log_storage: Diagnostic log buffer served at /logs. Without it,
            /logs is a 404 like any other unknown path.
        metrics_path: Path of the metrics endpoint.

    Returns:
        ASGI application callable.
    """
    namespace = collector.pipeline.engine.namespace

    async def render_metrics(scope: Scope) -> str:
        return encode_report(namespace, await collector.collect())

    routes: dict[str, tuple[Renderer, str, str]] = {
        metrics_path: (render_metrics, CONTENT_TYPE_LATEST, "Error collecting metrics"),
    }

    if log_storage is not None:

        async def render_logs(scope: Scope) -> str:
            params = _parse_query_params(scope)
            entries = log_storage.read(
                since=since_filter(_first(params, "since")),
                level=level_filter(_first(params, "level")),
            )
            return await encode_logs(entries)

        routes["/logs"] = (render_logs, NDJSON_CONTENT_TYPE, "Error encoding logs")

    async def app(scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            return
        route = routes.get(scope["path"])
        if route is None:
            await _send_response(send, 404, "text/plain", "Not Found")
            return
        render, content_type, error_message = route
        await _handle_endpoint(send, lambda: render(scope), content_type, error_message)

    return app
