"""Shared test fixtures for all test modules."""

from pathlib import Path

import httpx
import pytest

from logquery_exporter.adapters.storage.in_memory import InMemoryCheckpointStore
from logquery_exporter.core.models import ExporterConfig, MetricDefinition, ResultField
from tests.helpers import row


@pytest.fixture
def checkpoint_path(tmp_path: Path) -> Path:
    """Provide a temporary checkpoint file path."""
    return tmp_path / "last_end_time.txt"


@pytest.fixture
def checkpoints() -> InMemoryCheckpointStore:
    """Provide an unset in-memory checkpoint store."""
    return InMemoryCheckpointStore()


@pytest.fixture
def errors_config() -> ExporterConfig:
    """Configuration with one counter labelled by code and url."""
    return ExporterConfig(
        group="/aws/lambda/api",
        query="fields code, url | filter code >= 400",
        metrics={
            "errors": MetricDefinition(
                name="errors",
                type="counter",
                description="Error responses",
                labels=("code", "url"),
            )
        },
    )


@pytest.fixture
def two_error_rows() -> list[list[ResultField]]:
    """Two rows as returned by the service for the errors query."""
    return [row(code="500", url="/a"), row(code="404", url="/b")]


@pytest.fixture
def asgi_test_client():
    """Factory fixture that creates an httpx.AsyncClient for ASGI testing.

    Usage:
        async def test_something(asgi_test_client):
            app = create_asgi_app(collector)
            async with asgi_test_client(app) as client:
                response = await client.get("/metrics")
    """

    def _get_client(app):
        """Return an AsyncClient context manager for the given app."""
        return httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app), base_url="http://test"
        )

    return _get_client
