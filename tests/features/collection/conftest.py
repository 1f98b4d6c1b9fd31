"""Step definitions for the end-to-end collection scenarios."""

import asyncio
from dataclasses import dataclass, field
from typing import Any

import httpx
import pytest
from prometheus_client.parser import text_string_to_metric_families
from pytest_bdd import given, parsers, then, when

from logquery_exporter.adapters.frameworks.asgi import create_asgi_app
from logquery_exporter.adapters.storage import InMemoryCheckpointStore
from logquery_exporter.core.collection import CoalescingCollector, build_pipeline
from logquery_exporter.core.models import (
    ExporterConfig,
    MetricDefinition,
    QueryResults,
    QueryStatus,
    ResultField,
)
from tests.helpers import FakeLogQueryService, row

INITIAL_CHECKPOINT = 1700000000


@dataclass
class CollectionScenarioContext:
    """Shared state between steps in a collection scenario."""

    metrics: dict[str, MetricDefinition] = field(default_factory=dict)
    rows: list[list[ResultField]] = field(default_factory=list)
    status: QueryStatus = QueryStatus.COMPLETE
    checkpoints: InMemoryCheckpointStore = field(
        default_factory=lambda: InMemoryCheckpointStore(INITIAL_CHECKPOINT)
    )
    response: httpx.Response | None = None


def run_async(coro: Any) -> Any:
    """Run a coroutine synchronously."""
    return asyncio.run(coro)


def sample_value(text: str, name: str, **labels: str) -> float | None:
    """Find one sample in a Prometheus text exposition."""
    for family in text_string_to_metric_families(text):
        for sample in family.samples:
            if sample.name == name and sample.labels == labels:
                return sample.value
    return None


@pytest.fixture
def ctx() -> CollectionScenarioContext:
    """Fresh scenario context for each test."""
    return CollectionScenarioContext()


@given(parsers.parse('a counter "{name}" labelled by "{first}" and "{second}"'))
def given_counter(ctx: CollectionScenarioContext, name: str, first: str, second: str) -> None:
    ctx.metrics[name] = MetricDefinition(name=name, type="counter", labels=(first, second))


@given(parsers.parse('a gauge "{name}" bound to field "{value}"'))
def given_gauge(ctx: CollectionScenarioContext, name: str, value: str) -> None:
    ctx.metrics[name] = MetricDefinition(name=name, type="gauge", value=value)


@given(parsers.parse('the log query service returns a row with code "{code}" and url "{url}"'))
def given_row(ctx: CollectionScenarioContext, code: str, url: str) -> None:
    ctx.rows.append(row(code=code, url=url))


@given(parsers.parse('the log query service reports the query as "{status}"'))
def given_status(ctx: CollectionScenarioContext, status: str) -> None:
    ctx.status = QueryStatus(status)


@when("the metrics endpoint is scraped")
def when_scraped(ctx: CollectionScenarioContext) -> None:
    config = ExporterConfig(group="/aws/lambda/api", query="fields code, url", metrics=ctx.metrics)
    service = FakeLogQueryService([QueryResults(status=ctx.status, rows=ctx.rows)])
    app = create_asgi_app(CoalescingCollector(build_pipeline(config, service, ctx.checkpoints)))

    async def scrape() -> httpx.Response:
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            return await client.get("/metrics")

    ctx.response = run_async(scrape())


@then(parsers.parse("the response status is {code:d}"))
def then_status(ctx: CollectionScenarioContext, code: int) -> None:
    assert ctx.response is not None
    assert ctx.response.status_code == code


@then(
    parsers.parse(
        'the sample "{name}" with code "{code}" and url "{url}" is {value:d}'
    )
)
def then_sample(
    ctx: CollectionScenarioContext, name: str, code: str, url: str, value: int
) -> None:
    assert ctx.response is not None
    assert sample_value(ctx.response.text, name, code=code, url=url) == value


@then(parsers.parse("the last cycle success gauge is {value:d}"))
def then_cycle_success(ctx: CollectionScenarioContext, value: int) -> None:
    assert ctx.response is not None
    assert sample_value(ctx.response.text, "cloudwatch_log_export_last_cycle_success") == value


@then(parsers.parse('the metric "{name}" is reported as a mapping error'))
def then_mapping_error(ctx: CollectionScenarioContext, name: str) -> None:
    assert ctx.response is not None
    text = ctx.response.text
    assert sample_value(text, "cloudwatch_log_export_metric_mapping_error", metric=name) == 1
    assert f"cloudwatch_log_export_{name} " not in text


@then(parsers.parse("the checkpoint has advanced past {value:d}"))
def then_checkpoint_advanced(ctx: CollectionScenarioContext, value: int) -> None:
    assert ctx.checkpoints.checkpoint is not None
    assert ctx.checkpoints.checkpoint > value
    assert len(ctx.checkpoints.writes) == 1


@then(parsers.parse("the checkpoint is still {value:d}"))
def then_checkpoint_unchanged(ctx: CollectionScenarioContext, value: int) -> None:
    assert ctx.checkpoints.checkpoint == value
    assert ctx.checkpoints.writes == []
