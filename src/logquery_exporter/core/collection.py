"""Collection passes: query, map, and the gate that serializes them."""

import asyncio
import logging

from logquery_exporter.core.executor import QueryExecutor
from logquery_exporter.core.mapping import MetricMappingEngine
from logquery_exporter.core.models import CycleReport, ExporterConfig
from logquery_exporter.core.ports import CheckpointStorePort, LogQueryServicePort

logger = logging.getLogger(__name__)


class CollectionPipeline:
    """One end-to-end pass: executor cycle followed by metric mapping."""

    def __init__(self, executor: QueryExecutor, engine: MetricMappingEngine) -> None:
        self.executor = executor
        self.engine = engine

    async def run(self) -> CycleReport:
        outcome = await self.executor.run_cycle()
        observations, errors = self.engine.collect(outcome.records)
        logger.info(
            "Collection pass %s: %d records, %d observations, %d metrics omitted",
            outcome.state.value,
            len(outcome.records),
            len(observations),
            len(errors),
        )
        return CycleReport(outcome=outcome, observations=observations, errors=errors)


def build_pipeline(
    config: ExporterConfig,
    service: LogQueryServicePort,
    checkpoints: CheckpointStorePort,
) -> CollectionPipeline:
    """Wire an executor and a mapping engine from one configuration."""
    executor = QueryExecutor(
        service,
        checkpoints,
        group=config.group,
        query=config.query,
        lookback_seconds=config.lookback_seconds,
        poll_interval=config.poll_interval,
        max_wait=config.max_wait,
    )
    return CollectionPipeline(executor, MetricMappingEngine(config))


class CoalescingCollector:
    """Runs at most one collection pass at a time.

    Callers that arrive while a pass is in flight share its report instead
    of starting their own query.
    """

    def __init__(self, pipeline: CollectionPipeline) -> None:
        self.pipeline = pipeline
        self._inflight: asyncio.Task[CycleReport] | None = None

    @property
    def busy(self) -> bool:
        return self._inflight is not None

    async def collect(self) -> CycleReport:
        if self._inflight is None:
            self._inflight = asyncio.create_task(self._run())
        else:
            logger.debug("Joining in-flight collection pass")
        # Shielded so one cancelled caller does not abort the pass for others.
        return await asyncio.shield(self._inflight)

    async def _run(self) -> CycleReport:
        try:
            return await self.pipeline.run()
        finally:
            self._inflight = None
