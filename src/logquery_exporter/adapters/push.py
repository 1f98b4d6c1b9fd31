"""Push exposition: ship accumulated metrics to a Prometheus Pushgateway."""

import asyncio
import logging
import time

from prometheus_client import CollectorRegistry, push_to_gateway

from logquery_exporter.core.collection import CollectionPipeline
from logquery_exporter.core.encoding.prometheus import AccumulatingCollector
from logquery_exporter.core.errors import SinkError
from logquery_exporter.core.models import CycleReport

logger = logging.getLogger(__name__)


class PushGatewaySink:
    """Accumulates reports into a dedicated registry and pushes it.

    Counters keep growing across pushes; gauges carry the latest value.
    Failed pushes are logged and do not raise.

    Args:
        gateway: Pushgateway address, e.g. "http://pushgateway:9091".
        job: Job name used in the grouping key.
        instance: Value of the "instance" grouping label.
        namespace: Metric namespace for the exporter status families.
        timeout: Seconds before a push request is abandoned.
    """

    def __init__(
        self,
        gateway: str,
        job: str,
        instance: str,
        namespace: str,
        timeout: float = 30.0,
    ) -> None:
        self.gateway = gateway
        self.job = job
        self.instance = instance
        self.timeout = timeout
        self.registry = CollectorRegistry(auto_describe=False)
        self._collector = AccumulatingCollector(namespace)
        self.registry.register(self._collector)

    async def push(self, report: CycleReport) -> bool:
        """Fold a report into the registry and push the snapshot.

        Returns:
            True if the gateway accepted the push.
        """
        self._collector.update(report)
        try:
            await asyncio.to_thread(self._push)
        except SinkError as exc:
            logger.error("Failed to push metrics to %s: %s", self.gateway, exc)
            return False
        logger.info("Pushed metrics to %s as job %s", self.gateway, self.job)
        return True

    def _push(self) -> None:
        try:
            push_to_gateway(
                self.gateway,
                job=self.job,
                registry=self.registry,
                grouping_key={"instance": self.instance},
                timeout=self.timeout,
            )
        except Exception as exc:
            raise SinkError(f"{type(exc).__name__}: {exc}") from exc


async def run_push_loop(
    pipeline: CollectionPipeline,
    sink: PushGatewaySink,
    interval: float = 60.0,
    stop: asyncio.Event | None = None,
) -> int:
    """Run collection passes on a fixed cadence and push each result.

    Passes never overlap: a pass that outlasts the interval delays the next
    one, and the ticks it covered are skipped rather than queued.

    Args:
        pipeline: Collection pipeline to run each tick.
        sink: Push sink receiving each report.
        interval: Seconds between tick starts.
        stop: Event that ends the loop after the current pass.

    Returns:
        Number of passes run.
    """
    stop = stop or asyncio.Event()
    passes = 0
    next_tick = time.monotonic()
    while not stop.is_set():
        try:
            report = await pipeline.run()
            await sink.push(report)
        except Exception:
            logger.exception("Collection pass failed, waiting for the next tick")
        passes += 1

        next_tick += interval
        now = time.monotonic()
        if now > next_tick:
            skipped = int((now - next_tick) // interval) + 1
            logger.warning("Collection pass overran the interval, skipping %d tick(s)", skipped)
            next_tick += skipped * interval
        try:
            await asyncio.wait_for(stop.wait(), timeout=next_tick - now)
        except TimeoutError:
            pass
    return passes
