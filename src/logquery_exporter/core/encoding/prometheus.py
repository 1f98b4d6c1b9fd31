"""Prometheus text exposition of collection reports.

Observations are grouped per metric into prometheus_client metric families.
Samples sharing the same label values are combined: counters add up and
gauges keep the last value, so a rendered snapshot never repeats a series.
"""

import platform
import threading
from collections.abc import Iterable, Iterator

from prometheus_client import REGISTRY, CollectorRegistry, generate_latest
from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily, Metric
from prometheus_client.registry import Collector

from logquery_exporter.core.mapping import build_fq_name
from logquery_exporter.core.models import (
    CycleReport,
    MetricDescriptor,
    MetricKind,
    MetricObservation,
)
from logquery_exporter.version import __version__


class MetricSeries:
    """Samples of one metric keyed by label values."""

    def __init__(self, descriptor: MetricDescriptor, kind: MetricKind) -> None:
        self.descriptor = descriptor
        self.kind = kind
        self.samples: dict[tuple[str, ...], float] = {}

    def add(self, observation: MetricObservation) -> None:
        key = observation.label_values
        if self.kind is MetricKind.COUNTER:
            self.samples[key] = self.samples.get(key, 0.0) + observation.value
        else:
            self.samples[key] = observation.value

    def family(self) -> Metric:
        family_type = (
            CounterMetricFamily if self.kind is MetricKind.COUNTER else GaugeMetricFamily
        )
        family = family_type(
            self.descriptor.fq_name,
            self.descriptor.description,
            labels=list(self.descriptor.label_names),
        )
        for label_values, value in self.samples.items():
            family.add_metric(list(label_values), value)
        return family


def group_observations(
    observations: Iterable[MetricObservation],
    series: dict[str, MetricSeries] | None = None,
) -> dict[str, MetricSeries]:
    """Fold observations into per-metric series, keyed by fully-qualified name.

    Args:
        observations: Observations to add.
        series: Existing series to add to. A new mapping is created if None.
    """
    grouped = {} if series is None else series
    for observation in observations:
        fq_name = observation.descriptor.fq_name
        current = grouped.get(fq_name)
        if current is None or current.kind is not observation.kind:
            current = MetricSeries(observation.descriptor, observation.kind)
            grouped[fq_name] = current
        current.add(observation)
    return grouped


# Exporter self-description families, prefixed with the namespace.
STATUS_FAMILIES = (
    "build_info",
    "last_cycle_success",
    "last_cycle_records",
    "metric_mapping_error",
)


def family_key(name: str) -> str:
    """Name a family is exposed under; counters drop a trailing _total."""
    return name.removesuffix("_total")


def reserved_family_names(
    namespace: str, runtime: CollectorRegistry | None = REGISTRY
) -> set[str]:
    """Family names a configured metric must not reuse.

    These are the status families under ``namespace`` plus whatever the
    runtime registry exposes (process, platform and gc collectors by default).
    """
    names = {build_fq_name(namespace, name) for name in STATUS_FAMILIES}
    if runtime is not None:
        names.update(family.name for family in runtime.collect())
    return names


def status_families(namespace: str, report: CycleReport | None) -> Iterator[Metric]:
    """Exporter self-description: build info and the state of the last pass."""
    build_info = GaugeMetricFamily(
        build_fq_name(namespace, "build_info"),
        "Exporter build information.",
        labels=["version", "pythonversion"],
    )
    build_info.add_metric([__version__, platform.python_version()], 1)
    yield build_info
    if report is None:
        return
    yield GaugeMetricFamily(
        build_fq_name(namespace, "last_cycle_success"),
        "Whether the last log query cycle completed (1) or not (0).",
        value=1 if report.outcome.succeeded else 0,
    )
    yield GaugeMetricFamily(
        build_fq_name(namespace, "last_cycle_records"),
        "Number of records returned by the last log query cycle.",
        value=len(report.outcome.records),
    )
    mapping_errors = GaugeMetricFamily(
        build_fq_name(namespace, "metric_mapping_error"),
        "Metrics omitted from the last pass because they could not be mapped.",
        labels=["metric"],
    )
    for metric in sorted(report.errors):
        mapping_errors.add_metric([metric], 1)
    yield mapping_errors


class SnapshotCollector(Collector):
    """Collector exposing exactly one collection report."""

    def __init__(self, namespace: str, report: CycleReport) -> None:
        self._namespace = namespace
        self._report = report
        self._series = group_observations(report.observations)

    def collect(self) -> Iterable[Metric]:
        yield from status_families(self._namespace, self._report)
        for name in sorted(self._series):
            yield self._series[name].family()


class AccumulatingCollector(Collector):
    """Collector that folds every report into running totals.

    Counters keep adding across reports; gauges hold the latest value.
    """

    def __init__(self, namespace: str) -> None:
        self._namespace = namespace
        self._series: dict[str, MetricSeries] = {}
        self._report: CycleReport | None = None
        self._lock = threading.Lock()

    def update(self, report: CycleReport) -> None:
        with self._lock:
            group_observations(report.observations, self._series)
            self._report = report

    def collect(self) -> Iterable[Metric]:
        with self._lock:
            families = list(status_families(self._namespace, self._report))
            families.extend(self._series[name].family() for name in sorted(self._series))
        return families


def encode_report(
    namespace: str,
    report: CycleReport,
    runtime: CollectorRegistry | None = REGISTRY,
) -> str:
    """Render a report in the Prometheus text exposition format.

    Args:
        namespace: Prefix of the exporter status families.
        report: Collection pass to render.
        runtime: Registry rendered ahead of the report. The default
            registry carries the process, platform and gc collectors.
    """
    registry = CollectorRegistry(auto_describe=False)
    registry.register(SnapshotCollector(namespace, report))
    text = generate_latest(registry)
    if runtime is not None:
        text = generate_latest(runtime) + text
    return text.decode("utf-8")
