"""Poll a log query service and expose the results as Prometheus metrics."""

from logquery_exporter.core.collection import (
    CoalescingCollector,
    CollectionPipeline,
    build_pipeline,
)
from logquery_exporter.core.config import load_config, parse_config
from logquery_exporter.core.errors import (
    CheckpointError,
    ConfigError,
    ExporterError,
    MappingError,
    QueryError,
    SinkError,
)
from logquery_exporter.core.executor import QueryExecutor
from logquery_exporter.core.mapping import MetricMappingEngine
from logquery_exporter.core.models import (
    CycleReport,
    CycleState,
    ExporterConfig,
    MetricDefinition,
    MetricDescriptor,
    MetricKind,
    MetricObservation,
    QueryOutcome,
    QueryResults,
    QueryStatus,
    QueryWindow,
    ResultField,
)
from logquery_exporter.core.records import normalize_row
from logquery_exporter.version import __version__

__all__ = [
    "CheckpointError",
    "CoalescingCollector",
    "CollectionPipeline",
    "ConfigError",
    "CycleReport",
    "CycleState",
    "ExporterConfig",
    "ExporterError",
    "MappingError",
    "MetricDefinition",
    "MetricDescriptor",
    "MetricKind",
    "MetricMappingEngine",
    "MetricObservation",
    "QueryError",
    "QueryExecutor",
    "QueryOutcome",
    "QueryResults",
    "QueryStatus",
    "QueryWindow",
    "ResultField",
    "SinkError",
    "__version__",
    "build_pipeline",
    "load_config",
    "normalize_row",
    "parse_config",
]
