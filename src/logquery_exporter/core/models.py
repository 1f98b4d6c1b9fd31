"""Core domain models for the log query exporter."""

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum

# A normalized record: field name -> string value.
Record = dict[str, str]


class QueryStatus(str, Enum):
    """Status values reported by the log query service."""

    SCHEDULED = "Scheduled"
    RUNNING = "Running"
    COMPLETE = "Complete"
    FAILED = "Failed"
    CANCELLED = "Cancelled"
    TIMEOUT = "Timeout"
    UNKNOWN = "Unknown"

    @property
    def terminal(self) -> bool:
        """True once the service will not change the status again."""
        return self not in (QueryStatus.SCHEDULED, QueryStatus.RUNNING, QueryStatus.UNKNOWN)


class CycleState(str, Enum):
    """States of one query cycle run by the executor."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETE = "complete"
    FAILED = "failed"
    CANCELLED = "cancelled"
    TIMEOUT = "timeout"


class MetricKind(str, Enum):
    """Observation kinds a metric definition may declare."""

    COUNTER = "counter"
    GAUGE = "gauge"


@dataclass(frozen=True)
class QueryWindow:
    """Time range submitted for one query.

    Attributes:
        start_time: Inclusive lower bound in epoch seconds.
        end_time: Upper bound in epoch seconds.
    """

    start_time: int
    end_time: int

    def __post_init__(self) -> None:
        if self.start_time >= self.end_time:
            raise ValueError(
                f"start_time ({self.start_time}) must be before end_time ({self.end_time})"
            )


@dataclass(frozen=True)
class ResultField:
    """One field/value pair of a raw result row. Either side may be missing."""

    field: str | None
    value: str | None


RawRow = Sequence[ResultField]


@dataclass(frozen=True)
class QueryResults:
    """A single poll response from the log query service."""

    status: QueryStatus
    rows: list[RawRow] = field(default_factory=list)


@dataclass(frozen=True)
class QueryOutcome:
    """Result of one executor cycle.

    Attributes:
        state: Terminal cycle state.
        records: Normalized records; empty unless state is COMPLETE.
        window: The window that was queried, None if nothing was submitted.
        query_id: Handle returned by the service, if submission succeeded.
        polls: Number of result polls performed.
        error: Human readable failure description.
    """

    state: CycleState
    records: list[Record] = field(default_factory=list)
    window: QueryWindow | None = None
    query_id: str | None = None
    polls: int = 0
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.state is CycleState.COMPLETE


@dataclass(frozen=True)
class MetricDefinition:
    """Declarative description of one metric derived from records.

    Attributes:
        name: Metric name without namespace.
        type: Configured type string, validated at collection time.
        description: Help text.
        labels: Ordered, unique label names looked up in each record.
        value: Value binding. None means a constant 1 per record, a numeric
            string is a literal constant, anything else names a record field.
    """

    name: str
    type: str
    description: str = ""
    labels: tuple[str, ...] = ()
    value: str | None = None


@dataclass(frozen=True)
class ExporterConfig:
    """Immutable exporter configuration loaded once at startup."""

    group: str
    query: str
    metrics: dict[str, MetricDefinition] = field(default_factory=dict)
    namespace: str = "cloudwatch_log_export"
    lookback_seconds: int = 86400
    poll_interval: float = 2.0
    max_wait: float = 300.0


@dataclass(frozen=True)
class MetricDescriptor:
    """Exposition identity of a configured metric."""

    name: str
    fq_name: str
    description: str
    label_names: tuple[str, ...]


@dataclass(frozen=True)
class MetricObservation:
    """One value emitted for one record and one metric definition."""

    descriptor: MetricDescriptor
    kind: MetricKind
    value: float
    label_values: tuple[str, ...] = ()


@dataclass(frozen=True)
class CycleReport:
    """Everything one collection pass produced.

    Attributes:
        outcome: Executor outcome for the pass.
        observations: Observations for every metric that mapped cleanly.
        errors: Metric name -> reason, for metrics omitted from this pass.
    """

    outcome: QueryOutcome
    observations: list[MetricObservation] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class LogEntry:
    """A structured diagnostic log entry.

    Attributes:
        timestamp: Unix timestamp in seconds.
        level: Log level (e.g., INFO, ERROR, DEBUG).
        message: The log message.
        attributes: Additional structured fields.
    """

    timestamp: float
    level: str
    message: str
    attributes: dict[str, str | int | float | bool] = field(default_factory=dict)
