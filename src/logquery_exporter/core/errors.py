"""Exception hierarchy for the exporter.

Only ConfigError is allowed to escape to the process entry point. The
others are caught where they occur, logged, and turned into a fallback.
"""


class ExporterError(Exception):
    """Base class for exporter errors."""


class ConfigError(ExporterError):
    """Configuration is missing, unreadable or invalid."""


class CheckpointError(ExporterError):
    """Checkpoint could not be read or written."""


class QueryError(ExporterError):
    """Submitting or polling a log query failed."""


class MappingError(ExporterError):
    """A single metric could not be mapped from the current records."""

    def __init__(self, metric: str, reason: str) -> None:
        super().__init__(f"metric {metric!r}: {reason}")
        self.metric = metric
        self.reason = reason


class SinkError(ExporterError):
    """Delivering a metrics snapshot failed."""
