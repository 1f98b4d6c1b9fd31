"""Log query service adapters."""

from logquery_exporter.adapters.logs.cloudwatch import CloudWatchLogsService

__all__ = ["CloudWatchLogsService"]
