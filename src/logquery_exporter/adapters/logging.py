"""Bridge from the logging module into a LogStoragePort.

The exporter's own diagnostics (query states, mapping failures, push
errors) are kept in a bounded buffer and can be read back from /logs.
"""

import logging
import traceback
from collections.abc import Callable

from logquery_exporter.core.models import LogEntry
from logquery_exporter.core.ports import LogStoragePort

AttributeValue = str | int | float | bool

# Everything a LogRecord carries on its own; any other attribute came from extra=.
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}

_BUILTIN_ATTRS: dict[str, Callable[[logging.LogRecord], AttributeValue]] = {
    "logger": lambda record: record.name,
    "module": lambda record: record.module,
    "funcName": lambda record: record.funcName or "",
    "lineno": lambda record: record.lineno,
    "pathname": lambda record: record.pathname,
}

DEFAULT_INCLUDE_ATTRS = ("logger", "module", "funcName", "lineno")


def _exception_attributes(record: logging.LogRecord) -> dict[str, AttributeValue]:
    if not record.exc_info:
        return {}
    exc_type, exc_value, exc_tb = record.exc_info
    attributes: dict[str, AttributeValue] = {}
    if exc_type is not None:
        attributes["exc_type"] = exc_type.__name__
    if exc_value is not None:
        attributes["exc_message"] = str(exc_value)
    if exc_tb is not None:
        attributes["exc_traceback"] = "".join(
            traceback.format_exception(exc_type, exc_value, exc_tb)
        )
    return attributes


class LogStorageHandler(logging.Handler):
    """Logging handler that stores each record as a LogEntry.

    Scalar ``extra=`` fields and exception details become entry attributes.

    Args:
        storage: Destination implementing LogStoragePort.
        include_attrs: Record attributes to copy, out of logger, module,
            funcName, lineno and pathname. Defaults to all but pathname.
        level: Minimum level handled.
    """

    def __init__(
        self,
        storage: LogStoragePort,
        include_attrs: list[str] | None = None,
        level: int = logging.NOTSET,
    ) -> None:
        super().__init__(level)
        self._storage = storage
        self._include_attrs = tuple(include_attrs or DEFAULT_INCLUDE_ATTRS)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self._storage.write(self.to_entry(record))
        except Exception:
            self.handleError(record)

    def to_entry(self, record: logging.LogRecord) -> LogEntry:
        attributes: dict[str, AttributeValue] = {
            name: _BUILTIN_ATTRS[name](record)
            for name in self._include_attrs
            if name in _BUILTIN_ATTRS
        }
        attributes.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and isinstance(value, str | int | float | bool)
        )
        attributes.update(_exception_attributes(record))
        return LogEntry(
            timestamp=record.created,
            level=record.levelname,
            message=record.getMessage(),
            attributes=attributes,
        )


def configure_logging(level: str = "INFO", storage: LogStoragePort | None = None) -> None:
    """Configure root logging for the exporter process.

    Args:
        level: Level name for the root logger.
        storage: If given, records passing the root level are also kept there.
    """
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if storage is not None:
        logging.getLogger().addHandler(LogStorageHandler(storage))
