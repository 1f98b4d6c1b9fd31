"""Loading and validation of the exporter configuration file."""

import math
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from logquery_exporter.core.encoding.prometheus import family_key, reserved_family_names
from logquery_exporter.core.errors import ConfigError
from logquery_exporter.core.mapping import build_fq_name
from logquery_exporter.core.models import ExporterConfig, MetricDefinition

_METRIC_NAME_RE = re.compile(r"^[a-zA-Z_:][a-zA-Z0-9_:]*$")
_LABEL_NAME_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")


def _lower_keys(data: Mapping[Any, Any], where: str) -> dict[str, Any]:
    """Return a copy of data with lower-cased string keys."""
    result: dict[str, Any] = {}
    for key, value in data.items():
        if not isinstance(key, str):
            raise ConfigError(f"{where}: keys must be strings, got {key!r}")
        result[key.lower()] = value
    return result


def _required_str(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"'{key}' is required and must be a non-empty string")
    return value


def _positive_number(data: dict[str, Any], key: str, default: float) -> float:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int | float) or value <= 0:
        raise ConfigError(f"'{key}' must be a positive number, got {value!r}")
    return float(value)


def _positive_int(data: dict[str, Any], key: str, default: int) -> int:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigError(f"'{key}' must be a positive whole number, got {value!r}")
    return value


def _parse_labels(name: str, raw: Any) -> tuple[str, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list) or not all(isinstance(label, str) for label in raw):
        raise ConfigError(f"metric {name!r}: 'labels' must be a list of strings")
    for label in raw:
        if not _LABEL_NAME_RE.match(label) or label.startswith("__"):
            raise ConfigError(f"metric {name!r}: invalid label name {label!r}")
    if len(set(raw)) != len(raw):
        raise ConfigError(f"metric {name!r}: duplicate label names in {raw!r}")
    return tuple(raw)


def _parse_value(name: str, raw: Any) -> str | None:
    if raw is None:
        return None
    if isinstance(raw, bool):
        raise ConfigError(f"metric {name!r}: 'value' must be a field name or number")
    if isinstance(raw, int | float):
        if not math.isfinite(raw):
            raise ConfigError(f"metric {name!r}: 'value' must be a finite number")
        return str(raw)
    if not isinstance(raw, str):
        raise ConfigError(f"metric {name!r}: 'value' must be a field name or number")
    return raw.strip() or None


def parse_metric(name: str, raw: Any) -> MetricDefinition:
    """Build a MetricDefinition from one entry of the 'metrics' mapping."""
    if not isinstance(name, str) or not _METRIC_NAME_RE.match(name):
        raise ConfigError(f"invalid metric name {name!r}")
    if not isinstance(raw, Mapping):
        raise ConfigError(f"metric {name!r}: definition must be a mapping")
    data = _lower_keys(raw, f"metric {name!r}")
    metric_type = data.get("type")
    if not isinstance(metric_type, str) or not metric_type.strip():
        raise ConfigError(f"metric {name!r}: 'type' is required")
    description = data.get("description") or ""
    if not isinstance(description, str):
        raise ConfigError(f"metric {name!r}: 'description' must be a string")
    return MetricDefinition(
        name=name,
        type=metric_type,
        description=description,
        labels=_parse_labels(name, data.get("labels")),
        value=_parse_value(name, data.get("value")),
    )


def _check_collisions(namespace: str, metrics: Mapping[str, MetricDefinition]) -> None:
    """Reject metrics whose exposed family would repeat another one."""
    owners = {
        family_key(name): f"exporter family {name!r}"
        for name in reserved_family_names(namespace)
    }
    for name in sorted(metrics):
        key = family_key(build_fq_name(namespace, name))
        if key in owners:
            raise ConfigError(f"metric {name!r} clashes with {owners[key]}")
        owners[key] = f"metric {name!r}"


def parse_config(raw: Any) -> ExporterConfig:
    """Validate a decoded configuration document.

    Args:
        raw: The document as returned by yaml.safe_load.

    Returns:
        Immutable ExporterConfig.

    Raises:
        ConfigError: If the document is not a valid configuration.
    """
    if not isinstance(raw, Mapping):
        raise ConfigError("configuration must be a mapping")
    data = _lower_keys(raw, "configuration")
    metrics_raw = data.get("metrics") or {}
    if not isinstance(metrics_raw, Mapping):
        raise ConfigError("'metrics' must be a mapping of metric name to definition")
    namespace = data.get("namespace", "cloudwatch_log_export")
    if not isinstance(namespace, str) or (
        namespace and not _METRIC_NAME_RE.match(namespace)
    ):
        raise ConfigError(f"invalid namespace {namespace!r}")
    metrics = {name: parse_metric(name, entry) for name, entry in metrics_raw.items()}
    _check_collisions(namespace, metrics)
    return ExporterConfig(
        group=_required_str(data, "group"),
        query=_required_str(data, "query"),
        metrics=metrics,
        namespace=namespace,
        lookback_seconds=_positive_int(data, "lookback", 86400),
        poll_interval=_positive_number(data, "poll_interval", 2.0),
        max_wait=_positive_number(data, "max_wait", 300.0),
    )


def load_config(path: str | Path) -> ExporterConfig:
    """Read and validate a YAML configuration file.

    Raises:
        ConfigError: If the file cannot be read, parsed or validated.
    """
    try:
        content = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to read config file {path}: {exc}") from exc
    try:
        raw = yaml.safe_load(content)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to load config {path}: {exc}") from exc
    return parse_config(raw)
