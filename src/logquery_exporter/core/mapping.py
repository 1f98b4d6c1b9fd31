"""Declarative mapping of normalized records onto metric observations."""

import logging
import math
from collections.abc import Sequence

from logquery_exporter.core.errors import MappingError
from logquery_exporter.core.models import (
    ExporterConfig,
    MetricDefinition,
    MetricDescriptor,
    MetricKind,
    MetricObservation,
    Record,
)

logger = logging.getLogger(__name__)


def build_fq_name(namespace: str, name: str) -> str:
    """Join non-empty name parts with underscores."""
    return "_".join(part for part in (namespace, name) if part)


def parse_kind(definition: MetricDefinition) -> MetricKind:
    """Resolve the configured type string, case-insensitively.

    Raises:
        MappingError: If the type is neither counter nor gauge.
    """
    try:
        return MetricKind(definition.type.strip().lower())
    except ValueError:
        raise MappingError(
            definition.name, f"{definition.type!r} is not a valid type"
        ) from None


def _literal(value: str | None) -> float | None:
    """Return the constant a value binding stands for, or None for a field.

    Only finite numbers are constants, so "nan" or "inf" name a field.
    """
    if value is None or not value.strip():
        return 1.0
    try:
        constant = float(value)
    except ValueError:
        return None
    return constant if math.isfinite(constant) else None


class MetricMappingEngine:
    """Turns records into observations according to the configured metrics.

    Descriptors are built lazily on the first describe() and cached per
    metric name; the configuration itself is never modified.
    """

    def __init__(self, config: ExporterConfig) -> None:
        self._config = config
        self._descriptors: dict[str, MetricDescriptor] = {}

    @property
    def namespace(self) -> str:
        return self._config.namespace

    def metric_names(self) -> list[str]:
        """Configured metric names in lexicographic order."""
        return sorted(self._config.metrics)

    def descriptor(self, name: str) -> MetricDescriptor:
        """Return the cached descriptor for a metric, building it if needed."""
        cached = self._descriptors.get(name)
        if cached is None:
            definition = self._config.metrics[name]
            cached = MetricDescriptor(
                name=name,
                fq_name=build_fq_name(self._config.namespace, name),
                description=definition.description,
                label_names=tuple(definition.labels),
            )
            self._descriptors[name] = cached
            logger.debug("metric description for %r registered", name)
        return cached

    def describe(self) -> list[MetricDescriptor]:
        """Return one descriptor per configured metric."""
        return [self.descriptor(name) for name in self.metric_names()]

    def observe(
        self, name: str, records: Sequence[Record]
    ) -> list[MetricObservation]:
        """Map every record through a single metric definition.

        Label values come from the record, with missing fields resolving to
        an empty string.

        Raises:
            MappingError: If the type is unknown or a bound value field is
                missing, not numeric, or negative for a counter.
        """
        definition = self._config.metrics[name]
        kind = parse_kind(definition)
        descriptor = self.descriptor(name)
        constant = _literal(definition.value)
        observations: list[MetricObservation] = []
        for record in records:
            if constant is not None:
                value = constant
            else:
                value = self._field_value(definition, record)
            if kind is MetricKind.COUNTER and value < 0:
                raise MappingError(name, f"counter value {value} is negative")
            observations.append(
                MetricObservation(
                    descriptor=descriptor,
                    kind=kind,
                    value=value,
                    label_values=tuple(
                        record.get(label, "") for label in descriptor.label_names
                    ),
                )
            )
        return observations

    def collect(
        self, records: Sequence[Record]
    ) -> tuple[list[MetricObservation], dict[str, str]]:
        """Map records through every configured metric.

        A metric that fails to map is logged and omitted; the others are
        still collected.

        Returns:
            Tuple of (observations, errors) where errors maps each omitted
            metric name to the reason.
        """
        observations: list[MetricObservation] = []
        errors: dict[str, str] = {}
        for name in self.metric_names():
            try:
                observations.extend(self.observe(name, records))
            except MappingError as exc:
                logger.error("Fail to add metric for %s: %s", name, exc.reason)
                errors[name] = exc.reason
        return observations, errors

    @staticmethod
    def _field_value(definition: MetricDefinition, record: Record) -> float:
        field_name = definition.value or ""
        raw = record.get(field_name)
        if raw is None:
            raise MappingError(definition.name, f"value field {field_name!r} is missing")
        try:
            return float(raw)
        except ValueError:
            raise MappingError(
                definition.name,
                f"value field {field_name!r} is not numeric: {raw!r}",
            ) from None
