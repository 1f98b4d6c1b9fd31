"""Conversion of raw result rows into normalized records."""

from collections.abc import Iterable

from logquery_exporter.core.models import RawRow, Record


def normalize_row(row: RawRow) -> Record:
    """Convert a raw result row into a field -> value mapping.

    Pairs with a missing field name or value are dropped. If a field name
    repeats within the row, the last value wins.

    Args:
        row: Sequence of ResultField pairs as returned by the service.

    Returns:
        Normalized record.
    """
    record: Record = {}
    for result_field in row:
        if result_field.field is not None and result_field.value is not None:
            record[result_field.field] = result_field.value
    return record


def normalize_rows(rows: Iterable[RawRow]) -> list[Record]:
    """Normalize every row, preserving order."""
    return [normalize_row(row) for row in rows]
