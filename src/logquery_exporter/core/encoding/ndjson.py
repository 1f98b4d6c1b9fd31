"""Newline-delimited JSON rendering of diagnostic log entries."""

import json
from collections.abc import AsyncIterable

from logquery_exporter.core.models import LogEntry

NDJSON_CONTENT_TYPE = "application/x-ndjson"


async def encode_logs(entries: AsyncIterable[LogEntry]) -> str:
    """Render entries one JSON object per line.

    Every line, including the last, ends with a newline; no entries
    render as an empty string.
    """
    chunks = [
        json.dumps(
            {
                "timestamp": entry.timestamp,
                "level": entry.level,
                "message": entry.message,
                "attributes": entry.attributes,
            }
        )
        + "\n"
        async for entry in entries
    ]
    return "".join(chunks)
