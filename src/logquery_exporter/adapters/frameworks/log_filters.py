"""Filters accepted by the /logs endpoints of every framework adapter."""

import math

LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


def since_filter(raw: str | None) -> float:
    """Lower timestamp bound for /logs. Unusable input means no bound."""
    if raw is None:
        return 0.0
    try:
        since = float(raw)
    except ValueError:
        return 0.0
    return since if math.isfinite(since) and since > 0 else 0.0


def level_filter(raw: str | None) -> str | None:
    """Upper-cased level name, or None (no filtering) for unknown levels."""
    if not raw:
        return None
    level = raw.strip().upper()
    return level if level in LEVELS else None
