"""Query window derivation from the stored checkpoint."""

from logquery_exporter.core.models import QueryWindow


def compute_window(
    checkpoint: int | None, now: int, lookback_seconds: int
) -> QueryWindow | None:
    """Compute the window for the next query.

    Args:
        checkpoint: End time of the last completed window, None if unset.
        now: Current wall-clock time in epoch seconds.
        lookback_seconds: Window length used when no checkpoint exists.

    Returns:
        The window to query, or None when the checkpoint is not behind now
        and there is nothing new to ask for.
    """
    start_time = now - lookback_seconds if checkpoint is None else checkpoint
    if start_time >= now:
        return None
    return QueryWindow(start_time=start_time, end_time=now)
