"""Text file checkpoint store."""

import logging
import os
from pathlib import Path

from logquery_exporter.core.errors import CheckpointError

logger = logging.getLogger(__name__)

DEFAULT_CHECKPOINT_FILE = "last_end_time.txt"


def parse_checkpoint(content: str) -> int:
    """Parse the decimal checkpoint representation.

    Raises:
        CheckpointError: If the content is not a non-negative 64-bit integer.
    """
    text = content.strip()
    if not text.isascii() or not text.isdigit():
        raise CheckpointError(f"not a non-negative integer: {text!r}")
    value = int(text)
    if value >= 2**63:
        raise CheckpointError(f"out of range: {text}")
    return value


class FileCheckpointStore:
    """CheckpointStorePort backed by a single text file.

    The file holds the decimal end time of the last completed window.
    A missing or malformed file reads as unset. Writes go to a temporary
    sibling first and are moved into place, so readers never see a
    partially written value.
    """

    def __init__(self, path: str | Path = DEFAULT_CHECKPOINT_FILE) -> None:
        self.path = Path(path)

    async def read(self) -> int | None:
        """Return the stored checkpoint, or None if missing or malformed."""
        try:
            content = self.path.read_text(encoding="ascii")
        except FileNotFoundError:
            logger.info("No checkpoint file at %s, using fallback window", self.path)
            return None
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Error reading checkpoint file %s: %s", self.path, exc)
            return None
        try:
            return parse_checkpoint(content)
        except CheckpointError as exc:
            logger.warning("Error parsing checkpoint from %s: %s", self.path, exc)
            return None

    async def write(self, checkpoint: int) -> None:
        """Persist the checkpoint. Failures are logged, not raised."""
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            tmp_path.write_text(str(checkpoint), encoding="ascii")
            os.replace(tmp_path, self.path)
        except OSError as exc:
            logger.error("Error writing checkpoint file %s: %s", self.path, exc)
