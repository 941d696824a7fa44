"""Sidecar status marker written by the daemon at .tldr/status."""

import logging
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

INDEXING = "indexing"


def get_status_path(project: str | Path) -> Path:
    return Path(project) / ".tldr" / "status"


def read_status(project: str | Path) -> Optional[str]:
    """Read the daemon status marker.

    Returns:
        Trimmed file content, or None if the file is missing or unreadable
    """
    status_file = get_status_path(project)
    try:
        return status_file.read_text().strip()
    except (OSError, UnicodeDecodeError) as e:
        logger.debug(f"No readable status at {status_file}: {e}")
        return None


def is_indexing(project: str | Path) -> bool:
    """True iff the daemon reports it is still building its indexes."""
    return read_status(project) == INDEXING
