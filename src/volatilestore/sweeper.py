"""Startup sweep of expired records.

The sweep reads each record's expiry line (the same header ``store`` writes)
and deletes records whose expiry has passed. It takes no locks: a store racing
with the sweep may have its fresh record removed, which is accepted at startup.
"""

import glob
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

from volatilestore.expiry import is_expired
from volatilestore.record import read_expiry

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    """Counts from one sweep pass."""

    scanned: int = 0
    removed: int = 0
    failed: int = 0


def ensure_directory(directory: Path, mode: int) -> bool:
    """Create ``directory`` (and parents) if missing.

    Returns:
        True if the directory exists afterwards
    """
    try:
        directory.mkdir(mode=mode, parents=True, exist_ok=True)
    except OSError as e:
        logger.error(f"Cannot create storage directory {directory}: {e}")
        return False
    return True


def iter_record_paths(directory: Path, extension: str) -> Iterator[Path]:
    """Yield every record file in ``directory`` with the given extension."""
    for path in sorted(directory.glob("*" + glob.escape(extension))):
        if path.is_file():
            yield path


def sweep_directory(
    directory: Path, extension: str, now: float, mode: int
) -> SweepResult:
    """Ensure the directory exists and delete expired records in it.

    Args:
        directory: Storage directory
        extension: Record file extension
        now: Current time in epoch seconds
        mode: Permission bits for a newly created directory

    Returns:
        SweepResult with scanned/removed/failed counts
    """
    result = SweepResult()
    if not ensure_directory(directory, mode):
        return result

    for path in iter_record_paths(directory, extension):
        result.scanned += 1
        try:
            expires_at = read_expiry(path)
        except FileNotFoundError:
            continue
        except OSError as e:
            logger.warning(f"Cannot read record {path} during sweep: {e}")
            result.failed += 1
            continue

        if not is_expired(expires_at, now):
            continue

        try:
            path.unlink(missing_ok=True)
            result.removed += 1
        except OSError as e:
            logger.warning(f"Cannot remove expired record {path}: {e}")
            result.failed += 1

    logger.info(
        f"Swept {directory}: {result.removed} of {result.scanned} records expired"
    )
    return result
