"""On-disk record layout.

A record file holds one cached value::

    <expiry epoch seconds, 0 = never>\\n<payload wrapped at 70 chars per line>

Wrapping is cosmetic. Readers strip every newline from the body before
decoding, so the payload encoding must never rely on line breaks.
"""

import logging
import os
import re
from pathlib import Path
from typing import Tuple

logger = logging.getLogger(__name__)

CHUNK_WIDTH = 70

_EXPIRY_RE = re.compile(r"\s*([+-]?\d+)")


def serialize(expires_at: int, payload: str, width: int = CHUNK_WIDTH) -> bytes:
    """Build record file contents.

    Args:
        expires_at: Absolute expiry (epoch seconds) or 0 for never
        payload: Encoded value
        width: Line width for the wrapped payload

    Returns:
        File contents as bytes

    Examples:
        >>> serialize(0, "t=integer&v=1")
        b'0\\nt=integer&v=1'
    """
    chunks = [payload[i : i + width] for i in range(0, len(payload), width)]
    body = "\n".join(chunks)
    return f"{int(expires_at)}\n{body}".encode("utf-8")


def parse_expiry(header: str) -> int:
    """Parse the expiry line leniently; unparseable headers read as 0."""
    match = _EXPIRY_RE.match(header)
    return int(match.group(1)) if match else 0


def deserialize(data: bytes) -> Tuple[int, str]:
    """Split record file contents into ``(expires_at, payload)``.

    Everything after the first newline is the payload, with all line breaks
    removed.
    """
    text = data.decode("utf-8", errors="replace")
    header, _, body = text.partition("\n")
    return parse_expiry(header), body.replace("\r", "").replace("\n", "")


def read_record(path: Path) -> Tuple[int, str]:
    """Read and deserialize a record file.

    Raises:
        OSError: If the file cannot be read
    """
    with open(path, "rb") as f:
        return deserialize(f.read())


def read_expiry(path: Path) -> int:
    """Read only the expiry line of a record file.

    Raises:
        OSError: If the file cannot be read
    """
    with open(path, "rb") as f:
        header = f.readline()
    return parse_expiry(header.decode("utf-8", errors="replace"))


def write_record(path: Path, expires_at: int, payload: str) -> None:
    """Write a record, replacing any existing file.

    The contents go to a temporary sibling first and are renamed into place,
    so unlocked readers never observe a half-written record.

    Raises:
        OSError: If the write or rename fails
    """
    temp_path = path.with_name(path.name + ".tmp")
    try:
        with open(temp_path, "wb") as f:
            f.write(serialize(expires_at, payload))
        os.replace(temp_path, path)
    except OSError:
        if temp_path.exists():
            try:
                temp_path.unlink()
            except OSError as cleanup_error:
                logger.warning(
                    f"Failed to clean up temp file {temp_path}: {cleanup_error}"
                )
        raise
