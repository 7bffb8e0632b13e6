"""TTL policy helpers.

Expiry is stored as absolute epoch seconds. ``NEVER`` (0) marks a record that
does not expire.
"""

from typing import Optional

NEVER = 0


def compute_expires_at(ttl: Optional[int], now: float) -> int:
    """Compute the absolute expiry for a store.

    Args:
        ttl: Time-to-live in seconds. None means never expire. Zero or
            negative values produce an already-expired record.
        now: Current time in epoch seconds

    Returns:
        Expiry in epoch seconds, or NEVER
    """
    if ttl is None:
        return NEVER

    expires_at = int(now) + int(ttl)
    if expires_at == NEVER:
        # Would otherwise read back as "never expires"
        return -1
    return expires_at


def is_expired(expires_at: int, now: float) -> bool:
    """Check whether a record with the given expiry has expired at ``now``."""
    return expires_at != NEVER and now > expires_at


def get_ttl_remaining(expires_at: int, now: float) -> Optional[int]:
    """Get remaining seconds until expiry.

    Returns:
        Seconds remaining (never negative), or None if the record never expires
    """
    if expires_at == NEVER:
        return None
    return max(0, int(expires_at - now))
