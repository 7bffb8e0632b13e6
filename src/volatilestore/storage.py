"""Filesystem-backed key/value cache with per-entry TTL."""

import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterator, Mapping, Optional

from volatilestore.base.cache import Cache
from volatilestore.codec import UnsupportedValueKind, ValueCodec
from volatilestore.config import StorageConfig
from volatilestore.expiry import compute_expires_at, is_expired
from volatilestore.keys import KeyLike, decode_key, encode_key
from volatilestore.locking import (
    LOCK_DIR_NAME,
    CacheLockError,
    FileLocker,
    PathLocker,
)
from volatilestore.record import read_expiry, read_record, write_record
from volatilestore.sweeper import (
    SweepResult,
    ensure_directory,
    iter_record_paths,
    sweep_directory,
)

logger = logging.getLogger(__name__)


class _Miss:
    """Sentinel type returned by ``fetch`` for absent or expired keys."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISS"

    def __bool__(self) -> bool:
        return False

    def __reduce__(self):
        return "MISS"


MISS = _Miss()


@dataclass
class CacheEntry:
    """Listing information for one record file."""

    key: str
    path: Path
    expires_at: int
    size_bytes: int
    expired: bool


class VolatileStorage(Cache):
    """Cache storing one record file per key in a shared directory.

    Safe for concurrent use by independent processes: each read or write of a
    record happens under an exclusive per-key lock. Expired records are
    removed when fetched and by a sweep when the storage is constructed.

    Args:
        options: Option mapping (``directory``, ``fileExtension``, ...);
            ignored when ``config`` is given
        config: Explicit StorageConfig
        codec: Value codec (a codec with an empty type registry if None)
        locker: Per-key locker (a FileLocker under ``<directory>/.locks`` if None)
        clock: Callable returning the current epoch time in seconds

    Examples:
        >>> storage = VolatileStorage({"directory": "/tmp/my-cache"})
        >>> storage.store("answer", 42, ttl=60)
        True
        >>> storage.fetch("answer")
        42
        >>> storage.fetch("missing") is MISS
        True
    """

    def __init__(
        self,
        options: Optional[Mapping[str, Any]] = None,
        config: Optional[StorageConfig] = None,
        codec: Optional[ValueCodec] = None,
        locker: Optional[PathLocker] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config or StorageConfig.from_options(options)
        self.directory = self.config.directory
        self.file_extension = self.config.file_extension
        self.codec = codec or ValueCodec()
        self.locker = locker or FileLocker(
            self.directory / LOCK_DIR_NAME, timeout=self.config.lock_timeout
        )
        self._clock = clock

        if self.config.sweep_on_start:
            self.sweep()
        else:
            ensure_directory(self.directory, self.config.dir_mode)

    def path_for(self, key: KeyLike) -> Path:
        """Get the record path for a key."""
        return self.directory / f"{encode_key(key)}{self.file_extension}"

    def _key_from_path(self, path: Path) -> str:
        name = path.name
        if self.file_extension:
            name = name[: -len(self.file_extension)]
        return decode_key(name)

    def supported(self) -> bool:
        """Check that the storage directory exists and is writable."""
        return self.directory.is_dir() and os.access(self.directory, os.W_OK)

    def fetch(self, key: KeyLike, ttl: Optional[int] = None) -> Any:
        """Fetch a value.

        Args:
            key: Cache key
            ttl: Ignored; the expiry stored with the record governs

        Returns:
            The stored value, or MISS if the key is absent, expired or unreadable
        """
        path = self.path_for(key)
        if not os.path.exists(path):
            return MISS

        try:
            with self.locker.acquire(path):
                expires_at, payload = read_record(path)
        except FileNotFoundError:
            return MISS
        except CacheLockError as e:
            logger.warning(f"Cache miss for {key!r}: {e}")
            return MISS
        except OSError as e:
            logger.warning(f"Cannot read record {path}: {e}")
            return MISS

        if is_expired(expires_at, self._clock()):
            logger.debug(f"Record for {key!r} expired at {expires_at}")
            self._discard(path)
            return MISS

        return self.codec.decode(payload)

    def store(self, key: KeyLike, value: Any, ttl: Optional[int] = None) -> bool:
        """Store a value.

        Args:
            key: Cache key
            value: Value to store (see ValueCodec for supported kinds)
            ttl: Time-to-live in seconds; None means never expire

        Returns:
            True if the record was written. False if the value is not
            representable, the lock timed out, or the write failed; an
            existing record is left untouched in those cases.
        """
        path = self.path_for(key)

        try:
            payload = self.codec.encode(value)
        except UnsupportedValueKind as e:
            logger.warning(f"Cannot store {key!r}: {e}")
            return False

        try:
            with self.locker.acquire(path):
                expires_at = compute_expires_at(ttl, self._clock())
                write_record(path, expires_at, payload)
        except CacheLockError as e:
            logger.warning(f"Cannot store {key!r}: {e}")
            return False
        except OSError as e:
            logger.error(f"Error writing record {path}: {e}")
            return False

        return True

    def delete(self, key: KeyLike) -> bool:
        """Remove the record for a key.

        Returns:
            True if a record was removed, False if there was none or removal
            failed
        """
        path = self.path_for(key)
        if not os.path.exists(path):
            return False

        try:
            with self.locker.acquire(path):
                path.unlink()
        except FileNotFoundError:
            return False
        except (CacheLockError, OSError) as e:
            logger.warning(f"Cannot delete record {path}: {e}")
            return False

        return True

    def contains(self, key: KeyLike) -> bool:
        """Check if a non-expired record exists for a key."""
        return self.fetch(key) is not MISS

    def entries(self) -> Iterator[CacheEntry]:
        """Iterate over the records in the directory without locking."""
        now = self._clock()
        for path in iter_record_paths(self.directory, self.file_extension):
            try:
                expires_at = read_expiry(path)
                size_bytes = path.stat().st_size
            except OSError:
                continue
            yield CacheEntry(
                key=self._key_from_path(path),
                path=path,
                expires_at=expires_at,
                size_bytes=size_bytes,
                expired=is_expired(expires_at, now),
            )

    def sweep(self) -> SweepResult:
        """Delete every expired record in the directory."""
        return sweep_directory(
            self.directory, self.file_extension, self._clock(), self.config.dir_mode
        )

    def _discard(self, path: Path) -> None:
        # Runs outside the lock; concurrent fetches may race to delete
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Cannot remove expired record {path}: {e}")

