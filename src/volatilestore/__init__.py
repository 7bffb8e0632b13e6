"""volatilestore: Filesystem-backed key/value cache with per-entry TTL."""

__version__ = "0.1.0"

from volatilestore.base.registry import TypeAdapter, TypeRegistry, register_dataclass
from volatilestore.codec import UnsupportedValueKind, ValueCodec
from volatilestore.config import StorageConfig
from volatilestore.locking import CacheLockError, FileLocker, ThreadLocker
from volatilestore.storage import MISS, VolatileStorage

__all__ = [
    "VolatileStorage",
    "MISS",
    "StorageConfig",
    "ValueCodec",
    "TypeAdapter",
    "TypeRegistry",
    "register_dataclass",
    "UnsupportedValueKind",
    "CacheLockError",
    "FileLocker",
    "ThreadLocker",
    "__version__",
]
