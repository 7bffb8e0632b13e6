"""Base classes for the volatilestore cache.

This module provides:
- Cache: Abstract interface implemented by cache backends
- TypeAdapter / TypeRegistry: Explicit mapping for typed-object values
- register_dataclass: Convenience registration for dataclasses
"""

from volatilestore.base.cache import Cache, CacheError
from volatilestore.base.registry import TypeAdapter, TypeRegistry, register_dataclass

__all__ = [
    "Cache",
    "CacheError",
    "TypeAdapter",
    "TypeRegistry",
    "register_dataclass",
]
