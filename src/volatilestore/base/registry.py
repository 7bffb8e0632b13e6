"""Type registry for typed-object values.

The codec never resolves type names through reflection. A caller registers a
:class:`TypeAdapter` for every class it wants to round-trip, and the registry
maps the stored type name back to that adapter when decoding.
"""

import dataclasses
from typing import Any, Callable, Dict, List, Optional, Sequence, Type


class TypeAdapter:
    """Explicit field mapping between a class and a dict of field values.

    Args:
        name: Type name written to disk
        cls: Class handled by this adapter
        fields: Field names copied to and from instances
        factory: Zero-argument callable returning a default instance
            (defaults to ``cls``)

    Examples:
        >>> class Point:
        ...     def __init__(self):
        ...         self.x = 0
        ...         self.y = 0
        >>> adapter = TypeAdapter("point", Point, ["x", "y"])
        >>> p = adapter.build({"x": 3, "extra": 1})
        >>> (p.x, p.y)
        (3, 0)
    """

    def __init__(
        self,
        name: str,
        cls: Type,
        fields: Sequence[str],
        factory: Optional[Callable[[], Any]] = None,
    ):
        if not name:
            raise ValueError("Type name must be non-empty")
        self.name = name
        self.cls = cls
        self.fields = list(fields)
        self.factory = factory or cls

    def can_handle(self, value: Any) -> bool:
        return type(value) is self.cls

    def to_fields(self, value: Any) -> Dict[str, Any]:
        """Read the mapped fields off an instance."""
        return {field: getattr(value, field) for field in self.fields}

    def build(self, data: Dict[str, Any]) -> Any:
        """Create a default instance and populate it from ``data``.

        Missing fields keep their defaults; unknown keys are ignored.
        """
        obj = self.factory()
        for field in self.fields:
            if field in data:
                setattr(obj, field, data[field])
        return obj


class TypeRegistry:
    """Registry of type adapters, keyed by stored type name.

    A registry is an ordinary object: construct one, register adapters on it
    and hand it to a :class:`~volatilestore.codec.ValueCodec`.

    Examples:
        >>> registry = TypeRegistry()
        >>> registry.register(TypeAdapter("point", Point, ["x", "y"]))
        >>> registry.get("point").cls is Point
        True
    """

    def __init__(self):
        self._adapters: Dict[str, TypeAdapter] = {}

    def register(self, adapter: TypeAdapter) -> None:
        """Register an adapter.

        Raises:
            ValueError: If the type name is already registered
        """
        if adapter.name in self._adapters:
            raise ValueError(
                f"Type already registered under name: {adapter.name}. "
                f"Cannot register {adapter.cls.__name__}."
            )
        self._adapters[adapter.name] = adapter

    def get(self, name: str) -> Optional[TypeAdapter]:
        """Get the adapter for a stored type name, or None if unknown."""
        return self._adapters.get(name)

    def detect(self, value: Any) -> Optional[TypeAdapter]:
        """Find the adapter whose class matches ``value`` exactly."""
        for adapter in self._adapters.values():
            if adapter.can_handle(value):
                return adapter
        return None

    def list_types(self) -> List[str]:
        return list(self._adapters.keys())

    def is_registered(self, name: str) -> bool:
        return name in self._adapters


class DataclassAdapter(TypeAdapter):
    """Adapter that builds instances through the dataclass constructor.

    Works for frozen dataclasses, which reject attribute assignment.
    """

    def build(self, data: Dict[str, Any]) -> Any:
        changes = {field: data[field] for field in self.fields if field in data}
        return dataclasses.replace(self.factory(), **changes)


def register_dataclass(
    registry: TypeRegistry, cls: Type, name: Optional[str] = None
) -> TypeAdapter:
    """Register a dataclass using its declared fields.

    Every field must have a default, since decoding starts from a default
    instance and only fills in the fields present on disk.

    Args:
        registry: Registry to add the adapter to
        cls: Dataclass type
        name: Stored type name (defaults to ``module.QualName``)

    Returns:
        The registered adapter

    Raises:
        TypeError: If ``cls`` is not a dataclass
        ValueError: If a field has no default
    """
    if not (dataclasses.is_dataclass(cls) and isinstance(cls, type)):
        raise TypeError(f"{cls!r} is not a dataclass type")

    fields = dataclasses.fields(cls)
    for field in fields:
        if (
            field.default is dataclasses.MISSING
            and field.default_factory is dataclasses.MISSING
        ):
            raise ValueError(
                f"Field '{field.name}' of {cls.__name__} has no default value"
            )

    adapter = DataclassAdapter(
        name or f"{cls.__module__}.{cls.__qualname__}",
        cls,
        [field.name for field in fields if field.init],
    )
    registry.register(adapter)
    return adapter
