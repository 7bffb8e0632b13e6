"""Self-describing text encoding for cached values.

A value is flattened into ``key=value`` pairs joined by ``&``, in the style of
a nested query string. Every node of the value tree carries its own tag::

    t          type tag (boolean, integer, double, string, list, map, object, null)
    c          type name, only for objects
    v          the value; composites nest further nodes under it

so ``{"a": 1, "b": [2]}`` becomes::

    t=map&v[a][t]=integer&v[a][v]=1&v[b][t]=list&v[b][v][0][t]=integer&v[b][v][0][v]=2

Path segments and leaves are percent-encoded with the key alphabet, which
keeps ``&``, ``=``, brackets and newlines out of the payload.
"""

import logging
import re
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from volatilestore.base.cache import CacheError
from volatilestore.base.registry import TypeRegistry
from volatilestore.keys import percent_decode, percent_encode

logger = logging.getLogger(__name__)

TAG_KEY = "t"
TYPE_KEY = "c"
VALUE_KEY = "v"

TAG_BOOLEAN = "boolean"
TAG_INTEGER = "integer"
TAG_DOUBLE = "double"
TAG_STRING = "string"
TAG_LIST = "list"
TAG_MAP = "map"
TAG_OBJECT = "object"
TAG_NULL = "null"

# Type names meaning "plain object"; these never resolve through the registry
GENERIC_TYPE_NAMES = frozenset({"", "object", "dict", "stdClass"})

TRUE_STRINGS = frozenset({"true", "1", "yes", "on"})
FALSE_STRINGS = frozenset({"false", "0", "no", "off", ""})

_INT_PREFIX_RE = re.compile(r"\s*([+-]?\d+)")
_FLOAT_PREFIX_RE = re.compile(r"\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")
_SEGMENT_RE = re.compile(r"\[([^\]]*)\]")


class UnsupportedValueKind(CacheError, TypeError):
    """Raised when a value cannot be represented by the codec."""

    pass


def format_path(segments: List[str]) -> str:
    """Render path segments as ``head[seg][seg]`` with each segment escaped."""
    head, *rest = segments
    return percent_encode(head) + "".join(f"[{percent_encode(s)}]" for s in rest)


def parse_path(raw_key: str) -> List[str]:
    """Split ``head[seg][seg]`` back into decoded segments.

    Text after the last closing bracket is ignored. An empty head yields no
    segments, which makes the pair unaddressable.
    """
    head, bracket, rest = raw_key.partition("[")
    if not head:
        return []
    segments = [percent_decode(head)]
    if bracket:
        segments.extend(
            percent_decode(s) for s in _SEGMENT_RE.findall(bracket + rest)
        )
    return segments


def parse_pairs(payload: str) -> Dict[str, Any]:
    """Parse a flat ``key=value&...`` payload into a nested dict keyed by path.

    Later pairs win when two paths collide.
    """
    root: Dict[str, Any] = {}
    for pair in payload.split("&"):
        if not pair:
            continue
        raw_key, _, raw_value = pair.partition("=")
        path = parse_path(raw_key)
        if not path:
            logger.debug(f"Ignoring unaddressable pair: {pair!r}")
            continue

        node = root
        for segment in path[:-1]:
            child = node.get(segment)
            if not isinstance(child, dict):
                child = {}
                node[segment] = child
            node = child
        node[path[-1]] = percent_decode(raw_value)
    return root


def parse_bool(raw: Any) -> Optional[bool]:
    """Permissive boolean grammar; returns None for unrecognized text."""
    if not isinstance(raw, str):
        return None
    text = raw.strip().lower()
    if text in TRUE_STRINGS:
        return True
    if text in FALSE_STRINGS:
        return False
    return None


def parse_int(raw: Any) -> int:
    """Parse a base-10 integer, ignoring trailing garbage (``"12abc"`` -> 12).

    Text without leading digits parses as 0.
    """
    if isinstance(raw, str):
        match = _INT_PREFIX_RE.match(raw)
        if match:
            return int(match.group(1))
    return 0


def _float_exact(raw: str) -> Optional[float]:
    try:
        return float(raw)
    except ValueError:
        return None


def _float_prefix(raw: str) -> Optional[float]:
    match = _FLOAT_PREFIX_RE.match(raw)
    return float(match.group(1)) if match else None


def parse_float(raw: Any) -> float:
    """Parse a float, falling back to the longest numeric prefix, then 0.0."""
    if not isinstance(raw, str):
        return 0.0
    for attempt in (_float_exact, _float_prefix):
        result = attempt(raw)
        if result is not None:
            return result
    return 0.0


def _int_str(value: int) -> str:
    return str(int(value))


def _float_repr(value: float) -> str:
    # repr round-trips exactly
    return repr(float(value))


def _index_order(item: Tuple[str, Any]) -> Tuple[int, int]:
    key = item[0]
    return (0, int(key)) if key.isdecimal() else (1, 0)


class ValueCodec:
    """Encodes values to the flat tagged text form and decodes them back.

    Supported values: ``None``, ``bool``, ``int``, ``float``, ``str``,
    ``list``/``tuple``, ``dict`` with string keys, and instances of classes
    registered on the codec's :class:`TypeRegistry`.

    Args:
        registry: Type registry used for typed objects (a fresh empty
            registry if None)

    Examples:
        >>> codec = ValueCodec()
        >>> codec.encode(42)
        't=integer&v=42'
        >>> codec.decode(codec.encode({"a": [1, 2.5]}))
        {'a': [1, 2.5]}
    """

    def __init__(self, registry: Optional[TypeRegistry] = None):
        self.registry = registry if registry is not None else TypeRegistry()

    # =========================================================================
    # Encoding
    # =========================================================================

    def encode(self, value: Any) -> str:
        """Encode a value.

        Raises:
            UnsupportedValueKind: If the value (or anything nested in it) is
                not representable
        """
        pairs: List[Tuple[List[str], str]] = []
        self._encode_node(value, [], pairs, set())
        return "&".join(
            f"{format_path(path)}={percent_encode(leaf)}" for path, leaf in pairs
        )

    def _encode_node(self, value, prefix, pairs, active) -> None:
        for matches, encoder in self._encoders():
            if matches(value):
                encoder(value, prefix, pairs, active)
                return

        adapter = self.registry.detect(value)
        if adapter is None:
            raise UnsupportedValueKind(
                f"Cannot encode value of type {type(value).__name__}; "
                f"register a TypeAdapter for it"
            )
        try:
            members = adapter.to_fields(value)
        except Exception as e:
            raise UnsupportedValueKind(
                f"Adapter '{adapter.name}' cannot read fields: {e}"
            ) from e
        pairs.append((prefix + [TAG_KEY], TAG_OBJECT))
        pairs.append((prefix + [TYPE_KEY], adapter.name))
        self._encode_members(members, value, prefix, pairs, active)

    def _encoders(self) -> Iterable[Tuple[Callable[[Any], bool], Callable]]:
        scalar = self._encode_scalar
        # bool before int: bool is an int subclass
        return (
            (lambda v: v is None, self._encode_null),
            (lambda v: isinstance(v, bool), self._encode_bool),
            (lambda v: isinstance(v, int), scalar(TAG_INTEGER, _int_str)),
            (lambda v: isinstance(v, float), scalar(TAG_DOUBLE, _float_repr)),
            (lambda v: isinstance(v, str), scalar(TAG_STRING, str)),
            (lambda v: isinstance(v, (list, tuple)), self._encode_list),
            (lambda v: isinstance(v, dict), self._encode_map),
        )

    @staticmethod
    def _encode_null(value, prefix, pairs, active) -> None:
        pairs.append((prefix + [TAG_KEY], TAG_NULL))

    @staticmethod
    def _encode_bool(value, prefix, pairs, active) -> None:
        pairs.append((prefix + [TAG_KEY], TAG_BOOLEAN))
        pairs.append((prefix + [VALUE_KEY], "true" if value else "false"))

    @staticmethod
    def _encode_scalar(tag: str, to_text: Callable[[Any], str]) -> Callable:
        def encode_scalar(value, prefix, pairs, active) -> None:
            pairs.append((prefix + [TAG_KEY], tag))
            pairs.append((prefix + [VALUE_KEY], to_text(value)))

        return encode_scalar

    def _encode_list(self, value, prefix, pairs, active) -> None:
        pairs.append((prefix + [TAG_KEY], TAG_LIST))
        members = {str(index): item for index, item in enumerate(value)}
        self._encode_members(members, value, prefix, pairs, active)

    def _encode_map(self, value, prefix, pairs, active) -> None:
        for key in value:
            if not isinstance(key, str):
                raise UnsupportedValueKind(
                    f"Map keys must be strings, got {type(key).__name__}"
                )
        pairs.append((prefix + [TAG_KEY], TAG_MAP))
        self._encode_members(value, value, prefix, pairs, active)

    def _encode_members(self, members: Dict[str, Any], owner, prefix, pairs, active):
        marker = id(owner)
        if marker in active:
            raise UnsupportedValueKind("Cannot encode a value that contains itself")
        active.add(marker)
        for name, member in members.items():
            self._encode_node(member, prefix + [VALUE_KEY, name], pairs, active)
        active.discard(marker)

    # =========================================================================
    # Decoding
    # =========================================================================

    def decode(self, payload: str) -> Any:
        """Decode a payload produced by :meth:`encode`.

        Never raises. Empty input decodes to None. Input that does not follow
        the tagged format decodes to the best-effort raw nested structure.
        """
        payload = payload.replace("\r", "").replace("\n", "")
        if not payload:
            return None
        return self._decode_node(parse_pairs(payload))

    def _decode_node(self, node: Any) -> Any:
        if not isinstance(node, dict):
            return node

        tag = node.get(TAG_KEY)
        decoder = self._decoders().get(tag) if isinstance(tag, str) else None
        if decoder is None:
            logger.debug(f"Untagged or unknown node (tag={tag!r}), returning raw")
            return node[VALUE_KEY] if VALUE_KEY in node else node
        return decoder(node)

    def _decoders(self) -> Dict[str, Callable[[Dict[str, Any]], Any]]:
        return {
            TAG_NULL: lambda node: None,
            TAG_BOOLEAN: self._decode_bool,
            TAG_INTEGER: lambda node: parse_int(node.get(VALUE_KEY)),
            TAG_DOUBLE: lambda node: parse_float(node.get(VALUE_KEY)),
            TAG_STRING: lambda node: node.get(VALUE_KEY, ""),
            TAG_LIST: self._decode_list,
            TAG_MAP: self._decode_map,
            TAG_OBJECT: self._decode_object,
        }

    @staticmethod
    def _decode_bool(node: Dict[str, Any]) -> Any:
        raw = node.get(VALUE_KEY, "")
        result = parse_bool(raw)
        if result is None:
            logger.warning(f"Unrecognized boolean literal {raw!r}, returning raw")
            return raw
        return result

    def _decode_list(self, node: Dict[str, Any]) -> Any:
        members = node.get(VALUE_KEY, {})
        if not isinstance(members, dict):
            return members
        ordered = sorted(members.items(), key=_index_order)
        return [self._decode_node(child) for _, child in ordered]

    def _decode_map(self, node: Dict[str, Any]) -> Any:
        members = node.get(VALUE_KEY, {})
        if not isinstance(members, dict):
            return members
        return {name: self._decode_node(child) for name, child in members.items()}

    def _decode_object(self, node: Dict[str, Any]) -> Any:
        fields = self._decode_map(node)
        name = node.get(TYPE_KEY)
        if not isinstance(name, str) or name in GENERIC_TYPE_NAMES:
            return fields

        adapter = self.registry.get(name)
        if adapter is None or not isinstance(fields, dict):
            logger.warning(f"Type '{name}' is not registered, decoding as a plain dict")
            return fields
        try:
            return adapter.build(fields)
        except Exception as e:
            logger.warning(f"Cannot build '{name}' ({e}), decoding as a plain dict")
            return fields
