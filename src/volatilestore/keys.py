"""Filesystem-safe key encoding.

Cache keys are arbitrary strings (or bytes). Every byte outside the unreserved
set ``[A-Za-z0-9-_.~]`` is replaced by ``%`` and its two-digit lowercase hex
value, so the result is safe to use as a filename component. The same
percent-encoding is reused by the value codec for path segments and leaves.
"""

import re
from typing import Union

# Bytes that pass through unescaped
UNRESERVED = frozenset(
    b"ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_.~"
)

_ESCAPE_RE = re.compile(rb"%([0-9a-fA-F]{2})")

KeyLike = Union[str, bytes]


def _to_bytes(value: KeyLike) -> bytes:
    if isinstance(value, bytes):
        return value
    try:
        return value.encode("utf-8", errors="surrogateescape")
    except UnicodeEncodeError:
        # Lone surrogates outside the escape range
        return value.encode("utf-8", errors="surrogatepass")


def _to_text(raw: bytes) -> str:
    try:
        return raw.decode("utf-8", errors="surrogatepass")
    except UnicodeDecodeError:
        return raw.decode("utf-8", errors="surrogateescape")


def percent_encode(value: KeyLike) -> str:
    """Percent-encode every byte outside the unreserved set.

    Args:
        value: Text or raw bytes. Text is encoded as UTF-8 first.

    Returns:
        ASCII string containing only unreserved characters and ``%xx`` escapes

    Examples:
        >>> percent_encode("user:42/profile")
        'user%3a42%2fprofile'
        >>> percent_encode(b"\\xff")
        '%ff'
    """
    return "".join(
        chr(byte) if byte in UNRESERVED else f"%{byte:02x}"
        for byte in _to_bytes(value)
    )


def percent_decode_bytes(value: str) -> bytes:
    """Decode ``%xx`` escapes (hex digits in either case) back to raw bytes.

    Malformed escapes such as ``%zz`` are passed through unchanged.
    """
    return _ESCAPE_RE.sub(lambda m: bytes([int(m.group(1), 16)]), _to_bytes(value))


def percent_decode(value: str) -> str:
    """Decode ``%xx`` escapes and return text.

    Bytes that are not valid UTF-8 survive as surrogate escapes and lone
    surrogates survive as themselves, so ``percent_decode(percent_encode(s))
    == s`` holds for every string.
    """
    return _to_text(percent_decode_bytes(value))


def encode_key(key: KeyLike) -> str:
    """Map a cache key to a filename component.

    Args:
        key: Cache key, text or bytes

    Returns:
        Encoded key (without extension)

    Examples:
        >>> encode_key("a b")
        'a%20b'
    """
    return percent_encode(key)


def decode_key(encoded: str, as_bytes: bool = False) -> KeyLike:
    """Inverse of :func:`encode_key`.

    Args:
        encoded: Filename component produced by ``encode_key``
        as_bytes: Return the raw bytes instead of text

    Returns:
        Original key
    """
    if as_bytes:
        return percent_decode_bytes(encoded)
    return percent_decode(encoded)
