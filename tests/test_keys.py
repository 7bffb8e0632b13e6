"""Tests for filesystem-safe key encoding."""

import pytest

from volatilestore.keys import (
    decode_key,
    encode_key,
    percent_decode,
    percent_decode_bytes,
    percent_encode,
)


class TestEncodeKey:
    """Test key to filename mapping."""

    def test_unreserved_characters_pass_through(self):
        """Test that letters, digits and -_.~ are left alone."""
        key = "Az09-_.~"
        assert encode_key(key) == key

    def test_reserved_characters_escaped_lowercase(self):
        """Test that other bytes become lowercase two-digit escapes."""
        assert encode_key("a/b") == "a%2fb"
        assert encode_key("user:42") == "user%3a42"
        assert encode_key("x y") == "x%20y"
        assert encode_key("%") == "%25"

    def test_control_bytes_zero_padded(self):
        """Test that low bytes are zero-padded to two hex digits."""
        assert encode_key("\n") == "%0a"
        assert encode_key(b"\x00") == "%00"

    def test_non_ascii_encoded_as_utf8_octets(self):
        """Test that non-ASCII text is escaped byte by byte."""
        assert encode_key("é") == "%c3%a9"

    def test_bytes_key(self):
        """Test that raw bytes are escaped as octets."""
        assert encode_key(b"\xff\xfe") == "%ff%fe"

    def test_empty_key(self):
        """Test that the empty key encodes to the empty string."""
        assert encode_key("") == ""

    def test_result_is_filename_safe(self):
        """Test that encoded keys contain no path separators."""
        encoded = encode_key("../../etc/passwd")
        assert "/" not in encoded
        assert "\\" not in encoded


class TestDecodeKey:
    """Test the inverse mapping."""

    @pytest.mark.parametrize(
        "key",
        ["", "simple", "a/b:c?d=e&f", "spaces and\ttabs\n", "日本語", "%41", "~.-_"],
    )
    def test_text_round_trip(self, key):
        """Test decode(encode(k)) == k for text keys."""
        assert decode_key(encode_key(key)) == key

    def test_every_byte_round_trips(self):
        """Test decode(encode(k)) == k for all 256 byte values."""
        key = bytes(range(256))
        assert decode_key(encode_key(key), as_bytes=True) == key

    def test_invalid_utf8_text_round_trip(self):
        """Test that non-UTF-8 bytes survive a text round trip."""
        key = b"\xff\xfeabc".decode("utf-8", errors="surrogateescape")
        assert decode_key(encode_key(key)) == key

    @pytest.mark.parametrize("key", ["\ud800", "a\udfffb", "\ud800\udcff"])
    def test_lone_surrogates_round_trip(self, key):
        """Test that unpaired surrogates encode and come back unchanged."""
        encoded = encode_key(key)
        assert encoded.isascii()
        assert decode_key(encoded) == key

    def test_uppercase_hex_accepted(self):
        """Test that escapes decode regardless of hex case."""
        assert decode_key("a%2Fb") == "a/b"
        assert percent_decode_bytes("%FF") == b"\xff"

    def test_malformed_escape_passes_through(self):
        """Test that invalid escapes are kept literally."""
        assert percent_decode("100%zz") == "100%zz"
        assert percent_decode("%4") == "%4"


class TestPercentHelpers:
    """Test the shared percent-encoding helpers."""

    def test_separators_are_escaped(self):
        """Test that codec separators never survive encoding."""
        encoded = percent_encode("a&b=c[d]e")
        for char in "&=[]":
            assert char not in encoded

    def test_round_trip(self):
        """Test helper round trip."""
        text = "key=value&other=[1,2]"
        assert percent_decode(percent_encode(text)) == text
