"""
Unit tests for yarnthread.encoding module.

Tests strict base64 and base64url transcoding.
"""

import pytest

from yarnthread.encoding import decode, decode_urlsafe, encode, encode_urlsafe
from yarnthread.errors import DecodeError, ErrorCode


class TestStandardBase64:
    """Test padded standard base64."""

    def test_known_values(self):
        """Test encoding against known vectors."""
        assert encode(b"") == ""
        assert encode(b"f") == "Zg=="
        assert encode(b"foobar") == "Zm9vYmFy"
        assert encode(b"\xfb\xff") == "+/8="

    def test_round_trip(self):
        """Test arbitrary bytes survive."""
        data = bytes(range(256))
        assert decode(encode(data)) == data

    @pytest.mark.parametrize("text", ["Zg", "Zg=", "Zh==", "Zm9v YmFy", "Zm9v\nYmFy", "Zm9v-_8=", "Zg==Zg=="])
    def test_rejects_non_canonical(self, text):
        """Test that missing padding, stray bits and foreign characters are rejected."""
        with pytest.raises(DecodeError) as exc_info:
            decode(text)

        assert exc_info.value.code == ErrorCode.E101_MALFORMED_TEXT


class TestUrlsafeBase64:
    """Test unpadded base64url."""

    def test_known_values(self):
        """Test encoding against known vectors."""
        assert encode_urlsafe(b"f") == "Zg"
        assert encode_urlsafe(b"\xfb\xff") == "-_8"

    def test_round_trip(self):
        """Test arbitrary bytes survive."""
        data = bytes(range(256))
        assert decode_urlsafe(encode_urlsafe(data)) == data

    @pytest.mark.parametrize("text", ["Zg==", "Z", "Zh", "+/8", "Zm 9v", "Zg\n"])
    def test_rejects_non_canonical(self, text):
        """Test that padding, stray bits and the standard alphabet are rejected."""
        with pytest.raises(DecodeError):
            decode_urlsafe(text)
