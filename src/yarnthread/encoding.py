"""
Yarn - Binary/text transcoding for fragment payloads.

Ciphertext text uses standard base64 with padding. Its '+', '/' and '='
characters are not all safe inside a URL fragment; they are handled at the
URL boundary (see fragment.py) and the alphabet is left unchanged.

Key text uses unpadded base64url, the form of the 'k' member of a JWK.

Neither alphabet contains the fragment delimiter ':'.

Decoding is strict: input must be in the canonical form produced by the
matching encoder, so every distinct text maps to distinct bytes.
"""

import base64
import binascii
import re

from .errors import DecodeError, ErrorCode

_URLSAFE_ALPHABET = re.compile(r"[A-Za-z0-9_-]*")


def encode(data: bytes) -> str:
    """Encode bytes as standard padded base64 text."""
    return base64.b64encode(data).decode("ascii")


def decode(text: str) -> bytes:
    """
    Decode standard padded base64 text.

    Raises:
        DecodeError: If the text has characters outside the alphabet,
            bad padding, or is not in canonical form
    """
    try:
        data = base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError, TypeError) as e:
        raise DecodeError(
            ErrorCode.E101_MALFORMED_TEXT,
            f"Invalid base64 text: {e}",
            {"length": len(text) if isinstance(text, str) else None},
        ) from e

    if encode(data) != text:
        raise DecodeError(ErrorCode.E101_MALFORMED_TEXT, "Non-canonical base64 text")

    return data


def encode_urlsafe(data: bytes) -> str:
    """Encode bytes as unpadded base64url text."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def decode_urlsafe(text: str) -> bytes:
    """
    Decode unpadded base64url text.

    Raises:
        DecodeError: If the text is not canonical unpadded base64url
    """
    if not isinstance(text, str) or not _URLSAFE_ALPHABET.fullmatch(text) or len(text) % 4 == 1:
        raise DecodeError(ErrorCode.E101_MALFORMED_TEXT, "Invalid base64url text")

    padded = text + "=" * (-len(text) % 4)
    try:
        data = base64.urlsafe_b64decode(padded)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(ErrorCode.E101_MALFORMED_TEXT, f"Invalid base64url text: {e}") from e

    if encode_urlsafe(data) != text:
        raise DecodeError(ErrorCode.E101_MALFORMED_TEXT, "Non-canonical base64url text")

    return data
