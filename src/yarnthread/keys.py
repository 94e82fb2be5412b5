"""
Yarn - Symmetric key material for capsules and log in keys.

A key is 128 bits of CSPRNG output. Its portable text form is unpadded
base64url (22 characters), the 'k' member of an A128GCM JSON Web Key.

Because the cipher uses a fixed nonce, a key must never encrypt two
different plaintexts. SymmetricKey enforces this itself: the first
encryption claims the key for that plaintext's digest and any later
encryption of a different plaintext is refused.
"""

import hashlib
import hmac
import logging
import os
from typing import Optional

from .constants import KEY_SIZE, KEY_TEXT_LENGTH
from .encoding import decode_urlsafe, encode_urlsafe
from .errors import CryptoError, DecodeError, ErrorCode

logger = logging.getLogger(__name__)


class SymmetricKey:
    """Opaque 128-bit key material with a single-plaintext guard."""

    __slots__ = ("_material", "_claimed_digest")

    def __init__(self, material: bytes):
        if not isinstance(material, (bytes, bytearray)) or len(material) != KEY_SIZE:
            raise CryptoError(
                ErrorCode.E302_BAD_KEY_FORMAT,
                f"Key material must be exactly {KEY_SIZE} bytes",
            )
        self._material = bytes(material)
        self._claimed_digest: Optional[bytes] = None

    @property
    def material(self) -> bytes:
        return self._material

    @property
    def is_claimed(self) -> bool:
        """True once the key has encrypted a plaintext."""
        return self._claimed_digest is not None

    def claim(self, plaintext: bytes) -> None:
        """
        Bind this key to a single plaintext.

        Claiming again with the same plaintext is a no-op.

        Raises:
            CryptoError: If the key already encrypted a different plaintext
        """
        digest = hashlib.sha256(plaintext).digest()

        if self._claimed_digest is None:
            self._claimed_digest = digest
            return

        if not hmac.compare_digest(self._claimed_digest, digest):
            raise CryptoError(
                ErrorCode.E303_KEY_REUSE,
                "Key already encrypted a different plaintext; issue a fresh key",
            )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SymmetricKey):
            return NotImplemented
        return hmac.compare_digest(self._material, other._material)

    def __hash__(self) -> int:
        return hash(self._material)

    def __repr__(self) -> str:
        # Never expose key material in logs or tracebacks
        return "SymmetricKey(<redacted>)"


class SymmetricKeyManager:
    """Generates, exports and imports symmetric keys."""

    @staticmethod
    def generate() -> SymmetricKey:
        """Generate fresh, independent 128-bit key material."""
        return SymmetricKey(os.urandom(KEY_SIZE))

    @staticmethod
    def export_text(key: SymmetricKey) -> str:
        """Export a key to its 22-character text form."""
        return encode_urlsafe(key.material)

    @staticmethod
    def import_text(text: str) -> SymmetricKey:
        """
        Import a key from its text form.

        Surrounding whitespace is ignored, since keys are pasted by hand.

        Raises:
            CryptoError: If the text is not a 128-bit base64url key
        """
        if not isinstance(text, str):
            raise CryptoError(ErrorCode.E302_BAD_KEY_FORMAT, "Key text must be a string")

        text = text.strip()
        if len(text) != KEY_TEXT_LENGTH:
            raise CryptoError(
                ErrorCode.E302_BAD_KEY_FORMAT,
                f"Key text must be {KEY_TEXT_LENGTH} characters, got {len(text)}",
            )

        try:
            material = decode_urlsafe(text)
        except DecodeError as e:
            raise CryptoError(ErrorCode.E302_BAD_KEY_FORMAT, f"Malformed key text: {e.message}") from e

        return SymmetricKey(material)

