"""
Yarn - Authenticated encryption for capsules and identity proofs.

AES-128-GCM with a fixed all-zero 96-bit nonce, a 128-bit tag and no
associated data. The plaintext is the compressed snapshot bytes. Fixed-nonce GCM is only sound while every key
encrypts at most one distinct plaintext; encrypt() claims the key for its
plaintext and refuses a second, different one.

The fixed nonce is also what makes identity proofs deterministic: the same
key and username always produce the same ciphertext.
"""

import logging

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .constants import TAG_SIZE, ZERO_NONCE
from .errors import CryptoError, ErrorCode
from .keys import SymmetricKey

logger = logging.getLogger(__name__)


class CipherEngine:
    """AEAD encryption over opaque byte payloads."""

    @staticmethod
    def encrypt(key: SymmetricKey, plaintext: bytes, claim: bool = True) -> bytes:
        """
        Encrypt plaintext under key with the zero nonce.

        Args:
            key: Symmetric key
            plaintext: Bytes to encrypt
            claim: Bind the key to this plaintext. Only callers that compare
                the result and discard it (proof verification) pass False.

        Returns:
            Ciphertext with the GCM tag appended

        Raises:
            CryptoError: If the key already encrypted a different plaintext
        """
        if claim:
            key.claim(plaintext)

        return AESGCM(key.material).encrypt(ZERO_NONCE, plaintext, None)

    @staticmethod
    def decrypt(key: SymmetricKey, ciphertext: bytes) -> bytes:
        """
        Decrypt and authenticate ciphertext.

        Raises:
            CryptoError: If the tag does not verify (wrong key or tampered data)
        """
        if len(ciphertext) < TAG_SIZE:
            raise CryptoError(
                ErrorCode.E301_AUTHENTICATION_FAILED,
                "Ciphertext is shorter than the authentication tag",
                {"length": len(ciphertext)},
            )

        try:
            return AESGCM(key.material).decrypt(ZERO_NONCE, ciphertext, None)
        except InvalidTag as e:
            logger.debug("Capsule authentication tag did not verify")
            raise CryptoError(
                ErrorCode.E301_AUTHENTICATION_FAILED,
                "Decryption failed. Wrong key or corrupted ciphertext.",
            ) from e


encrypt = CipherEngine.encrypt
decrypt = CipherEngine.decrypt
