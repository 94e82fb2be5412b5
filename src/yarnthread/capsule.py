"""
Yarn - Encrypted state capsule codec.

Turns a conversation snapshot into a URL fragment and back:

    keyless:  b64(AES-GCM(key, zero-nonce, compress(json(snapshot))))
    keyed:    <keyless> ":" b64url(key)

A keyed fragment is self-contained and is what the share action hands out.
A keyless fragment needs a key held by the current session.

The delimiter is split on its last occurrence. Neither base64 alphabet can
produce ':', so the split is unambiguous; splitting on the last one keeps it
correct even for a payload text that contained the delimiter.
"""

import logging
from typing import Optional, Tuple

from . import encoding
from .cipher import CipherEngine
from .compression import StreamCompressor
from .constants import DEFAULT_COMPRESSION_FORMAT, FRAGMENT_DELIMITER
from .errors import ErrorCode, ProtocolError
from .keys import SymmetricKey, SymmetricKeyManager
from .model import Snapshot

logger = logging.getLogger(__name__)


def parse_fragment(fragment: str) -> Tuple[str, Optional[str]]:
    """
    Split a fragment into ciphertext text and key text.

    Returns:
        (ciphertext_text, key_text), with key_text None for a keyless fragment
    """
    ciphertext_text, delimiter, key_text = fragment.rpartition(FRAGMENT_DELIMITER)
    if not delimiter:
        return fragment, None
    return ciphertext_text, key_text


def has_embedded_key(fragment: str) -> bool:
    """True if the fragment carries its own key."""
    return parse_fragment(fragment)[1] is not None


class CapsuleCodec:
    """Encode/decode pipeline for conversation snapshots.

    Attributes:
        compressor: Stream compressor for the configured format
    """

    def __init__(self, compression_format: str = DEFAULT_COMPRESSION_FORMAT):
        """Initialize the codec.

        Args:
            compression_format: Compression format id (gzip, deflate, deflate-raw)
        """
        self.compressor = StreamCompressor(compression_format)

    def encode_keyless(self, snapshot: Snapshot, key: SymmetricKey) -> str:
        """
        Encode a snapshot to ciphertext text.

        Raises:
            CryptoError: If key already encrypted a different snapshot
        """
        compressed = self.compressor.compress(snapshot.to_json())
        ciphertext = CipherEngine.encrypt(key, compressed)
        text = encoding.encode(ciphertext)
        logger.debug(
            f"Encoded capsule: {len(snapshot.all_posts)} posts, "
            f"{len(compressed)} compressed bytes, {len(text)} chars"
        )
        return text

    def encode_keyed(self, snapshot: Snapshot, key: SymmetricKey) -> str:
        """Encode a snapshot to a self-contained keyed fragment."""
        ciphertext_text = self.encode_keyless(snapshot, key)
        return f"{ciphertext_text}{FRAGMENT_DELIMITER}{SymmetricKeyManager.export_text(key)}"

    def decode(self, ciphertext_text: str, key: SymmetricKey) -> Snapshot:
        """
        Decode ciphertext text back to a snapshot.

        Stages run in order (base64, AEAD, decompress, JSON) and the first
        failure is raised; nothing is returned on a partial decode.

        Raises:
            DecodeError: Malformed base64 text or snapshot payload
            CryptoError: Authentication tag did not verify
            CompressionError: Corrupt compressed stream
        """
        ciphertext = encoding.decode(ciphertext_text)
        compressed = CipherEngine.decrypt(key, ciphertext)
        json_text = self.compressor.decompress(compressed)
        snapshot = Snapshot.from_json(json_text)
        logger.debug(f"Decoded capsule: {len(snapshot.all_posts)} posts")
        return snapshot

    def decode_keyed(self, fragment: str) -> Snapshot:
        """
        Decode a keyed fragment with its embedded key.

        Raises:
            ProtocolError: If the fragment has no embedded key
            CryptoError: If the embedded key text is malformed or wrong
        """
        ciphertext_text, key_text = parse_fragment(fragment)
        if key_text is None:
            raise ProtocolError(
                ErrorCode.E501_MISSING_EMBEDDED_KEY,
                "Could not load thread. Make sure the link was generated using the "
                "share feature and not copied from the browser address bar.",
            )
        return self.decode(ciphertext_text, SymmetricKeyManager.import_text(key_text))


_default_codec = CapsuleCodec()


def encode_keyless(snapshot: Snapshot, key: SymmetricKey) -> str:
    return _default_codec.encode_keyless(snapshot, key)


def encode_keyed(snapshot: Snapshot, key: SymmetricKey) -> str:
    return _default_codec.encode_keyed(snapshot, key)


def decode(ciphertext_text: str, key: SymmetricKey) -> Snapshot:
    return _default_codec.decode(ciphertext_text, key)


def decode_keyed(fragment: str) -> Snapshot:
    return _default_codec.decode_keyed(fragment)
