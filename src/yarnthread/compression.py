"""
Yarn - Text compression for capsule payloads.

Supports three stream formats:
- gzip: RFC 1952 (default)
- deflate: RFC 1950 zlib wrapper
- deflate-raw: RFC 1951 raw deflate

The gzip header timestamp is pinned to zero so the same text always
compresses to the same bytes.
"""

import gzip
import logging
import zlib

from .constants import (
    COMPRESSION_LEVEL,
    DEFAULT_COMPRESSION_FORMAT,
    SUPPORTED_COMPRESSION_FORMATS,
)
from .errors import CompressionError, ErrorCode

logger = logging.getLogger(__name__)

_RAW_WBITS = -zlib.MAX_WBITS


class StreamCompressor:
    """Reversible text <-> bytes compression with a fixed format id."""

    def __init__(self, format: str = DEFAULT_COMPRESSION_FORMAT, level: int = COMPRESSION_LEVEL):
        if format not in SUPPORTED_COMPRESSION_FORMATS:
            raise CompressionError(
                ErrorCode.E202_UNSUPPORTED_FORMAT,
                f"Unsupported compression format: {format}",
                {"format": format, "supported": list(SUPPORTED_COMPRESSION_FORMATS)},
            )
        self.format = format
        self.level = level

    def compress(self, text: str) -> bytes:
        """Compress UTF-8 text to bytes."""
        data = text.encode("utf-8")

        if self.format == "gzip":
            return gzip.compress(data, compresslevel=self.level, mtime=0)
        if self.format == "deflate":
            return zlib.compress(data, self.level)

        compressor = zlib.compressobj(self.level, zlib.DEFLATED, _RAW_WBITS)
        return compressor.compress(data) + compressor.flush()

    def decompress(self, data: bytes) -> str:
        """
        Decompress bytes back to text.

        Raises:
            CompressionError: If the stream is corrupt, truncated, or does
                not decode as UTF-8
        """
        try:
            if self.format == "gzip":
                raw = gzip.decompress(data)
            elif self.format == "deflate":
                raw = zlib.decompress(data)
            else:
                decompressor = zlib.decompressobj(_RAW_WBITS)
                raw = decompressor.decompress(data) + decompressor.flush()
                if not decompressor.eof:
                    raise EOFError("Compressed stream ended before the end-of-stream marker")
            return raw.decode("utf-8")
        except (OSError, EOFError, zlib.error, UnicodeDecodeError) as e:
            logger.debug(f"Decompression failed ({self.format}): {e}")
            raise CompressionError(
                ErrorCode.E201_CORRUPT_STREAM,
                f"Corrupt {self.format} stream: {e}",
                {"format": self.format, "length": len(data)},
            ) from e


_default_compressor = StreamCompressor()


def compress(text: str) -> bytes:
    """Compress text with the default (gzip) format."""
    return _default_compressor.compress(text)


def decompress(data: bytes) -> str:
    """Decompress bytes with the default (gzip) format."""
    return _default_compressor.decompress(data)
