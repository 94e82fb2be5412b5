"""
Yarn - Custom Exception Classes and Error Codes

This module defines all custom exceptions and error codes used throughout
the capsule codec. Each error has a unique code for logging and debugging.

Every core operation raises one of these typed errors instead of leaking a
library exception past its own boundary. The session layer turns them into
a fallback snapshot; nothing here is fatal to the process.

Version: 1.0.0
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """Enumeration of all Yarn error codes."""

    # General Errors (E001-E099)
    E001_UNKNOWN_ERROR = "E001"

    # Decode Errors (E100-E199)
    E100_DECODE_ERROR = "E100"
    E101_MALFORMED_TEXT = "E101"
    E102_MALFORMED_PAYLOAD = "E102"

    # Compression Errors (E200-E299)
    E200_COMPRESSION_ERROR = "E200"
    E201_CORRUPT_STREAM = "E201"
    E202_UNSUPPORTED_FORMAT = "E202"

    # Crypto Errors (E300-E399)
    E300_CRYPTO_ERROR = "E300"
    E301_AUTHENTICATION_FAILED = "E301"
    E302_BAD_KEY_FORMAT = "E302"
    E303_KEY_REUSE = "E303"

    # Identity Errors (E400-E499)
    E400_IDENTITY_ERROR = "E400"
    E401_NO_MATCH = "E401"
    E402_INVALID_USERNAME = "E402"

    # Protocol Errors (E500-E599)
    E500_PROTOCOL_ERROR = "E500"
    E501_MISSING_EMBEDDED_KEY = "E501"
    E502_SESSION_NOT_LOADED = "E502"

    # Thread Errors (E600-E699)
    E600_THREAD_ERROR = "E600"
    E601_POST_NOT_FOUND = "E601"
    E602_INVALID_CONTENT = "E602"
    E603_NO_PICTURE_AVAILABLE = "E603"

    # Config Errors (E700-E799)
    E700_CONFIG_ERROR = "E700"
    E702_CONFIG_SAVE_FAILED = "E702"
    E703_UNKNOWN_SETTING = "E703"
    E704_CONFIG_PARSE_ERROR = "E704"


class YarnError(Exception):
    """Base exception class for all Yarn errors.

    Attributes:
        code: Error code from ErrorCode enum
        message: Human-readable error message
        details: Additional error details (optional)
    """

    def __init__(self, code: ErrorCode, message: str, details: Optional[Dict[str, Any]] = None):
        """Initialize a Yarn error.

        Args:
            code: Error code from ErrorCode enum
            message: Human-readable error message
            details: Additional error context (optional)
        """
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(f"[{code.value}] {message}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for serialization.

        Returns:
            Dictionary containing error information
        """
        return {"code": self.code.value, "message": self.message, "details": self.details}


class DecodeError(YarnError):
    """Exception raised when text or a decrypted payload cannot be decoded.

    This covers invalid base64 alphabet/padding and snapshot payloads that
    are not well-formed JSON of the expected shape.
    """

    def __init__(
        self,
        code: ErrorCode = ErrorCode.E101_MALFORMED_TEXT,
        message: str = "Malformed text",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(code, message, details)


class CompressionError(YarnError):
    """Exception raised for compression failures.

    This includes corrupt streams and unknown compression formats.
    """

    def __init__(
        self,
        code: ErrorCode = ErrorCode.E201_CORRUPT_STREAM,
        message: str = "Corrupt compressed stream",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(code, message, details)


class CryptoError(YarnError):
    """Exception raised for cryptographic operation failures.

    This includes tag verification failures, malformed key text and
    attempts to encrypt a second plaintext under a single-use key.
    """

    def __init__(
        self,
        code: ErrorCode = ErrorCode.E300_CRYPTO_ERROR,
        message: str = "Cryptographic operation failed",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(code, message, details)


class IdentityError(YarnError):
    """Exception raised when a login key matches no user or a username is invalid."""

    def __init__(
        self,
        code: ErrorCode = ErrorCode.E401_NO_MATCH,
        message: str = "Log in key is not valid",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(code, message, details)


class ProtocolError(YarnError):
    """Exception raised when a fragment does not follow the share protocol."""

    def __init__(
        self,
        code: ErrorCode = ErrorCode.E501_MISSING_EMBEDDED_KEY,
        message: str = "Fragment has no embedded key",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(code, message, details)


class ThreadError(YarnError):
    """Exception raised for invalid thread mutations (posts, replies, likes)."""

    def __init__(
        self,
        code: ErrorCode = ErrorCode.E600_THREAD_ERROR,
        message: str = "Thread operation failed",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(code, message, details)


class ConfigError(YarnError):
    """Exception raised for configuration failures.

    This includes loading, parsing, and saving configuration files.
    """

    def __init__(
        self,
        code: ErrorCode = ErrorCode.E700_CONFIG_ERROR,
        message: str = "Configuration operation failed",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(code, message, details)
