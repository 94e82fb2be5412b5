"""
Yarn - Serverless, End-to-End Encrypted Threads

A conversation snapshot is compressed, encrypted with a single-use key and
carried entirely in a URL fragment. There is no server; the link is the
thread.

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
__license__ = "MIT"

# Import core modules for easy access
from .capsule import CapsuleCodec
from .config import Config
from .constants import APP_NAME, VERSION
from .errors import (
    CompressionError,
    ConfigError,
    CryptoError,
    DecodeError,
    ErrorCode,
    IdentityError,
    ProtocolError,
    ThreadError,
    YarnError,
)
from .identity import IdentityProofService
from .keys import SymmetricKey, SymmetricKeyManager
from .model import Like, Post, Snapshot, User
from .session import (
    LoadResult,
    SessionState,
    ThreadSession,
    authenticate,
    open_fragment,
    produce_share_fragment,
    save_snapshot,
)

__all__ = [
    "APP_NAME",
    "VERSION",
    "CapsuleCodec",
    "CompressionError",
    "Config",
    "ConfigError",
    "CryptoError",
    "DecodeError",
    "ErrorCode",
    "IdentityError",
    "IdentityProofService",
    "Like",
    "LoadResult",
    "Post",
    "ProtocolError",
    "SessionState",
    "Snapshot",
    "SymmetricKey",
    "SymmetricKeyManager",
    "ThreadError",
    "ThreadSession",
    "User",
    "YarnError",
    "__license__",
    "__version__",
    "authenticate",
    "open_fragment",
    "produce_share_fragment",
    "save_snapshot",
]
