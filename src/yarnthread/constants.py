"""
Yarn - Global Constants and Configuration Values

This module defines all constants used throughout the Yarn capsule codec.
All magic numbers and configuration defaults are centralized here.

Version: 1.0.0
"""

# Version Information
VERSION = "1.0.0"
APP_NAME = "Yarn"

# Cryptography Constants
KEY_SIZE = 16  # 128 bits for AES-128-GCM
NONCE_SIZE = 12  # 96 bits for GCM
TAG_SIZE = 16  # 128-bit GCM authentication tag
ZERO_NONCE = bytes(NONCE_SIZE)
KEY_TEXT_LENGTH = 22  # unpadded base64url of KEY_SIZE bytes
SESSION_SUBKEY_INFO_PREFIX = "yarn-session-save-"
SESSION_SAVE_KEY_LIMIT = 256  # recent save subkeys kept for decoding

# Fragment Wire Format
FRAGMENT_DELIMITER = ":"

# Compression
DEFAULT_COMPRESSION_FORMAT = "gzip"
SUPPORTED_COMPRESSION_FORMATS = ("gzip", "deflate", "deflate-raw")
COMPRESSION_LEVEL = 9

# Thread Limits
POST_SIZE_LIMIT = 500
POST_ID_RANDOM_BYTES = 3
USERNAME_MIN_LENGTH = 4
USERNAME_MAX_LENGTH = 50
USERNAME_PATTERN = r"^[a-z0-9.]+$"
PROFILE_PICTURE_COUNT = 4

# Default Thread
DEFAULT_USERNAME = "iamyarn"
DEFAULT_POST_ID = "xrj391"
DEFAULT_POST_CONTENT = (
    "Hi I'm Yarn! \U0001f60a\n"
    "A serverless, end-to-end encrypted, thread experience.\n"
    "Feel free to start a new thread or reply to this one.\n"
    "Don't forget to share! "
)

# Share Links
DEFAULT_SHARE_BASE_URL = "http://localhost:3000/"

# File Paths
DEFAULT_DATA_DIR = "~/.yarn"
CONFIG_FILENAME = "config.toml"

# Logging Configuration
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
