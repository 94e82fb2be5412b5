"""
Yarn - Clock and randomness providers.

Post ids and timestamps come from a provider so tests can pass a
deterministic one. Key material never goes through a provider; keys always
come from the operating system CSPRNG (see keys.py).
"""

import secrets
import time


class Provider:
    """Source of time and non-key randomness."""

    def now_millis(self) -> int:
        """Current time in milliseconds since the epoch."""
        raise NotImplementedError

    def random_bytes(self, length: int) -> bytes:
        """Random bytes for identifiers."""
        raise NotImplementedError


class SystemProvider(Provider):
    """Provider backed by the system clock and the secrets module."""

    def now_millis(self) -> int:
        return int(time.time() * 1000)

    def random_bytes(self, length: int) -> bytes:
        return secrets.token_bytes(length)


DEFAULT_PROVIDER = SystemProvider()
