"""
Yarn - Thread session and load state machine.

A ThreadSession is the context for one open conversation. It owns the
in-memory session secret, the current snapshot, and the fragment that is
currently shareable (the browser's location hash).

Load lifecycle:
- EMPTY + no fragment      -> DEFAULT  (welcome thread)
- EMPTY + keyed fragment   -> OPENED   (then re-saved keyless, so the link
                                        key does not stay in the fragment)
- loaded + fragment change -> UPDATED  (decoded with the session)
- any failure              -> FALLBACK (welcome thread, error recorded)

Session secret:
The secret is minted once when the session starts and is never serialized.
Capsules use a zero nonce, so each save must use a key that has encrypted
nothing else. Every save therefore derives a fresh 128-bit subkey from the
secret with HKDF-SHA256 (info "yarn-session-save-<n>"). Decoding a keyless
fragment tries this session's subkeys newest first; the AEAD tag picks the
right one. Only the most recent SESSION_SAVE_KEY_LIMIT subkeys are kept, so
a foreign fragment costs a bounded number of decryption attempts. The
subkey index keeps counting past the limit; no subkey is derived twice.

Ordering:
All operations take the session lock, so a decode triggered by a fragment
change completes or fails before a later save reads the snapshot.
"""

import asyncio
import collections
import logging
import time
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Callable, Deque, List, Optional, Union

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from .capsule import CapsuleCodec, parse_fragment
from .constants import KEY_SIZE, SESSION_SAVE_KEY_LIMIT, SESSION_SUBKEY_INFO_PREFIX
from .errors import CryptoError, ErrorCode, ProtocolError, YarnError
from .identity import IdentityProofService
from .keys import SymmetricKey, SymmetricKeyManager
from .model import Snapshot
from .providers import DEFAULT_PROVIDER, Provider
from .thread import default_snapshot

logger = logging.getLogger(__name__)


class SessionState(Enum):
    """Load states of a thread session."""

    EMPTY = auto()  # Nothing loaded yet
    DEFAULT = auto()  # No fragment; welcome thread
    OPENED = auto()  # Keyed fragment opened
    UPDATED = auto()  # Keyless fragment applied with the session
    FALLBACK = auto()  # A load failed; welcome thread


@dataclass
class StateTransition:
    """Represents a state transition."""

    from_state: SessionState
    to_state: SessionState
    timestamp: float = field(default_factory=time.time)


@dataclass
class LoadResult:
    """Outcome of loading or applying a fragment. Never raised, always returned."""

    snapshot: Snapshot
    state: SessionState
    error: Optional[YarnError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ThreadSession:
    """
    Context for one open conversation.

    Attributes:
        codec: Capsule codec used for every encode/decode
        provider: Clock/randomness for default snapshots
        state: Current SessionState
        snapshot: Current conversation snapshot (None until loaded)
        fragment: Current shareable fragment (keyless once loaded)
        last_error: Error from the most recent failed load, if any
        on_fragment_installed: Called with each new fragment to install
    """

    def __init__(
        self,
        codec: Optional[CapsuleCodec] = None,
        provider: Provider = DEFAULT_PROVIDER,
        max_save_keys: int = SESSION_SAVE_KEY_LIMIT,
    ):
        self.codec = codec or CapsuleCodec()
        self.provider = provider
        self._secret = SymmetricKeyManager.generate()
        self._save_keys: Deque[SymmetricKey] = collections.deque(maxlen=max_save_keys)
        self._save_counter = 0
        self._lock = asyncio.Lock()

        self.state = SessionState.EMPTY
        self.snapshot: Optional[Snapshot] = None
        self.fragment = ""
        self.last_error: Optional[YarnError] = None
        self.transition_history: List[StateTransition] = []
        self.max_history = 100

        self.on_fragment_installed: Optional[Callable[[str], None]] = None

    @property
    def is_loaded(self) -> bool:
        return self.state is not SessionState.EMPTY

    @property
    def save_count(self) -> int:
        """Number of keyless fragments this session has produced."""
        return self._save_counter

    async def load(self, fragment: str) -> LoadResult:
        """
        Initial load from the fragment the session was opened with.

        Only an empty or keyed fragment is accepted. A keyless fragment
        cannot have come from the share action and is rejected.
        """
        async with self._lock:
            if self.is_loaded:
                logger.warning("Session already loaded; treating load as a fragment change")
                return self._apply_locked(fragment)
            return self._load_locked(fragment)

    async def apply_fragment(self, fragment: str) -> LoadResult:
        """Apply an external fragment change (e.g. history navigation)."""
        async with self._lock:
            if not self.is_loaded:
                return self._load_locked(fragment)
            return self._apply_locked(fragment)

    async def save(self, snapshot: Snapshot) -> str:
        """
        Save an edited snapshot as a keyless fragment and install it.

        Raises:
            ProtocolError: If called before the session finished loading
        """
        async with self._lock:
            if not self.is_loaded:
                raise ProtocolError(
                    ErrorCode.E502_SESSION_NOT_LOADED,
                    "Attempted to save a snapshot before the thread was loaded",
                )
            return self._save_locked(snapshot)

    async def share(self) -> str:
        """Keyed fragment of the current snapshot under a freshly minted key."""
        async with self._lock:
            if self.snapshot is None:
                raise ProtocolError(ErrorCode.E502_SESSION_NOT_LOADED, "Nothing to share yet")
            snapshot = self.snapshot
        return await produce_share_fragment(snapshot, self.codec)

    async def authenticate(self, candidate_key: Union[SymmetricKey, str]) -> str:
        """Username the log in key belongs to in the current snapshot."""
        async with self._lock:
            if self.snapshot is None:
                raise ProtocolError(ErrorCode.E502_SESSION_NOT_LOADED, "No thread loaded")
            snapshot = self.snapshot
        return await authenticate(snapshot, candidate_key)

    def _load_locked(self, fragment: str) -> LoadResult:
        if fragment == "":
            self.snapshot = default_snapshot(self.provider)
            self._transition(SessionState.DEFAULT)
            return LoadResult(self.snapshot, self.state)

        try:
            snapshot = self.codec.decode_keyed(fragment)
        except YarnError as e:
            return self._fall_back(e)

        self.snapshot = snapshot
        self._transition(SessionState.OPENED)
        self._save_locked(snapshot)
        return LoadResult(snapshot, self.state)

    def _apply_locked(self, fragment: str) -> LoadResult:
        if fragment == "":
            self.snapshot = default_snapshot(self.provider)
            self._transition(SessionState.DEFAULT)
            return LoadResult(self.snapshot, self.state)

        ciphertext_text, key_text = parse_fragment(fragment)

        try:
            if key_text is not None:
                snapshot = self.codec.decode_keyed(fragment)
            else:
                snapshot = self._decode_with_session(ciphertext_text)
        except YarnError as e:
            return self._fall_back(e)

        self.snapshot = snapshot
        self._transition(SessionState.UPDATED)

        if key_text is not None:
            # A pasted share link; keep its key out of the shareable slot
            self._save_locked(snapshot)
        else:
            self.fragment = fragment

        return LoadResult(snapshot, self.state)

    def _save_locked(self, snapshot: Snapshot) -> str:
        key = self._derive_save_key(self._save_counter)
        fragment = self.codec.encode_keyless(snapshot, key)
        self._save_keys.append(key)
        self._save_counter += 1
        self.snapshot = snapshot.copy()
        self._install(fragment)
        logger.debug(f"Session save #{self._save_counter} installed")
        return fragment

    def _decode_with_session(self, ciphertext_text: str) -> Snapshot:
        for key in reversed(self._save_keys):
            try:
                return self.codec.decode(ciphertext_text, key)
            except CryptoError as e:
                if e.code is not ErrorCode.E301_AUTHENTICATION_FAILED:
                    raise

        raise CryptoError(
            ErrorCode.E301_AUTHENTICATION_FAILED,
            "Fragment was not produced by this session",
            {"session_saves": self._save_counter, "keys_kept": len(self._save_keys)},
        )

    def _derive_save_key(self, index: int) -> SymmetricKey:
        hkdf = HKDF(
            algorithm=hashes.SHA256(),
            length=KEY_SIZE,
            salt=None,
            info=f"{SESSION_SUBKEY_INFO_PREFIX}{index}".encode("utf-8"),
        )
        return SymmetricKey(hkdf.derive(self._secret.material))

    def _install(self, fragment: str) -> None:
        self.fragment = fragment
        if self.on_fragment_installed:
            try:
                self.on_fragment_installed(fragment)
            except Exception as e:
                logger.error(f"Fragment install callback error: {e}")

    def _fall_back(self, error: YarnError) -> LoadResult:
        logger.warning(f"Could not load thread, falling back to default: {error}")
        self.last_error = error
        self.snapshot = default_snapshot(self.provider)
        self._transition(SessionState.FALLBACK)
        return LoadResult(self.snapshot, self.state, error)

    def _transition(self, new_state: SessionState) -> None:
        old_state = self.state
        self.state = new_state
        self.transition_history.append(StateTransition(old_state, new_state))

        if len(self.transition_history) > self.max_history:
            self.transition_history = self.transition_history[-self.max_history :]

        logger.info(f"Session state: {old_state.name} -> {new_state.name}")


async def produce_share_fragment(snapshot: Snapshot, codec: Optional[CapsuleCodec] = None) -> str:
    """Keyed fragment of snapshot under a freshly minted key."""
    codec = codec or CapsuleCodec()
    return codec.encode_keyed(snapshot, SymmetricKeyManager.generate())


async def open_fragment(fragment: str, codec: Optional[CapsuleCodec] = None) -> Snapshot:
    """
    Decode a keyed fragment.

    Raises:
        ProtocolError: If the fragment has no embedded key
        DecodeError, CryptoError, CompressionError: If decoding fails
    """
    codec = codec or CapsuleCodec()
    return codec.decode_keyed(fragment)


async def save_snapshot(snapshot: Snapshot, session: ThreadSession) -> str:
    """Keyless fragment for an in-session edit."""
    return await session.save(snapshot)


async def authenticate(snapshot: Snapshot, candidate_key: Union[SymmetricKey, str]) -> str:
    """
    Username whose identity proof verifies under candidate_key.

    Raises:
        CryptoError: If candidate_key is malformed key text
        IdentityError: If no user matches
    """
    if isinstance(candidate_key, str):
        candidate_key = SymmetricKeyManager.import_text(candidate_key)
    return IdentityProofService.authenticate(snapshot.users, candidate_key).username
