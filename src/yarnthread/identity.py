"""
Yarn - Log in key identity proofs.

A user "logs in" by generating a 128-bit key. The thread stores, for each
user, a proof: the base64 AES-GCM ciphertext of their username under their
key with the fixed zero nonce. Since encryption is deterministic for a given
(key, username), a candidate key is checked by re-deriving the proof and
comparing. No password, salt or key is ever stored.
"""

import hmac
import logging
from typing import Iterable

from . import encoding
from .cipher import CipherEngine
from .errors import ErrorCode, IdentityError
from .keys import SymmetricKey
from .model import Snapshot, User
from .utils import available_image_indexes, validate_username

logger = logging.getLogger(__name__)


class IdentityProofService:
    """Derives and verifies username proofs for log in keys."""

    @staticmethod
    def derive_proof(key: SymmetricKey, username: str) -> str:
        """
        Derive the proof for username under key.

        Pure in (key, username): the same inputs always give the same text.
        """
        ciphertext = CipherEngine.encrypt(key, username.encode("utf-8"), claim=False)
        return encoding.encode(ciphertext)

    @staticmethod
    def verify(key: SymmetricKey, username: str, proof: str) -> bool:
        """Check a stored proof against a candidate key (constant-time)."""
        expected = IdentityProofService.derive_proof(key, username)
        return hmac.compare_digest(expected.encode("utf-8"), proof.encode("utf-8"))

    @staticmethod
    def authenticate(users: Iterable[User], key: SymmetricKey) -> User:
        """
        Find the user a log in key belongs to.

        Users are checked in order and the first verified proof wins.

        Raises:
            IdentityError: If no user's proof verifies under key
        """
        for user in users:
            if not user.encrypted_username:
                continue
            if IdentityProofService.verify(key, user.username, user.encrypted_username):
                logger.info(f"Log in key verified for user: {user.username}")
                return user

        logger.info("Log in key matched no user")
        raise IdentityError(ErrorCode.E401_NO_MATCH, "Log in key is not valid.")

    @staticmethod
    def create_login(snapshot: Snapshot, username: str, image_index: int, key: SymmetricKey) -> User:
        """
        Create the user record for a new log in.

        The key is claimed for the username, so a login key issued here can
        never be used to seal anything else.

        Args:
            snapshot: Current thread, for uniqueness checks
            username: Requested username (surrounding whitespace is trimmed)
            image_index: Profile picture index, unused by other users
            key: Freshly generated log in key

        Returns:
            User carrying the identity proof

        Raises:
            IdentityError: If the username or picture is not acceptable
            CryptoError: If key was already used for something else
        """
        username = username.strip()
        problem = validate_username(username, [user.username for user in snapshot.users])
        if problem:
            raise IdentityError(ErrorCode.E402_INVALID_USERNAME, problem, {"username": username})

        if image_index not in available_image_indexes(snapshot):
            raise IdentityError(
                ErrorCode.E402_INVALID_USERNAME,
                "Please select a profile picture.",
                {"image_index": image_index},
            )

        key.claim(username.encode("utf-8"))
        proof = IdentityProofService.derive_proof(key, username)
        logger.info(f"Created log in for user: {username}")
        return User(username=username, image_index=image_index, encrypted_username=proof)


derive_proof = IdentityProofService.derive_proof
verify = IdentityProofService.verify
