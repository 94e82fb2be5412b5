"""
Yarn - Conversation snapshot model.

A snapshot is the whole thread: users, posts and the ordered root post ids.
It serializes to compact JSON with camelCase field names in a fixed order,
so the same snapshot always produces the same text.

Referential integrity (replies, roots and authors resolve) is the payload's
contract. The codec only guarantees an exact round-trip;
check_references() reports violations for callers that care.
"""

import copy
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from .errors import DecodeError, ErrorCode

logger = logging.getLogger(__name__)

Timestamp = Union[int, float]  # milliseconds since the epoch


def _require(data: Dict[str, Any], key: str, expected: Any) -> Any:
    """Fetch a required field and check its JSON type."""
    if not isinstance(data, dict):
        raise DecodeError(ErrorCode.E102_MALFORMED_PAYLOAD, f"Expected an object with '{key}'")
    if key not in data:
        raise DecodeError(ErrorCode.E102_MALFORMED_PAYLOAD, f"Missing field '{key}'", {"field": key})

    value = data[key]
    if isinstance(value, bool) or not isinstance(value, expected):
        raise DecodeError(
            ErrorCode.E102_MALFORMED_PAYLOAD,
            f"Field '{key}' has the wrong type",
            {"field": key, "type": type(value).__name__},
        )
    return value


def _require_str_list(data: Dict[str, Any], key: str) -> List[str]:
    values = _require(data, key, list)
    if not all(isinstance(v, str) for v in values):
        raise DecodeError(ErrorCode.E102_MALFORMED_PAYLOAD, f"Field '{key}' must hold strings")
    return list(values)


@dataclass
class Like:
    """A user's like on a post."""

    username: str
    liked_at: Timestamp

    def to_dict(self) -> Dict[str, Any]:
        return {"username": self.username, "likedAt": self.liked_at}

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Like":
        return Like(
            username=_require(data, "username", str),
            liked_at=_require(data, "likedAt", (int, float)),
        )


@dataclass
class Post:
    """A post; replies are referenced by id."""

    post_id: str
    username: str
    created_at: Timestamp
    content: str
    reply_post_ids: List[str] = field(default_factory=list)
    likes: List[Like] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "postId": self.post_id,
            "username": self.username,
            "createdAt": self.created_at,
            "content": self.content,
            "replyPostIds": list(self.reply_post_ids),
            "likes": [like.to_dict() for like in self.likes],
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Post":
        return Post(
            post_id=_require(data, "postId", str),
            username=_require(data, "username", str),
            created_at=_require(data, "createdAt", (int, float)),
            content=_require(data, "content", str),
            reply_post_ids=_require_str_list(data, "replyPostIds"),
            likes=[Like.from_dict(o) for o in _require(data, "likes", list)],
        )

    def is_liked_by(self, username: str) -> bool:
        return any(like.username == username for like in self.likes)


@dataclass
class User:
    """A participant and their identity proof."""

    username: str
    image_index: int
    encrypted_username: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "username": self.username,
            "imageIndex": self.image_index,
            "encryptedUsername": self.encrypted_username,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "User":
        return User(
            username=_require(data, "username", str),
            image_index=_require(data, "imageIndex", int),
            encrypted_username=_require(data, "encryptedUsername", str),
        )


@dataclass
class Snapshot:
    """The full conversation state at a point in time."""

    users: List[User] = field(default_factory=list)
    all_posts: List[Post] = field(default_factory=list)
    root_post_ids: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "users": [user.to_dict() for user in self.users],
            "allPosts": [post.to_dict() for post in self.all_posts],
            "rootPostIds": list(self.root_post_ids),
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Snapshot":
        """
        Build a snapshot from its wire dictionary.

        Raises:
            DecodeError: If a required field is missing or mistyped
        """
        return Snapshot(
            users=[User.from_dict(o) for o in _require(data, "users", list)],
            all_posts=[Post.from_dict(o) for o in _require(data, "allPosts", list)],
            root_post_ids=_require_str_list(data, "rootPostIds"),
        )

    def to_json(self) -> str:
        """Serialize to the canonical compact JSON text."""
        return json.dumps(self.to_dict(), separators=(",", ":"), ensure_ascii=False)

    @staticmethod
    def from_json(text: str) -> "Snapshot":
        """
        Parse canonical JSON text.

        Raises:
            DecodeError: If the text is not JSON or not a snapshot
        """
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise DecodeError(
                ErrorCode.E102_MALFORMED_PAYLOAD, f"Snapshot is not valid JSON: {e.msg}"
            ) from e
        return Snapshot.from_dict(data)

    def copy(self) -> "Snapshot":
        """Deep copy, so mutations never touch a snapshot already shared."""
        return copy.deepcopy(self)

    def find_post(self, post_id: str) -> Optional[Post]:
        return next((post for post in self.all_posts if post.post_id == post_id), None)

    def find_user(self, username: str) -> Optional[User]:
        return next((user for user in self.users if user.username == username), None)

    def check_references(self) -> List[str]:
        """
        List referential problems without raising.

        Returns:
            Human-readable problems; empty when every root id, reply id and
            author resolves
        """
        post_ids = {post.post_id for post in self.all_posts}
        usernames = {user.username for user in self.users}
        problems = []

        for post_id in self.root_post_ids:
            if post_id not in post_ids:
                problems.append(f"root post {post_id} does not exist")

        for post in self.all_posts:
            if post.username not in usernames:
                problems.append(f"post {post.post_id} has unknown author {post.username}")
            for reply_id in post.reply_post_ids:
                if reply_id not in post_ids:
                    problems.append(f"post {post.post_id} replies to missing post {reply_id}")

        return problems
