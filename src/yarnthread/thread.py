"""
Yarn - Thread operations.

Mutations and queries the presentation layer performs on a snapshot:
starting threads, replying, liking, and looking posts up. Every mutation
returns a new snapshot and leaves its input untouched, so a snapshot that
was already encoded into a fragment never changes underneath it.
"""

import base64
import logging
from typing import List, Optional

from .constants import (
    DEFAULT_POST_CONTENT,
    DEFAULT_POST_ID,
    DEFAULT_USERNAME,
    POST_ID_RANDOM_BYTES,
    POST_SIZE_LIMIT,
)
from .errors import ErrorCode, ThreadError
from .model import Like, Post, Snapshot, User
from .providers import DEFAULT_PROVIDER, Provider

logger = logging.getLogger(__name__)


def default_snapshot(provider: Provider = DEFAULT_PROVIDER) -> Snapshot:
    """The welcome thread shown when there is no fragment or it failed to load."""
    return Snapshot(
        users=[User(username=DEFAULT_USERNAME, image_index=0, encrypted_username="")],
        all_posts=[
            Post(
                post_id=DEFAULT_POST_ID,
                username=DEFAULT_USERNAME,
                created_at=provider.now_millis(),
                content=DEFAULT_POST_CONTENT,
            )
        ],
        root_post_ids=[DEFAULT_POST_ID],
    )


def generate_post_id(snapshot: Snapshot, provider: Provider = DEFAULT_PROVIDER) -> str:
    """Short random post id (base64 of 3 bytes), unique within the snapshot."""
    while True:
        post_id = base64.b64encode(provider.random_bytes(POST_ID_RANDOM_BYTES)).decode("ascii")
        if snapshot.find_post(post_id) is None:
            return post_id


def get_post(snapshot: Snapshot, post_id: str) -> Post:
    """
    Look a post up by id.

    Raises:
        ThreadError: If no post has that id
    """
    post = snapshot.find_post(post_id)
    if post is None:
        raise ThreadError(ErrorCode.E601_POST_NOT_FOUND, f"Could not find post: {post_id}")
    return post


def get_parent_post(snapshot: Snapshot, post_id: str) -> Optional[Post]:
    """The root post a reply belongs to, or None for a root post."""
    if post_id in snapshot.root_post_ids:
        return None

    for root_id in snapshot.root_post_ids:
        root = get_post(snapshot, root_id)
        if post_id in root.reply_post_ids:
            return root

    return None


def _clean_content(content: str) -> str:
    if len(content) > POST_SIZE_LIMIT:
        raise ThreadError(
            ErrorCode.E602_INVALID_CONTENT,
            f"Post is {len(content) - POST_SIZE_LIMIT} characters over the limit",
            {"limit": POST_SIZE_LIMIT, "length": len(content)},
        )

    content = content.strip()
    if not content:
        raise ThreadError(ErrorCode.E602_INVALID_CONTENT, "Post cannot be empty")
    return content


def _new_post(snapshot: Snapshot, user: User, content: str, provider: Provider) -> Post:
    return Post(
        post_id=generate_post_id(snapshot, provider),
        username=user.username,
        created_at=provider.now_millis(),
        content=_clean_content(content),
    )


def add_user(snapshot: Snapshot, user: User) -> Snapshot:
    """Append a user created by IdentityProofService.create_login."""
    updated = snapshot.copy()
    updated.users.append(user)
    return updated


def new_thread(snapshot: Snapshot, user: User, content: str, provider: Provider = DEFAULT_PROVIDER) -> Snapshot:
    """Start a new root post."""
    updated = snapshot.copy()
    post = _new_post(snapshot, user, content, provider)
    updated.all_posts.append(post)
    updated.root_post_ids.append(post.post_id)
    logger.debug(f"New thread {post.post_id} by {user.username}")
    return updated


def reply(
    snapshot: Snapshot,
    user: User,
    parent_post_id: str,
    content: str,
    provider: Provider = DEFAULT_PROVIDER,
) -> Snapshot:
    """
    Reply to a root post.

    Raises:
        ThreadError: If the parent does not exist or is itself a reply
    """
    get_post(snapshot, parent_post_id)
    if parent_post_id not in snapshot.root_post_ids:
        raise ThreadError(
            ErrorCode.E601_POST_NOT_FOUND,
            "Replies can only be made to a thread's first post",
            {"post_id": parent_post_id},
        )

    updated = snapshot.copy()
    post = _new_post(snapshot, user, content, provider)
    updated.all_posts.append(post)
    get_post(updated, parent_post_id).reply_post_ids.append(post.post_id)
    logger.debug(f"Reply {post.post_id} to {parent_post_id} by {user.username}")
    return updated


def toggle_like(snapshot: Snapshot, user: User, post_id: str, provider: Provider = DEFAULT_PROVIDER) -> Snapshot:
    """Like a post, or remove the user's like if already present."""
    updated = snapshot.copy()
    post = get_post(updated, post_id)

    if post.is_liked_by(user.username):
        post.likes = [like for like in post.likes if like.username != user.username]
    else:
        post.likes.append(Like(username=user.username, liked_at=provider.now_millis()))

    return updated


def search_posts(snapshot: Snapshot, query: str) -> List[Post]:
    """Posts containing query (case-insensitive), newest first."""
    needle = query.lower()
    return [post for post in reversed(snapshot.all_posts) if needle in post.content.lower()]


def liked_posts(snapshot: Snapshot, username: str) -> List[Post]:
    """Posts the user has liked, newest first."""
    return [post for post in reversed(snapshot.all_posts) if post.is_liked_by(username)]
