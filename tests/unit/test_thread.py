"""
Unit tests for yarnthread.thread module.

Tests thread mutations and queries on snapshots.
"""

import pytest

from yarnthread.constants import DEFAULT_POST_ID, DEFAULT_USERNAME, POST_SIZE_LIMIT
from yarnthread.errors import ErrorCode, ThreadError
from yarnthread.model import User
from yarnthread.thread import (
    default_snapshot,
    generate_post_id,
    get_parent_post,
    get_post,
    liked_posts,
    new_thread,
    reply,
    search_posts,
    toggle_like,
)

ALICE = User(username="alice", image_index=0)
BOB = User(username="bob", image_index=1)


class TestDefaultSnapshot:
    """Test the welcome thread."""

    def test_contents(self, provider):
        """Test the default user and post."""
        snapshot = default_snapshot(provider)

        assert [u.username for u in snapshot.users] == [DEFAULT_USERNAME]
        assert snapshot.users[0].encrypted_username == ""
        assert snapshot.root_post_ids == [DEFAULT_POST_ID]
        assert snapshot.all_posts[0].username == DEFAULT_USERNAME
        assert snapshot.check_references() == []

    def test_timestamp_from_provider(self, provider):
        """Test that the post time comes from the provider."""
        snapshot = default_snapshot(provider)
        assert snapshot.all_posts[0].created_at == provider.current


class TestPostIds:
    """Test post id generation."""

    def test_format(self, provider, sample_snapshot):
        """Test that ids are four base64 characters."""
        post_id = generate_post_id(sample_snapshot, provider)
        assert len(post_id) == 4

    def test_collision_skipped(self, provider, sample_snapshot):
        """Test that an id already in use is never returned."""
        # Counter values 1 and 2 encode to "AAAB" and "AAAC", both already used
        assert generate_post_id(sample_snapshot, provider) == "AAAD"
        assert provider.counter == 3


class TestMutations:
    """Test new threads, replies and likes."""

    def test_new_thread(self, provider, sample_snapshot):
        """Test that a new root post is appended."""
        updated = new_thread(sample_snapshot, ALICE, "  a new topic  ", provider)

        post = updated.all_posts[-1]
        assert post.content == "a new topic"
        assert post.username == "alice"
        assert updated.root_post_ids[-1] == post.post_id
        assert len(sample_snapshot.all_posts) == 2

    def test_reply(self, provider, sample_snapshot):
        """Test that a reply is linked from its root post."""
        updated = reply(sample_snapshot, ALICE, "AAAB", "thanks bob", provider)

        new_id = updated.all_posts[-1].post_id
        assert get_post(updated, "AAAB").reply_post_ids == ["AAAC", new_id]
        assert new_id not in updated.root_post_ids
        assert get_post(sample_snapshot, "AAAB").reply_post_ids == ["AAAC"]

    def test_reply_to_reply_refused(self, provider, sample_snapshot):
        """Test that replies can only target root posts."""
        with pytest.raises(ThreadError):
            reply(sample_snapshot, ALICE, "AAAC", "nested", provider)

    def test_reply_to_missing_post(self, provider, sample_snapshot):
        """Test replying to an unknown post."""
        with pytest.raises(ThreadError) as exc_info:
            reply(sample_snapshot, ALICE, "nope", "hello", provider)

        assert exc_info.value.code == ErrorCode.E601_POST_NOT_FOUND

    @pytest.mark.parametrize("content", ["", "   \n ", "x" * (POST_SIZE_LIMIT + 1)])
    def test_invalid_content(self, provider, sample_snapshot, content):
        """Test that empty and oversized posts are rejected."""
        with pytest.raises(ThreadError) as exc_info:
            new_thread(sample_snapshot, ALICE, content, provider)

        assert exc_info.value.code == ErrorCode.E602_INVALID_CONTENT

    def test_content_at_limit(self, provider, sample_snapshot):
        """Test that a post of exactly the limit is accepted."""
        updated = new_thread(sample_snapshot, ALICE, "x" * POST_SIZE_LIMIT, provider)
        assert len(updated.all_posts[-1].content) == POST_SIZE_LIMIT

    def test_toggle_like(self, provider, sample_snapshot):
        """Test liking and unliking."""
        liked = toggle_like(sample_snapshot, ALICE, "AAAC", provider)
        assert get_post(liked, "AAAC").is_liked_by("alice")
        assert not get_post(sample_snapshot, "AAAC").is_liked_by("alice")

        unliked = toggle_like(liked, ALICE, "AAAC", provider)
        assert not get_post(unliked, "AAAC").is_liked_by("alice")

    def test_unlike_keeps_other_likes(self, provider, sample_snapshot):
        """Test that removing one like leaves the others."""
        both = toggle_like(sample_snapshot, ALICE, "AAAB", provider)
        only_bob = toggle_like(both, ALICE, "AAAB", provider)

        assert [like.username for like in get_post(only_bob, "AAAB").likes] == ["bob"]


class TestQueries:
    """Test lookups and searches."""

    def test_get_post_missing(self, sample_snapshot):
        """Test that an unknown id raises."""
        with pytest.raises(ThreadError):
            get_post(sample_snapshot, "nope")

    def test_get_parent_post(self, sample_snapshot):
        """Test finding a reply's root post."""
        assert get_parent_post(sample_snapshot, "AAAC").post_id == "AAAB"
        assert get_parent_post(sample_snapshot, "AAAB") is None

    def test_search_posts(self, provider, sample_snapshot):
        """Test case-insensitive search, newest first."""
        snapshot = new_thread(sample_snapshot, BOB, "Hello again", provider)

        results = search_posts(snapshot, "HELLO")
        assert [post.content for post in results] == ["Hello again", sample_snapshot.all_posts[0].content]
        assert search_posts(snapshot, "knitting") == []

    def test_liked_posts(self, provider, sample_snapshot):
        """Test listing a user's liked posts, newest first."""
        snapshot = toggle_like(sample_snapshot, BOB, "AAAC", provider)

        assert [post.post_id for post in liked_posts(snapshot, "bob")] == ["AAAC", "AAAB"]
        assert liked_posts(snapshot, "alice") == []
