"""
Pytest configuration and fixtures for Yarn tests.

Provides common fixtures and test utilities for unit and integration tests.
"""

import tempfile
import shutil
from pathlib import Path
from typing import Generator

import pytest

from yarnthread.model import Like, Post, Snapshot, User
from yarnthread.providers import Provider


class FixedProvider(Provider):
    """Deterministic clock and id source.

    The clock starts at a fixed instant and advances one second per call;
    random bytes come from a counter so post ids never collide.
    """

    def __init__(self, start_millis: int = 1_700_000_000_000):
        self.current = start_millis
        self.counter = 0

    def now_millis(self) -> int:
        self.current += 1000
        return self.current

    def random_bytes(self, length: int) -> bytes:
        self.counter += 1
        return self.counter.to_bytes(length, "big")


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """
    Create a temporary directory for test data.

    Yields:
        Path: Temporary directory path

    Cleanup:
        Automatically removes directory after test
    """
    tmp = Path(tempfile.mkdtemp(prefix="yarn_test_"))
    try:
        yield tmp
    finally:
        shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def provider() -> FixedProvider:
    """Deterministic provider for post ids and timestamps."""
    return FixedProvider()


@pytest.fixture
def sample_snapshot() -> Snapshot:
    """
    Provide a small two-user thread with a reply and a like.

    Returns:
        Snapshot: alice started a thread, bob replied and liked it
    """
    return Snapshot(
        users=[
            User(username="alice", image_index=0, encrypted_username=""),
            User(username="bob", image_index=1, encrypted_username=""),
        ],
        all_posts=[
            Post(
                post_id="AAAB",
                username="alice",
                created_at=1_700_000_000_000,
                content="hello from alice éè \U0001f9f6",
                reply_post_ids=["AAAC"],
                likes=[Like(username="bob", liked_at=1_700_000_100_000)],
            ),
            Post(
                post_id="AAAC",
                username="bob",
                created_at=1_700_000_050_000,
                content="hi alice",
            ),
        ],
        root_post_ids=["AAAB"],
    )


@pytest.fixture
def large_snapshot() -> Snapshot:
    """Thread with enough repetitive content to compress well."""
    posts = [
        Post(
            post_id=f"p{i:04d}",
            username="alice",
            created_at=1_700_000_000_000 + i,
            content="the quick brown fox jumps over the lazy dog " * 10,
        )
        for i in range(50)
    ]
    return Snapshot(
        users=[User(username="alice", image_index=2)],
        all_posts=posts,
        root_post_ids=[post.post_id for post in posts],
    )


# Pytest marks
def pytest_configure(config):
    """
    Configure pytest markers.

    Args:
        config: Pytest configuration object
    """
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )


# Test collection hooks
def pytest_collection_modifyitems(config, items):
    """
    Modify test collection to add markers based on test location.

    Args:
        config: Pytest configuration
        items: List of collected test items
    """
    for item in items:
        # Add unit marker to tests in unit/ directory
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)

        if "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
