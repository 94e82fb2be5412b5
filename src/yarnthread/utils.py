"""
Yarn - Utility functions.

Provides helpers for formatting, validation, and profile picture selection.
"""

import logging
import re
from datetime import datetime, timezone
from typing import TYPE_CHECKING, List, Optional, Sequence

from .constants import (
    PROFILE_PICTURE_COUNT,
    USERNAME_MAX_LENGTH,
    USERNAME_MIN_LENGTH,
    USERNAME_PATTERN,
)

if TYPE_CHECKING:
    from .model import Snapshot

logger = logging.getLogger(__name__)


def format_timestamp(millis: float, format_str: str = "%Y-%m-%d %H:%M:%S") -> str:
    """
    Format a millisecond epoch timestamp as a UTC string.

    Args:
        millis: Milliseconds since the epoch
        format_str: strftime format string

    Returns:
        Formatted timestamp string, or the raw value if it is out of range
    """
    try:
        dt = datetime.fromtimestamp(millis / 1000, tz=timezone.utc)
        return dt.strftime(format_str)
    except (OverflowError, OSError, ValueError) as e:
        logger.debug(f"Failed to format timestamp '{millis}': {e}")
        return str(millis)


def relative_time_string(elapsed_millis: float) -> str:
    """
    Compact relative age of a post ('now', '5m', '3h', '2d', '1w', '4mo', '1y').

    Args:
        elapsed_millis: Milliseconds since the post was created
    """
    seconds = elapsed_millis / 1000
    if seconds < 60:
        return "now"

    minutes = seconds / 60
    if minutes < 60:
        return f"{int(minutes)}m"

    hours = minutes / 60
    if hours < 24:
        return f"{int(hours)}h"

    days = hours / 24
    if days < 7:
        return f"{int(days)}d"

    weeks = days / 7
    if weeks < 4:
        return f"{int(weeks)}w"

    months = weeks / 4
    if months < 12:
        return f"{int(months)}mo"

    return f"{int(months / 12)}y"


def validate_username(username: str, taken: Sequence[str] = ()) -> Optional[str]:
    """
    Validate a requested username.

    Args:
        username: Candidate username, already trimmed
        taken: Usernames already present in the thread

    Returns:
        None if the username is acceptable, otherwise the reason it is not
    """
    if ".." in username:
        return "Username cannot contain consecutive periods."
    if not re.match(USERNAME_PATTERN, username):
        return "Username can only contain the lower characters a-z, digits 0-9, and periods (.)."
    if len(username) < USERNAME_MIN_LENGTH:
        return f"Username must be at least {USERNAME_MIN_LENGTH} characters."
    if len(username) > USERNAME_MAX_LENGTH:
        return f"Username must be at most {USERNAME_MAX_LENGTH} characters."
    if username in taken:
        return "Username not available. Please choose another one."
    return None


def available_image_indexes(snapshot: "Snapshot") -> List[int]:
    """Profile picture indexes not yet used by any user in the thread."""
    used = {user.image_index for user in snapshot.users}
    return [i for i in range(PROFILE_PICTURE_COUNT) if i not in used]


def truncate_string(s: str, max_length: int, suffix: str = "...") -> str:
    """
    Truncate a string to a maximum length.

    Args:
        s: String to truncate
        max_length: Maximum length
        suffix: Suffix to add if truncated

    Returns:
        Truncated string
    """
    if len(s) <= max_length:
        return s
    return s[: max_length - len(suffix)] + suffix
