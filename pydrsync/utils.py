"""Utility functions shared by the backends and the CLI."""

from datetime import datetime, timezone
from typing import Optional

# =============================================================================
# Constants for file operations
# =============================================================================

# Read/write chunk size for streaming copies (64 KB)
DEFAULT_CHUNK_SIZE: int = 64 * 1024

# Retry configuration for transient errors
DEFAULT_MAX_RETRIES: int = 3
DEFAULT_RETRY_DELAY: float = 1.0  # seconds

# Attempts for local deletes that may hit a transient lock
DEFAULT_DELETE_ATTEMPTS: int = 3
DEFAULT_DELETE_RETRY_DELAY: float = 0.1  # seconds


# =============================================================================
# Timestamp utilities
# =============================================================================


def parse_iso_timestamp(timestamp_str: Optional[str]) -> Optional[int]:
    """Parse an ISO format timestamp from the Drime API.

    Args:
        timestamp_str: ISO format timestamp string
            (e.g., "2025-01-15T10:30:00.000000Z")

    Returns:
        Whole seconds since the epoch (UTC) or None if parsing fails

    Examples:
        >>> parse_iso_timestamp("2025-01-15T10:30:00Z")
        1736937000
        >>> parse_iso_timestamp("not a date") is None
        True
    """
    if not timestamp_str:
        return None

    try:
        # The 'Z' suffix indicates UTC time
        if timestamp_str.endswith("Z"):
            timestamp_str = timestamp_str[:-1] + "+00:00"

        try:
            dt = datetime.fromisoformat(timestamp_str)
        except ValueError:
            # Older interpreters reject 7+ digit fractions, retry without them
            if "." not in timestamp_str:
                raise
            head, _, tail = timestamp_str.partition(".")
            offset = ""
            for sign in ("+", "-"):
                if sign in tail:
                    offset = sign + tail.split(sign, 1)[1]
                    break
            dt = datetime.fromisoformat(head + offset)

        # Naive timestamps from the API are UTC
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return int(dt.timestamp())
    except (ValueError, AttributeError):
        return None


def format_timestamp(epoch_seconds: int) -> str:
    """Format epoch seconds as an RFC 3339 UTC string for the API.

    Examples:
        >>> format_timestamp(1736937000)
        '2025-01-15T10:30:00Z'
    """
    dt = datetime.fromtimestamp(epoch_seconds, tz=timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%SZ")


def join_path(parent: str, title: str) -> str:
    """Join a child title onto a backend path string.

    Works for both native paths and ``scheme://`` paths.

    Examples:
        >>> join_path("drime://", "docs")
        'drime://docs'
        >>> join_path("drime://docs/", "a.txt")
        'drime://docs/a.txt'
        >>> join_path("/tmp/dest", "a.txt")
        '/tmp/dest/a.txt'
    """
    if parent.endswith("://"):
        return f"{parent}{title}"
    return f"{parent.rstrip('/')}/{title}" if parent.rstrip("/") else f"/{title}"


def split_path(path: str) -> tuple[str, str]:
    """Split a backend path string into its parent path and leaf title.

    Examples:
        >>> split_path("drime://docs/a.txt")
        ('drime://docs', 'a.txt')
        >>> split_path("drime://docs/")
        ('drime://', 'docs')
        >>> split_path("mem://dest")
        ('mem://', 'dest')
    """
    prefix = ""
    scheme, sep, rest = path.partition("://")
    if sep:
        prefix = scheme + sep
    else:
        rest = path
    parent, _, title = rest.rstrip("/").rpartition("/")
    return prefix + parent, title
