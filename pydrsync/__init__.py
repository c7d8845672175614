"""pydrsync - rsync-like synchronization between local disks and Drime Cloud."""

from .api import DrimeClient
from .exceptions import (
    DrimeAPIError,
    DrimeAuthenticationError,
    DrimeConfigError,
    DrimeDownloadError,
    DrimeInvalidResponseError,
    DrimeNetworkError,
    DrimeNotFoundError,
    DrimePermissionError,
    DrimeRateLimitError,
    DrimeUploadError,
    FatalPathError,
    NotSupportedCapability,
    RemoteOperationError,
    SyncError,
    TransientIOError,
    ValidationError,
)

__version__ = "0.1.0"

__all__ = [
    "DrimeClient",
    "DrimeAPIError",
    "DrimeAuthenticationError",
    "DrimeConfigError",
    "DrimeDownloadError",
    "DrimeInvalidResponseError",
    "DrimeNetworkError",
    "DrimeNotFoundError",
    "DrimePermissionError",
    "DrimeRateLimitError",
    "DrimeUploadError",
    "SyncError",
    "ValidationError",
    "FatalPathError",
    "NotSupportedCapability",
    "TransientIOError",
    "RemoteOperationError",
    "__version__",
]
