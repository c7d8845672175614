"""Exceptions raised by pydrsync."""

from typing import Optional


class DrimeAPIError(Exception):
    """Base exception for errors returned by the Drime Cloud API."""


class DrimeAuthenticationError(DrimeAPIError):
    """Invalid API key or unauthorized access."""


class DrimeConfigError(DrimeAPIError):
    """Client is missing required configuration (e.g. the API key)."""


class DrimeNetworkError(DrimeAPIError):
    """Transport level failure while talking to the API."""


class DrimeNotFoundError(DrimeAPIError):
    """Requested resource does not exist."""


class DrimePermissionError(DrimeAPIError):
    """Access to the resource is forbidden."""


class DrimeRateLimitError(DrimeAPIError):
    """Too many requests."""


class DrimeInvalidResponseError(DrimeAPIError):
    """Server returned something that is not the expected JSON."""


class DrimeUploadError(DrimeAPIError):
    """Uploading file content failed."""


class DrimeDownloadError(DrimeAPIError):
    """Downloading file content failed."""


class SyncError(Exception):
    """Base exception for reconciliation errors."""

    kind = "SyncError"

    def __init__(self, message: str = "", path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class ValidationError(SyncError):
    """Invalid option combination or malformed size filter.

    Always fatal: raised while building SyncOptions, before any I/O.
    """

    kind = "ValidationError"


class FatalPathError(SyncError):
    """Source root is missing or the destination root cannot be resolved."""

    kind = "FatalPathError"


class NotSupportedCapability(SyncError):
    """A backend does not provide the requested operation or value."""

    kind = "NotSupportedCapability"


class TransientIOError(SyncError):
    """Local I/O failure that persisted after the bounded retries."""

    kind = "TransientIOError"


class RemoteOperationError(SyncError):
    """A call to the remote storage API failed."""

    kind = "RemoteOperationError"
