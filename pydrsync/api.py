"""API client for Drime Cloud."""

from __future__ import annotations

import mimetypes
import random
import time
from typing import IO, Any, Iterator, Literal

import httpx

from .config import config
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
)
from .utils import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_DELAY,
    format_timestamp,
)

FileEntryType = Literal["folder", "image", "text", "audio", "video", "pdf"]


class DrimeClient:
    """Client for interacting with Drime Cloud API."""

    def __init__(
        self,
        api_key: str | None = None,
        api_url: str | None = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        timeout: float = 30.0,
        require_auth: bool = True,
    ):
        """Initialize Drime API client.

        Args:
            api_key: Optional API key (uses config if not provided; a stored
                session token is used when no API key is configured)
            api_url: Optional API URL (uses config if not provided)
            max_retries: Maximum number of retry attempts (default: 3)
            retry_delay: Initial delay between retries in seconds (default: 1.0)
            timeout: Request timeout in seconds (default: 30.0)
            require_auth: Fail without credentials (disable only for login)
        """
        self.api_key = api_key or config.api_key or config.session_token
        self.api_url = api_url or config.api_url
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout

        if not self.api_key and require_auth:
            raise DrimeConfigError(
                "API key not configured. Please set DRIME_API_KEY environment "
                "variable or run 'pydrsync init'."
            )

        self._client: httpx.Client | None = None

    def __enter__(self) -> DrimeClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _get_client(self) -> httpx.Client:
        """Get or create the httpx client."""
        if self._client is None or self._client.is_closed:
            headers = {"Accept": "application/json"}
            if self.api_key:
                headers["Authorization"] = f"Bearer {self.api_key}"
            self._client = httpx.Client(
                headers=headers,
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
            )
        return self._client

    def close(self) -> None:
        """Close the client and release connections."""
        if self._client is not None and not self._client.is_closed:
            self._client.close()
            self._client = None

    def _should_retry(self, exception: Exception, attempt: int) -> bool:
        """Determine if a request should be retried.

        Args:
            exception: The exception that occurred
            attempt: Current attempt number (0-based)

        Returns:
            True if the request should be retried, False otherwise
        """
        if attempt >= self.max_retries:
            return False

        # Transient failures
        if isinstance(exception, (DrimeNetworkError, DrimeRateLimitError)):
            return True

        if isinstance(exception, httpx.HTTPStatusError):
            return 500 <= exception.response.status_code < 600

        return False

    def _calculate_retry_delay(self, attempt: int) -> float:
        """Calculate delay before next retry using exponential backoff.

        Args:
            attempt: Current attempt number (0-based)

        Returns:
            Delay in seconds
        """
        base_delay = self.retry_delay * (2**attempt)
        # Add jitter: +/- 25% of base delay
        jitter = base_delay * 0.25 * (2 * random.random() - 1)
        return base_delay + jitter

    def _handle_http_error(
        self, e: httpx.HTTPStatusError, attempt: int
    ) -> tuple[Exception, bool]:
        """Map an HTTP error to a typed exception.

        Args:
            e: The HTTP error exception
            attempt: Current attempt number

        Returns:
            Tuple of (exception to raise, should_retry)

        Raises:
            DrimeAuthenticationError: On 401
            DrimePermissionError: On 403
            DrimeNotFoundError: On 404
        """
        status_code = e.response.status_code

        if status_code == 401:
            raise DrimeAuthenticationError(
                "Invalid API key or unauthorized access"
            ) from e
        elif status_code == 403:
            raise DrimePermissionError(
                "Access forbidden - check your permissions"
            ) from e
        elif status_code == 404:
            raise DrimeNotFoundError("Resource not found") from e
        elif status_code == 429:
            error = DrimeRateLimitError("Rate limit exceeded - please try again later")
            return (error, attempt < self.max_retries)

        error_msg = f"API request failed with status {status_code}"
        try:
            if e.response.content:
                error_data = e.response.json()
                if isinstance(error_data, dict):
                    msg = (
                        error_data.get("message")
                        or error_data.get("error")
                        or error_data.get("detail")
                    )
                    if msg:
                        error_msg = f"{error_msg}: {msg}"
        except ValueError:
            # Body is not JSON, keep the status-based message
            pass

        should_retry = 500 <= status_code < 600 and attempt < self.max_retries
        return (DrimeAPIError(error_msg), should_retry)

    def _request(self, method: str, endpoint: str, **kwargs: Any) -> Any:
        """Make an API request with retry logic.

        Args:
            method: HTTP method
            endpoint: API endpoint path
            **kwargs: Additional arguments passed to httpx

        Returns:
            Response JSON data

        Raises:
            DrimeAPIError: If the request fails after all retries
        """
        url = f"{self.api_url}/{endpoint.lstrip('/')}"
        last_exception: Exception | None = None
        client = self._get_client()

        for attempt in range(self.max_retries + 1):
            try:
                response = client.request(method, url, **kwargs)
                response.raise_for_status()

                content_type = response.headers.get("Content-Type", "")
                if response.content and "application/json" not in content_type:
                    # An HTML page usually means the key was rejected
                    if "text/html" in content_type:
                        raise DrimeAuthenticationError(
                            "Invalid API key - server returned HTML instead of JSON"
                        )
                    raise DrimeInvalidResponseError(
                        f"Unexpected response type: {content_type}"
                    )

                if response.content:
                    try:
                        return response.json()
                    except ValueError as e:
                        raise DrimeInvalidResponseError(
                            "Invalid JSON response from server - "
                            "check your API key and network connection"
                        ) from e
                return {}

            except httpx.HTTPStatusError as e:
                error, should_retry = self._handle_http_error(e, attempt)
                last_exception = error

                if should_retry:
                    delay = self._calculate_retry_delay(attempt)
                    if isinstance(error, DrimeRateLimitError):
                        retry_after = e.response.headers.get("Retry-After")
                        if retry_after and retry_after.isdigit():
                            delay = float(retry_after)
                    time.sleep(delay)
                    continue
                raise error from e
            except DrimeAPIError:
                raise
            except httpx.RequestError as e:
                error = DrimeNetworkError(f"Network error: {e}")
                last_exception = error
                if self._should_retry(error, attempt):
                    time.sleep(self._calculate_retry_delay(attempt))
                    continue
                raise error from e

        if last_exception:
            raise last_exception
        raise DrimeAPIError("Request failed after all retry attempts")

    # =========================
    # Account Operations
    # =========================

    def login(
        self,
        email: str,
        password: str,
        device_name: str = "pydrsync",
    ) -> Any:
        """Get access token by logging in.

        Args:
            email: User email
            password: User password
            device_name: Name of the device/application

        Returns:
            Response with 'status' and 'user' keys (user contains access_token)
        """
        data = {"email": email, "password": password, "device_name": device_name}
        return self._request("POST", "/auth/login", json=data)

    def get_logged_user(self) -> Any:
        """Get information about the currently logged in user."""
        return self._request("GET", "/cli/loggedUser")

    # =========================
    # File Entry Operations
    # =========================

    def get_file_entries(
        self,
        per_page: int = 50,
        page: int | None = None,
        parent_ids: list[int] | None = None,
        workspace_id: int = 0,
        query: str | None = None,
        entry_type: FileEntryType | None = None,
        deleted_only: bool | None = None,
    ) -> Any:
        """Get one page of file entries.

        Args:
            per_page: How many entries to return per page (default: 50)
            page: Page number to retrieve (1-based, default: None for page 1)
            parent_ids: Only entries that are children of specified folders
                (None lists the root)
            workspace_id: Only return entries in specified workspace (default: 0)
            query: Search query to filter entry names
            entry_type: File type to filter on
            deleted_only: Whether only trashed entries should be returned

        Returns:
            Paginated response with a 'data' list
        """
        params: dict[str, Any] = {"perPage": per_page, "workspaceId": workspace_id}

        if page is not None:
            params["page"] = page
        if parent_ids:
            params["parentIds"] = ",".join(map(str, parent_ids))
        if query:
            params["query"] = query
        if entry_type:
            params["type"] = entry_type
        if deleted_only is not None:
            params["deletedOnly"] = deleted_only

        return self._request("GET", "/drive/file-entries", params=params)

    def update_file_entry(
        self,
        entry_id: int,
        name: str | None = None,
        description: str | None = None,
    ) -> Any:
        """Update an existing file entry.

        Args:
            entry_id: ID of the entry to update
            name: New name for the entry
            description: New description for the entry

        Returns:
            Response with 'status' and 'fileEntry' keys
        """
        data: dict[str, Any] = {}
        if name:
            data["name"] = name
        if description:
            data["description"] = description
        return self._request("PUT", f"/file-entries/{entry_id}", json=data)

    def delete_file_entries(
        self,
        entry_ids: list[int],
        delete_forever: bool = False,
        workspace_id: int = 0,
    ) -> Any:
        """Move entries to trash or delete permanently.

        Args:
            entry_ids: List of entry IDs to delete
            delete_forever: Whether entries should be deleted permanently
            workspace_id: Workspace ID (default: 0 for personal)

        Returns:
            Response with 'status' key
        """
        endpoint = f"/file-entries/delete?workspaceId={workspace_id}"
        data = {"entryIds": entry_ids, "deleteForever": delete_forever}
        return self._request("POST", endpoint, json=data)

    def duplicate_file_entries(
        self,
        entry_ids: list[int],
        destination_id: int | None = None,
    ) -> Any:
        """Duplicate entries server-side.

        Args:
            entry_ids: List of entry IDs to duplicate
            destination_id: ID of destination folder (None for root)

        Returns:
            Response with 'status' and 'entries' keys
        """
        data: dict[str, Any] = {"entryIds": entry_ids}
        if destination_id is not None:
            data["destinationId"] = destination_id
        return self._request("POST", "/file-entries/duplicate", json=data)

    def create_folder(
        self,
        name: str,
        parent_id: int | None = None,
        workspace_id: int = 0,
    ) -> Any:
        """Create a new folder.

        Args:
            name: Name of the new folder
            parent_id: ID of parent folder (None for root)
            workspace_id: Workspace ID (default: 0 for personal)

        Returns:
            Response with 'status' and 'folder' keys
        """
        data: dict[str, Any] = {"name": name, "workspaceId": workspace_id}
        if parent_id is not None:
            data["parentId"] = parent_id
        return self._request("POST", "/folders", json=data)

    # =========================
    # Transfer Operations
    # =========================

    def upload_stream(
        self,
        stream: IO[bytes],
        name: str,
        size: int,
        parent_id: int | None = None,
        workspace_id: int = 0,
        mtime: int | None = None,
        birthtime: int | None = None,
    ) -> Any:
        """Upload the content of a readable stream as a new file entry.

        Uses the presigned URL flow:
        1. Get a presigned URL from the API
        2. PUT the bytes directly to storage
        3. Create the file entry in the Drime database

        Args:
            stream: Binary readable positioned at the start of the content
            name: File name of the new entry
            size: Number of bytes that will be read from ``stream``
            parent_id: Folder to create the entry in (None for root)
            workspace_id: ID of the workspace (default: 0 for personal)
            mtime: Modification time to record (epoch seconds)
            birthtime: Creation time to record (epoch seconds)

        Returns:
            The created file entry dictionary

        Raises:
            DrimeUploadError: If upload fails
        """
        mime_type = mimetypes.guess_type(name)[0] or "application/octet-stream"
        extension = name.rsplit(".", 1)[1] if "." in name else ""

        presign_payload: dict[str, Any] = {
            "filename": name,
            "mime": mime_type,
            "size": size,
            "extension": extension,
            "workspaceId": workspace_id,
            "parentId": parent_id,
        }
        presign_response = self._request(
            "POST",
            "/s3/simple/presign",
            json=presign_payload,
            params={"workspaceId": workspace_id},
        )

        presigned_url = presign_response.get("url")
        key = presign_response.get("key")
        if not presigned_url or not key:
            raise DrimeUploadError(f"Invalid presign response: {presign_response}")

        def reader() -> Iterator[bytes]:
            while True:
                chunk = stream.read(DEFAULT_CHUNK_SIZE)
                if not chunk:
                    break
                yield chunk

        try:
            s3_response = httpx.put(
                presigned_url,
                content=reader(),
                headers={
                    "Content-Type": mime_type,
                    "Content-Length": str(size),
                    "x-amz-acl": "private",
                },
                timeout=60.0,
            )
            s3_response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise DrimeUploadError(f"S3 upload failed: {e}") from e
        except httpx.RequestError as e:
            raise DrimeUploadError(f"Network error during S3 upload: {e}") from e

        entry_payload: dict[str, Any] = {
            "clientMime": mime_type,
            "clientName": name,
            "filename": key.split("/")[-1],
            "size": size,
            "clientExtension": extension,
            "parentId": parent_id,
            "workspaceId": workspace_id,
        }
        if mtime is not None:
            entry_payload["updatedAt"] = format_timestamp(mtime)
        if birthtime is not None:
            entry_payload["createdAt"] = format_timestamp(birthtime)

        entry_response = self._request("POST", "/s3/entries", json=entry_payload)
        file_entry = entry_response.get("fileEntry")
        if not file_entry:
            raise DrimeUploadError("Upload response missing file entry")
        return file_entry

    def download_to_io(
        self,
        hash_value: str,
        sink: IO[bytes],
        timeout: int = 60,
    ) -> int:
        """Stream a file's content into a writable.

        Args:
            hash_value: Hash of the file to download
            sink: Binary writable receiving the bytes
            timeout: Request timeout in seconds (default: 60)

        Returns:
            Number of bytes written

        Raises:
            DrimeDownloadError: If download fails
            DrimeNetworkError: On transport errors
        """
        url = f"{self.api_url}/file-entries/download/{hash_value}"
        client = self._get_client()
        written = 0

        try:
            with client.stream("GET", url, timeout=timeout) as response:
                response.raise_for_status()
                for chunk in response.iter_bytes(chunk_size=DEFAULT_CHUNK_SIZE):
                    if chunk:
                        sink.write(chunk)
                        written += len(chunk)
        except httpx.HTTPStatusError as e:
            raise DrimeDownloadError(f"Download failed: {e}") from e
        except httpx.RequestError as e:
            raise DrimeNetworkError(f"Network error during download: {e}") from e
        except OSError as e:
            raise DrimeDownloadError(f"Failed to write file: {e}") from e

        return written
