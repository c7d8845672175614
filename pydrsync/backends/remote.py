"""Drime Cloud backend.

Remote paths look like ``drime://Some/Directory/sample.txt``; a bare
``drime://`` is the root of the workspace. The API has no path lookup, so
paths are resolved one segment at a time.

All writes are whole-object operations (presigned upload, server-side
duplicate). There is neither a streaming read nor a streaming write
primitive, so ``open_read`` and ``open_write_sink`` are declined.
"""

from __future__ import annotations

import logging
import tempfile
from contextlib import contextmanager
from typing import IO, Iterator, Optional

from ..api import DrimeClient
from ..exceptions import DrimeAPIError, RemoteOperationError
from ..file_entries_manager import FileEntriesManager
from ..models import FileEntry
from ..utils import DEFAULT_CHUNK_SIZE, parse_iso_timestamp
from .base import (
    Backend,
    BackendKind,
    Directory,
    File,
    Node,
    WriteSink,
    sorted_listing,
)

logger = logging.getLogger(__name__)

URL_SCHEME = "drime://"


@contextmanager
def _remote_call(path: str, action: str) -> Iterator[None]:
    """Re-raise API failures as RemoteOperationError for ``path``."""
    try:
        yield
    except DrimeAPIError as e:
        raise RemoteOperationError(f"{action} failed: {e}", path=path) from e


def _remaining_size(readable: IO[bytes]) -> Optional[int]:
    """Bytes left in a seekable ``readable``; None when it cannot seek."""
    try:
        start = readable.tell()
        readable.seek(0, 2)
        size = readable.tell() - start
        readable.seek(start)
    except (AttributeError, OSError, ValueError):
        return None
    return size


@contextmanager
def _measured(readable: IO[bytes]) -> Iterator[tuple[IO[bytes], int]]:
    """Yield a readable whose size is known, spooling it if necessary.

    The spool, when one is needed, is closed on exit.
    """
    size = _remaining_size(readable)
    if size is not None:
        yield readable, size
        return

    with tempfile.SpooledTemporaryFile(max_size=DEFAULT_CHUNK_SIZE * 16) as spool:
        size = 0
        for chunk in iter(lambda: readable.read(DEFAULT_CHUNK_SIZE), b""):
            spool.write(chunk)
            size += len(chunk)
        spool.seek(0)
        yield spool, size  # type: ignore[misc]


class RemoteFile(File):
    """A file entry on the remote drive."""

    def __init__(self, backend: RemoteBackend, entry: FileEntry, path: str):
        super().__init__(backend)
        self.entry = entry
        self._path = path

    @property
    def client(self) -> DrimeClient:
        return self.backend.client  # type: ignore[attr-defined]

    @property
    def title(self) -> str:
        return self.entry.name

    @property
    def path(self) -> str:
        return self._path

    @property
    def size(self) -> int:
        return self.entry.file_size

    @property
    def mtime(self) -> int:
        mtime = parse_iso_timestamp(self.entry.updated_at)
        if mtime is None:
            raise self._unsupported("modification time (not reported)")
        return mtime

    @property
    def birthtime(self) -> int:
        birthtime = parse_iso_timestamp(self.entry.created_at)
        return self.mtime if birthtime is None else birthtime

    @property
    def content_hash(self) -> str:
        """Checksum reported by the provider; never computed locally."""
        if not self.entry.md5:
            raise self._unsupported("content checksum (not reported)")
        return self.entry.md5

    def open_read(self) -> IO[bytes]:
        raise self._unsupported("streaming read")

    def write_to(self, sink: IO[bytes]) -> None:
        with _remote_call(self._path, "download"):
            self.client.download_to_io(self.entry.hash, sink)

    def _rename_to(self, entry: FileEntry, title: str, path: str) -> FileEntry:
        """Give a freshly written entry the expected name if the server renamed it."""
        if entry.name == title:
            return entry
        logger.debug("Renaming %s to %s", entry.name, title)
        with _remote_call(path, "rename"):
            response = self.client.update_file_entry(entry.id, name=title)
        renamed = response.get("fileEntry") if isinstance(response, dict) else None
        if renamed:
            return FileEntry.from_dict(renamed)
        entry.name = title
        return entry

    def copy_within_backend(
        self,
        dest_dir: Directory,
        mtime: Optional[int],
        birthtime: Optional[int],
        replace: Optional[File] = None,
    ) -> File:
        """Duplicate the entry server-side into ``dest_dir``.

        The server keeps the original timestamps of a duplicate, so ``mtime``
        and ``birthtime`` are not applied.
        """
        if not isinstance(dest_dir, RemoteDirectory):
            raise self._unsupported("copying to another backend")

        target = dest_dir.backend.join_path(dest_dir.path, self.title)
        with _remote_call(target, "server-side copy"):
            response = self.client.duplicate_file_entries(
                [self.entry.id], destination_id=dest_dir.folder_id
            )
        entries = response.get("entries") if isinstance(response, dict) else None
        if not entries:
            raise RemoteOperationError(
                "server-side copy returned no entry", path=target
            )
        copied = FileEntry.from_dict(entries[0])

        if replace is not None:
            replace.delete()
        copied = self._rename_to(copied, self.title, target)
        return RemoteFile(self.backend, copied, target)  # type: ignore[arg-type]

    def update_from_stream(self, readable: IO[bytes], mtime: Optional[int]) -> File:
        """Upload a replacement object, then retire the old entry."""
        with _measured(readable) as (body, size), _remote_call(
            self._path, "upload"
        ):
            created = self.client.upload_stream(
                body,
                name=self.title,
                size=size,
                parent_id=self.entry.parent_id or None,
                workspace_id=self.backend.workspace_id,  # type: ignore[attr-defined]
                mtime=mtime,
            )
        new_entry = FileEntry.from_dict(created)
        self.delete()
        new_entry = self._rename_to(new_entry, self.title, self._path)
        return RemoteFile(self.backend, new_entry, self._path)  # type: ignore[arg-type]

    def delete(self) -> None:
        """Move the entry to the trash."""
        with _remote_call(self._path, "delete"):
            self.client.delete_file_entries(
                [self.entry.id],
                delete_forever=False,
                workspace_id=self.backend.workspace_id,  # type: ignore[attr-defined]
            )


class RemoteDirectory(Directory):
    """A folder on the remote drive (``entry`` is None for the root)."""

    def __init__(
        self, backend: RemoteBackend, entry: Optional[FileEntry], path: str
    ):
        super().__init__(backend)
        self.entry = entry
        self._path = path

    @property
    def client(self) -> DrimeClient:
        return self.backend.client  # type: ignore[attr-defined]

    @property
    def folder_id(self) -> Optional[int]:
        return self.entry.id if self.entry is not None else None

    @property
    def title(self) -> str:
        return self.entry.name if self.entry is not None else ""

    @property
    def path(self) -> str:
        return self._path

    def _child(self, title: str) -> str:
        return self.backend.join_path(self._path, title)

    def list(self) -> list[Node]:
        """List non-trashed children of this folder."""
        backend: RemoteBackend = self.backend  # type: ignore[assignment]
        with _remote_call(self._path, "listing"):
            entries = backend.manager.get_all_in_folder(folder_id=self.folder_id)

        nodes: list[Node] = []
        for entry in entries:
            child = self._child(entry.name)
            if entry.is_folder:
                nodes.append(RemoteDirectory(backend, entry, child))
            else:
                nodes.append(RemoteFile(backend, entry, child))
        return sorted_listing(nodes)

    def create_directory(self, title: str) -> Directory:
        path = self._child(title)
        with _remote_call(path, "create folder"):
            response = self.client.create_folder(
                title,
                parent_id=self.folder_id,
                workspace_id=self.backend.workspace_id,  # type: ignore[attr-defined]
            )
        folder = response.get("folder") if isinstance(response, dict) else None
        if not folder:
            raise RemoteOperationError("create folder returned no folder", path=path)
        return RemoteDirectory(
            self.backend, FileEntry.from_dict(folder), path  # type: ignore[arg-type]
        )

    def create_file_from_stream(
        self,
        title: str,
        readable: IO[bytes],
        mtime: Optional[int],
        birthtime: Optional[int],
    ) -> File:
        path = self._child(title)
        with _measured(readable) as (body, size), _remote_call(path, "upload"):
            created = self.client.upload_stream(
                body,
                name=title,
                size=size,
                parent_id=self.folder_id,
                workspace_id=self.backend.workspace_id,  # type: ignore[attr-defined]
                mtime=mtime,
                birthtime=birthtime,
            )
        return RemoteFile(
            self.backend, FileEntry.from_dict(created), path  # type: ignore[arg-type]
        )

    def open_write_sink(
        self, title: str, mtime: Optional[int] = None
    ) -> tuple[File, WriteSink]:
        raise self._unsupported("streaming write")

    def delete(self) -> None:
        """Move the folder (and its contents) to the trash."""
        if self.entry is None:
            raise self._unsupported("deleting the root folder")
        with _remote_call(self._path, "delete"):
            self.client.delete_file_entries(
                [self.entry.id],
                delete_forever=False,
                workspace_id=self.backend.workspace_id,  # type: ignore[attr-defined]
            )


class RemoteBackend(Backend):
    """Backend for ``drime://`` paths."""

    kind = BackendKind.REMOTE
    supports_streaming_read = False
    supports_streaming_write = False

    def __init__(self, client: DrimeClient, workspace_id: int = 0):
        """Initialize the remote backend.

        Args:
            client: Authenticated API client (the session handle)
            workspace_id: Workspace the ``drime://`` tree lives in
        """
        self.client = client
        self.workspace_id = workspace_id
        self.manager = FileEntriesManager(client, workspace_id=workspace_id)

    @staticmethod
    def handles(path: str) -> bool:
        """Whether ``path`` is a remote path."""
        return path.startswith(URL_SCHEME)

    def find(self, path: str) -> Optional[Node]:
        """Resolve a ``drime://`` path segment by segment.

        Each segment is looked up as a folder first and as a file second. A
        missing or trashed segment, or a file in the middle of the path,
        means the path does not exist.

        Raises:
            RemoteOperationError: If the API cannot be queried
        """
        if not self.handles(path):
            return None

        segments = [s for s in path[len(URL_SCHEME) :].split("/") if s]
        if not segments:
            return RemoteDirectory(self, None, URL_SCHEME)

        current_path = URL_SCHEME
        parent_id: Optional[int] = None
        for i, segment in enumerate(segments):
            is_last = i == len(segments) - 1
            current_path = self.join_path(current_path, segment)

            with _remote_call(current_path, "path lookup"):
                entry = self.manager.find_child(
                    segment, parent_id=parent_id, folders_only=not is_last
                )
            if entry is None:
                logger.debug("Remote path segment not found: %s", current_path)
                return None

            if is_last:
                if entry.is_folder:
                    return RemoteDirectory(self, entry, current_path)
                return RemoteFile(self, entry, current_path)
            parent_id = entry.id

        return None

    def close(self) -> None:
        self.client.close()


