"""Local filesystem backend."""

from __future__ import annotations

import hashlib
import logging
import os
import shutil
import tempfile
import time
from typing import IO, Any, Optional

from ..exceptions import TransientIOError
from ..utils import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_DELETE_ATTEMPTS,
    DEFAULT_DELETE_RETRY_DELAY,
)
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


def _normalize(path: str) -> str:
    """Strip trailing separators but keep a bare root intact."""
    stripped = path.rstrip("/" + os.sep)
    return stripped or path[:1]


def _set_times(path: str, mtime: Optional[int]) -> None:
    if mtime is not None:
        os.utime(path, (mtime, mtime))


def _delete_with_retry(path: str) -> None:
    """Delete a file or directory tree, retrying transient failures.

    Raises:
        TransientIOError: If the path still exists after all attempts
    """
    last_error: Optional[OSError] = None
    for attempt in range(DEFAULT_DELETE_ATTEMPTS):
        try:
            if os.path.isdir(path) and not os.path.islink(path):
                shutil.rmtree(path)
            else:
                os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            last_error = e
            logger.debug("Delete attempt %d for %s failed: %s", attempt + 1, path, e)

        if not os.path.lexists(path):
            return
        time.sleep(DEFAULT_DELETE_RETRY_DELAY)

    raise TransientIOError(f"cannot delete {path}: {last_error}", path=path)


def _current_umask() -> int:
    mask = os.umask(0)
    os.umask(mask)
    return mask


class _AtomicSink:
    """Binary writable that lands on ``path`` only when closed cleanly.

    Bytes go to a temporary file beside ``path``. ``close`` moves it into
    place and applies ``mtime``; ``discard`` drops it, so an existing file
    at ``path`` keeps its content and times. Used as a context manager it
    discards when the block raises.
    """

    def __init__(self, path: str, mtime: Optional[int]):
        self._path = path
        self._mtime = mtime
        fd, self._tmp_path = tempfile.mkstemp(
            prefix=".pydrsync-", dir=os.path.dirname(path) or os.curdir
        )
        self._file = os.fdopen(fd, "wb")

    def write(self, data: bytes) -> int:
        return self._file.write(data)

    def writable(self) -> bool:
        return True

    @property
    def closed(self) -> bool:
        return self._file.closed

    def close(self) -> None:
        if self._file.closed:
            return
        try:
            self._file.close()
            # mkstemp creates 0600; take the mode the target would have had
            if os.path.exists(self._path):
                shutil.copymode(self._path, self._tmp_path)
            else:
                os.chmod(self._tmp_path, 0o666 & ~_current_umask())
            _set_times(self._tmp_path, self._mtime)
            os.replace(self._tmp_path, self._path)
        except OSError:
            self._remove_tmp()
            raise

    def discard(self) -> None:
        if self._file.closed:
            return
        self._file.close()
        self._remove_tmp()

    def _remove_tmp(self) -> None:
        try:
            os.remove(self._tmp_path)
        except FileNotFoundError:
            pass

    def __enter__(self) -> _AtomicSink:
        return self

    def __exit__(self, exc_type: Any, *exc_info: Any) -> None:
        if exc_type is None:
            self.close()
        else:
            self.discard()


def _write_file(path: str, readable: IO[bytes], mtime: Optional[int]) -> None:
    """Replace ``path`` with the bytes of ``readable`` once all are read."""
    with _AtomicSink(path, mtime) as sink:
        shutil.copyfileobj(readable, sink, DEFAULT_CHUNK_SIZE)  # type: ignore[misc]


class LocalFile(File):
    """A file on the local disk."""

    def __init__(self, backend: LocalBackend, path: str):
        super().__init__(backend)
        self._path = path
        self._md5: Optional[str] = None

    @property
    def title(self) -> str:
        return os.path.basename(self._path)

    @property
    def path(self) -> str:
        return self._path

    @property
    def size(self) -> int:
        return os.path.getsize(self._path)

    @property
    def mtime(self) -> int:
        return int(os.stat(self._path).st_mtime)

    @property
    def birthtime(self) -> int:
        stat = os.stat(self._path)
        # st_birthtime only exists on some platforms (macOS, BSD, Windows)
        birthtime = getattr(stat, "st_birthtime", None)
        if birthtime is None:
            return int(stat.st_mtime)
        return int(birthtime)

    @property
    def content_hash(self) -> str:
        """MD5 of the content, computed on first access and cached."""
        if self._md5 is None:
            digest = hashlib.md5()
            with open(self._path, "rb") as f:
                for chunk in iter(lambda: f.read(DEFAULT_CHUNK_SIZE), b""):
                    digest.update(chunk)
            self._md5 = digest.hexdigest()
        return self._md5

    def open_read(self) -> IO[bytes]:
        return open(self._path, "rb")

    def write_to(self, sink: IO[bytes]) -> None:
        with open(self._path, "rb") as f:
            shutil.copyfileobj(f, sink, DEFAULT_CHUNK_SIZE)

    def copy_within_backend(
        self,
        dest_dir: Directory,
        mtime: Optional[int],
        birthtime: Optional[int],
        replace: Optional[File] = None,
    ) -> File:
        target = replace.path if replace is not None else dest_dir.backend.join_path(
            dest_dir.path, self.title
        )
        with open(self._path, "rb") as readable:
            _write_file(target, readable, mtime)
        return LocalFile(self.backend, target)

    def update_from_stream(self, readable: IO[bytes], mtime: Optional[int]) -> File:
        _write_file(self._path, readable, mtime)
        return LocalFile(self.backend, self._path)

    def delete(self) -> None:
        _delete_with_retry(self._path)


class LocalDirectory(Directory):
    """A directory on the local disk."""

    def __init__(self, backend: LocalBackend, path: str):
        super().__init__(backend)
        self._path = path

    @property
    def title(self) -> str:
        return os.path.basename(self._path)

    @property
    def path(self) -> str:
        return self._path

    def _child(self, title: str) -> str:
        return self.backend.join_path(self._path, title)

    def list(self) -> list[Node]:
        nodes: list[Node] = []
        for name in os.listdir(self._path):
            child = self._child(name)
            if os.path.isdir(child):
                nodes.append(LocalDirectory(self.backend, child))
            else:
                nodes.append(LocalFile(self.backend, child))
        return sorted_listing(nodes)

    def create_directory(self, title: str) -> Directory:
        path = self._child(title)
        os.mkdir(path)
        return LocalDirectory(self.backend, path)

    def create_file_from_stream(
        self,
        title: str,
        readable: IO[bytes],
        mtime: Optional[int],
        birthtime: Optional[int],
    ) -> File:
        path = self._child(title)
        _write_file(path, readable, mtime)
        return LocalFile(self.backend, path)

    def open_write_sink(
        self, title: str, mtime: Optional[int] = None
    ) -> tuple[File, WriteSink]:
        path = self._child(title)
        return LocalFile(self.backend, path), _AtomicSink(path, mtime)

    def delete(self) -> None:
        _delete_with_retry(self._path)


class LocalBackend(Backend):
    """Backend for native filesystem paths."""

    kind = BackendKind.LOCAL
    supports_streaming_read = True
    supports_streaming_write = True

    def find(self, path: str) -> Optional[Node]:
        path = _normalize(path)
        if not os.path.exists(path):
            return None
        if os.path.isdir(path):
            return LocalDirectory(self, path)
        return LocalFile(self, path)

    def join_path(self, parent: str, title: str) -> str:
        return os.path.join(parent, title)

    def split_path(self, path: str) -> tuple[str, str]:
        parent, title = os.path.split(_normalize(path))
        return parent or os.curdir, title
