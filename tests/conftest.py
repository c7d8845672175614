"""Shared fixtures: an in-memory backend with configurable capabilities."""

from __future__ import annotations

import hashlib
import io
from dataclasses import dataclass
from typing import IO, Optional

import pytest

from pydrsync.backends.base import (
    Backend,
    BackendKind,
    Directory,
    File,
    Node,
    sorted_listing,
)
from pydrsync.backends.registry import BackendRegistry
from pydrsync.exceptions import RemoteOperationError

DEFAULT_NOW = 5000


@dataclass
class MemoryEntry:
    is_dir: bool = False
    data: bytes = b""
    mtime: int = 1000
    birthtime: int = 1000
    md5: Optional[str] = None
    broken: bool = False


class _MemorySink(io.BytesIO):
    """Writable that stores its bytes in the backend when closed."""

    def __init__(self, backend: MemoryBackend, path: str, mtime: Optional[int]):
        super().__init__()
        self._backend = backend
        self._path = path
        self._mtime = mtime

    def close(self) -> None:
        if not self.closed:
            self._backend.store(self._path, self.getvalue(), self._mtime)
        super().close()

    def discard(self) -> None:
        super().close()


class MemoryFile(File):
    def __init__(self, backend: MemoryBackend, path: str):
        super().__init__(backend)
        self._path = path

    @property
    def entry(self) -> MemoryEntry:
        return self.backend.entries[self._path]  # type: ignore[attr-defined]

    @property
    def title(self) -> str:
        return self.backend.split_path(self._path)[1]

    @property
    def path(self) -> str:
        return self._path

    @property
    def size(self) -> int:
        return len(self.entry.data)

    @property
    def mtime(self) -> int:
        return self.entry.mtime

    @property
    def birthtime(self) -> int:
        return self.entry.birthtime

    @property
    def content_hash(self) -> str:
        if self.entry.md5 is not None:
            return self.entry.md5
        return hashlib.md5(self.entry.data).hexdigest()

    def open_read(self) -> IO[bytes]:
        if not self.backend.supports_streaming_read:
            raise self._unsupported("streaming read")
        backend: MemoryBackend = self.backend  # type: ignore[assignment]
        backend.calls.append(("open_read", self._path))
        return io.BytesIO(self.entry.data)

    def write_to(self, sink: IO[bytes]) -> None:
        backend: MemoryBackend = self.backend  # type: ignore[assignment]
        backend.calls.append(("write_to", self._path))
        if self.entry.broken:
            # Half the bytes arrive before the connection drops
            sink.write(self.entry.data[: len(self.entry.data) // 2])
            raise RemoteOperationError("download failed: connection reset", self._path)
        sink.write(self.entry.data)

    def copy_within_backend(self, dest_dir, mtime, birthtime, replace=None) -> File:
        backend: MemoryBackend = dest_dir.backend
        if replace is not None:
            target = replace.path
        else:
            target = backend.join_path(dest_dir.path, self.title)
        backend.calls.append(("copy", target))
        backend.store(target, self.entry.data, mtime, birthtime)
        return MemoryFile(backend, target)

    def update_from_stream(self, readable, mtime) -> File:
        backend: MemoryBackend = self.backend  # type: ignore[assignment]
        backend.calls.append(("update", self._path))
        backend.store(self._path, readable.read(), mtime)
        return MemoryFile(backend, self._path)

    def delete(self) -> None:
        self.backend.remove(self._path)  # type: ignore[attr-defined]


class MemoryDirectory(Directory):
    def __init__(self, backend: MemoryBackend, path: str):
        super().__init__(backend)
        self._path = path

    @property
    def title(self) -> str:
        return self.backend.split_path(self._path)[1]

    @property
    def path(self) -> str:
        return self._path

    def list(self) -> list[Node]:
        backend: MemoryBackend = self.backend  # type: ignore[assignment]
        return sorted_listing(
            backend.node(path) for path in backend.children(self._path)
        )

    def create_directory(self, title: str) -> Directory:
        backend: MemoryBackend = self.backend  # type: ignore[assignment]
        path = backend.join_path(self._path, title)
        backend.calls.append(("mkdir", path))
        backend.entries[path] = MemoryEntry(is_dir=True)
        return MemoryDirectory(backend, path)

    def create_file_from_stream(self, title, readable, mtime, birthtime) -> File:
        backend: MemoryBackend = self.backend  # type: ignore[assignment]
        path = backend.join_path(self._path, title)
        backend.calls.append(("create", path))
        backend.store(path, readable.read(), mtime, birthtime)
        return MemoryFile(backend, path)

    def open_write_sink(self, title, mtime=None):
        backend: MemoryBackend = self.backend  # type: ignore[assignment]
        if not backend.supports_streaming_write:
            raise self._unsupported("streaming write")
        path = backend.join_path(self._path, title)
        backend.calls.append(("sink", path))
        return MemoryFile(backend, path), _MemorySink(backend, path, mtime)

    def delete(self) -> None:
        self.backend.remove(self._path)  # type: ignore[attr-defined]


class MemoryBackend(Backend):
    """Backend keeping a whole tree in a dict keyed by path."""

    def __init__(
        self,
        scheme: str = "mem://",
        kind: BackendKind = BackendKind.LOCAL,
        streaming_read: bool = True,
        streaming_write: bool = True,
    ):
        self.scheme = scheme
        self.kind = kind
        self.supports_streaming_read = streaming_read
        self.supports_streaming_write = streaming_write
        self.entries: dict[str, MemoryEntry] = {scheme: MemoryEntry(is_dir=True)}
        self.calls: list[tuple[str, str]] = []
        self.now = DEFAULT_NOW
        self.closed = False

    def key(self, path: str) -> str:
        return self.scheme + path[len(self.scheme) :].strip("/")

    def path(self, relative: str = "") -> str:
        return self.key(self.scheme + relative)

    def add_dir(self, relative: str) -> str:
        path = self.path(relative)
        parent, _ = self.split_path(path)
        if parent != self.scheme and parent not in self.entries:
            self.add_dir(parent[len(self.scheme) :])
        self.entries[path] = MemoryEntry(is_dir=True)
        return path

    def add_file(
        self,
        relative: str,
        data: bytes = b"",
        mtime: int = 1000,
        md5=None,
        broken: bool = False,
    ) -> str:
        path = self.path(relative)
        parent, _ = self.split_path(path)
        if parent != self.scheme and parent not in self.entries:
            self.add_dir(parent[len(self.scheme) :])
        self.entries[path] = MemoryEntry(
            data=data, mtime=mtime, birthtime=mtime, md5=md5, broken=broken
        )
        return path

    def store(self, path, data, mtime=None, birthtime=None) -> None:
        when = self.now if mtime is None else mtime
        born = self.now if birthtime is None else birthtime
        self.entries[path] = MemoryEntry(data=data, mtime=when, birthtime=born)

    def remove(self, path: str) -> None:
        self.calls.append(("delete", path))
        doomed = [k for k in self.entries if k == path or k.startswith(path + "/")]
        for key in doomed:
            del self.entries[key]

    def read(self, relative: str) -> bytes:
        return self.entries[self.path(relative)].data

    def exists(self, relative: str) -> bool:
        return self.path(relative) in self.entries

    def children(self, path: str) -> list[str]:
        return [
            key
            for key in self.entries
            if key != path and self.split_path(key)[0] == path
        ]

    def node(self, path: str) -> Node:
        if self.entries[path].is_dir:
            return MemoryDirectory(self, path)
        return MemoryFile(self, path)

    def find(self, path: str) -> Optional[Node]:
        key = self.key(path)
        if key not in self.entries:
            return None
        return self.node(key)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def src_backend():
    """In-memory source tree at ``src://``."""
    return MemoryBackend(scheme="src://")


@pytest.fixture
def dest_backend():
    """In-memory destination tree at ``dst://``."""
    return MemoryBackend(scheme="dst://")


@pytest.fixture
def registry(src_backend, dest_backend):
    """Registry routing ``src://`` and ``dst://`` to the memory backends."""
    registry = BackendRegistry(api_key="test_key")
    registry.register("src://", src_backend)
    registry.register("dst://", dest_backend)
    yield registry
    registry.close()
