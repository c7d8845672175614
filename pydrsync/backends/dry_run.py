"""Dry-run simulator.

A :class:`DryRunBackend` stands in for one real backend. Its nodes carry the
paths of the real nodes they shadow, but every mutation only fabricates a
zero-size node; nothing is read or written.
"""

from __future__ import annotations

import io
import logging
from typing import IO, Optional

from .base import Backend, BackendKind, Directory, File, Node, WriteSink

logger = logging.getLogger(__name__)


class _NullSink(io.BytesIO):
    """Writable whose bytes are never stored."""

    def discard(self) -> None:
        self.close()


class DryRunFile(File):
    """Fabricated file; all metadata is empty."""

    def __init__(self, backend: DryRunBackend, path: str, title: str):
        super().__init__(backend)
        self._path = path
        self._title = title

    @property
    def title(self) -> str:
        return self._title

    @property
    def path(self) -> str:
        return self._path

    @property
    def size(self) -> int:
        return 0

    @property
    def mtime(self) -> int:
        return 0

    @property
    def birthtime(self) -> int:
        return 0

    @property
    def content_hash(self) -> str:
        return ""

    def open_read(self) -> IO[bytes]:
        if not self.backend.supports_streaming_read:
            raise self._unsupported("streaming read")
        return io.BytesIO()

    def write_to(self, sink: IO[bytes]) -> None:
        pass

    def copy_within_backend(
        self,
        dest_dir: Directory,
        mtime: Optional[int],
        birthtime: Optional[int],
        replace: Optional[File] = None,
    ) -> File:
        if replace is not None:
            return DryRunFile(
                self.backend, replace.path, replace.title  # type: ignore[arg-type]
            )
        backend: DryRunBackend = self.backend  # type: ignore[assignment]
        return backend.fabricate_file(dest_dir, self.title)

    def update_from_stream(self, readable: IO[bytes], mtime: Optional[int]) -> File:
        backend: DryRunBackend = self.backend  # type: ignore[assignment]
        return DryRunFile(backend, self._path, self._title)

    def delete(self) -> None:
        logger.debug("Dry run: not deleting %s", self._path)


class DryRunDirectory(Directory):
    """Fabricated directory; always lists empty."""

    def __init__(self, backend: DryRunBackend, path: str, title: str):
        super().__init__(backend)
        self._path = path
        self._title = title

    @property
    def title(self) -> str:
        return self._title

    @property
    def path(self) -> str:
        return self._path

    def list(self) -> list[Node]:
        return []

    def create_directory(self, title: str) -> Directory:
        path = self.backend.join_path(self._path, title)
        return DryRunDirectory(self.backend, path, title)  # type: ignore[arg-type]

    def create_file_from_stream(
        self,
        title: str,
        readable: IO[bytes],
        mtime: Optional[int],
        birthtime: Optional[int],
    ) -> File:
        backend: DryRunBackend = self.backend  # type: ignore[assignment]
        return backend.fabricate_file(self, title)

    def open_write_sink(
        self, title: str, mtime: Optional[int] = None
    ) -> tuple[File, WriteSink]:
        if not self.backend.supports_streaming_write:
            raise self._unsupported("streaming write")
        backend: DryRunBackend = self.backend  # type: ignore[assignment]
        return backend.fabricate_file(self, title), _NullSink()

    def delete(self) -> None:
        logger.debug("Dry run: not deleting %s", self._path)


class DryRunBackend(Backend):
    """Simulates ``simulated`` without touching it."""

    kind = BackendKind.DRY_RUN

    def __init__(self, simulated: Backend):
        self.simulated = simulated

    @property
    def origin(self) -> Backend:
        return self.simulated.origin

    @property  # type: ignore[override]
    def supports_streaming_read(self) -> bool:
        return self.simulated.supports_streaming_read

    @property  # type: ignore[override]
    def supports_streaming_write(self) -> bool:
        return self.simulated.supports_streaming_write

    def find(self, path: str) -> Optional[Node]:
        return None

    def join_path(self, parent: str, title: str) -> str:
        return self.simulated.join_path(parent, title)

    def split_path(self, path: str) -> tuple[str, str]:
        return self.simulated.split_path(path)

    def fabricate_file(self, directory: Directory, title: str) -> DryRunFile:
        return DryRunFile(self, self.join_path(directory.path, title), title)

    def shadow(self, node: Node) -> Node:
        """Dry-run counterpart of a node of the simulated backend."""
        if isinstance(node.backend, DryRunBackend):
            return node
        if node.is_dir:
            return DryRunDirectory(self, node.path, node.title)
        return DryRunFile(self, node.path, node.title)
