"""Storage abstraction shared by every backend.

A backend exposes a tree of :class:`Node` objects (:class:`File` and
:class:`Directory`). The reconciler only talks to these interfaces, so the
same algorithm runs over local disks, the remote drive and the dry-run
simulator.

Every operation is abstract. A concrete backend either implements it or
declines it explicitly by raising :class:`NotSupportedCapability`; nothing
falls through silently.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import IO, Iterable, Optional, Protocol

from ..exceptions import NotSupportedCapability
from ..utils import join_path, split_path


class BackendKind(str, Enum):
    """Closed set of backend identities."""

    LOCAL = "local"
    """Native filesystem"""

    REMOTE = "remote"
    """Drime Cloud drive"""

    DRY_RUN = "dry_run"
    """Simulator that performs no I/O"""


class WriteSink(Protocol):
    """Binary writable handed out by ``Directory.open_write_sink``.

    ``close`` commits the written bytes to the file; ``discard`` abandons
    them and leaves whatever the destination held before.
    """

    def write(self, data: bytes) -> int: ...

    def close(self) -> None: ...

    def discard(self) -> None: ...


class Backend(ABC):
    """A storage provider."""

    kind: BackendKind
    supports_streaming_read: bool = False
    """Files can hand out a readable via ``File.open_read``"""

    supports_streaming_write: bool = False
    """Directories can hand out a writable via ``Directory.open_write_sink``"""

    @property
    def origin(self) -> "Backend":
        """Backend whose behaviour this backend's nodes stand for.

        Real backends are their own origin; the dry-run backend reports the
        backend it simulates.
        """
        return self

    def same_backend_as(self, other: "Backend") -> bool:
        """Whether native same-backend operations can be used between the two."""
        return self.origin.kind == other.origin.kind

    @abstractmethod
    def find(self, path: str) -> Optional["Node"]:
        """Resolve a path to a node, or None if nothing lives there."""

    def list(self, directory: "Directory") -> list["Node"]:
        """List the entries of one of this backend's directories."""
        if directory.backend is not self:
            raise ValueError(f"{directory.path} does not belong to this backend")
        return directory.list()

    def join_path(self, parent: str, title: str) -> str:
        """Build the path of ``title`` inside ``parent``."""
        return join_path(parent, title)

    def split_path(self, path: str) -> tuple[str, str]:
        """Split ``path`` into its parent path and leaf title."""
        return split_path(path)

    def close(self) -> None:
        """Release sessions held by the backend."""


class Node(ABC):
    """A file or directory handle."""

    is_dir: bool = False

    def __init__(self, backend: Backend):
        self._backend = backend

    @property
    def backend(self) -> Backend:
        """Backend that produced this node."""
        return self._backend

    @property
    @abstractmethod
    def title(self) -> str:
        """Leaf name."""

    @property
    @abstractmethod
    def path(self) -> str:
        """Backend specific path (ex. ``drime://Some/Directory/sample.txt``)."""

    @abstractmethod
    def delete(self) -> None:
        """Delete the node (directories recursively)."""

    def _unsupported(self, operation: str) -> NotSupportedCapability:
        return NotSupportedCapability(
            f"{self.backend.kind.value} backend does not support {operation}",
            path=self.path,
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.path!r})"


class File(Node):
    """A regular file."""

    @property
    @abstractmethod
    def size(self) -> int:
        """Size in bytes."""

    @property
    @abstractmethod
    def mtime(self) -> int:
        """Last modification time in whole epoch seconds (UTC)."""

    @property
    @abstractmethod
    def birthtime(self) -> int:
        """Creation time in whole epoch seconds (UTC)."""

    @property
    @abstractmethod
    def content_hash(self) -> str:
        """Opaque content checksum; equal content gives equal hashes."""

    @abstractmethod
    def open_read(self) -> IO[bytes]:
        """Open a binary readable on the content (streaming read)."""

    @abstractmethod
    def write_to(self, sink: IO[bytes]) -> None:
        """Write the whole content into ``sink``."""

    @abstractmethod
    def copy_within_backend(
        self,
        dest_dir: "Directory",
        mtime: Optional[int],
        birthtime: Optional[int],
        replace: Optional["File"] = None,
    ) -> "File":
        """Copy this file into ``dest_dir`` using native operations.

        Args:
            dest_dir: Directory on the same backend
            mtime: Modification time for the copy (None keeps the backend default)
            birthtime: Creation time for the copy, where the backend records one
            replace: Existing file in ``dest_dir`` the copy supersedes

        Returns:
            The copied file
        """

    @abstractmethod
    def update_from_stream(self, readable: IO[bytes], mtime: Optional[int]) -> "File":
        """Replace the content with the bytes of ``readable``."""


class Directory(Node):
    """A directory."""

    is_dir = True

    @abstractmethod
    def list(self) -> list[Node]:
        """Fresh listing: directories first, then files, each sorted by title."""

    @abstractmethod
    def create_directory(self, title: str) -> "Directory":
        """Create a sub directory."""

    @abstractmethod
    def create_file_from_stream(
        self,
        title: str,
        readable: IO[bytes],
        mtime: Optional[int],
        birthtime: Optional[int],
    ) -> File:
        """Create a file named ``title`` from the bytes of ``readable``."""

    @abstractmethod
    def open_write_sink(
        self, title: str, mtime: Optional[int] = None
    ) -> tuple[File, WriteSink]:
        """Create a file named ``title`` and return it with a writable.

        The caller closes the writable once every byte is written, or
        discards it after a failure; ``mtime`` is applied on close.
        """


def sorted_listing(nodes: Iterable[Node]) -> list[Node]:
    """Order nodes the way every listing must be ordered."""
    nodes = list(nodes)
    dirs = sorted((n for n in nodes if n.is_dir), key=lambda n: n.title)
    files = sorted((n for n in nodes if not n.is_dir), key=lambda n: n.title)
    return dirs + files
