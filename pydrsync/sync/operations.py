"""Mutations applied by the sync engine.

Every mutation goes through :class:`SyncOperations`, which picks the transfer
path both backends can handle and, in a dry run, redirects the call to the
dry-run shadow of its target.
"""

import logging
from enum import Enum
from typing import Optional

from ..backends.base import Directory, File, Node
from ..backends.registry import BackendRegistry
from ..exceptions import NotSupportedCapability
from .options import SyncOptions

logger = logging.getLogger(__name__)


class TransferStrategy(str, Enum):
    """How a file's bytes get from one backend to another."""

    NATIVE_COPY = "native_copy"
    """Both sides are the same kind of backend"""

    STREAM_READ = "stream_read"
    """Source hands out a readable, destination consumes it"""

    STREAM_WRITE = "stream_write"
    """Destination hands out a writable, source fills it"""


def select_strategy(src: File, dest_dir: Directory) -> TransferStrategy:
    """Pick the first transfer path both backends support.

    Capabilities are read from the backends' origins, so a dry-run shadow
    negotiates exactly like the backend it simulates.

    Raises:
        NotSupportedCapability: If no transfer path exists
    """
    src_backend = src.backend.origin
    dest_backend = dest_dir.backend.origin

    if src_backend.same_backend_as(dest_backend):
        return TransferStrategy.NATIVE_COPY
    if src_backend.supports_streaming_read:
        return TransferStrategy.STREAM_READ
    if dest_backend.supports_streaming_write:
        return TransferStrategy.STREAM_WRITE
    raise NotSupportedCapability(
        f"no transfer path from {src_backend.kind.value} "
        f"to {dest_backend.kind.value} backend",
        path=src.path,
    )


class SyncOperations:
    """Applies create/update/delete operations on behalf of the engine."""

    def __init__(self, options: SyncOptions, registry: BackendRegistry):
        """Initialize sync operations.

        Args:
            options: Policy for the run
            registry: Owner of the backends (and their dry-run simulators)
        """
        self.options = options
        self.registry = registry

    def _target(self, node: Node) -> Node:
        """Node a mutation is applied to: the node itself or its shadow."""
        if not self.options.dry_run:
            return node
        return self.registry.dry_run_for(node.backend).shadow(node)

    def _times(self, src: File) -> tuple[Optional[int], Optional[int]]:
        if not self.options.preserve_time:
            return None, None
        return src.mtime, src.birthtime

    def create_directory(self, title: str, parent: Directory) -> Directory:
        """Create ``title`` inside ``parent``."""
        target: Directory = self._target(parent)  # type: ignore[assignment]
        logger.debug("Creating directory %s in %s", title, parent.path)
        return target.create_directory(title)

    def create_file(self, src: File, dest_dir: Directory) -> File:
        """Transfer ``src`` as a new file in ``dest_dir``."""
        return self._transfer(src, dest_dir, None)

    def update_file(self, src: File, dest: File, dest_dir: Directory) -> File:
        """Overwrite ``dest`` (a file in ``dest_dir``) with ``src``."""
        return self._transfer(src, dest_dir, dest)

    def _transfer(
        self, src: File, dest_dir: Directory, dest: Optional[File]
    ) -> File:
        strategy = select_strategy(src, dest_dir)
        mtime, birthtime = self._times(src)
        logger.debug(
            "%s %s -> %s via %s",
            "Updating" if dest is not None else "Creating",
            src.path,
            dest_dir.path,
            strategy.value,
        )

        src_t: File = self._target(src)  # type: ignore[assignment]
        dest_dir_t: Directory = self._target(dest_dir)  # type: ignore[assignment]
        dest_t: Optional[File] = (
            self._target(dest) if dest is not None else None  # type: ignore[assignment]
        )

        if strategy == TransferStrategy.NATIVE_COPY:
            return src_t.copy_within_backend(
                dest_dir_t, mtime, birthtime, replace=dest_t
            )

        if strategy == TransferStrategy.STREAM_READ:
            with src_t.open_read() as readable:
                if dest_t is not None:
                    return dest_t.update_from_stream(readable, mtime)
                return dest_dir_t.create_file_from_stream(
                    src.title, readable, mtime, birthtime
                )

        created, sink = dest_dir_t.open_write_sink(src.title, mtime)
        try:
            src_t.write_to(sink)  # type: ignore[arg-type]
        except BaseException:
            sink.discard()
            raise
        sink.close()
        return created

    def delete(self, node: Node) -> None:
        """Delete ``node`` (directories recursively)."""
        logger.debug("Deleting %s", node.path)
        self._target(node).delete()
