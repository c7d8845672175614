"""Storage backends."""

from .base import (
    Backend,
    BackendKind,
    Directory,
    File,
    Node,
    WriteSink,
    sorted_listing,
)
from .dry_run import DryRunBackend, DryRunDirectory, DryRunFile
from .local import LocalBackend, LocalDirectory, LocalFile
from .registry import BackendRegistry
from .remote import URL_SCHEME, RemoteBackend, RemoteDirectory, RemoteFile

__all__ = [
    "Backend",
    "BackendKind",
    "BackendRegistry",
    "Directory",
    "DryRunBackend",
    "DryRunDirectory",
    "DryRunFile",
    "File",
    "LocalBackend",
    "LocalDirectory",
    "LocalFile",
    "Node",
    "RemoteBackend",
    "RemoteDirectory",
    "RemoteFile",
    "URL_SCHEME",
    "WriteSink",
    "sorted_listing",
]
