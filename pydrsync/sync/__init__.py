"""Sync engine for pydrsync - rsync-like reconciliation between backends."""

from .comparator import FileComparator, SyncAction, SyncDecision
from .engine import SyncEngine
from .operations import SyncOperations, TransferStrategy, select_strategy
from .options import SyncOptions, parse_size
from .report import ActionRecord, SyncReport

__all__ = [
    "SyncEngine",
    "SyncOptions",
    "SyncOperations",
    "SyncReport",
    "ActionRecord",
    "FileComparator",
    "SyncAction",
    "SyncDecision",
    "TransferStrategy",
    "parse_size",
    "select_strategy",
]
