"""Per-item decisions for sync operations."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..backends.base import Directory, File, Node
from .options import SyncOptions


class SyncAction(str, Enum):
    """Actions that can be taken during sync."""

    CREATED = "created"
    """Entry is new in the destination"""

    UPDATED = "updated"
    """Existing destination file is rewritten"""

    DELETED = "deleted"
    """Entry is removed"""

    SKIPPED = "skipped"
    """Nothing to do"""

    EXTRANEOUS = "extraneous"
    """Destination-only entry that is left in place"""


@dataclass
class SyncDecision:
    """Represents a decision about how to sync one item."""

    action: SyncAction
    """Action to take"""

    reason: str
    """Human-readable reason for this decision"""

    quiet: bool = False
    """Silent skip that produces no record"""


class FileComparator:
    """Turns option flags and node metadata into actions.

    The comparator never performs I/O beyond reading node metadata, so the
    same decisions come out of a real run and a dry run.
    """

    def __init__(self, options: SyncOptions):
        """Initialize file comparator.

        Args:
            options: Policy for the run
        """
        self.options = options

    def decide_file(self, src: File, dest: Optional[File]) -> SyncDecision:
        """Decide what happens to a source file.

        Args:
            src: Source file
            dest: Same-titled destination file, if any

        Returns:
            SyncDecision for this file

        Raises:
            NotSupportedCapability: If a compared value is not available
        """
        if not self.options.size_allowed(src.size):
            return SyncDecision(
                action=SyncAction.SKIPPED,
                reason=f"Size {src.size} outside of size limits",
                quiet=True,
            )

        if dest is None:
            if self.options.existing:
                return SyncDecision(
                    action=SyncAction.SKIPPED,
                    reason="Not in destination (--existing)",
                    quiet=True,
                )
            return SyncDecision(
                action=SyncAction.CREATED, reason="Not in destination"
            )

        if self.options.ignore_existing:
            return SyncDecision(
                action=SyncAction.SKIPPED,
                reason="Already in destination (--ignore-existing)",
                quiet=True,
            )

        if self.options.should_update(src, dest):
            return SyncDecision(
                action=SyncAction.UPDATED, reason="Destination is out of date"
            )
        return SyncDecision(action=SyncAction.SKIPPED, reason="Up to date")

    def decide_directory(
        self, src: Directory, dest: Optional[Directory]
    ) -> SyncDecision:
        """Decide what happens to a source directory.

        Args:
            src: Source directory
            dest: Same-titled destination directory, if any

        Returns:
            SyncDecision for this directory (an existing destination
            directory is a quiet skip; its contents are still reconciled)
        """
        if not self.options.descends:
            return SyncDecision(
                action=SyncAction.SKIPPED,
                reason="Directories need -r or -d",
            )

        if dest is None:
            if self.options.existing:
                return SyncDecision(
                    action=SyncAction.SKIPPED,
                    reason="Not in destination (--existing)",
                    quiet=True,
                )
            return SyncDecision(
                action=SyncAction.CREATED, reason="Not in destination"
            )

        return SyncDecision(
            action=SyncAction.SKIPPED, reason="Directory exists", quiet=True
        )

    def decide_extraneous(self, dest: Node) -> SyncDecision:
        """Decide what happens to a destination entry without source."""
        if self.options.delete:
            return SyncDecision(
                action=SyncAction.DELETED, reason="Not in source (--delete)"
            )
        return SyncDecision(action=SyncAction.EXTRANEOUS, reason="Not in source")
