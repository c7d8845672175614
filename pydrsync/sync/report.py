"""Records produced while reconciling."""

from dataclasses import dataclass, field

from .comparator import SyncAction


@dataclass(frozen=True)
class ActionRecord:
    """One reported action."""

    action: SyncAction
    """What happened"""

    path: str
    """Path relative to the destination root (full path for source removals)"""

    is_dir: bool = False
    """Whether the entry is a directory"""

    reason: str = ""
    """Human-readable reason"""

    def __str__(self) -> str:
        suffix = "/" if self.is_dir else ""
        return f"{self.path}{suffix} ({self.action.value})"


@dataclass
class SyncReport:
    """Everything a run did, in traversal order."""

    records: list[ActionRecord] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    dry_run: bool = False

    def add(
        self, action: SyncAction, path: str, is_dir: bool = False, reason: str = ""
    ) -> ActionRecord:
        record = ActionRecord(action=action, path=path, is_dir=is_dir, reason=reason)
        self.records.append(record)
        return record

    def add_error(self, message: str) -> None:
        self.errors.append(message)

    @property
    def lines(self) -> list[str]:
        """Records rendered as ``<path> (<action>)``."""
        return [str(record) for record in self.records]

    @property
    def actions(self) -> list[SyncAction]:
        return [record.action for record in self.records]

    @property
    def stats(self) -> dict[str, int]:
        """Count of records per action plus the number of errors."""
        stats = {action.value: 0 for action in SyncAction}
        for record in self.records:
            stats[record.action.value] += 1
        stats["errors"] = len(self.errors)
        return stats

    @property
    def changed(self) -> int:
        """Number of created, updated and deleted entries."""
        stats = self.stats
        return stats["created"] + stats["updated"] + stats["deleted"]
