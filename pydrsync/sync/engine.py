"""Core sync engine for reconciling directory trees."""

import logging
import os
from typing import Optional

from ..backends.base import Backend, Directory, File, Node, sorted_listing
from ..backends.registry import BackendRegistry
from ..exceptions import (
    FatalPathError,
    NotSupportedCapability,
    RemoteOperationError,
    TransientIOError,
)
from ..output import OutputFormatter
from .comparator import FileComparator, SyncAction
from .operations import SyncOperations
from .options import SyncOptions
from .report import SyncReport

logger = logging.getLogger(__name__)

# Failures contained to the item being processed
ITEM_ERRORS = (
    NotSupportedCapability,
    TransientIOError,
    RemoteOperationError,
    OSError,
)


def _relative(prefix: str, title: str) -> str:
    return f"{prefix}/{title}" if prefix else title


def _has_trailing_slash(path: str) -> bool:
    return path.endswith("/") or path.endswith(os.sep)


class SyncEngine:
    """Reconciles source trees into a destination directory.

    The traversal is depth-first and strictly sequential. For each directory
    level the destination listing is taken before anything is changed, then
    source entries are matched by title and leftovers are handled last.
    """

    def __init__(
        self,
        options: SyncOptions,
        registry: Optional[BackendRegistry] = None,
        output: Optional[OutputFormatter] = None,
    ):
        """Initialize sync engine.

        Args:
            options: Validated policy for the run
            registry: Owner of the backends (default: a new registry)
            output: Output formatter for verbose records and the summary
        """
        self.options = options
        self.registry = registry or BackendRegistry()
        self.output = output
        self.comparator = FileComparator(options)
        self.operations = SyncOperations(options, self.registry)

    def run(self, sources: list[str], dest: str) -> SyncReport:
        """Reconcile every source into ``dest``, in order.

        A source argument ending with a slash stands for the directory's
        contents; without it the directory itself is nested in ``dest``.

        Args:
            sources: Source paths (local paths or ``drime://`` paths)
            dest: Destination path

        Returns:
            Report with one record per visible action

        Raises:
            FatalPathError: If a source is missing or the destination cannot
                be resolved

        Examples:
            >>> options = SyncOptions.from_flags(recursive=True)
            >>> with BackendRegistry() as registry:  # doctest: +SKIP
            ...     report = SyncEngine(options, registry).run(["src/"], "dest")
            >>> report.lines  # doctest: +SKIP
            ['a.txt (created)', 'old.txt (extraneous)']
        """
        report = SyncReport(dry_run=self.options.dry_run)
        for source in sources:
            logger.debug("Syncing %s -> %s", source, dest)
            self._sync_source(source, dest, report)

        if self.output is not None:
            self._display_summary(report)
        return report

    # =========================
    # Root handling
    # =========================

    def _find(self, backend: Backend, path: str) -> Optional[Node]:
        """Resolve a root path; lookup failures are fatal at this level."""
        try:
            return backend.find(path)
        except (RemoteOperationError, OSError) as e:
            raise FatalPathError(f"cannot resolve '{path}': {e}", path=path) from e

    def _sync_source(self, source: str, dest: str, report: SyncReport) -> None:
        src_backend = self.registry.for_path(source)
        src = self._find(src_backend, source)
        if src is None:
            raise FatalPathError(
                f"file or directory '{source}' not found", path=source
            )

        if isinstance(src, File):
            self._sync_root_file(src, dest, report)
            return

        assert isinstance(src, Directory)
        if not self.options.descends:
            decision = self.comparator.decide_directory(src, None)
            self._record(report, decision.action, src.title, True, decision.reason)
            return

        dest_root = self._resolve_dest_root(dest, report)
        if dest_root is None:
            return

        prefix = ""
        if not _has_trailing_slash(source):
            nested = self._nest(src, dest_root, report)
            if nested is None or self.options.dirs:
                return
            dest_root = nested
            prefix = src.title

        self._sync_contents(src, dest_root, prefix, report)

    def _sync_root_file(self, src: File, dest: str, report: SyncReport) -> None:
        dest_backend = self.registry.for_path(dest)
        dest_root = self._find(dest_backend, dest)
        if not isinstance(dest_root, Directory):
            raise FatalPathError(
                f"cannot find destination directory '{dest}'", path=dest
            )

        existing = self._find(
            dest_backend, dest_backend.join_path(dest_root.path, src.title)
        )
        if isinstance(existing, Directory):
            self._report_conflict(src, existing, report)
            return
        try:
            self._transfer_file(src, dest_root, existing, src.title, report)
        except ITEM_ERRORS as e:
            self._report_error(src.path, e, report)

    def _resolve_dest_root(self, dest: str, report: SyncReport) -> Optional[Directory]:
        """Find the destination directory, creating it when allowed."""
        dest_backend = self.registry.for_path(dest)
        node = self._find(dest_backend, dest)
        if node is not None:
            if not node.is_dir:
                raise FatalPathError(
                    f"destination '{dest}' is not a directory", path=dest
                )
            return node  # type: ignore[return-value]

        label = dest.rstrip("/") or dest
        if self.options.existing:
            self._record(
                report,
                SyncAction.SKIPPED,
                label,
                True,
                "Not in destination (--existing)",
            )
            return None

        parent_path, title = dest_backend.split_path(dest)
        parent = self._find(dest_backend, parent_path)
        if not isinstance(parent, Directory) or not title:
            raise FatalPathError(
                f"cannot create destination directory '{dest}'", path=dest
            )
        try:
            created = self.operations.create_directory(title, parent)
        except ITEM_ERRORS as e:
            raise FatalPathError(
                f"cannot create destination directory '{dest}': {e}", path=dest
            ) from e
        self._record(report, SyncAction.CREATED, label, True, "Not in destination")
        return created

    def _nest(
        self, src: Directory, dest_root: Directory, report: SyncReport
    ) -> Optional[Directory]:
        """Resolve or create ``DEST/<title>`` for a source without trailing slash."""
        dest_backend = dest_root.backend
        path = dest_backend.join_path(dest_root.path, src.title)
        existing = self._find(dest_backend, path)
        if isinstance(existing, File):
            self._report_conflict(src, existing, report)
            return None

        decision = self.comparator.decide_directory(src, existing)
        if decision.action != SyncAction.CREATED:
            return existing
        try:
            created = self.operations.create_directory(src.title, dest_root)
        except ITEM_ERRORS as e:
            raise FatalPathError(
                f"cannot create directory '{path}': {e}", path=path
            ) from e
        self._record(report, SyncAction.CREATED, src.title, True, decision.reason)
        return created

    # =========================
    # Tree reconciliation
    # =========================

    def _sync_contents(
        self, src_dir: Directory, dest_dir: Directory, prefix: str, report: SyncReport
    ) -> None:
        """Reconcile the entries of ``src_dir`` into ``dest_dir``."""
        try:
            dest_entries = dest_dir.backend.list(dest_dir)
            src_entries = src_dir.backend.list(src_dir)
        except ITEM_ERRORS as e:
            self._report_error(src_dir.path, e, report)
            return

        dest_dirs = {n.title: n for n in dest_entries if n.is_dir}
        dest_files = {n.title: n for n in dest_entries if not n.is_dir}
        logger.debug(
            "%s: %d source entries, %d destination entries",
            src_dir.path,
            len(src_entries),
            len(dest_entries),
        )

        for src in src_entries:
            rel = _relative(prefix, src.title)
            match_dir = dest_dirs.pop(src.title, None)
            match_file = dest_files.pop(src.title, None)

            if src.is_dir and match_file is not None:
                self._report_conflict(src, match_file, report)
                continue
            if not src.is_dir and match_dir is not None:
                self._report_conflict(src, match_dir, report)
                continue

            try:
                if isinstance(src, Directory):
                    self._sync_directory(src, dest_dir, match_dir, rel, report)
                elif isinstance(src, File):
                    self._transfer_file(src, dest_dir, match_file, rel, report)
            except ITEM_ERRORS as e:
                self._report_error(src.path, e, report)

        leftovers = sorted_listing(list(dest_dirs.values()) + list(dest_files.values()))
        for node in leftovers:
            self._handle_extraneous(node, _relative(prefix, node.title), report)

    def _sync_directory(
        self,
        src: Directory,
        dest_parent: Directory,
        dest: Optional[Directory],
        rel: str,
        report: SyncReport,
    ) -> None:
        decision = self.comparator.decide_directory(src, dest)
        if decision.action == SyncAction.CREATED:
            dest = self.operations.create_directory(src.title, dest_parent)
            self._record(report, decision.action, rel, True, decision.reason)
        elif not decision.quiet:
            self._record(report, decision.action, rel, True, decision.reason)
            return

        if dest is None:
            return
        if self.options.dirs:
            # Directory-only transfer creates sub directories but not their contents
            return
        self._sync_contents(src, dest, rel, report)

    def _transfer_file(
        self,
        src: File,
        dest_dir: Directory,
        dest: Optional[File],
        rel: str,
        report: SyncReport,
    ) -> None:
        """Single-file transfer decision."""
        decision = self.comparator.decide_file(src, dest)
        if decision.quiet:
            logger.debug("Skipping %s: %s", rel, decision.reason)
            return
        if decision.action == SyncAction.SKIPPED:
            self._record(report, decision.action, rel, False, decision.reason)
            return

        if dest is None:
            self.operations.create_file(src, dest_dir)
        else:
            self.operations.update_file(src, dest, dest_dir)
        self._record(report, decision.action, rel, False, decision.reason)

        if self.options.remove_source_files:
            self.operations.delete(src)
            self._record(report, SyncAction.DELETED, src.path, False, "Transferred")

    def _handle_extraneous(self, node: Node, rel: str, report: SyncReport) -> None:
        decision = self.comparator.decide_extraneous(node)
        if decision.action == SyncAction.DELETED:
            try:
                self.operations.delete(node)
            except ITEM_ERRORS as e:
                self._report_error(node.path, e, report)
                return
        self._record(report, decision.action, rel, node.is_dir, decision.reason)

    # =========================
    # Reporting
    # =========================

    def _record(
        self,
        report: SyncReport,
        action: SyncAction,
        path: str,
        is_dir: bool,
        reason: str,
    ) -> None:
        record = report.add(action, path, is_dir=is_dir, reason=reason)
        logger.debug("%s: %s", record, reason)
        if self.output is not None and self.options.verbose:
            self.output.print(str(record))

    def _report_error(
        self, path: str, error: BaseException, report: SyncReport
    ) -> None:
        report.add_error(self.options.report_error(path, error))

    def _report_conflict(self, src: Node, dest: Node, report: SyncReport) -> None:
        kind = "directory" if dest.is_dir else "file"
        error = NotSupportedCapability(
            f"cannot replace {kind} '{dest.path}' with a "
            f"{'directory' if src.is_dir else 'file'}",
            path=dest.path,
        )
        self._report_error(src.path, error, report)

    def _display_summary(self, report: SyncReport) -> None:
        """Display sync summary."""
        assert self.output is not None
        stats = report.stats
        title = "Dry run summary" if report.dry_run else "Sync summary"
        self.output.print_summary(
            title,
            [(action.capitalize(), str(count)) for action, count in stats.items()],
        )
        if stats["errors"]:
            self.output.warning(f"{stats['errors']} item(s) failed")
        elif not report.dry_run:
            self.output.success("Sync complete")
