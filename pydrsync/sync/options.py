"""Validated sync configuration."""

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Optional

from ..backends.base import File
from ..exceptions import ValidationError

logger = logging.getLogger(__name__)

UNLIMITED_SIZE = float("inf")

SIZE_UNITS = {
    "": 1,
    "b": 1,
    "k": 1024,
    "kb": 1024,
    "m": 1024**2,
    "mb": 1024**2,
    "g": 1024**3,
    "gb": 1024**3,
}

_SIZE_PATTERN = re.compile(
    r"^(?P<number>\d+(?:\.\d*)?|\.\d+)"
    r"(?P<unit>[a-z]*)"
    r"(?P<adjust>[+-]\d+)?$",
    re.IGNORECASE,
)


def parse_size(value: str) -> int:
    """Parse a size filter such as ``100``, ``10k``, ``1.5mb-1`` or ``2G+10``.

    Units are binary multiples and case-insensitive. The result is truncated
    to whole bytes.

    Args:
        value: Size expression

    Returns:
        Size in bytes

    Raises:
        ValidationError: If the expression is malformed or not positive

    Examples:
        >>> parse_size("1.5mb-1")
        1572863
        >>> parse_size("10K")
        10240
    """
    match = _SIZE_PATTERN.match(value.strip())
    if not match:
        raise ValidationError(f"invalid size: {value!r}")

    unit = match.group("unit").lower()
    if unit not in SIZE_UNITS:
        raise ValidationError(f"invalid size unit in {value!r}")

    size = int(float(match.group("number")) * SIZE_UNITS[unit])
    if match.group("adjust"):
        size += int(match.group("adjust"))

    if size <= 0:
        raise ValidationError(f"size must be positive: {value!r}")
    return size


def format_error(path: str, error: BaseException) -> str:
    """One-line message naming the path and the failure kind."""
    kind = getattr(error, "kind", type(error).__name__)
    return f"{path}: {kind}: {error}"


@dataclass(frozen=True)
class SyncOptions:
    """Immutable policy for one run.

    Build instances with :meth:`from_flags` so that composite flags are
    folded in and validation runs; direct construction validates too but
    takes the flags as already resolved.
    """

    checksum: bool = False
    size_only: bool = False
    ignore_times: bool = False
    update: bool = False
    recursive: bool = False
    dirs: bool = False
    preserve_time: bool = False
    existing: bool = False
    ignore_existing: bool = False
    delete: bool = False
    dry_run: bool = False
    remove_source_files: bool = False
    verbose: bool = False
    min_size: int = 0
    max_size: float = UNLIMITED_SIZE
    error_hook: Optional[Callable[[str], None]] = field(
        default=None, compare=False, repr=False
    )

    def __post_init__(self) -> None:
        if self.recursive and self.dirs:
            # Recursive wins over directory-only transfer
            object.__setattr__(self, "dirs", False)
        if self.delete and not (self.recursive or self.dirs):
            raise ValidationError("--delete does not work without -r or -d")

    @classmethod
    def from_flags(
        cls,
        archive: bool = False,
        min_size: Optional[str] = None,
        max_size: Optional[str] = None,
        error_hook: Optional[Callable[[str], None]] = None,
        **flags: bool,
    ) -> "SyncOptions":
        """Fold raw command line flags into options.

        Args:
            archive: Implies ``recursive`` and ``preserve_time``
            min_size: Size expression for the smallest file to transfer
            max_size: Size expression for the largest file to transfer
            error_hook: Receives one line per contained failure
            **flags: Remaining boolean flags, named like the fields

        Raises:
            ValidationError: On invalid combinations or size expressions
        """
        if archive:
            flags["recursive"] = True
            flags["preserve_time"] = True
        return cls(
            min_size=parse_size(min_size) if min_size is not None else 0,
            max_size=parse_size(max_size) if max_size is not None else UNLIMITED_SIZE,
            error_hook=error_hook,
            **flags,  # type: ignore[arg-type]
        )

    @property
    def descends(self) -> bool:
        """Whether directories are transferred at all."""
        return self.recursive or self.dirs

    def size_allowed(self, size: int) -> bool:
        """Whether a file of ``size`` bytes passes the size filters."""
        return self.min_size <= size <= self.max_size

    def should_update(self, src: File, dest: File) -> bool:
        """Decide whether an existing destination file must be rewritten."""
        if self.update and dest.mtime > src.mtime:
            return False
        if self.checksum:
            return src.content_hash != dest.content_hash
        if self.size_only:
            return src.size != dest.size
        if self.ignore_times:
            return True
        return src.size != dest.size or dest.mtime < src.mtime

    def report_error(self, path: str, error: BaseException) -> str:
        """Report a contained per-item failure.

        The message goes to ``error_hook`` when one is set, otherwise it is
        logged as an error.

        Returns:
            The formatted message
        """
        message = format_error(path, error)
        if self.error_hook is None:
            logger.error(message)
        else:
            logger.debug(message)
            self.error_hook(message)
        return message
