"""Typed views of Drime Cloud API responses."""

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class FileEntry:
    """A file or folder entry as reported by the API."""

    id: int
    name: str
    type: str
    hash: str = ""
    file_size: int = 0
    parent_id: Optional[int] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    deleted_at: Optional[str] = None
    md5: Optional[str] = None
    """Content checksum reported by the provider, if any"""
    mime: Optional[str] = None
    workspace_id: int = 0

    @property
    def is_folder(self) -> bool:
        """Whether this entry is a folder."""
        return self.type == "folder"

    @property
    def is_trashed(self) -> bool:
        """Whether this entry has been moved to the trash."""
        return bool(self.deleted_at)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FileEntry":
        """Create a FileEntry from an API dictionary.

        Args:
            data: Raw entry dictionary

        Returns:
            FileEntry instance
        """
        return cls(
            id=int(data.get("id", 0)),
            name=data.get("name", ""),
            type=data.get("type") or "file",
            hash=data.get("hash") or "",
            file_size=int(data.get("file_size") or 0),
            parent_id=data.get("parent_id"),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
            deleted_at=data.get("deleted_at"),
            md5=data.get("md5") or data.get("md5_checksum"),
            mime=data.get("mime"),
            workspace_id=int(data.get("workspace_id") or 0),
        )


@dataclass
class FileEntriesResult:
    """One page of file entries."""

    entries: list[FileEntry] = field(default_factory=list)
    pagination: Optional[dict[str, Any]] = None

    @classmethod
    def from_api_response(cls, data: Any) -> "FileEntriesResult":
        """Parse a ``/drive/file-entries`` response.

        Accepts both the paginated form (``{"data": [...], "current_page": ...}``)
        and a bare list of entries.
        """
        if isinstance(data, list):
            return cls(entries=[FileEntry.from_dict(d) for d in data])

        if not isinstance(data, dict):
            return cls()

        entries = [FileEntry.from_dict(d) for d in data.get("data") or []]
        pagination = None
        if "current_page" in data or "last_page" in data:
            pagination = {
                "current_page": data.get("current_page"),
                "last_page": data.get("last_page"),
                "per_page": data.get("per_page"),
                "total": data.get("total"),
            }
        return cls(entries=entries, pagination=pagination)
