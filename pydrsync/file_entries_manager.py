"""Manager for fetching file entries with automatic pagination."""

import logging
from typing import Optional

from .api import DrimeClient
from .models import FileEntriesResult, FileEntry

logger = logging.getLogger(__name__)


class FileEntriesManager:
    """Fetches complete folder listings from the API.

    Listings are never cached: every call goes back to the server so that a
    run always sees the current state of the remote tree.
    """

    def __init__(self, client: DrimeClient, workspace_id: int = 0):
        """Initialize the file entries manager.

        Args:
            client: Drime API client
            workspace_id: Workspace ID to query (default: 0 for personal)
        """
        self.client = client
        self.workspace_id = workspace_id

    def get_all_in_folder(
        self,
        folder_id: Optional[int] = None,
        per_page: int = 100,
        include_trashed: bool = False,
    ) -> list[FileEntry]:
        """Get all file entries in a folder with automatic pagination.

        Args:
            folder_id: Folder ID to query (None for root)
            per_page: Number of entries per page (default: 100)
            include_trashed: Keep entries that are in the trash

        Returns:
            List of all file entries in the folder

        Raises:
            DrimeAPIError: If any page cannot be fetched
        """
        all_entries: list[FileEntry] = []
        current_page = 1
        parent_ids = [folder_id] if folder_id is not None else None

        while True:
            result = self.client.get_file_entries(
                parent_ids=parent_ids,
                workspace_id=self.workspace_id,
                per_page=per_page,
                page=current_page,
            )
            entries = FileEntriesResult.from_api_response(result)
            all_entries.extend(entries.entries)

            if entries.pagination:
                current = entries.pagination.get("current_page")
                last = entries.pagination.get("last_page")
                if current is not None and last is not None and current < last:
                    current_page += 1
                    continue
            break

        if not include_trashed:
            all_entries = [e for e in all_entries if not e.is_trashed]

        logger.debug(
            "Fetched %d entries from folder %s in %d page(s)",
            len(all_entries),
            folder_id,
            current_page,
        )
        return all_entries

    def find_child(
        self,
        name: str,
        parent_id: Optional[int] = None,
        folders_only: bool = False,
    ) -> Optional[FileEntry]:
        """Find a non-trashed entry by exact name inside a folder.

        Folders win over files with the same name.

        Args:
            name: Entry name to look for
            parent_id: Folder to search in (None for root)
            folders_only: Ignore files

        Returns:
            Matching entry or None
        """
        entries = self.get_all_in_folder(folder_id=parent_id)
        folders = [e for e in entries if e.is_folder and e.name == name]
        if folders:
            return folders[0]
        if folders_only:
            return None
        files = [e for e in entries if not e.is_folder and e.name == name]
        return files[0] if files else None
