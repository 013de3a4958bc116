"""Registry of watched drive folders."""

from typing import List, Optional

from storage import DriveAccessor
from .invoice import DriveFolder
from .invoice_store import InvoiceStore, FolderNotFoundError


class FolderRegistry:
    """The set of watched folders, each enabled or disabled.

    Thin layer over the store's folder collection; the sync orchestrator
    reads enabled_folders() once at the start of every run.
    """

    def __init__(self, store: InvoiceStore) -> None:
        self.store = store

    def all_folders(self) -> List[DriveFolder]:
        return self.store.get_drive_folders()

    def enabled_folders(self) -> List[DriveFolder]:
        """Enabled folders in registry order."""
        return [f for f in self.store.get_drive_folders() if f.enabled]

    def get(self, folder_id: str) -> DriveFolder:
        """Look up a registry entry by its store id.

        Raises:
            FolderNotFoundError: If no entry has this id
        """
        for folder in self.store.get_drive_folders():
            if folder.id == folder_id:
                return folder
        raise FolderNotFoundError(folder_id)

    def add(self, name: Optional[str], drive_folder_id: str, enabled: bool = True,
            drive: Optional[DriveAccessor] = None) -> DriveFolder:
        """Register a folder to watch.

        Args:
            name: Display label; if empty, the folder's name is read from `drive`
            drive_folder_id: Drive folder identifier
            enabled: Whether syncs should scan the folder
            drive: Drive used to look up a missing name

        Raises:
            ValueError: If the drive folder id is empty or already watched,
                or no name was given and none could be read from the drive
        """
        name = (name or "").strip()
        drive_folder_id = (drive_folder_id or "").strip()
        if not drive_folder_id:
            raise ValueError("Drive folder id is required")

        existing = self.find_by_drive_id(drive_folder_id)
        if existing is not None:
            raise ValueError(
                f"Drive folder {drive_folder_id} is already watched as {existing.name} ({existing.id})"
            )

        if not name and drive is not None:
            name = (drive.folder_name(drive_folder_id) or "").strip()
        if not name:
            raise ValueError("Folder name is required")

        folder = DriveFolder(name=name, folder_id=drive_folder_id, enabled=enabled)
        self.store.save_drive_folder(folder)
        return folder

    def set_enabled(self, folder_id: str, enabled: bool) -> None:
        self.store.update_drive_folder_status(folder_id, enabled)

    def remove(self, folder_id: str) -> None:
        self.store.delete_drive_folder(folder_id)

    def find_by_drive_id(self, drive_folder_id: str) -> Optional[DriveFolder]:
        for folder in self.store.get_drive_folders():
            if folder.folder_id == drive_folder_id:
                return folder
        return None
