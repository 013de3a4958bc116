"""Local filesystem drive accessor."""

import mimetypes
import os
from pathlib import Path
from typing import List, Optional

from .base import DriveAccessor, StorageError, DriveFile


class LocalDriver(DriveAccessor):
    """Drive accessor for a local directory tree.

    Folder and file identifiers are paths relative to the root_path
    provided at construction ("" is the root itself).
    """

    def __init__(self, root_path: str) -> None:
        """Initialize local drive accessor.

        Args:
            root_path: Path to the root directory

        Raises:
            StorageError: If root_path doesn't exist
        """
        self.root_path = os.path.abspath(root_path)
        if not os.path.exists(self.root_path):
            raise StorageError(f"Directory does not exist: {self.root_path}")
        if not os.path.isdir(self.root_path):
            raise StorageError(f"Not a directory: {self.root_path}")

    @property
    def display_name(self) -> str:
        return f"{self.root_path} (local)"

    def _full_path(self, path: str) -> str:
        """Convert an identifier to an absolute path inside the root."""
        full_path = os.path.abspath(os.path.join(self.root_path, path)) if path else self.root_path
        if os.path.commonpath([full_path, self.root_path]) != self.root_path:
            raise StorageError(f"Path escapes drive root: {path}")
        return full_path

    def list_files(self, folder_id: str) -> List[DriveFile]:
        """List regular files directly inside a directory, sorted by name."""
        full_path = self._full_path(folder_id)

        if not os.path.exists(full_path):
            raise StorageError(f"Folder does not exist: {folder_id}")
        if not os.path.isdir(full_path):
            raise StorageError(f"Not a directory: {folder_id}")

        results = []
        for filename in sorted(os.listdir(full_path)):
            abs_path = os.path.join(full_path, filename)
            if not os.path.isfile(abs_path):
                continue

            mime_type, _ = mimetypes.guess_type(filename)
            try:
                size = os.path.getsize(abs_path)
            except OSError:
                size = None

            results.append(DriveFile(
                id=os.path.relpath(abs_path, self.root_path),
                name=filename,
                mime_type=mime_type or "",
                web_view_link=Path(abs_path).as_uri(),
                size=size,
            ))

        return results

    def download_file(self, file_id: str) -> bytes:
        """Read a file's contents."""
        full_path = self._full_path(file_id)

        if not os.path.isfile(full_path):
            raise StorageError(f"File does not exist: {file_id}")

        try:
            with open(full_path, 'rb') as f:
                return f.read()
        except OSError as e:
            raise StorageError(f"Failed to read file {file_id}: {e}")

    def folder_name(self, folder_id: str) -> Optional[str]:
        full_path = self._full_path(folder_id)
        if not os.path.isdir(full_path):
            return None
        return os.path.basename(full_path)
