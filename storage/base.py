"""Base classes for drive accessors.

This module defines the abstract interface that all drive backends must implement.
A drive accessor only needs to do two things: list the files in a watched
folder and fetch the raw bytes of one file.
"""

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional


class StorageError(Exception):
    """Base exception for drive operations."""
    pass


# Extensions accepted even when the listing reports an unhelpful mime type
CANDIDATE_EXTENSIONS = ('.pdf', '.jpg', '.jpeg', '.png')

MIME_BY_EXTENSION = {
    '.pdf': 'application/pdf',
    '.jpg': 'image/jpeg',
    '.jpeg': 'image/jpeg',
    '.png': 'image/png',
}


def guess_mime_type(file_name: str, reported: Optional[str] = None) -> str:
    """Pick the mime type to send for extraction.

    Uses the reported type if it is an image or PDF, otherwise guesses from
    the extension and falls back to application/pdf.
    """
    mime = (reported or "").lower()
    if mime.startswith('image/') or mime == 'application/pdf':
        return mime
    ext = os.path.splitext(file_name or "")[1].lower()
    return MIME_BY_EXTENSION.get(ext, 'application/pdf')


@dataclass
class DriveFile:
    """A file listed in a watched folder.

    Attributes:
        id: Backend-specific file identifier (the deduplication key)
        name: Filename only (no directory)
        mime_type: Mime type reported by the backend (may be empty)
        web_view_link: External preview URL (optional)
        size: File size in bytes (optional)
    """
    id: str
    name: str
    mime_type: str = ""
    web_view_link: Optional[str] = None
    size: Optional[int] = None

    @property
    def extension(self) -> str:
        return os.path.splitext(self.name)[1].lower()

    def is_candidate(self) -> bool:
        """True if this file looks like an invoice image or PDF.

        The extension is checked as well because some listings omit a
        reliable mime type.
        """
        mime = (self.mime_type or "").lower()
        if mime.startswith('image/') or mime == 'application/pdf':
            return True
        return self.extension in CANDIDATE_EXTENSIONS

    def extraction_mime_type(self) -> str:
        """Mime type to send to the extraction model."""
        return guess_mime_type(self.name, self.mime_type)


class DriveAccessor(ABC):
    """Abstract base class for drive backends.

    All backends (Google Drive, local folder tree) implement this interface.
    Both operations are blocking; the sync orchestrator runs them off the
    event loop.
    """

    @property
    @abstractmethod
    def display_name(self) -> str:
        """Human-readable name for this drive (e.g., 'Google Drive')."""
        pass

    @abstractmethod
    def list_files(self, folder_id: str) -> List[DriveFile]:
        """List the files directly inside a folder.

        Trashed items and sub-folders are excluded. Implementations must
        follow pagination until the listing is complete.

        Args:
            folder_id: Backend-specific folder identifier

        Returns:
            List of DriveFile objects

        Raises:
            StorageError: If the folder doesn't exist or can't be accessed
        """
        pass

    @abstractmethod
    def download_file(self, file_id: str) -> bytes:
        """Fetch the raw bytes of a file.

        Args:
            file_id: Backend-specific file identifier

        Returns:
            File contents

        Raises:
            StorageError: If the file is not found or access is denied
        """
        pass

    def folder_name(self, folder_id: str) -> Optional[str]:
        """Look up the display name of a folder, None if unknown."""
        return None
