"""Drive accessor abstraction for invoicesync.

Provides a uniform interface for listing watched folders and downloading
invoice files across different backends:
- GDriveDriver: Google Drive
- LocalDriver: Local directory tree

Usage:
    from storage import create_drive

    drive = create_drive("gdrive")
    drive = create_drive("local:/path/to/inbox")
"""

from .base import (
    DriveAccessor,
    StorageError,
    DriveFile,
    CANDIDATE_EXTENSIONS,
    guess_mime_type,
)
from .local import LocalDriver
from .gdrive import GDriveDriver


def create_drive(uri: str = "gdrive") -> DriveAccessor:
    """Create a drive accessor from a URI.

    Args:
        uri: Drive URI in one of these formats:
            - gdrive (or gdrive:)
            - local:/path/to/root

    Returns:
        DriveAccessor instance for the specified backend

    Raises:
        ValueError: If URI format is invalid
        StorageError: If the backend can't be initialized
    """
    if uri in ("gdrive", "gdrive:"):
        return GDriveDriver()
    elif uri.startswith("local:"):
        return LocalDriver(uri[6:])
    else:
        raise ValueError(
            f"Invalid drive URI: {uri}. "
            "Must be 'gdrive' or start with 'local:'"
        )


__all__ = [
    'DriveAccessor',
    'StorageError',
    'DriveFile',
    'CANDIDATE_EXTENSIONS',
    'guess_mime_type',
    'LocalDriver',
    'GDriveDriver',
    'create_drive',
]
