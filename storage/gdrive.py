"""Google Drive drive accessor."""

import io
import json
import os
import threading
from typing import Callable, List, Optional

import google.auth
import google_auth_httplib2
import httplib2
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseDownload

from .base import DriveAccessor, StorageError, DriveFile
from utils.retry import (
    retry_on_transient_error,
    is_transient_network_error,
    TRANSIENT_HTTP_STATUS_CODES,
)


SCOPES = ['https://www.googleapis.com/auth/drive.readonly']

FOLDER_MIME_TYPE = 'application/vnd.google-apps.folder'

# Socket timeout for Drive requests, in seconds
DEFAULT_HTTP_TIMEOUT = 60


# ---------------------------------------------------------------------------
# Google Drive Retry Configuration
# ---------------------------------------------------------------------------

def _is_retryable_gdrive_error(exc: Exception) -> bool:
    """Determine if a Google Drive API error should be retried."""
    if isinstance(exc, HttpError):
        return exc.resp.status in TRANSIENT_HTTP_STATUS_CODES
    return is_transient_network_error(exc)


def _log_retry(exc: Exception, attempt: int, delay: float) -> None:
    """Report a retry on the debug channel."""
    from invoicesync import InvoiceSync
    if isinstance(exc, HttpError):
        error_desc = f"HTTP {exc.resp.status}"
    else:
        error_desc = type(exc).__name__
    InvoiceSync.print_right(f"  [Retry] {error_desc} on attempt {attempt}, retrying in {delay:.1f}s...")


_gdrive_retry = retry_on_transient_error(
    is_retryable=_is_retryable_gdrive_error,
    max_retries=5,
    base_delay=1.0,
    max_delay=60.0,
    on_retry=_log_retry,
)


@_gdrive_retry
def _execute(request):
    """Execute a Google Drive API request with automatic retry."""
    return request.execute()


@_gdrive_retry
def _next_chunk(downloader):
    return downloader.next_chunk()


def _describe_http_error(exc: HttpError, what: str) -> str:
    status = exc.resp.status
    if status == 404:
        return f"{what} not found"
    if status in (401, 403):
        return f"Permission denied for {what}"
    return f"HTTP {status} for {what}"


def _escape_query_value(value: str) -> str:
    """Escape a value for use in Google Drive API query strings."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


def load_credentials(service_account_file: Optional[str] = None):
    """Load Google credentials for read-only Drive access.

    Order: inline GOOGLE_SERVICE_ACCOUNT_JSON, then the key file, then
    Application Default Credentials.
    """
    inline_json = os.environ.get('GOOGLE_SERVICE_ACCOUNT_JSON')
    if inline_json:
        info = json.loads(inline_json)
        return service_account.Credentials.from_service_account_info(info, scopes=SCOPES)

    key_file = service_account_file or os.environ.get(
        'GOOGLE_SERVICE_ACCOUNT_FILE', 'service_account_key.json'
    )
    if os.path.exists(key_file):
        return service_account.Credentials.from_service_account_file(key_file, scopes=SCOPES)

    creds, _ = google.auth.default(scopes=SCOPES)
    return creds


class GDriveDriver(DriveAccessor):
    """Drive accessor for Google Drive.

    Authenticates once at construction and exposes listing and download
    for any folder/file the credentials can read, including shared drives.

    httplib2.Http is not thread-safe and the sync orchestrator downloads
    from several worker threads at once, so every thread gets its own
    Drive service with its own Http.
    """

    def __init__(self, service_account_file: Optional[str] = None, service=None,
                 service_factory: Optional[Callable[[], object]] = None,
                 timeout: float = DEFAULT_HTTP_TIMEOUT) -> None:
        """Initialize Google Drive accessor.

        Args:
            service_account_file: Path to service account credentials JSON
            service: Pre-built Drive v3 service shared by all threads
                (skips authentication; for single-threaded use)
            service_factory: Builds one Drive v3 service per thread
                (skips authentication)
            timeout: Socket timeout in seconds for each request

        Raises:
            StorageError: If authentication fails
        """
        self._local = threading.local()
        self.timeout = timeout

        if service is not None:
            self._service_factory = lambda: service
            return
        if service_factory is not None:
            self._service_factory = service_factory
            return

        try:
            self.creds = load_credentials(service_account_file)
            self._service_factory = self._build_service
            # Build the first service now so bad credentials fail here
            self.service
        except Exception as e:
            raise StorageError(f"Failed to initialize Google Drive: {e}")

    def _build_service(self):
        http = google_auth_httplib2.AuthorizedHttp(
            self.creds, http=httplib2.Http(timeout=self.timeout)
        )
        return build('drive', 'v3', http=http, cache_discovery=False)

    @property
    def service(self):
        """The Drive service owned by the calling thread."""
        service = getattr(self._local, 'service', None)
        if service is None:
            service = self._service_factory()
            self._local.service = service
        return service

    @property
    def display_name(self) -> str:
        return "Google Drive"

    def list_files(self, folder_id: str) -> List[DriveFile]:
        """List non-folder, non-trashed files directly inside a folder."""
        escaped_id = _escape_query_value(folder_id)
        results = []
        page_token = None

        while True:
            try:
                response = _execute(self.service.files().list(
                    q=f"'{escaped_id}' in parents and trashed=false and mimeType!='{FOLDER_MIME_TYPE}'",
                    pageSize=100,
                    fields="nextPageToken, files(id, name, mimeType, webViewLink, size)",
                    pageToken=page_token,
                    supportsAllDrives=True,
                    includeItemsFromAllDrives=True,
                ))
            except HttpError as e:
                raise StorageError(_describe_http_error(e, f"folder {folder_id}"))
            except Exception as e:
                raise StorageError(f"Failed to list folder {folder_id}: {e}")

            for item in response.get('files', []):
                if not item.get('id'):
                    continue
                results.append(DriveFile(
                    id=item['id'],
                    name=item.get('name') or 'unknown',
                    mime_type=item.get('mimeType', ''),
                    web_view_link=item.get('webViewLink'),
                    size=int(item['size']) if item.get('size') else None,
                ))

            page_token = response.get('nextPageToken')
            if not page_token:
                break

        return results

    def download_file(self, file_id: str) -> bytes:
        """Download a file's contents into memory."""
        try:
            request = self.service.files().get_media(fileId=file_id, supportsAllDrives=True)
            buffer = io.BytesIO()
            downloader = MediaIoBaseDownload(buffer, request)
            done = False
            while not done:
                _, done = _next_chunk(downloader)
            return buffer.getvalue()
        except HttpError as e:
            raise StorageError(_describe_http_error(e, f"file {file_id}"))
        except Exception as e:
            raise StorageError(f"Failed to download file {file_id}: {e}")

    def folder_name(self, folder_id: str) -> Optional[str]:
        """Return a folder's name, or None if it can't be read."""
        try:
            result = _execute(self.service.files().get(
                fileId=folder_id,
                fields="id, name, mimeType",
                supportsAllDrives=True,
            ))
        except HttpError:
            return None
        if result.get('mimeType') != FOLDER_MIME_TYPE:
            return None
        return result.get('name')
