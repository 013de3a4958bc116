"""Tests for GDriveDriver.

The unit tests run against a mocked Drive v3 service. The smoke tests at
the bottom require:
1. A service_account_key.json file in project root
2. GDRIVE_TEST_FOLDER_ID environment variable pointing to a test folder

and are skipped otherwise.
"""

import os
import threading
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock

import httplib2
import pytest
from googleapiclient.errors import HttpError

from storage import GDriveDriver, StorageError


def _http_error(status):
    return HttpError(httplib2.Response({"status": status}), b'{"error": {"message": "boom"}}')


@pytest.fixture
def service():
    return MagicMock()


@pytest.fixture
def driver(service):
    return GDriveDriver(service=service)


class TestListFiles:

    def test_maps_listing_to_drive_files(self, driver, service):
        service.files.return_value.list.return_value.execute.return_value = {
            "files": [
                {"id": "d1", "name": "inv.pdf", "mimeType": "application/pdf",
                 "webViewLink": "https://drive.google.com/file/d/d1/view", "size": "1234"},
                {"id": "d2", "name": "scan.jpg", "mimeType": "image/jpeg"},
            ]
        }

        files = driver.list_files("folder-1")

        assert [f.id for f in files] == ["d1", "d2"]
        assert files[0].web_view_link == "https://drive.google.com/file/d/d1/view"
        assert files[0].size == 1234
        assert files[1].web_view_link is None

    def test_query_excludes_trash_and_folders(self, driver, service):
        service.files.return_value.list.return_value.execute.return_value = {"files": []}

        driver.list_files("folder-1")

        kwargs = service.files.return_value.list.call_args.kwargs
        assert "'folder-1' in parents" in kwargs["q"]
        assert "trashed=false" in kwargs["q"]
        assert "application/vnd.google-apps.folder" in kwargs["q"]
        assert kwargs["supportsAllDrives"] is True

    def test_follows_pagination(self, driver, service):
        service.files.return_value.list.return_value.execute.side_effect = [
            {"files": [{"id": "d1", "name": "a.pdf"}], "nextPageToken": "tok"},
            {"files": [{"id": "d2", "name": "b.pdf"}]},
        ]

        files = driver.list_files("folder-1")

        assert [f.id for f in files] == ["d1", "d2"]
        tokens = [c.kwargs["pageToken"] for c in service.files.return_value.list.call_args_list]
        assert tokens == [None, "tok"]

    def test_escapes_quotes_in_folder_id(self, driver, service):
        service.files.return_value.list.return_value.execute.return_value = {"files": []}
        driver.list_files("it's")
        assert "'it\\'s' in parents" in service.files.return_value.list.call_args.kwargs["q"]

    def test_permission_denied_raises_storage_error(self, driver, service):
        service.files.return_value.list.return_value.execute.side_effect = _http_error(403)

        with pytest.raises(StorageError, match="Permission denied"):
            driver.list_files("folder-1")

    def test_not_found_raises_storage_error(self, driver, service):
        service.files.return_value.list.return_value.execute.side_effect = _http_error(404)

        with pytest.raises(StorageError, match="not found"):
            driver.list_files("folder-1")


class TestDownloadFile:

    def test_download(self, driver, service, monkeypatch):
        class FakeDownloader:
            def __init__(self, fd, request):
                self.fd = fd
                self.chunks = [b"%PDF-", b"1.4"]

            def next_chunk(self):
                self.fd.write(self.chunks.pop(0))
                return None, not self.chunks

        monkeypatch.setattr("storage.gdrive.MediaIoBaseDownload", FakeDownloader)

        assert driver.download_file("d1") == b"%PDF-1.4"
        service.files.return_value.get_media.assert_called_once_with(
            fileId="d1", supportsAllDrives=True
        )

    def test_download_not_found(self, driver, service, monkeypatch):
        class FailingDownloader:
            def __init__(self, fd, request):
                pass

            def next_chunk(self):
                raise _http_error(404)

        monkeypatch.setattr("storage.gdrive.MediaIoBaseDownload", FailingDownloader)

        with pytest.raises(StorageError, match="not found"):
            driver.download_file("missing")


class TestThreading:

    def test_concurrent_downloads_use_separate_services(self, monkeypatch):
        built = []
        lock = threading.Lock()

        def factory():
            service = MagicMock()
            with lock:
                built.append((threading.get_ident(), service))
            return service

        barrier = threading.Barrier(3, timeout=5)
        used = []

        class FakeDownloader:
            def __init__(self, fd, request):
                self.fd = fd
                self.request = request

            def next_chunk(self):
                # Hold all three downloads open at the same time
                barrier.wait()
                with lock:
                    used.append((threading.get_ident(), self.request))
                self.fd.write(b"%PDF")
                return None, True

        monkeypatch.setattr("storage.gdrive.MediaIoBaseDownload", FakeDownloader)
        driver = GDriveDriver(service_factory=factory)

        with ThreadPoolExecutor(max_workers=3) as pool:
            results = list(pool.map(driver.download_file, ["d1", "d2", "d3"]))

        assert results == [b"%PDF"] * 3
        assert len(built) == 3
        assert len({id(service) for _, service in built}) == 3
        services = dict(built)
        for ident, request in used:
            assert request is services[ident].files.return_value.get_media.return_value

    def test_service_is_reused_within_a_thread(self):
        calls = []
        driver = GDriveDriver(service_factory=lambda: calls.append(1) or MagicMock())

        assert driver.service is driver.service
        assert len(calls) == 1

    def test_authenticated_service_has_its_own_http_with_timeout(self, monkeypatch):
        monkeypatch.setattr("storage.gdrive.load_credentials", lambda path: MagicMock())
        build_calls = []
        monkeypatch.setattr(
            "storage.gdrive.build",
            lambda *args, **kwargs: build_calls.append(kwargs) or MagicMock(),
        )

        driver = GDriveDriver(timeout=15)
        with ThreadPoolExecutor(max_workers=1) as pool:
            pool.submit(lambda: driver.service).result()

        assert len(build_calls) == 2
        first, second = (c["http"] for c in build_calls)
        assert first is not second
        assert first.http is not second.http
        assert first.http.timeout == 15


class TestFolderName:

    def test_folder_name(self, driver, service):
        service.files.return_value.get.return_value.execute.return_value = {
            "id": "f1", "name": "Invoices", "mimeType": "application/vnd.google-apps.folder"
        }
        assert driver.folder_name("f1") == "Invoices"

    def test_not_a_folder(self, driver, service):
        service.files.return_value.get.return_value.execute.return_value = {
            "id": "f1", "name": "inv.pdf", "mimeType": "application/pdf"
        }
        assert driver.folder_name("f1") is None


# ---------------------------------------------------------------------------
# Live smoke tests
# ---------------------------------------------------------------------------

@pytest.fixture
def live_folder_id():
    """Get test folder ID from environment."""
    if not os.path.exists("service_account_key.json"):
        pytest.skip("No service_account_key.json found")
    folder_id = os.environ.get("GDRIVE_TEST_FOLDER_ID")
    if not folder_id:
        pytest.skip("GDRIVE_TEST_FOLDER_ID not set")
    return folder_id


class TestGDriveSmoke:
    """Simple smoke tests - one call per operation."""

    def test_list_and_download(self, live_folder_id):
        driver = GDriveDriver()
        files = driver.list_files(live_folder_id)
        assert isinstance(files, list)

        candidates = [f for f in files if f.is_candidate()]
        if candidates:
            content = driver.download_file(candidates[0].id)
            assert len(content) > 0
