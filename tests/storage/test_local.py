"""Tests for LocalDriver.

These tests run against a temp directory so no external dependencies needed.
"""

import os
import tempfile
import shutil
import pytest

from storage import LocalDriver, StorageError


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    dir_path = tempfile.mkdtemp(prefix="invoicesync_test_")
    yield dir_path
    # Cleanup
    shutil.rmtree(dir_path, ignore_errors=True)


@pytest.fixture
def driver(temp_dir):
    """Create a LocalDriver instance."""
    return LocalDriver(temp_dir)


@pytest.fixture
def populated_dir(temp_dir):
    """Create a temp directory with a watched folder of mixed files."""
    inbox = os.path.join(temp_dir, "inbox")
    os.makedirs(inbox)
    with open(os.path.join(inbox, "notes.txt"), "w") as f:
        f.write("not an invoice")
    with open(os.path.join(inbox, "invoice-001.pdf"), "wb") as f:
        f.write(b"%PDF-1.4 invoice")
    with open(os.path.join(inbox, "receipt.png"), "wb") as f:
        f.write(b"\x89PNG fake")

    # Sub-folders are not listed
    archive = os.path.join(inbox, "archive")
    os.makedirs(archive)
    with open(os.path.join(archive, "old.pdf"), "wb") as f:
        f.write(b"%PDF-1.4 old")

    return temp_dir


class TestLocalDriverBasics:
    """Basic functionality tests."""

    def test_display_name(self, driver, temp_dir):
        assert temp_dir in driver.display_name
        assert "local" in driver.display_name

    def test_nonexistent_root_raises(self):
        with pytest.raises(StorageError):
            LocalDriver("/nonexistent/path/12345")

    def test_root_is_file_raises(self, temp_dir):
        path = os.path.join(temp_dir, "file.txt")
        with open(path, "w") as f:
            f.write("x")
        with pytest.raises(StorageError):
            LocalDriver(path)


class TestListFiles:
    """Tests for list_files()."""

    def test_list_files_empty(self, driver):
        assert driver.list_files("") == []

    def test_list_files_excludes_subfolders(self, populated_dir):
        driver = LocalDriver(populated_dir)
        files = driver.list_files("inbox")
        names = [f.name for f in files]
        assert names == ["invoice-001.pdf", "notes.txt", "receipt.png"]

    def test_file_ids_are_relative_paths(self, populated_dir):
        driver = LocalDriver(populated_dir)
        files = {f.name: f for f in driver.list_files("inbox")}
        assert files["invoice-001.pdf"].id == os.path.join("inbox", "invoice-001.pdf")

    def test_mime_types_and_links(self, populated_dir):
        driver = LocalDriver(populated_dir)
        files = {f.name: f for f in driver.list_files("inbox")}
        assert files["invoice-001.pdf"].mime_type == "application/pdf"
        assert files["receipt.png"].mime_type == "image/png"
        assert files["invoice-001.pdf"].web_view_link.startswith("file://")

    def test_candidates(self, populated_dir):
        driver = LocalDriver(populated_dir)
        candidates = [f.name for f in driver.list_files("inbox") if f.is_candidate()]
        assert candidates == ["invoice-001.pdf", "receipt.png"]

    def test_missing_folder_raises(self, driver):
        with pytest.raises(StorageError):
            driver.list_files("does-not-exist")

    def test_path_escape_raises(self, driver):
        with pytest.raises(StorageError):
            driver.list_files("../..")


class TestDownloadFile:
    """Tests for download_file()."""

    def test_download_file(self, populated_dir):
        driver = LocalDriver(populated_dir)
        file = next(f for f in driver.list_files("inbox") if f.name == "invoice-001.pdf")
        assert driver.download_file(file.id) == b"%PDF-1.4 invoice"

    def test_download_missing_raises(self, driver):
        with pytest.raises(StorageError):
            driver.download_file("nonexistent.pdf")

    def test_download_folder_raises(self, populated_dir):
        driver = LocalDriver(populated_dir)
        with pytest.raises(StorageError):
            driver.download_file("inbox")


class TestFolderName:

    def test_folder_name(self, populated_dir):
        driver = LocalDriver(populated_dir)
        assert driver.folder_name("inbox") == "inbox"

    def test_folder_name_missing(self, populated_dir):
        driver = LocalDriver(populated_dir)
        assert driver.folder_name("nope") is None
