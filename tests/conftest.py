"""Shared fixtures and fakes.

FakeDrive and FakeLLM stand in for Google Drive and the extraction model so
the sync pipeline can be tested end to end against a real SQLite store.
"""

import threading
import time

import pytest

from invoicesync import InvoiceSync
from models import LLM, InvoiceExtraction
from storage import DriveAccessor, DriveFile, StorageError
from workflows import SQLiteInvoiceStore


class FakeDrive(DriveAccessor):
    """In-memory drive: folder id -> list of DriveFile, file id -> bytes."""

    def __init__(self):
        self.folders = {}
        self.contents = {}
        self.failing_folders = set()
        self.failing_downloads = set()
        self.download_delays = {}
        self.folder_names = {}
        self.listed = []
        self.downloaded = []
        self._lock = threading.Lock()

    @property
    def display_name(self) -> str:
        return "Fake Drive"

    def add_file(self, folder_id, file_id, name, mime_type="application/pdf",
                 content=b"%PDF-1.4 fake", size=None):
        file = DriveFile(id=file_id, name=name, mime_type=mime_type,
                         web_view_link=f"https://drive.example/{file_id}", size=size)
        self.folders.setdefault(folder_id, []).append(file)
        self.contents[file_id] = content
        return file

    def list_files(self, folder_id):
        with self._lock:
            self.listed.append(folder_id)
        if folder_id in self.failing_folders:
            raise StorageError(f"Permission denied for folder {folder_id}")
        return list(self.folders.get(folder_id, []))

    def download_file(self, file_id):
        with self._lock:
            self.downloaded.append(file_id)
        if file_id in self.download_delays:
            time.sleep(self.download_delays[file_id])
        if file_id in self.failing_downloads:
            raise StorageError(f"file {file_id} not found")
        return self.contents[file_id]

    def folder_name(self, folder_id):
        return self.folder_names.get(folder_id)


class FakeLLM(LLM):
    """Extraction fake.

    Returns `results[file_name]` if set (an InvoiceExtraction, or an
    exception to raise), otherwise a default extraction. Tracks how many
    calls were in flight at once, and when each call started and ended.
    """

    def __init__(self, delay=0.0):
        self.results = {}
        self.calls = []
        self.delay = delay
        self.in_flight = 0
        self.max_in_flight = 0
        self.spans = []
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return "fake"

    def extract_invoice(self, content, mime_type, file_name="invoice.pdf"):
        started = time.monotonic()
        with self._lock:
            self.calls.append((file_name, mime_type))
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                time.sleep(self.delay)
            result = self.results.get(file_name)
            if isinstance(result, Exception):
                raise result
            if result is not None:
                return result
            return InvoiceExtraction(
                vendor_name=f"Vendor {file_name}",
                total_amount=1000,
                due_date="2024-08-01",
            )
        finally:
            with self._lock:
                self.in_flight -= 1
                self.spans.append((file_name, started, time.monotonic()))

    @property
    def called_files(self):
        return [name for name, _ in self.calls]


@pytest.fixture(autouse=True)
def reset_invoicesync():
    """Put InvoiceSync back into plain CLI mode with default settings."""
    InvoiceSync.set_app(None)
    InvoiceSync.log = False
    InvoiceSync.default_currency = "JPY"
    InvoiceSync.batch_size = 3
    InvoiceSync.file_timeout = 120.0
    InvoiceSync.reingest_deleted = True
    InvoiceSync.db = None
    yield
    InvoiceSync.close()


@pytest.fixture
def store(tmp_path):
    """Fresh SQLite invoice store in a temp directory."""
    db = SQLiteInvoiceStore(str(tmp_path / "invoices.db"))
    yield db
    db.close()


@pytest.fixture
def drive():
    return FakeDrive()


@pytest.fixture
def llm():
    return FakeLLM()


@pytest.fixture
def slow_llm():
    """FakeLLM whose calls take long enough to overlap within a batch."""
    return FakeLLM(delay=0.1)
