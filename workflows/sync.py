"""Drive sync workflow.

Scans every enabled watched folder, skips files that already produced an
invoice, and extracts + stores the rest. Files in a folder are processed in
batches: files within a batch run concurrently, batches run one after the
other, folders run one after the other.

A failure while listing a folder only costs that folder; a failure while
downloading, extracting or storing one file only costs that file, which is
then picked up again by the next run since it never reached the store.
"""

import asyncio
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from invoicesync import InvoiceSync
from models import LLM, ExtractionError, MAX_FILE_SIZE_MB
from storage import DriveAccessor, DriveFile
from . import ingress_log
from .folder_registry import FolderRegistry
from .ingest import build_invoice
from .invoice import DriveFolder, Invoice
from .invoice_store import InvoiceStore, DuplicateSourceFileError
from .ledger import ProcessedFileLedger


DEFAULT_BATCH_SIZE = 3

# Held for the duration of a run; overlapping runs in one process are refused
_sync_lock = threading.Lock()


class SyncInProgressError(Exception):
    """Another sync run is already active in this process."""
    pass


class FileOutcome(str, Enum):
    PROCESSED = "processed"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class FolderReport:
    """What one sync run did in one folder."""
    folder: DriveFolder
    candidates: int = 0
    processed: int = 0
    skipped: int = 0
    failed: int = 0
    batch_sizes: List[int] = field(default_factory=list)
    error: Optional[str] = None   # Set when the folder could not be listed


@dataclass
class SyncReport:
    """Totals for one sync run across all enabled folders."""
    folders: List[FolderReport] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return sum(f.processed for f in self.folders)

    @property
    def skipped(self) -> int:
        return sum(f.skipped for f in self.folders)

    @property
    def failed(self) -> int:
        return sum(f.failed for f in self.folders)

    @property
    def folder_errors(self) -> List[FolderReport]:
        return [f for f in self.folders if f.error is not None]


def chunked(items: List[DriveFile], size: int) -> List[List[DriveFile]]:
    """Split items into consecutive batches of at most `size`."""
    return [items[i:i + size] for i in range(0, len(items), size)]


class SyncOrchestrator:
    """Runs drive syncs against an injected store, drive and LLM.

    Args:
        store: Invoice store (ledger, registry and writer all use it)
        drive: Drive accessor used for listing and downloading
        llm: Extraction client
        batch_size: Files processed concurrently per batch
        file_timeout: Seconds allowed per file (download + extraction);
            None or 0 disables the deadline. A file that runs past it is
            abandoned: the run moves on without waiting for its thread.
        default_currency: Currency for invoices whose extraction has none
        reingest_deleted: If True, soft-deleting an invoice makes its
            source file eligible for ingestion again
    """

    def __init__(self, store: InvoiceStore, drive: DriveAccessor, llm: LLM,
                 batch_size: int = DEFAULT_BATCH_SIZE,
                 file_timeout: Optional[float] = None,
                 default_currency: str = "JPY",
                 reingest_deleted: bool = True) -> None:
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")

        self.store = store
        self.drive = drive
        self.llm = llm
        self.batch_size = batch_size
        self.file_timeout = file_timeout or None
        self.default_currency = default_currency
        self.registry = FolderRegistry(store)
        self.ledger = ProcessedFileLedger(store, include_deleted=not reingest_deleted)

    @classmethod
    def from_config(cls, store: InvoiceStore, drive: DriveAccessor,
                    llm: LLM) -> "SyncOrchestrator":
        """Create an orchestrator using the InvoiceSync settings."""
        return cls(
            store, drive, llm,
            batch_size=InvoiceSync.batch_size,
            file_timeout=InvoiceSync.file_timeout,
            default_currency=InvoiceSync.default_currency,
            reingest_deleted=InvoiceSync.reingest_deleted,
        )

    async def run(self) -> SyncReport:
        """Run one sync across all enabled folders.

        Raises:
            SyncInProgressError: If another run is active in this process
            Exception: Whatever reading the folder registry raised; no
                folder has been touched in that case
        """
        if not _sync_lock.acquire(blocking=False):
            raise SyncInProgressError("A sync run is already in progress")
        try:
            return await self._run()
        finally:
            _sync_lock.release()

    async def run_sync(self) -> int:
        """Run one sync and return the number of new invoices."""
        report = await self.run()
        return report.processed

    async def _run(self) -> SyncReport:
        report = SyncReport()
        folders = await asyncio.to_thread(self.registry.enabled_folders)

        if not folders:
            InvoiceSync.print_right("No enabled folders to sync")
            return report

        InvoiceSync.print_right(f"[Sync] Starting sync for {len(folders)} folder(s)")
        for folder in folders:
            report.folders.append(await self._sync_folder(folder))

        InvoiceSync.print_right(
            f"\n[green]Sync complete: {report.processed} new, "
            f"{report.skipped} skipped, {report.failed} failed[/green]"
        )
        if report.folder_errors:
            InvoiceSync.print_right(
                f"[red]{len(report.folder_errors)} folder(s) could not be read[/red]"
            )
        return report

    async def _sync_folder(self, folder: DriveFolder) -> FolderReport:
        folder_report = FolderReport(folder=folder)
        InvoiceSync.print_right(f"\n--- {folder.name} ({folder.folder_id}) ---")

        try:
            files = await asyncio.to_thread(self.drive.list_files, folder.folder_id)
        except Exception as e:
            folder_report.error = str(e)
            InvoiceSync.print_right(f"[red]Error accessing folder {folder.name}: {e}[/red]")
            ingress_log.log("ERROR", folder.name, None, folder.folder_id, str(e))
            return folder_report

        candidates = [f for f in files if f.is_candidate()]
        folder_report.candidates = len(candidates)
        InvoiceSync.print_right(f"Found {len(files)} files, {len(candidates)} candidate(s)")
        if not candidates:
            return folder_report

        InvoiceSync.set_total_files(len(candidates))
        done = 0

        for batch in chunked(candidates, self.batch_size):
            folder_report.batch_sizes.append(len(batch))
            outcomes = await asyncio.gather(
                *(self._process_file(folder, file) for file in batch)
            )
            for outcome in outcomes:
                if outcome == FileOutcome.PROCESSED:
                    folder_report.processed += 1
                elif outcome == FileOutcome.SKIPPED:
                    folder_report.skipped += 1
                else:
                    folder_report.failed += 1

            done += len(batch)
            InvoiceSync.set_progress(done, len(candidates))

        return folder_report

    async def _process_file(self, folder: DriveFolder, file: DriveFile) -> FileOutcome:
        """Ledger check, then ingest. Never raises."""
        source = f"{folder.name}/{file.name}"

        try:
            if await asyncio.to_thread(self.ledger.is_processed, file.id):
                return FileOutcome.SKIPPED
        except Exception as e:
            InvoiceSync.print_right(f"[red]Ledger check failed for {file.name} ({file.id}): {e}[/red]")
            ingress_log.log("ERROR", source, None, file.name, str(e))
            return FileOutcome.FAILED

        InvoiceSync.print_right(f"[red]Processing: {file.name}[/red] ({file.id})")

        # One executor per file; a timed-out worker is abandoned, not awaited
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="invoicesync-file")
        try:
            extraction = await self._with_deadline(self._fetch_and_extract(file, executor))
            invoice = build_invoice(
                extraction, file.name, self.default_currency,
                source_file_id=file.id,
                web_view_link=file.web_view_link,
            )
            await asyncio.to_thread(self.store.save_invoice, invoice)
        except DuplicateSourceFileError:
            InvoiceSync.print_right(f"[yellow]Already ingested elsewhere: {file.name}[/yellow]")
            ingress_log.log("Skipped (duplicate)", source, None, file.name)
            return FileOutcome.SKIPPED
        except asyncio.TimeoutError:
            error = f"Timed out after {self.file_timeout:g}s"
            InvoiceSync.print_right(f"[red]Failed processing {file.name} ({file.id}): {error}[/red]")
            ingress_log.log("ERROR", source, None, file.name, error)
            return FileOutcome.FAILED
        except Exception as e:
            InvoiceSync.print_right(f"[red]Failed processing {file.name} ({file.id}): {e}[/red]")
            ingress_log.log("ERROR", source, None, file.name, str(e))
            return FileOutcome.FAILED
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        invoice.display(InvoiceSync.print_right)
        _log_new_invoice(invoice, folder)
        ingress_log.log("Ingested", source, invoice.id,
                        f"{invoice.vendor_name} {invoice.amount:,.0f} {invoice.currency}")
        return FileOutcome.PROCESSED

    async def _with_deadline(self, coro):
        if self.file_timeout:
            return await asyncio.wait_for(coro, self.file_timeout)
        return await coro

    async def _fetch_and_extract(self, file: DriveFile, executor: ThreadPoolExecutor):
        """Download one file and run extraction on it."""
        if file.size and file.size > MAX_FILE_SIZE_MB * 1024 * 1024:
            raise ExtractionError(
                f"File exceeds {MAX_FILE_SIZE_MB}MB limit ({file.size / 1024 / 1024:.1f}MB)"
            )

        loop = asyncio.get_running_loop()
        content = await loop.run_in_executor(executor, self.drive.download_file, file.id)
        if not content:
            raise ValueError("Empty file")

        return await loop.run_in_executor(
            executor, self.llm.extract_invoice, content, file.extraction_mime_type(), file.name
        )


def _log_new_invoice(invoice: Invoice, folder: DriveFolder) -> None:
    """Log a new invoice to the left panel."""
    timestamp = datetime.now().strftime("%H:%M")
    line1 = f"{timestamp} {invoice.vendor_name} {invoice.amount:,.0f} {invoice.currency}"
    line2 = f"  {folder.name}/{invoice.file_name} → due {invoice.due_date or '-'}"
    InvoiceSync.print_left(line1, line2)


def run_sync(store: InvoiceStore, drive: DriveAccessor, llm: LLM) -> SyncReport:
    """Blocking entry point: run one sync with the configured settings."""
    orchestrator = SyncOrchestrator.from_config(store, drive, llm)
    return asyncio.run(orchestrator.run())
