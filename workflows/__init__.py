"""Workflow layer for invoicesync.

Contains business logic for invoice ingestion:
- Invoice store: invoices and watched folders in SQLite
- Sync: scan watched drive folders and ingest new invoice files
- Lifecycle: payment status transitions and soft delete
- Ingest: manual uploads
"""

from .invoice import Invoice, DriveFolder, PaymentStatus, utc_now_iso
from .invoice_store import (
    InvoiceStore,
    SQLiteInvoiceStore,
    InvoiceNotFoundError,
    FolderNotFoundError,
    DuplicateSourceFileError,
)
from .ledger import ProcessedFileLedger
from .folder_registry import FolderRegistry
from .lifecycle import (
    InvalidTransitionError,
    toggle_paid,
    cancel_invoice,
    reopen_invoice,
    soft_delete_invoice,
    mark_overdue,
    InvoiceTotals,
    summarize_invoices,
)
from .ingest import build_invoice, ingest_upload
from .sync import (
    SyncOrchestrator,
    SyncReport,
    FolderReport,
    SyncInProgressError,
    chunked,
    run_sync,
)


__all__ = [
    # Records
    'Invoice',
    'DriveFolder',
    'PaymentStatus',
    'utc_now_iso',

    # Invoice store
    'InvoiceStore',
    'SQLiteInvoiceStore',
    'InvoiceNotFoundError',
    'FolderNotFoundError',
    'DuplicateSourceFileError',

    # Ledger and folders
    'ProcessedFileLedger',
    'FolderRegistry',

    # Lifecycle
    'InvalidTransitionError',
    'toggle_paid',
    'cancel_invoice',
    'reopen_invoice',
    'soft_delete_invoice',
    'mark_overdue',
    'InvoiceTotals',
    'summarize_invoices',

    # Ingestion
    'build_invoice',
    'ingest_upload',

    # Sync
    'SyncOrchestrator',
    'SyncReport',
    'FolderReport',
    'SyncInProgressError',
    'chunked',
    'run_sync',
]
