"""Invoice database.

Stores invoices and watched drive folders in SQLite. Invoices are never
removed; deleting one marks it DELETED and hides it from every listing.
"""

import os
import sqlite3
import threading
import uuid
from abc import ABC, abstractmethod
from typing import List, Optional

from .invoice import Invoice, DriveFolder, PaymentStatus


class InvoiceNotFoundError(Exception):
    """No visible invoice has the given id."""
    pass


class FolderNotFoundError(Exception):
    """No watched folder has the given id."""
    pass


class DuplicateSourceFileError(Exception):
    """A non-deleted invoice already exists for this source file."""

    def __init__(self, source_file_id: str) -> None:
        super().__init__(f"Invoice already exists for source file {source_file_id}")
        self.source_file_id = source_file_id


class InvoiceStore(ABC):
    """Record store for invoices and watched folders.

    Listings are newest first. No multi-statement transactions are exposed;
    save_invoice is the only conditional write (insert if no active invoice
    has the same source_file_id).
    """

    # =========================================================================
    # Invoices
    # =========================================================================

    @abstractmethod
    def get_invoices(self, include_deleted: bool = False) -> List[Invoice]:
        """All invoices ordered by extracted_at, newest first."""
        pass

    @abstractmethod
    def get_invoice(self, invoice_id: str, include_deleted: bool = False) -> Optional[Invoice]:
        """Look up one invoice by id."""
        pass

    @abstractmethod
    def find_by_source_file(self, source_file_id: str,
                            include_deleted: bool = False) -> List[Invoice]:
        """Invoices created from the given drive file."""
        pass

    @abstractmethod
    def save_invoice(self, invoice: Invoice) -> str:
        """Insert a new invoice and return its id.

        Raises:
            DuplicateSourceFileError: If a non-deleted invoice already has
                the same source_file_id
        """
        pass

    @abstractmethod
    def update_invoice_status(self, invoice_id: str, status: PaymentStatus,
                              payment_date: Optional[str] = None) -> None:
        """Set status and payment date (None clears it).

        Raises:
            InvoiceNotFoundError: If the id doesn't exist or the invoice is deleted
        """
        pass

    @abstractmethod
    def delete_invoice(self, invoice_id: str) -> None:
        """Soft-delete an invoice.

        Raises:
            InvoiceNotFoundError: If the id doesn't exist or is already deleted
        """
        pass

    # =========================================================================
    # Drive folders
    # =========================================================================

    @abstractmethod
    def get_drive_folders(self) -> List[DriveFolder]:
        """All watched folders, most recently added first."""
        pass

    @abstractmethod
    def save_drive_folder(self, folder: DriveFolder) -> str:
        """Insert a watched folder and return its id."""
        pass

    @abstractmethod
    def update_drive_folder_status(self, folder_id: str, enabled: bool) -> None:
        """Enable or disable a watched folder.

        Raises:
            FolderNotFoundError: If the id doesn't exist
        """
        pass

    @abstractmethod
    def delete_drive_folder(self, folder_id: str) -> None:
        """Remove a watched folder.

        Raises:
            FolderNotFoundError: If the id doesn't exist
        """
        pass

    def close(self) -> None:
        pass


def _new_id() -> str:
    return uuid.uuid4().hex


class SQLiteInvoiceStore(InvoiceStore):
    """SQLite implementation of the invoice store.

    A partial unique index on source_file_id (non-deleted rows only) makes
    save_invoice an atomic insert-if-absent, even across processes sharing
    the database file. The connection is shared between threads and
    guarded by a lock.
    """

    def __init__(self, db_path: str) -> None:
        db_dir = os.path.dirname(db_path)
        if db_dir and not os.path.exists(db_dir):
            os.makedirs(db_dir)

        self.db_path = db_path
        self._lock = threading.RLock()
        self.conn = sqlite3.connect(db_path, check_same_thread=False, timeout=30)
        self.conn.row_factory = sqlite3.Row
        self._init_db()

    def _init_db(self) -> None:
        """Create tables and indexes if they don't exist."""
        with self._lock:
            cursor = self.conn.cursor()
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS invoices (
                    id TEXT PRIMARY KEY,
                    vendor_name TEXT NOT NULL,
                    invoice_number TEXT,
                    amount REAL,
                    currency TEXT,
                    due_date TEXT,
                    issue_date TEXT,
                    category TEXT,
                    notes TEXT,
                    bank_name TEXT,
                    branch_name TEXT,
                    account_type TEXT,
                    account_number TEXT,
                    account_name TEXT,
                    file_name TEXT,
                    source_file_id TEXT,
                    web_view_link TEXT,
                    status TEXT NOT NULL DEFAULT 'PENDING',
                    payment_date TEXT,
                    extracted_at TEXT NOT NULL
                )
            """)
            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_invoices_extracted_at ON invoices(extracted_at)
            """)
            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_invoices_source ON invoices(source_file_id)
            """)
            # At most one live invoice per source file
            cursor.execute("""
                CREATE UNIQUE INDEX IF NOT EXISTS idx_invoices_source_active
                ON invoices(source_file_id)
                WHERE source_file_id IS NOT NULL AND status != 'DELETED'
            """)
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS drive_folders (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    folder_id TEXT NOT NULL,
                    enabled INTEGER NOT NULL DEFAULT 1,
                    created_at TEXT NOT NULL
                )
            """)
            self.conn.commit()

    # =========================================================================
    # Invoices
    # =========================================================================

    def get_invoices(self, include_deleted: bool = False) -> List[Invoice]:
        query = "SELECT * FROM invoices"
        if not include_deleted:
            query += " WHERE status != 'DELETED'"
        query += " ORDER BY extracted_at DESC, rowid DESC"
        with self._lock:
            rows = self.conn.execute(query).fetchall()
        return [Invoice.from_row(dict(row)) for row in rows]

    def get_invoice(self, invoice_id: str, include_deleted: bool = False) -> Optional[Invoice]:
        with self._lock:
            row = self.conn.execute(
                "SELECT * FROM invoices WHERE id = ?", (invoice_id,)
            ).fetchone()
        if not row:
            return None
        invoice = Invoice.from_row(dict(row))
        if invoice.is_deleted and not include_deleted:
            return None
        return invoice

    def find_by_source_file(self, source_file_id: str,
                            include_deleted: bool = False) -> List[Invoice]:
        query = "SELECT * FROM invoices WHERE source_file_id = ?"
        if not include_deleted:
            query += " AND status != 'DELETED'"
        query += " ORDER BY extracted_at DESC"
        with self._lock:
            rows = self.conn.execute(query, (source_file_id,)).fetchall()
        return [Invoice.from_row(dict(row)) for row in rows]

    def save_invoice(self, invoice: Invoice) -> str:
        row = invoice.to_row()
        row["id"] = row["id"] or _new_id()
        columns = ", ".join(row.keys())
        placeholders = ", ".join("?" for _ in row)

        with self._lock:
            try:
                self.conn.execute(
                    f"INSERT INTO invoices ({columns}) VALUES ({placeholders})",
                    tuple(row.values()),
                )
                self.conn.commit()
            except sqlite3.IntegrityError as e:
                self.conn.rollback()
                if invoice.source_file_id and "source_file_id" in str(e):
                    raise DuplicateSourceFileError(invoice.source_file_id)
                raise

        invoice.id = row["id"]
        return row["id"]

    def update_invoice_status(self, invoice_id: str, status: PaymentStatus,
                              payment_date: Optional[str] = None) -> None:
        with self._lock:
            cursor = self.conn.execute(
                "UPDATE invoices SET status = ?, payment_date = ? "
                "WHERE id = ? AND status != 'DELETED'",
                (PaymentStatus(status).value, payment_date, invoice_id),
            )
            self.conn.commit()
        if cursor.rowcount == 0:
            raise InvoiceNotFoundError(invoice_id)

    def delete_invoice(self, invoice_id: str) -> None:
        with self._lock:
            cursor = self.conn.execute(
                "UPDATE invoices SET status = 'DELETED' WHERE id = ? AND status != 'DELETED'",
                (invoice_id,),
            )
            self.conn.commit()
        if cursor.rowcount == 0:
            raise InvoiceNotFoundError(invoice_id)

    # =========================================================================
    # Drive folders
    # =========================================================================

    def get_drive_folders(self) -> List[DriveFolder]:
        with self._lock:
            rows = self.conn.execute(
                "SELECT * FROM drive_folders ORDER BY created_at DESC, rowid DESC"
            ).fetchall()
        return [DriveFolder.from_row(dict(row)) for row in rows]

    def save_drive_folder(self, folder: DriveFolder) -> str:
        folder.id = folder.id or _new_id()
        with self._lock:
            self.conn.execute(
                "INSERT INTO drive_folders (id, name, folder_id, enabled, created_at) "
                "VALUES (?, ?, ?, ?, ?)",
                (folder.id, folder.name, folder.folder_id,
                 1 if folder.enabled else 0, folder.created_at),
            )
            self.conn.commit()
        return folder.id

    def update_drive_folder_status(self, folder_id: str, enabled: bool) -> None:
        with self._lock:
            cursor = self.conn.execute(
                "UPDATE drive_folders SET enabled = ? WHERE id = ?",
                (1 if enabled else 0, folder_id),
            )
            self.conn.commit()
        if cursor.rowcount == 0:
            raise FolderNotFoundError(folder_id)

    def delete_drive_folder(self, folder_id: str) -> None:
        with self._lock:
            cursor = self.conn.execute(
                "DELETE FROM drive_folders WHERE id = ?", (folder_id,)
            )
            self.conn.commit()
        if cursor.rowcount == 0:
            raise FolderNotFoundError(folder_id)

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            self.conn.close()
