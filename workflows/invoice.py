"""Invoice and DriveFolder records as stored in the invoice database."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

from models import BankAccountInfo


class PaymentStatus(str, Enum):
    """Payment lifecycle of an invoice. DELETED is a soft-delete marker."""
    PENDING = "PENDING"
    PAID = "PAID"
    OVERDUE = "OVERDUE"
    CANCELLED = "CANCELLED"
    DELETED = "DELETED"


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string (sortable as text)."""
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


@dataclass
class Invoice:
    """An invoice record."""

    # Identity
    id: Optional[str] = None                 # Assigned by the store on save

    # Extracted fields
    vendor_name: str = ""
    invoice_number: str = ""
    amount: float = 0.0
    currency: str = "JPY"
    due_date: Optional[str] = None           # "YYYY-MM-DD"
    issue_date: Optional[str] = None         # "YYYY-MM-DD"
    category: str = "Other"
    notes: Optional[str] = None
    bank_account: Optional[BankAccountInfo] = None

    # Source
    file_name: str = "unknown"
    source_file_id: Optional[str] = None     # Drive file id, the dedup key
    web_view_link: Optional[str] = None

    # Lifecycle
    status: PaymentStatus = PaymentStatus.PENDING
    payment_date: Optional[str] = None       # Set only while PAID
    extracted_at: str = field(default_factory=utc_now_iso)

    @property
    def is_deleted(self) -> bool:
        return self.status == PaymentStatus.DELETED

    def display(self, output_fn: Callable[[str], None] = print) -> None:
        """Display invoice in UI format."""
        output_fn(f"File: {self.file_name}")
        output_fn(f"Vendor: {self.vendor_name}")
        if self.invoice_number:
            output_fn(f"Invoice #: {self.invoice_number}")
        output_fn(f"Amount: {self.amount:,.0f} {self.currency}")
        output_fn(f"Due: {self.due_date or '-'} ({self.status.value})")
        if self.bank_account:
            acct = self.bank_account
            parts = [p for p in (acct.bank_name, acct.branch_name,
                                 acct.account_type, acct.account_number) if p]
            output_fn(f"Bank: {' '.join(parts)}")

    def to_row(self) -> dict:
        """Convert to dict for database storage."""
        acct = self.bank_account or BankAccountInfo()
        return {
            "id": self.id,
            "vendor_name": self.vendor_name,
            "invoice_number": self.invoice_number,
            "amount": self.amount,
            "currency": self.currency,
            "due_date": self.due_date,
            "issue_date": self.issue_date,
            "category": self.category,
            "notes": self.notes,
            "bank_name": acct.bank_name,
            "branch_name": acct.branch_name,
            "account_type": acct.account_type,
            "account_number": acct.account_number,
            "account_name": acct.account_name,
            "file_name": self.file_name,
            "source_file_id": self.source_file_id,
            "web_view_link": self.web_view_link,
            "status": self.status.value,
            "payment_date": self.payment_date,
            "extracted_at": self.extracted_at,
        }

    @classmethod
    def from_row(cls, row: dict) -> "Invoice":
        """Create from database row dict."""
        acct = BankAccountInfo(
            bank_name=row.get("bank_name"),
            branch_name=row.get("branch_name"),
            account_type=row.get("account_type"),
            account_number=row.get("account_number"),
            account_name=row.get("account_name"),
        )
        return cls(
            id=row["id"],
            vendor_name=row.get("vendor_name") or "",
            invoice_number=row.get("invoice_number") or "",
            amount=row.get("amount") or 0.0,
            currency=row.get("currency") or "",
            due_date=row.get("due_date"),
            issue_date=row.get("issue_date"),
            category=row.get("category") or "Other",
            notes=row.get("notes"),
            bank_account=None if acct.is_empty() else acct,
            file_name=row.get("file_name") or "unknown",
            source_file_id=row.get("source_file_id"),
            web_view_link=row.get("web_view_link"),
            status=PaymentStatus(row["status"]),
            payment_date=row.get("payment_date"),
            extracted_at=row["extracted_at"],
        )


@dataclass
class DriveFolder:
    """A watched drive folder."""
    name: str
    folder_id: str                           # External drive folder id
    enabled: bool = True
    id: Optional[str] = None                 # Assigned by the store on save
    created_at: str = field(default_factory=utc_now_iso)

    @classmethod
    def from_row(cls, row: dict) -> "DriveFolder":
        return cls(
            id=row["id"],
            name=row["name"],
            folder_id=row["folder_id"],
            enabled=bool(row["enabled"]),
            created_at=row["created_at"],
        )
