"""Request and response models for the HTTP API.

Field names are camelCase on the wire.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from workflows import Invoice, DriveFolder


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class HealthResponse(ApiModel):
    """Health check response."""

    status: str
    version: str


class SyncResponse(ApiModel):
    """Result of a sync trigger."""

    success: bool
    processed_count: Optional[int] = None
    skipped_count: Optional[int] = None
    failed_count: Optional[int] = None
    folder_errors: List[str] = Field(default_factory=list)
    dispatched: bool = False


class ErrorResponse(ApiModel):
    success: bool = False
    error: str


class SuccessResponse(ApiModel):
    success: bool = True


class InvoiceSummaryResponse(ApiModel):
    """Amount totals by status over non-deleted invoices."""

    count: int
    total: float
    pending: float
    paid: float
    overdue: float


class BankAccountModel(ApiModel):
    bank_name: Optional[str] = None
    branch_name: Optional[str] = None
    account_type: Optional[str] = None
    account_number: Optional[str] = None
    account_name: Optional[str] = None


class InvoiceModel(ApiModel):
    """An invoice as returned by the API."""

    id: str
    vendor_name: str
    invoice_number: str
    amount: float
    currency: str
    due_date: Optional[str] = None
    issue_date: Optional[str] = None
    category: str
    notes: Optional[str] = None
    bank_account: Optional[BankAccountModel] = None
    file_name: str
    source_file_id: Optional[str] = None
    web_view_link: Optional[str] = None
    status: str
    payment_date: Optional[str] = None
    extracted_at: str

    @classmethod
    def from_invoice(cls, invoice: Invoice) -> "InvoiceModel":
        acct = invoice.bank_account
        return cls(
            id=invoice.id,
            vendor_name=invoice.vendor_name,
            invoice_number=invoice.invoice_number,
            amount=invoice.amount,
            currency=invoice.currency,
            due_date=invoice.due_date,
            issue_date=invoice.issue_date,
            category=invoice.category,
            notes=invoice.notes,
            bank_account=BankAccountModel(
                bank_name=acct.bank_name,
                branch_name=acct.branch_name,
                account_type=acct.account_type,
                account_number=acct.account_number,
                account_name=acct.account_name,
            ) if acct else None,
            file_name=invoice.file_name,
            source_file_id=invoice.source_file_id,
            web_view_link=invoice.web_view_link,
            status=invoice.status.value,
            payment_date=invoice.payment_date,
            extracted_at=invoice.extracted_at,
        )


class FolderModel(ApiModel):
    """A watched drive folder."""

    id: str
    name: str
    folder_id: str
    enabled: bool
    created_at: str

    @classmethod
    def from_folder(cls, folder: DriveFolder) -> "FolderModel":
        return cls(
            id=folder.id,
            name=folder.name,
            folder_id=folder.folder_id,
            enabled=folder.enabled,
            created_at=folder.created_at,
        )


class FolderCreate(ApiModel):
    """A folder to watch; without a name, the drive folder's own name is used."""

    name: Optional[str] = None
    folder_id: str
    enabled: bool = True


class FolderUpdate(ApiModel):
    enabled: bool
