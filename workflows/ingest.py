"""Turning extraction results into stored invoices.

Used both by the drive sync and by manual uploads. Manual uploads have no
drive file id, so they bypass the processed-file ledger entirely.
"""

from datetime import date
from typing import Optional

from models import LLM, InvoiceExtraction
from .invoice import Invoice, PaymentStatus, utc_now_iso
from .invoice_store import InvoiceStore


def build_invoice(extraction: InvoiceExtraction, file_name: str,
                  default_currency: str,
                  source_file_id: Optional[str] = None,
                  web_view_link: Optional[str] = None) -> Invoice:
    """Build a new PENDING invoice from an extraction result.

    Missing optional fields get defaults: empty invoice number, category
    "Other", issue date today, the configured default currency.
    """
    return Invoice(
        vendor_name=extraction.vendor_name,
        invoice_number=extraction.invoice_number or "",
        amount=extraction.total_amount,
        currency=(extraction.currency or default_currency).upper(),
        due_date=extraction.due_date,
        issue_date=extraction.issue_date or date.today().isoformat(),
        category=extraction.category or "Other",
        notes=extraction.notes,
        bank_account=extraction.bank_account,
        file_name=file_name or "unknown",
        source_file_id=source_file_id,
        web_view_link=web_view_link,
        status=PaymentStatus.PENDING,
        extracted_at=utc_now_iso(),
    )


def ingest_upload(store: InvoiceStore, llm: LLM, content: bytes, mime_type: str,
                  file_name: str, default_currency: str) -> Invoice:
    """Extract and store a manually uploaded invoice.

    Raises:
        LLMError: If extraction fails (ExtractionError for unusable replies)
        ValueError: If the file is empty
    """
    if not content:
        raise ValueError(f"Empty file: {file_name}")

    extraction = llm.extract_invoice(content, mime_type, file_name)
    invoice = build_invoice(extraction, file_name, default_currency)
    store.save_invoice(invoice)
    return invoice
