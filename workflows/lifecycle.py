"""Invoice payment lifecycle.

    PENDING ──toggle──> PAID ──toggle──> PENDING
    PENDING ──due date passed──> OVERDUE ──toggle──> PAID
    PENDING / OVERDUE ──cancel──> CANCELLED ──reopen──> PENDING
    any ──delete──> DELETED (terminal, hidden from every read)

payment_date is set when entering PAID and cleared when leaving it.
"""

from dataclasses import dataclass
from datetime import date
from typing import List, Optional

from .invoice import Invoice, PaymentStatus
from .invoice_store import InvoiceStore, InvoiceNotFoundError


class InvalidTransitionError(Exception):
    """The requested status change is not allowed from the current status."""

    def __init__(self, invoice_id: str, current: PaymentStatus, action: str) -> None:
        super().__init__(f"Cannot {action} invoice {invoice_id} in status {current.value}")
        self.invoice_id = invoice_id
        self.current = current
        self.action = action


def _load(store: InvoiceStore, invoice_id: str) -> Invoice:
    invoice = store.get_invoice(invoice_id)
    if invoice is None:
        raise InvoiceNotFoundError(invoice_id)
    return invoice


def toggle_paid(store: InvoiceStore, invoice_id: str,
                payment_date: Optional[str] = None) -> Invoice:
    """Flip an invoice between paid and unpaid.

    PENDING/OVERDUE become PAID with payment_date (default today);
    PAID reverts to PENDING and payment_date is cleared.
    """
    invoice = _load(store, invoice_id)

    if invoice.status == PaymentStatus.PAID:
        invoice.status = PaymentStatus.PENDING
        invoice.payment_date = None
    elif invoice.status in (PaymentStatus.PENDING, PaymentStatus.OVERDUE):
        invoice.status = PaymentStatus.PAID
        invoice.payment_date = payment_date or date.today().isoformat()
    else:
        raise InvalidTransitionError(invoice_id, invoice.status, "toggle payment of")

    store.update_invoice_status(invoice_id, invoice.status, invoice.payment_date)
    return invoice


def cancel_invoice(store: InvoiceStore, invoice_id: str) -> Invoice:
    invoice = _load(store, invoice_id)
    if invoice.status not in (PaymentStatus.PENDING, PaymentStatus.OVERDUE):
        raise InvalidTransitionError(invoice_id, invoice.status, "cancel")

    invoice.status = PaymentStatus.CANCELLED
    invoice.payment_date = None
    store.update_invoice_status(invoice_id, invoice.status, None)
    return invoice


def reopen_invoice(store: InvoiceStore, invoice_id: str) -> Invoice:
    invoice = _load(store, invoice_id)
    if invoice.status != PaymentStatus.CANCELLED:
        raise InvalidTransitionError(invoice_id, invoice.status, "reopen")

    invoice.status = PaymentStatus.PENDING
    store.update_invoice_status(invoice_id, invoice.status, None)
    return invoice


def soft_delete_invoice(store: InvoiceStore, invoice_id: str) -> None:
    """Mark an invoice DELETED. The record stays in the store.

    Raises:
        InvoiceNotFoundError: If the id is unknown or already deleted
    """
    store.delete_invoice(invoice_id)


def mark_overdue(store: InvoiceStore, today: Optional[date] = None) -> List[Invoice]:
    """Move PENDING invoices whose due date has passed to OVERDUE.

    Invoices with a missing or unparseable due date are left alone.

    Returns:
        The invoices that were changed
    """
    today = today or date.today()
    changed = []

    for invoice in store.get_invoices():
        if invoice.status != PaymentStatus.PENDING or not invoice.due_date:
            continue
        try:
            due = date.fromisoformat(invoice.due_date[:10])
        except ValueError:
            continue
        if due < today:
            try:
                store.update_invoice_status(invoice.id, PaymentStatus.OVERDUE, None)
            except InvoiceNotFoundError:
                # Deleted since it was listed
                continue
            invoice.status = PaymentStatus.OVERDUE
            changed.append(invoice)

    return changed


@dataclass
class InvoiceTotals:
    """Amount totals by status, as shown on the dashboard.

    Amounts are summed as-is; invoices in different currencies are not
    converted.
    """
    count: int = 0
    total: float = 0.0
    pending: float = 0.0
    paid: float = 0.0
    overdue: float = 0.0


def summarize_invoices(invoices: List[Invoice]) -> InvoiceTotals:
    totals = InvoiceTotals()
    for invoice in invoices:
        if invoice.is_deleted:
            continue
        totals.count += 1
        totals.total += invoice.amount
        if invoice.status == PaymentStatus.PENDING:
            totals.pending += invoice.amount
        elif invoice.status == PaymentStatus.PAID:
            totals.paid += invoice.amount
        elif invoice.status == PaymentStatus.OVERDUE:
            totals.overdue += invoice.amount
    return totals
