"""Tests for invoice status transitions."""

from datetime import date

import pytest

from workflows import (
    Invoice,
    PaymentStatus,
    InvoiceNotFoundError,
    InvalidTransitionError,
    toggle_paid,
    cancel_invoice,
    reopen_invoice,
    soft_delete_invoice,
    mark_overdue,
    summarize_invoices,
)


@pytest.fixture
def invoice_id(store):
    return store.save_invoice(Invoice(vendor_name="Acme", amount=5000,
                                      due_date="2024-08-01", source_file_id="d1"))


class TestTogglePaid:

    def test_round_trip_sets_and_clears_payment_date(self, store, invoice_id):
        paid = toggle_paid(store, invoice_id)
        assert paid.status == PaymentStatus.PAID
        assert paid.payment_date == date.today().isoformat()
        assert store.get_invoice(invoice_id).payment_date is not None

        pending = toggle_paid(store, invoice_id)
        assert pending.status == PaymentStatus.PENDING
        assert pending.payment_date is None
        assert store.get_invoice(invoice_id).payment_date is None

    def test_explicit_payment_date(self, store, invoice_id):
        toggle_paid(store, invoice_id, "2024-07-20")
        assert store.get_invoice(invoice_id).payment_date == "2024-07-20"

    def test_overdue_can_be_paid(self, store, invoice_id):
        store.update_invoice_status(invoice_id, PaymentStatus.OVERDUE)
        assert toggle_paid(store, invoice_id).status == PaymentStatus.PAID

    def test_cancelled_cannot_be_paid(self, store, invoice_id):
        cancel_invoice(store, invoice_id)
        with pytest.raises(InvalidTransitionError):
            toggle_paid(store, invoice_id)

    def test_deleted_is_not_found(self, store, invoice_id):
        soft_delete_invoice(store, invoice_id)
        with pytest.raises(InvoiceNotFoundError):
            toggle_paid(store, invoice_id)

    def test_delete_and_reingest_between_read_and_write(self, store, invoice_id, monkeypatch):
        stale = store.get_invoice(invoice_id)
        soft_delete_invoice(store, invoice_id)
        replacement = store.save_invoice(Invoice(vendor_name="Acme", amount=5000,
                                                 due_date="2024-08-01", source_file_id="d1"))
        monkeypatch.setattr(store, "get_invoice", lambda _id, include_deleted=False: stale)

        with pytest.raises(InvoiceNotFoundError):
            toggle_paid(store, invoice_id)

        monkeypatch.undo()
        assert [i.id for i in store.get_invoices()] == [replacement]
        assert store.get_invoice(replacement).status == PaymentStatus.PENDING
        assert store.get_invoice(invoice_id, include_deleted=True).status == PaymentStatus.DELETED


class TestCancelReopen:

    def test_cancel_and_reopen(self, store, invoice_id):
        assert cancel_invoice(store, invoice_id).status == PaymentStatus.CANCELLED
        assert reopen_invoice(store, invoice_id).status == PaymentStatus.PENDING

    def test_cannot_cancel_paid(self, store, invoice_id):
        toggle_paid(store, invoice_id)
        with pytest.raises(InvalidTransitionError):
            cancel_invoice(store, invoice_id)

    def test_cannot_reopen_pending(self, store, invoice_id):
        with pytest.raises(InvalidTransitionError):
            reopen_invoice(store, invoice_id)


class TestSoftDelete:

    def test_delete_unknown_raises(self, store):
        with pytest.raises(InvoiceNotFoundError):
            soft_delete_invoice(store, "does-not-exist")

    def test_delete_hides_invoice(self, store, invoice_id):
        soft_delete_invoice(store, invoice_id)
        assert store.get_invoices() == []
        assert store.get_invoice(invoice_id, include_deleted=True).status == PaymentStatus.DELETED


class TestMarkOverdue:

    def test_marks_only_past_due_pending(self, store):
        past = store.save_invoice(Invoice(vendor_name="Past", due_date="2024-07-31"))
        future = store.save_invoice(Invoice(vendor_name="Future", due_date="2024-08-15"))
        paid = store.save_invoice(Invoice(vendor_name="Paid", due_date="2024-07-01"))
        toggle_paid(store, paid)
        undated = store.save_invoice(Invoice(vendor_name="Undated", due_date="soon"))

        changed = mark_overdue(store, today=date(2024, 8, 1))

        assert [i.id for i in changed] == [past]
        assert store.get_invoice(past).status == PaymentStatus.OVERDUE
        assert store.get_invoice(future).status == PaymentStatus.PENDING
        assert store.get_invoice(paid).status == PaymentStatus.PAID
        assert store.get_invoice(undated).status == PaymentStatus.PENDING

    def test_due_today_is_not_overdue(self, store):
        store.save_invoice(Invoice(vendor_name="Today", due_date="2024-08-01"))
        assert mark_overdue(store, today=date(2024, 8, 1)) == []

    def test_invoice_deleted_after_listing_is_skipped(self, store, monkeypatch):
        gone = store.save_invoice(Invoice(vendor_name="Gone", due_date="2024-07-01"))
        late = store.save_invoice(Invoice(vendor_name="Late", due_date="2024-07-02"))
        listed = store.get_invoices()
        soft_delete_invoice(store, gone)
        monkeypatch.setattr(store, "get_invoices", lambda include_deleted=False: listed)

        changed = mark_overdue(store, today=date(2024, 8, 1))

        assert [i.id for i in changed] == [late]
        monkeypatch.undo()
        assert store.get_invoice(gone, include_deleted=True).status == PaymentStatus.DELETED


class TestSummary:

    def test_totals_by_status(self, store, invoice_id):
        other = store.save_invoice(Invoice(vendor_name="Other", amount=1500))
        toggle_paid(store, other)
        cancelled = store.save_invoice(Invoice(vendor_name="Cancelled", amount=700))
        cancel_invoice(store, cancelled)

        totals = summarize_invoices(store.get_invoices(include_deleted=True))

        assert totals.count == 3
        assert totals.total == 7200
        assert totals.pending == 5000
        assert totals.paid == 1500
        assert totals.overdue == 0

    def test_deleted_are_not_counted(self, store, invoice_id):
        soft_delete_invoice(store, invoice_id)
        totals = summarize_invoices(store.get_invoices(include_deleted=True))
        assert totals.count == 0
        assert totals.total == 0
