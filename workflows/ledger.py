"""Processed-file ledger.

Answers "has this drive file already produced an invoice?" by querying the
invoice store for records carrying its source_file_id. There is no separate
table: a file counts as processed exactly when an invoice for it exists.
"""

from .invoice_store import InvoiceStore


class ProcessedFileLedger:
    """Derived view over the invoice store keyed by source file id.

    Args:
        store: Invoice store to query
        include_deleted: If True, soft-deleted invoices still mark their
            file as processed, so deleting an invoice never causes the file
            to be ingested again. If False (the default), deleting an
            invoice makes its file eligible on the next sync.
    """

    def __init__(self, store: InvoiceStore, include_deleted: bool = False) -> None:
        self.store = store
        self.include_deleted = include_deleted

    def is_processed(self, source_file_id: str) -> bool:
        return bool(self.store.find_by_source_file(
            source_file_id, include_deleted=self.include_deleted
        ))
