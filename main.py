#!/usr/bin/env python3
"""InvoiceSync - Invoice drive sync and ingestion."""

import argparse
import os
import sys
from typing import Optional

from invoicesync import InvoiceSync, __version__
from models import create_llm, LLMError
from storage import create_drive, guess_mime_type, StorageError
from workflows import (
    FolderRegistry,
    SyncInProgressError,
    SyncReport,
    InvoiceNotFoundError,
    FolderNotFoundError,
    InvalidTransitionError,
    ingest_upload,
    mark_overdue,
    run_sync,
    toggle_paid,
    cancel_invoice,
    soft_delete_invoice,
    summarize_invoices,
)


def run_processing(overdue: bool = False) -> SyncReport:
    """Run one sync across all enabled folders.

    The drive and LLM client are created first so that configuration
    errors abort before any folder is touched.
    """
    drive = create_drive(InvoiceSync.drive_uri)
    llm = create_llm(InvoiceSync.llm_provider_name)
    store = InvoiceSync.init_db()

    InvoiceSync.print_right(f"Using LLM provider: {InvoiceSync.llm_provider_name}")
    InvoiceSync.print_right(f"Drive: {drive.display_name}")
    InvoiceSync.print_right(f"Database: {InvoiceSync.db_path}")
    InvoiceSync.print_right(
        f"Batch size: {InvoiceSync.batch_size}, file timeout: "
        + (f"{InvoiceSync.file_timeout:g}s" if InvoiceSync.file_timeout else "none")
    )
    if InvoiceSync.log:
        InvoiceSync.print_right(f"Log mode: enabled (logging to {InvoiceSync.log_dir})")

    report = run_sync(store, drive, llm)

    if overdue:
        changed = mark_overdue(store)
        InvoiceSync.print_right(f"Marked {len(changed)} invoice(s) overdue")

    return report


def main(overdue: bool = False) -> int:
    """Sync once with plain text output (CLI mode)."""
    try:
        run_processing(overdue)
    except SyncInProgressError as e:
        print(f"Error: {e}")
        return 1
    finally:
        InvoiceSync.close()
    return 0


def main_sync_job(overdue: bool = False) -> int:
    """Batch entry point: sync once and report the result via exit code.

    Returns:
        0 if the run completed (even with folder or file failures),
        1 if it could not run at all
    """
    try:
        report = run_processing(overdue)
    except Exception as e:
        print(f"Sync failed: {e}", file=sys.stderr)
        return 1
    finally:
        InvoiceSync.close()

    print(f"Processed {report.processed} new invoice(s)")
    return 0


def main_tui() -> None:
    """Sync once inside the Textual UI."""
    from textui import InvoiceSyncApp

    drive = create_drive(InvoiceSync.drive_uri)

    def process_func():
        try:
            run_processing()
        except Exception as e:
            InvoiceSync.print_right(f"[red]Sync failed: {e}[/red]")
        finally:
            InvoiceSync.close()

    app = InvoiceSyncApp(
        drive=drive.display_name,
        database=InvoiceSync.db_path,
        process_func=process_func,
    )
    app.run()


def serve(host: str, port: int) -> None:
    """Run the HTTP API."""
    import uvicorn
    from api import create_app

    store = InvoiceSync.init_db()
    app = create_app(
        store,
        drive_factory=lambda: create_drive(InvoiceSync.drive_uri),
        llm_factory=lambda: create_llm(InvoiceSync.llm_provider_name),
    )
    uvicorn.run(app, host=host, port=port)


def upload_file(path: str) -> int:
    """Extract and store a single local file."""
    if not os.path.isfile(path):
        print(f"Error: file not found: {path}")
        return 1

    with open(path, 'rb') as f:
        content = f.read()

    name = os.path.basename(path)
    llm = create_llm(InvoiceSync.llm_provider_name)
    store = InvoiceSync.init_db()
    try:
        invoice = ingest_upload(store, llm, content, guess_mime_type(name), name,
                                InvoiceSync.default_currency)
    except (LLMError, ValueError) as e:
        print(f"Extraction failed: {e}")
        return 1

    invoice.display()
    print(f"Stored invoice {invoice.id}")
    return 0


def list_invoices() -> None:
    store = InvoiceSync.init_db()
    invoices = store.get_invoices()
    if not invoices:
        print("No invoices")
        return
    for inv in invoices:
        print(f"{inv.id}  {inv.status.value:<9}  {inv.due_date or '-':<10}  "
              f"{inv.amount:>12,.0f} {inv.currency:<3}  {inv.vendor_name}")

    totals = summarize_invoices(invoices)
    print(f"{totals.count} invoice(s): total {totals.total:,.0f}, pending {totals.pending:,.0f}, "
          f"paid {totals.paid:,.0f}, overdue {totals.overdue:,.0f}")


def list_folders() -> None:
    registry = FolderRegistry(InvoiceSync.init_db())
    folders = registry.all_folders()
    if not folders:
        print("No watched folders")
        return
    for folder in folders:
        state = "enabled" if folder.enabled else "disabled"
        print(f"{folder.id}  {state:<8}  {folder.folder_id}  {folder.name}")


def admin(args: argparse.Namespace) -> int:
    """Handle the invoice and folder administration flags."""
    store = InvoiceSync.init_db()
    registry = FolderRegistry(store)

    try:
        if args.delete:
            soft_delete_invoice(store, args.delete)
            print(f"Deleted invoice {args.delete}")
        elif args.toggle_paid:
            invoice = toggle_paid(store, args.toggle_paid)
            print(f"Invoice {invoice.id} is now {invoice.status.value}")
        elif args.cancel:
            invoice = cancel_invoice(store, args.cancel)
            print(f"Invoice {invoice.id} is now {invoice.status.value}")
        elif args.add_folder:
            drive_folder_id, *rest = args.add_folder
            name = rest[0] if rest else None
            drive = None if name else create_drive(InvoiceSync.drive_uri)
            folder = registry.add(name, drive_folder_id, drive=drive)
            print(f"Watching {folder.name} ({folder.folder_id}) as {folder.id}")
        elif args.remove_folder:
            registry.remove(args.remove_folder)
            print(f"Removed folder {args.remove_folder}")
        elif args.enable_folder:
            registry.set_enabled(args.enable_folder, True)
            print(f"Enabled folder {args.enable_folder}")
        elif args.disable_folder:
            registry.set_enabled(args.disable_folder, False)
            print(f"Disabled folder {args.disable_folder}")
    except (InvoiceNotFoundError, FolderNotFoundError) as e:
        print(f"Not found: {e}")
        return 1
    except (InvalidTransitionError, StorageError, ValueError) as e:
        print(f"Error: {e}")
        return 1
    return 0


def cli(argv: Optional[list] = None) -> int:
    parser = argparse.ArgumentParser(description="Invoice drive sync")
    parser.add_argument("--version", action="version", version=f"InvoiceSync {__version__}")
    parser.add_argument("--cli", action="store_true",
                        help="Use CLI output instead of TextUI (default is TextUI)")
    parser.add_argument("--sync-job", action="store_true",
                        help="Sync once and exit with 0 on success, 1 on failure")
    parser.add_argument("--serve", action="store_true",
                        help="Run the HTTP API")
    parser.add_argument("--host", type=str, default="127.0.0.1",
                        help="Host for --serve")
    parser.add_argument("--port", type=int, default=8000,
                        help="Port for --serve")
    parser.add_argument("--file", type=str,
                        help="Extract and store a single local file and exit")
    parser.add_argument("--list", action="store_true",
                        help="List invoices, newest first")
    parser.add_argument("--delete", type=str, metavar="ID",
                        help="Soft-delete an invoice")
    parser.add_argument("--toggle-paid", type=str, metavar="ID",
                        help="Toggle an invoice between paid and unpaid")
    parser.add_argument("--cancel", type=str, metavar="ID",
                        help="Cancel an invoice")
    parser.add_argument("--mark-overdue", action="store_true",
                        help="Mark pending invoices past their due date as overdue")
    parser.add_argument("--folders", action="store_true",
                        help="List watched folders")
    parser.add_argument("--add-folder", nargs="+", metavar=("FOLDER_ID", "NAME"),
                        help="Watch a drive folder (name defaults to the folder's own name)")
    parser.add_argument("--remove-folder", type=str, metavar="ID",
                        help="Stop watching a folder")
    parser.add_argument("--enable-folder", type=str, metavar="ID",
                        help="Enable a watched folder")
    parser.add_argument("--disable-folder", type=str, metavar="ID",
                        help="Disable a watched folder")
    parser.add_argument("--log", action="store_true",
                        help="Log every ingested file to the monthly sync log")
    args = parser.parse_args(argv)
    if args.add_folder and len(args.add_folder) > 2:
        parser.error("--add-folder takes FOLDER_ID and an optional NAME")

    try:
        InvoiceSync.configure(args)
    except ValueError as e:
        print(f"Configuration error: {e}")
        return 2

    if args.serve:
        serve(args.host, args.port)
        return 0

    if args.sync_job:
        return main_sync_job(overdue=args.mark_overdue)

    if args.file:
        try:
            return upload_file(args.file)
        finally:
            InvoiceSync.close()

    if any((args.delete, args.toggle_paid, args.cancel, args.add_folder,
            args.remove_folder, args.enable_folder, args.disable_folder)):
        try:
            return admin(args)
        finally:
            InvoiceSync.close()

    # --mark-overdue runs on its own unless combined with a sync (--cli)
    standalone_overdue = args.mark_overdue and not args.cli
    if args.list or args.folders or standalone_overdue:
        try:
            if args.mark_overdue:
                changed = mark_overdue(InvoiceSync.init_db())
                print(f"Marked {len(changed)} invoice(s) overdue")
            if args.folders:
                list_folders()
            if args.list:
                list_invoices()
        finally:
            InvoiceSync.close()
        return 0

    try:
        if args.cli:
            return main(overdue=args.mark_overdue)
        main_tui()
    except (StorageError, LLMError, ValueError) as e:
        print(f"Error: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(cli())
