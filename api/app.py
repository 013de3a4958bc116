"""FastAPI application exposing the sync trigger and invoice administration.

The store is injected; the drive accessor and LLM client are created per
request through factories, so a missing credential surfaces as a failed
request rather than a failed startup.
"""

import asyncio
from typing import Callable, List, Optional

from fastapi import BackgroundTasks, FastAPI, File, HTTPException, Query, UploadFile, status
from fastapi.responses import JSONResponse

from invoicesync import InvoiceSync, __version__
from models import LLM, LLMError, LLMConfigError
from storage import DriveAccessor, guess_mime_type
from workflows import (
    InvoiceStore,
    FolderRegistry,
    SyncOrchestrator,
    SyncInProgressError,
    InvoiceNotFoundError,
    FolderNotFoundError,
    InvalidTransitionError,
    ingest_upload,
    toggle_paid,
    cancel_invoice,
    reopen_invoice,
    soft_delete_invoice,
    summarize_invoices,
)
from .schemas import (
    HealthResponse,
    SyncResponse,
    ErrorResponse,
    SuccessResponse,
    InvoiceModel,
    InvoiceSummaryResponse,
    FolderModel,
    FolderCreate,
    FolderUpdate,
)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message).model_dump(by_alias=True),
    )


def create_app(store: InvoiceStore,
               drive_factory: Callable[[], DriveAccessor],
               llm_factory: Callable[[], LLM]) -> FastAPI:
    """Build the API around an invoice store.

    Args:
        store: Invoice store shared by all requests
        drive_factory: Returns the drive accessor used by sync runs
        llm_factory: Returns the extraction client
    """
    app = FastAPI(
        title="InvoiceSync",
        description="Invoice drive sync and administration API",
        version=__version__,
    )
    registry = FolderRegistry(store)

    def build_orchestrator() -> SyncOrchestrator:
        return SyncOrchestrator.from_config(store, drive_factory(), llm_factory())

    async def run_in_background(orchestrator: SyncOrchestrator) -> None:
        try:
            await orchestrator.run()
        except SyncInProgressError as e:
            InvoiceSync.print_right(f"[yellow]Background sync not started: {e}[/yellow]")
        except Exception as e:
            InvoiceSync.print_right(f"[red]Background sync failed: {e}[/red]")

    # =========================================================================
    # Health
    # =========================================================================

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    def health_check() -> HealthResponse:
        return HealthResponse(status="healthy", version=__version__)

    # =========================================================================
    # Sync
    # =========================================================================

    @app.post("/api/sync", response_model=SyncResponse, tags=["Sync"],
              responses={409: {"model": ErrorResponse}, 500: {"model": ErrorResponse}})
    async def trigger_sync(
        background_tasks: BackgroundTasks,
        background: bool = Query(False, description="Dispatch the run and return immediately"),
    ):
        """Run one sync across all enabled folders.

        Returns the number of new invoices even if some folders or files
        failed. Fails with 500 only if nothing could be attempted, e.g.
        missing credentials or an unreadable folder registry.
        """
        try:
            orchestrator = build_orchestrator()
        except Exception as e:
            return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(e))

        if background:
            background_tasks.add_task(run_in_background, orchestrator)
            return JSONResponse(
                status_code=status.HTTP_202_ACCEPTED,
                content=SyncResponse(success=True, dispatched=True).model_dump(by_alias=True),
            )

        try:
            report = await orchestrator.run()
        except SyncInProgressError as e:
            return _error(status.HTTP_409_CONFLICT, str(e))
        except Exception as e:
            return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(e))

        return SyncResponse(
            success=True,
            processed_count=report.processed,
            skipped_count=report.skipped,
            failed_count=report.failed,
            folder_errors=[f"{f.folder.name}: {f.error}" for f in report.folder_errors],
        )

    # =========================================================================
    # Invoices
    # =========================================================================

    @app.get("/api/invoices", response_model=List[InvoiceModel], tags=["Invoices"])
    def list_invoices() -> List[InvoiceModel]:
        """Non-deleted invoices, newest first."""
        return [InvoiceModel.from_invoice(i) for i in store.get_invoices()]

    @app.get("/api/invoices/summary", response_model=InvoiceSummaryResponse, tags=["Invoices"])
    def invoice_summary() -> InvoiceSummaryResponse:
        totals = summarize_invoices(store.get_invoices())
        return InvoiceSummaryResponse(
            count=totals.count,
            total=totals.total,
            pending=totals.pending,
            paid=totals.paid,
            overdue=totals.overdue,
        )

    @app.get("/api/invoices/{invoice_id}", response_model=InvoiceModel, tags=["Invoices"])
    def get_invoice(invoice_id: str) -> InvoiceModel:
        invoice = store.get_invoice(invoice_id)
        if invoice is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND,
                                detail=f"Invoice not found: {invoice_id}")
        return InvoiceModel.from_invoice(invoice)

    @app.delete("/api/invoices/{invoice_id}", response_model=SuccessResponse, tags=["Invoices"])
    def delete_invoice(invoice_id: str) -> SuccessResponse:
        """Soft-delete an invoice."""
        try:
            soft_delete_invoice(store, invoice_id)
        except InvoiceNotFoundError:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND,
                                detail=f"Invoice not found: {invoice_id}")
        return SuccessResponse()

    def _transition(action, invoice_id: str, *args) -> InvoiceModel:
        try:
            invoice = action(store, invoice_id, *args)
        except InvoiceNotFoundError:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND,
                                detail=f"Invoice not found: {invoice_id}")
        except InvalidTransitionError as e:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
        return InvoiceModel.from_invoice(invoice)

    @app.post("/api/invoices/{invoice_id}/toggle-paid", response_model=InvoiceModel,
              tags=["Invoices"])
    def toggle_invoice_paid(
        invoice_id: str,
        payment_date: Optional[str] = Query(None, alias="paymentDate"),
    ) -> InvoiceModel:
        return _transition(toggle_paid, invoice_id, payment_date)

    @app.post("/api/invoices/{invoice_id}/cancel", response_model=InvoiceModel, tags=["Invoices"])
    def cancel(invoice_id: str) -> InvoiceModel:
        return _transition(cancel_invoice, invoice_id)

    @app.post("/api/invoices/{invoice_id}/reopen", response_model=InvoiceModel, tags=["Invoices"])
    def reopen(invoice_id: str) -> InvoiceModel:
        return _transition(reopen_invoice, invoice_id)

    @app.post("/api/invoices/upload", response_model=InvoiceModel, tags=["Invoices"],
              responses={422: {"model": ErrorResponse}})
    async def upload_invoice(file: UploadFile = File(...)):  # noqa: B008
        """Extract and store a manually uploaded invoice image or PDF.

        Uploads have no drive file id and are never deduplicated.
        """
        if not file.filename:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST,
                                detail="No filename provided")

        content = await file.read()
        if not content:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST,
                                detail="Empty file")

        mime_type = guess_mime_type(file.filename, file.content_type)

        try:
            llm = llm_factory()
            invoice = await asyncio.to_thread(
                ingest_upload, store, llm, content, mime_type, file.filename,
                InvoiceSync.default_currency,
            )
        except LLMConfigError as e:
            return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(e))
        except LLMError as e:
            return _error(status.HTTP_422_UNPROCESSABLE_ENTITY, str(e))

        return InvoiceModel.from_invoice(invoice)

    # =========================================================================
    # Watched folders
    # =========================================================================

    @app.get("/api/folders", response_model=List[FolderModel], tags=["Folders"])
    def list_folders() -> List[FolderModel]:
        return [FolderModel.from_folder(f) for f in registry.all_folders()]

    @app.post("/api/folders", response_model=FolderModel,
              status_code=status.HTTP_201_CREATED, tags=["Folders"])
    def add_folder(body: FolderCreate):
        drive = None
        if not (body.name or "").strip():
            try:
                drive = drive_factory()
            except Exception as e:
                return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(e))
        try:
            folder = registry.add(body.name, body.folder_id, body.enabled, drive=drive)
        except ValueError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
        return FolderModel.from_folder(folder)

    @app.patch("/api/folders/{folder_id}", response_model=FolderModel, tags=["Folders"])
    def update_folder(folder_id: str, body: FolderUpdate) -> FolderModel:
        try:
            registry.set_enabled(folder_id, body.enabled)
            folder = registry.get(folder_id)
        except FolderNotFoundError:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND,
                                detail=f"Folder not found: {folder_id}")
        return FolderModel.from_folder(folder)

    @app.delete("/api/folders/{folder_id}", response_model=SuccessResponse, tags=["Folders"])
    def remove_folder(folder_id: str) -> SuccessResponse:
        try:
            registry.remove(folder_id)
        except FolderNotFoundError:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND,
                                detail=f"Folder not found: {folder_id}")
        return SuccessResponse()

    return app
