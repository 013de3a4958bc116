"""TextUI - Textual-based terminal UI for InvoiceSync."""

import threading
from typing import Callable, Optional

from textual.app import App, ComposeResult
from textual.containers import Horizontal, Vertical
from textual.widgets import Header, Footer, Static, RichLog, ProgressBar, Label
from textual.binding import Binding

from invoicesync import InvoiceSync, __version__


class SyncInfo(Static):
    """One-line summary of where the sync reads from and writes to."""

    def __init__(self, drive: str = "", database: str = "", **kwargs) -> None:
        super().__init__(self._render_info(drive, database), **kwargs)

    @staticmethod
    def _render_info(drive: str, database: str) -> str:
        return f"[b]Drive:[/b] {drive}    [b]Database:[/b] {database}"

    def update_info(self, drive: str, database: str) -> None:
        self.update(self._render_info(drive, database))


class InvoiceSyncApp(App):
    """Textual app for InvoiceSync.

    Left: invoices created by this run. Right: debug log. Bottom: progress
    through the current folder and a running count of new invoices.
    """

    CSS = """
    #sync-info {
        dock: top;
        height: 1;
        padding: 0 1;
        background: $boost;
    }

    #panels {
        height: 1fr;
    }

    #invoice-panel {
        width: 2fr;
        border: round $accent;
        border-title-align: center;
    }

    #debug-panel {
        width: 3fr;
        border: round $primary;
        border-title-align: center;
    }

    #status-bar {
        dock: bottom;
        height: 1;
        padding: 0 1;
        margin-bottom: 1;
    }

    #progress-bar {
        width: 1fr;
    }

    #progress-label, #invoice-count {
        width: auto;
        margin-left: 2;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("ctrl+c", "quit", "Quit"),
    ]

    def __init__(self, drive: str = "", database: str = "",
                 process_func: Optional[Callable[[], None]] = None) -> None:
        super().__init__()
        self.drive = drive
        self.database = database
        self._process_func = process_func
        self._invoice_count = 0

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        yield SyncInfo(self.drive, self.database, id="sync-info")

        with Horizontal(id="panels"):
            with Vertical(id="invoice-panel") as invoice_panel:
                invoice_panel.border_title = "NEW INVOICES"
                yield RichLog(id="invoice-log", highlight=True, markup=True)

            with Vertical(id="debug-panel") as debug_panel:
                debug_panel.border_title = "DEBUG LOG"
                yield RichLog(id="debug-log", highlight=True, markup=True)

        with Horizontal(id="status-bar"):
            yield ProgressBar(id="progress-bar", show_eta=False)
            yield Label("0/0 files", id="progress-label")
            yield Label("0 new", id="invoice-count")

        yield Footer()

    def on_mount(self) -> None:
        """Wire up InvoiceSync output and start the sync in the background."""
        self.title = f"InvoiceSync v{__version__}"

        InvoiceSync.set_app(self)

        # The sync runs its own event loop in a worker thread
        if self._process_func:
            thread = threading.Thread(target=self._process_func, daemon=True)
            thread.start()

    def on_unmount(self) -> None:
        InvoiceSync.set_app(None)

    def add_invoice(self, line1: str, line2: str) -> None:
        """Add a new invoice entry to the left log."""
        self._invoice_count += 1
        self.query_one("#invoice-log", RichLog).write(f"[b]{line1}[/b]\n{line2}")
        self.query_one("#invoice-count", Label).update(f"{self._invoice_count} new")

    def add_debug(self, message: str) -> None:
        self.query_one("#debug-log", RichLog).write(message)

    def set_progress(self, current: int, total: int) -> None:
        """Update the progress bar for the folder being synced."""
        self.query_one("#progress-bar", ProgressBar).update(total=total, progress=current)
        self.query_one("#progress-label", Label).update(f"{current}/{total} files")

    def update_info(self, drive: str, database: str) -> None:
        self.query_one("#sync-info", SyncInfo).update_info(drive, database)
