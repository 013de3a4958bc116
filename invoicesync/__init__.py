"""InvoiceSync - Application state and configuration."""

import os
import re
from typing import Optional, Any, TYPE_CHECKING

if TYPE_CHECKING:
    import argparse
    from workflows import InvoiceStore

__version__ = "0.1.0"

DATA_DIR = os.path.expanduser("~/.invoicesync")


def _strip_rich_markup(text: str) -> str:
    """Remove Rich markup tags like [red], [/red], [bold], etc."""
    return re.sub(r'\[/?[a-zA-Z_]+\]', '', text)


def _env_int(name: str, default: int, minimum: int) -> int:
    """Read an integer setting from the environment."""
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got '{raw}'")
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    return value


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class InvoiceSync:
    """Central configuration and state for InvoiceSync."""

    # CLI config options
    log: bool = False

    # Sync settings
    default_currency: str = "JPY"
    batch_size: int = 3
    file_timeout: float = 120.0   # seconds, 0 disables
    reingest_deleted: bool = True

    # Global resources
    llm_provider_name: str = "mistral"
    drive_uri: str = "gdrive"
    db_path: str = os.path.join(DATA_DIR, "invoices.db")
    log_dir: str = os.path.join(DATA_DIR, "log")
    db: Optional["InvoiceStore"] = None

    # UI app reference (None = CLI mode)
    _app: Optional[Any] = None

    # Progress tracking
    _total_files: int = 0
    _current_file: int = 0

    @classmethod
    def configure(cls, args: Optional["argparse.Namespace"] = None) -> None:
        """Initialize configuration from parsed CLI args and environment.

        Raises:
            ValueError: If a numeric setting is malformed or out of range
        """
        cls.log = getattr(args, 'log', False)
        cls.llm_provider_name = os.environ.get('LLM_PROVIDER', 'mistral')
        cls.drive_uri = os.environ.get('DRIVE', 'gdrive')
        cls.db_path = os.environ.get('INVOICE_DB', os.path.join(DATA_DIR, "invoices.db"))
        cls.log_dir = os.environ.get('SYNC_LOG_DIR', os.path.join(DATA_DIR, "log"))
        cls.default_currency = os.environ.get('DEFAULT_CURRENCY', 'JPY').strip().upper() or 'JPY'
        cls.batch_size = _env_int('SYNC_BATCH_SIZE', 3, minimum=1)
        cls.file_timeout = float(_env_int('SYNC_FILE_TIMEOUT', 120, minimum=0))
        cls.reingest_deleted = _env_bool('REINGEST_DELETED', True)

    @classmethod
    def init_db(cls) -> "InvoiceStore":
        """Open the invoice database."""
        from workflows import SQLiteInvoiceStore
        if cls.db is None:
            cls.db = SQLiteInvoiceStore(cls.db_path)
        return cls.db

    @classmethod
    def close(cls) -> None:
        """Cleanup resources."""
        if cls.db:
            cls.db.close()
            cls.db = None

    @classmethod
    def set_app(cls, app: Any) -> None:
        """Set the Textual app reference for UI updates."""
        cls._app = app

    @classmethod
    def print_left(cls, line1: str, line2: str) -> None:
        """Add entry to new-invoice log (left panel in TUI, stdout in CLI)."""
        if cls._app is not None:
            cls._app.call_from_thread(cls._app.add_invoice, line1, line2)
        else:
            print(_strip_rich_markup(line1))
            print(_strip_rich_markup(line2))

    @classmethod
    def print_right(cls, message: str) -> None:
        """Add line to debug log (right panel in TUI, stdout in CLI)."""
        if cls._app is not None:
            cls._app.call_from_thread(cls._app.add_debug, message)
        else:
            print(_strip_rich_markup(message))

    @classmethod
    def set_progress(cls, current: int, total: int) -> None:
        """Update progress bar and label."""
        cls._current_file = current
        cls._total_files = total
        if cls._app is not None:
            cls._app.call_from_thread(cls._app.set_progress, current, total)

    @classmethod
    def set_total_files(cls, total: int) -> None:
        """Set total file count for progress tracking."""
        cls._total_files = total
        cls._current_file = 0
        if cls._app is not None:
            cls._app.call_from_thread(cls._app.set_progress, 0, total)
