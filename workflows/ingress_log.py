"""Ingestion log recording the outcome of every file a sync run looks at."""

import os
from datetime import datetime
from typing import Optional

from invoicesync import InvoiceSync


def _get_log_path() -> str:
    """Return monthly log path: <log_dir>/YYYY-MM-sync.log"""
    month = datetime.now().strftime("%Y-%m")
    return os.path.join(InvoiceSync.log_dir, f"{month}-sync.log")


def _append(entry: str) -> None:
    log_path = _get_log_path()
    os.makedirs(os.path.dirname(log_path), exist_ok=True)
    with open(log_path, 'a', encoding='utf-8') as f:
        f.write(entry + "\n")


def _format(status: str, source: str, invoice: Optional[str], summary: str,
            error: Optional[str] = None) -> str:
    """Format a log entry."""
    ts = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    lines = [f"[{ts}] {status}", f"  Source:  {source}"]
    lines.append(f"  Invoice: {invoice or '(none)'}")
    lines.append(f"  Summary: {summary}")
    if error:
        lines.append(f"  Error: {error}")
    return "\n".join(lines) + "\n"


def log(status: str, source: str, invoice: Optional[str], summary: str,
        error: Optional[str] = None) -> None:
    """Log a file ingestion event. Fails silently with warning on error."""
    if not InvoiceSync.log:
        return
    try:
        _append(_format(status, source, invoice, summary, error))
    except Exception as e:
        InvoiceSync.print_right(f"⚠ Failed to write sync log: {e}")
