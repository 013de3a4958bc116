"""HTTP API for invoicesync.

Usage:
    from api import create_app

    app = create_app(store, drive_factory, llm_factory)
"""

from .app import create_app


__all__ = [
    'create_app',
]
