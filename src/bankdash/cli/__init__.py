"""BankDash CLI package.

This package provides the command-line interface for reviewing, syncing and
cleaning up bank connections.
"""

from .main import app, main

__all__ = ["app", "main"]
