"""Connection synchronization."""

from .orchestrator import (
    ConnectionStatusSummary,
    ConnectionWithBankInfo,
    SyncOrchestrator,
)
from .snapshot import ConnectionSnapshot

__all__ = [
    "ConnectionSnapshot",
    "ConnectionStatusSummary",
    "ConnectionWithBankInfo",
    "SyncOrchestrator",
]
