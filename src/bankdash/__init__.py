"""BankDash: bank connection synchronization and reconciliation.

Caches connector metadata, synchronizes connections against an aggregation
API, detects duplicate connections and recommends which ones to keep.
"""

from .cache import MetadataCache
from .errors import AggregationApiError, BankDashError, SyncBusyError
from .reconciliation import (
    DuplicateIndex,
    ReconciliationView,
    detect_duplicates,
    recommend,
    recommend_all,
)
from .sync import ConnectionSnapshot, SyncOrchestrator

__version__ = "0.1.0"

__all__ = [
    "AggregationApiError",
    "BankDashError",
    "ConnectionSnapshot",
    "DuplicateIndex",
    "MetadataCache",
    "ReconciliationView",
    "SyncBusyError",
    "SyncOrchestrator",
    "detect_duplicates",
    "recommend",
    "recommend_all",
]
