"""Duplicate detection, recommendations and the grouped connection view."""

from .recommendations import (
    ConnectionWithAccounts,
    recommend,
    recommend_all,
)
from .similarity import (
    AccountSimilarity,
    DuplicateGroup,
    DuplicateIndex,
    account_similarity,
    detect_duplicates,
    group_accounts_by_connection,
    group_duplicates,
)
from .view import (
    ConnectionWithDetails,
    ConnectorGroup,
    FilterMode,
    ReconciliationView,
    build_connector_groups,
    filter_groups,
)

__all__ = [
    "AccountSimilarity",
    "ConnectionWithAccounts",
    "ConnectionWithDetails",
    "ConnectorGroup",
    "DuplicateGroup",
    "DuplicateIndex",
    "FilterMode",
    "ReconciliationView",
    "account_similarity",
    "build_connector_groups",
    "detect_duplicates",
    "filter_groups",
    "group_accounts_by_connection",
    "group_duplicates",
    "recommend",
    "recommend_all",
]
