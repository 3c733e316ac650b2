"""
Catalog Feed Sync - feedsync package
"""

from .fetcher import FeedFetcher
from .parser import XmlFeedParser, ensure_list
from .transformer import ProductTransformer
from .delta import compute_delta, has_changes, hash_product
from .state import SyncStateStore
from .orchestrator import SyncOrchestrator
from .notifications import NotificationService
from .models import (
    RawFeedRecord,
    CanonicalProduct,
    MarkupConfig,
    CategoryMapConfig,
    Delta,
    SyncState,
    HistoryEntry,
    SyncSummary,
    SyncOutcome,
)

__all__ = [
    "FeedFetcher",
    "XmlFeedParser",
    "ensure_list",
    "ProductTransformer",
    "compute_delta",
    "has_changes",
    "hash_product",
    "SyncStateStore",
    "SyncOrchestrator",
    "NotificationService",
    "RawFeedRecord",
    "CanonicalProduct",
    "MarkupConfig",
    "CategoryMapConfig",
    "Delta",
    "SyncState",
    "HistoryEntry",
    "SyncSummary",
    "SyncOutcome",
]
