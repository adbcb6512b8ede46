"""核心业务逻辑."""

from podsync.core.cleanup import EpisodeCleaner
from podsync.core.identity import generate_id
from podsync.core.refresh import REFRESH_MODES, RefreshMode, get_refresh_mode
from podsync.core.refresh_runner import RefreshRunner
from podsync.core.store import SqlStore, Store
from podsync.core.subscriptions import SubscriptionManager
from podsync.core.sync import SyncOutcome, SyncService, create_sync_service

__all__ = [
    "REFRESH_MODES",
    "EpisodeCleaner",
    "RefreshMode",
    "RefreshRunner",
    "SqlStore",
    "Store",
    "SubscriptionManager",
    "SyncOutcome",
    "SyncService",
    "create_sync_service",
    "generate_id",
    "get_refresh_mode",
]
