"""数据模型."""

from podsync.models.app_settings import AppSettings
from podsync.models.database import get_session, init_db
from podsync.models.episode import Episode, EpisodeState
from podsync.models.subscription import Subscription, SubscriptionState
from podsync.models.sync import SyncStatus

__all__ = [
    "AppSettings",
    "Episode",
    "EpisodeState",
    "Subscription",
    "SubscriptionState",
    "SyncStatus",
    "get_session",
    "init_db",
]
