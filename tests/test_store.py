"""测试 SQL 存储."""

from datetime import datetime

import pytest

from podsync.core.store import SqlStore
from podsync.models.episode import Episode

SUBSCRIPTION_ID = 2002
SEEN_AT = datetime(2024, 6, 1, 12, 30, 15)


@pytest.fixture
async def episode(store: SqlStore) -> Episode:
    """已入库的节目."""
    await store.upsert_subscription(
        SUBSCRIPTION_ID, {"feed_url": "http://example.com/feed.xml"}
    )
    episode = Episode(
        id=42,
        subscription_id=SUBSCRIPTION_ID,
        title="Episode 42",
        audio_url="http://example.com/42.mp3",
        published_at=datetime(2024, 1, 1),
        seen_at=SEEN_AT,
    )
    await store.insert_episode(episode)
    return episode


class TestSqlStore:
    """测试 SqlStore."""

    async def test_find_episode_by_id(self, store: SqlStore, episode: Episode) -> None:
        """已存在的节目返回 True，不存在的返回 False."""
        assert await store.find_episode_by_id(42) is True
        assert await store.find_episode_by_id(43) is False

    async def test_naive_datetimes_round_trip(
        self, store: SqlStore, episode: Episode
    ) -> None:
        """不带时区的 UTC 时间原样写入和读出."""
        stored = await store.get_episode(42)

        assert stored is not None
        assert stored.seen_at == SEEN_AT
        assert stored.seen_at.tzinfo is None
        assert stored.published_at == datetime(2024, 1, 1)

    async def test_touch_last_seen_keeps_naive(
        self, store: SqlStore, episode: Episode
    ) -> None:
        """更新最近出现时间后仍然是不带时区的时间."""
        later = datetime(2024, 6, 2, 8, 0, 0)

        assert await store.touch_episode_last_seen(42, later) is True

        stored = await store.get_episode(42)
        assert stored.seen_at == later
        assert stored.seen_at.tzinfo is None
