"""测试节目清理."""

from datetime import datetime, timedelta

import pytest

from podsync.core.cleanup import EpisodeCleaner
from podsync.core.store import SqlStore
from podsync.models.episode import Episode, EpisodeState

SUBSCRIPTION_ID = 1001
REFRESHED_AT = datetime(2024, 6, 1, 12, 0, 0)
EARLIER = REFRESHED_AT - timedelta(days=1)


def _episode(episode_id: int, state: str, seen_at: datetime) -> Episode:
    return Episode(
        id=episode_id,
        subscription_id=SUBSCRIPTION_ID,
        title=f"Episode {episode_id}",
        audio_url=f"http://example.com/{episode_id}.mp3",
        published_at=datetime(2024, 1, 1),
        state=state,
        seen_at=seen_at,
    )


@pytest.fixture
async def cleaner(store: SqlStore) -> EpisodeCleaner:
    """包含一个已同步订阅的清理器."""
    await store.upsert_subscription(
        SUBSCRIPTION_ID,
        {"feed_url": "http://example.com/feed.xml", "refreshed_at": REFRESHED_AT},
    )
    return EpisodeCleaner(store)


class TestMarkEpisodeGone:
    """测试 mark_episode_gone."""

    async def test_deletes_episode_missing_from_feed(
        self, cleaner: EpisodeCleaner, store: SqlStore
    ) -> None:
        """已不在 feed 中的节目直接删除."""
        await store.insert_episode(_episode(1, EpisodeState.NEW, EARLIER))

        assert await cleaner.mark_episode_gone(1) is True
        assert await store.get_episode(1) is None

    async def test_flips_state_of_current_episode(
        self, cleaner: EpisodeCleaner, store: SqlStore
    ) -> None:
        """仍在 feed 中的节目只修改状态."""
        await store.insert_episode(_episode(1, EpisodeState.NEW, REFRESHED_AT))

        assert await cleaner.mark_episode_gone(1) is True
        episode = await store.get_episode(1)
        assert episode.state == EpisodeState.GONE

    async def test_missing_episode(self, cleaner: EpisodeCleaner) -> None:
        """节目不存在返回 False."""
        assert await cleaner.mark_episode_gone(404) is False

    async def test_already_gone(self, cleaner: EpisodeCleaner, store: SqlStore) -> None:
        """已是 GONE 的节目返回 False."""
        await store.insert_episode(_episode(1, EpisodeState.GONE, REFRESHED_AT))
        assert await cleaner.mark_episode_gone(1) is False


class TestClearNewEpisodes:
    """测试 clear_new_episodes."""

    async def test_clears_all_new(self, cleaner: EpisodeCleaner, store: SqlStore) -> None:
        """所有新节目都被处理."""
        await store.insert_episode(_episode(1, EpisodeState.NEW, EARLIER))
        await store.insert_episode(_episode(2, EpisodeState.NEW, REFRESHED_AT))
        await store.insert_episode(_episode(3, EpisodeState.GONE, REFRESHED_AT))

        assert await cleaner.clear_new_episodes() == 2
        assert await store.list_episodes(state=EpisodeState.NEW) == []
        remaining = await store.list_episodes()
        assert sorted(e.id for e in remaining) == [2, 3]


class TestCleanupEpisodes:
    """测试 cleanup_episodes."""

    async def test_deletes_only_stale_gone(
        self, cleaner: EpisodeCleaner, store: SqlStore
    ) -> None:
        """只删除最近出现时间早于订阅同步时间的 GONE 节目."""
        await store.insert_episode(_episode(1, EpisodeState.GONE, EARLIER))
        await store.insert_episode(_episode(2, EpisodeState.GONE, REFRESHED_AT))
        await store.insert_episode(_episode(3, EpisodeState.NEW, EARLIER))

        assert await cleaner.cleanup_episodes() == 1
        remaining = await store.list_episodes()
        assert sorted(e.id for e in remaining) == [2, 3]

    async def test_never_synced_subscription(self, store: SqlStore) -> None:
        """从未同步的订阅不清理."""
        await store.upsert_subscription(2002, {"feed_url": "http://example.com/b.xml"})
        episode = _episode(5, EpisodeState.GONE, EARLIER)
        episode.subscription_id = 2002
        await store.insert_episode(episode)

        assert await EpisodeCleaner(store).cleanup_episodes() == 0
