"""节目清理 - 标记删除与清除已不在 feed 中的节目."""

import logging

from podsync.core.store import Store
from podsync.models.episode import EpisodeState

logger = logging.getLogger(__name__)


class EpisodeCleaner:
    """节目状态维护."""

    def __init__(self, store: Store) -> None:
        self.store = store

    async def cleanup_episodes(self, state: str = EpisodeState.GONE) -> int:
        """删除指定状态中已不在 feed 中的节目，返回删除数量."""
        return await self.store.delete_stale_episodes(state)

    async def mark_episode_gone(self, episode_id: int) -> bool:
        """
        标记节目为已删除.

        节目已不在所属 feed 中（最近出现时间早于订阅同步时间）时直接删除记录，
        否则只修改状态，下次同步时不会被当作新节目重新插入。

        Returns:
            True 表示成功，False 表示节目不存在或已是 GONE
        """
        episode = await self.store.get_episode(episode_id)
        if episode is None or episode.state == EpisodeState.GONE:
            return False

        subscription = await self.store.get_subscription(episode.subscription_id)
        if (
            subscription is not None
            and subscription.refreshed_at is not None
            and episode.seen_at < subscription.refreshed_at
        ):
            logger.info(f"Feed 中已没有节目 {episode_id}，删除记录")
            return await self.store.delete_episode(episode_id)

        rows = await self.store.update_episode(episode_id, {"state": EpisodeState.GONE})
        return rows == 1

    async def clear_new_episodes(self) -> int:
        """把所有 NEW 节目标记为已删除，返回处理数量."""
        episodes = await self.store.list_episodes(state=EpisodeState.NEW)
        count = 0
        for episode in episodes:
            if await self.mark_episode_gone(episode.id):
                count += 1
        logger.info(f"清除了 {count} 个新节目")
        return count
