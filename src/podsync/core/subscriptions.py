"""订阅管理."""

import logging
import re

from podsync.core.identity import generate_id
from podsync.core.refresh import DEFAULT_REFRESH_MODE, RefreshMode
from podsync.core.store import Store
from podsync.models.subscription import SubscriptionState

logger = logging.getLogger(__name__)

_SCHEME_PATTERN = re.compile(r"^\w+://.*")


def canonicalize_url(url: str) -> str:
    """缺少协议的 URL 默认使用 http."""
    url = url.strip()
    if not _SCHEME_PATTERN.match(url.lower()):
        url = f"http://{url}"
        logger.warning(f"Feed 下载协议默认为 http: {url}")
    return url


class SubscriptionManager:
    """订阅管理."""

    def __init__(self, store: Store) -> None:
        self.store = store

    async def add_subscription(
        self,
        url: str,
        refresh_mode: RefreshMode = DEFAULT_REFRESH_MODE,
    ) -> int | None:
        """
        添加订阅.

        Args:
            url: feed 地址
            refresh_mode: 首次同步使用的刷新模式

        Returns:
            新订阅的 ID，已订阅时返回 None

        Raises:
            StoreError: 写入失败
        """
        url = canonicalize_url(url)
        subscription_id = generate_id(url)

        if await self.store.get_subscription(subscription_id) is not None:
            logger.info(f"已订阅: {url}")
            return None

        await self.store.upsert_subscription(
            subscription_id,
            {
                "feed_url": url,
                "refresh_mode": refresh_mode.name,
                "state": SubscriptionState.UNSEEN,
            },
        )
        logger.info(f"新增订阅 {subscription_id}: {url}")
        return subscription_id
