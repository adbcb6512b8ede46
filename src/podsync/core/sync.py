"""同步服务 - 拉取 feed 并写入节目."""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from types import TracebackType
from typing import Any

import httpx
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from podsync.config import Settings, get_effective_setting, get_settings
from podsync.core.cleanup import EpisodeCleaner
from podsync.core.episodes import EpisodeExtractor
from podsync.core.errors import (
    FeedFetchError,
    FeedParseError,
    StoreError,
    StoreUnavailableError,
)
from podsync.core.parser import Feed, FeedParser
from podsync.core.refresh import (
    DEFAULT_REFRESH_MODE,
    RefreshMode,
    get_refresh_mode,
    should_mark_new,
)
from podsync.core.store import SqlStore, Store
from podsync.fetcher.images import ImageCache
from podsync.fetcher.probe import ContentLengthProbe
from podsync.models.episode import EpisodeState
from podsync.models.subscription import Subscription, SubscriptionState
from podsync.utils.html_parser import short_description, simplify_html
from podsync.utils.timeutils import utcnow

logger = logging.getLogger(__name__)

# 解析到该数量的条目后停止
MAX_EPISODES_TO_PARSE = 1000


class SyncStage:
    """同步阶段."""

    FETCHING = "fetching"
    PARSING = "parsing"
    EXTRACTING = "extracting"
    COMMITTING = "committing"
    DONE = "done"


class OutcomeKind:
    """同步结果类型."""

    SUCCESS = "success"
    IO_ERROR = "io_error"
    STORE_ERROR = "store_error"
    PARSE_ERROR = "parse_error"


@dataclass
class SyncOutcome:
    """单个订阅的同步结果."""

    kind: str
    source: str
    title: str | None = None
    new_episodes: int = 0
    error: str | None = None
    stage: str | None = None

    @property
    def ok(self) -> bool:
        """是否同步成功."""
        return self.kind == OutcomeKind.SUCCESS


@dataclass
class SyncConfig:
    """同步配置，构造时传入 SyncService."""

    user_agent: str
    episode_no_title: str
    image_dir: Path
    connect_timeout: float = 10.0
    read_timeout: float = 30.0
    max_items: int = MAX_EPISODES_TO_PARSE

    @classmethod
    def from_settings(cls, settings: Settings) -> "SyncConfig":
        """从应用配置构建."""
        return cls(
            user_agent=settings.user_agent,
            episode_no_title=settings.episode_no_title,
            image_dir=Path(settings.image_dir),
            connect_timeout=float(settings.connect_timeout_seconds),
            read_timeout=float(settings.fetch_timeout_seconds),
            max_items=settings.max_episodes_to_parse,
        )

    def http_timeout(self) -> httpx.Timeout:
        """网络请求超时."""
        return httpx.Timeout(self.read_timeout, connect=self.connect_timeout)


def describe_error(exc: BaseException) -> str:
    """保存到订阅上的错误描述."""
    return f"{exc} ({type(exc).__name__})"


def classify_error(exc: BaseException) -> str:
    """异常归类，未知异常按网络错误处理（可重试）."""
    if isinstance(exc, FeedParseError):
        return OutcomeKind.PARSE_ERROR
    if isinstance(exc, StoreError):
        return OutcomeKind.STORE_ERROR
    return OutcomeKind.IO_ERROR


class SyncService:
    """同步服务."""

    def __init__(
        self,
        store: Store,
        config: SyncConfig,
        client: httpx.AsyncClient | None = None,
        parser: FeedParser | None = None,
        images: ImageCache | None = None,
        prober: ContentLengthProbe | None = None,
    ) -> None:
        self.store = store
        self.config = config
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=config.http_timeout(),
            headers={"User-Agent": config.user_agent},
            follow_redirects=True,
        )
        self.parser = parser or FeedParser()
        self.images = images or ImageCache(config.image_dir, self._client)
        self.extractor = EpisodeExtractor(
            store,
            prober or ContentLengthProbe(self._client),
            self.images,
            config.episode_no_title,
        )
        self.cleaner = EpisodeCleaner(store)

    async def close(self) -> None:
        """等待后台图片下载并关闭客户端."""
        await self.images.wait_pending()
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "SyncService":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def sync_subscription(
        self,
        subscription_id: int,
        refresh_mode: RefreshMode | None = None,
    ) -> SyncOutcome:
        """
        同步单个订阅.

        Args:
            subscription_id: 订阅 ID
            refresh_mode: 本次使用的刷新模式，默认取订阅上保存的模式

        Returns:
            SyncOutcome: 成功时包含标题和新节目数，失败时包含错误分类
        """
        stage = SyncStage.FETCHING
        source = str(subscription_id)

        try:
            subscription = await self.store.get_subscription(subscription_id)
            if subscription is None:
                msg = f"订阅 {subscription_id} 不存在"
                raise StoreError(msg)
            source = subscription.feed_url
            mode = refresh_mode or get_refresh_mode(subscription.refresh_mode)

            content = await self._fetch(subscription.feed_url)

            stage = SyncStage.PARSING
            feed = await self._parse(content)

            # 节目必须先于订阅写入时间戳，否则中途失败时清理会误删新节目
            stage = SyncStage.EXTRACTING
            timestamp = utcnow()
            new_episodes = await self._extract_items(
                feed, subscription_id, timestamp, mode
            )

            stage = SyncStage.COMMITTING
            await self._commit(subscription, feed, timestamp)

        except asyncio.CancelledError:
            logger.warning(f"刷新 {source} 被取消 ({stage})")
            await self._store_failure(subscription_id, "同步被取消 (CancelledError)")
            raise

        except Exception as e:
            logger.warning(f"刷新 {source} 失败 ({stage})", exc_info=True)
            error = describe_error(e)
            await self._store_failure(subscription_id, error)
            return SyncOutcome(
                kind=classify_error(e),
                source=source,
                error=error,
                stage=stage,
            )

        await self._cleanup()
        logger.info(f"刷新 {source} 完成: {feed.title}, 新节目 {new_episodes} 个")
        return SyncOutcome(
            kind=OutcomeKind.SUCCESS,
            source=source,
            title=feed.title,
            new_episodes=new_episodes,
            stage=SyncStage.DONE,
        )

    async def _fetch(self, url: str) -> bytes:
        """下载 feed."""
        response = await self._client.get(url)
        if not response.is_success:
            msg = f"HTTP {response.status_code}: {url}"
            raise FeedFetchError(msg)
        return response.content

    async def _parse(self, content: bytes) -> Feed:
        """
        解析 feed.

        feedparser 是同步库，这里放到线程池中执行。
        """
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None,
            self.parser.parse,
            content,
            self.config.max_items,
        )

    async def _extract_items(
        self,
        feed: Feed,
        subscription_id: int,
        timestamp: datetime,
        mode: RefreshMode,
    ) -> int:
        """按 feed 顺序处理条目，返回标记为 NEW 的新节目数."""
        marked = 0
        for item in feed.items:
            mark_new = should_mark_new(marked, item.pub_date, mode, timestamp)
            try:
                result = await self.extractor.extract(
                    item, subscription_id, timestamp, mark_new
                )
            except StoreUnavailableError:
                raise
            except Exception:
                logger.exception(f"处理条目失败，跳过: {item.title}")
                continue

            if result.inserted and mark_new:
                marked += 1
        return marked

    async def _commit(
        self,
        subscription: Subscription,
        feed: Feed,
        timestamp: datetime,
    ) -> None:
        """一次性写入订阅信息和同步时间戳."""
        fields: dict[str, Any] = {
            "title": feed.title,
            "link": feed.link,
            "image_url": feed.image_link,
            "state": SubscriptionState.SEEN_ONCE,
            # 刷新模式只生效一次，成功后恢复默认
            "refresh_mode": DEFAULT_REFRESH_MODE.name,
            "refreshed_at": timestamp,
            "error": None,
        }
        if feed.description is not None:
            description = simplify_html(feed.description)
            fields["description"] = description
            fields["short_description"] = short_description(description)

        rows = await self.store.update_subscription(subscription.id, fields)
        if rows != 1:
            msg = f"更新订阅 {subscription.id} 的时间戳失败"
            raise StoreError(msg)

        if feed.image_link and not self.images.is_downloaded(subscription.id):
            self.images.download(subscription.id, feed.image_link)

    async def _store_failure(self, subscription_id: int, message: str) -> None:
        """记录同步失败信息."""
        try:
            await self.store.update_subscription(
                subscription_id,
                {"error": message, "state": SubscriptionState.REFRESH_FAILED},
            )
        except StoreError:
            logger.exception("写入同步错误信息失败")

    async def _cleanup(self) -> None:
        """清理已不在 feed 中的 GONE 节目."""
        try:
            await self.cleaner.cleanup_episodes(EpisodeState.GONE)
        except StoreError:
            logger.exception("清理节目失败")


def create_sync_service(
    session_factory: async_sessionmaker[AsyncSession],
    settings: Settings | None = None,
) -> SyncService:
    """按当前有效配置创建同步服务（动态配置优先）."""
    settings = settings or get_settings()
    config = SyncConfig.from_settings(settings)

    timeout = get_effective_setting("fetch_timeout_seconds")
    if timeout:
        config.read_timeout = float(timeout)

    return SyncService(SqlStore(session_factory), config)
