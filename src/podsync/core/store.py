"""存储层 - 订阅与节目的持久化."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Protocol

from sqlalchemy import delete, update
from sqlalchemy.exc import InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from podsync.core.errors import StoreError, StoreUnavailableError
from podsync.models.episode import Episode
from podsync.models.subscription import Subscription

logger = logging.getLogger(__name__)


class Store(Protocol):
    """同步引擎依赖的存储接口，所有记录以 URL 内容寻址 ID 为键."""

    async def get_subscription(self, subscription_id: int) -> Subscription | None: ...

    async def upsert_subscription(
        self, subscription_id: int, fields: dict[str, Any]
    ) -> Subscription: ...

    async def update_subscription(
        self, subscription_id: int, fields: dict[str, Any]
    ) -> int: ...

    async def list_subscriptions(self) -> list[Subscription]: ...

    async def find_episode_by_id(self, episode_id: int) -> bool: ...

    async def get_episode(self, episode_id: int) -> Episode | None: ...

    async def insert_episode(self, episode: Episode) -> None: ...

    async def touch_episode_last_seen(
        self, episode_id: int, timestamp: datetime
    ) -> bool: ...

    async def update_episode(self, episode_id: int, fields: dict[str, Any]) -> int: ...

    async def delete_episode(self, episode_id: int) -> bool: ...

    async def list_episodes(
        self,
        subscription_id: int | None = None,
        state: str | None = None,
    ) -> list[Episode]: ...

    async def delete_stale_episodes(self, state: str) -> int: ...


class SqlStore:
    """基于 SQLModel 的存储实现，每个操作使用独立会话并单独提交."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        """打开会话，并把 SQLAlchemy 异常转换为存储异常."""
        try:
            async with self._session_factory() as session:
                yield session
        except (OperationalError, InterfaceError) as e:
            raise StoreUnavailableError(str(e)) from e
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e

    async def get_subscription(self, subscription_id: int) -> Subscription | None:
        """按 ID 获取订阅."""
        async with self._session() as session:
            return await session.get(Subscription, subscription_id)

    async def upsert_subscription(
        self, subscription_id: int, fields: dict[str, Any]
    ) -> Subscription:
        """存在则更新，否则新增订阅."""
        async with self._session() as session:
            subscription = await session.get(Subscription, subscription_id)
            if subscription:
                for key, value in fields.items():
                    setattr(subscription, key, value)
            else:
                subscription = Subscription(id=subscription_id, **fields)
                session.add(subscription)
            await session.commit()
            await session.refresh(subscription)
            return subscription

    async def update_subscription(
        self, subscription_id: int, fields: dict[str, Any]
    ) -> int:
        """更新订阅字段，返回受影响行数."""
        async with self._session() as session:
            stmt = (
                update(Subscription)
                .where(Subscription.id == subscription_id)
                .values(**fields)
            )
            result = await session.execute(stmt)
            await session.commit()
            return result.rowcount

    async def list_subscriptions(self) -> list[Subscription]:
        """获取全部订阅."""
        async with self._session() as session:
            result = await session.execute(
                select(Subscription).order_by(Subscription.created_at)
            )
            return list(result.scalars().all())

    async def find_episode_by_id(self, episode_id: int) -> bool:
        """节目是否已存在."""
        async with self._session() as session:
            return await session.get(Episode, episode_id) is not None

    async def get_episode(self, episode_id: int) -> Episode | None:
        """按 ID 获取节目."""
        async with self._session() as session:
            return await session.get(Episode, episode_id)

    async def insert_episode(self, episode: Episode) -> None:
        """插入新节目."""
        async with self._session() as session:
            session.add(episode)
            await session.commit()

    async def touch_episode_last_seen(self, episode_id: int, timestamp: datetime) -> bool:
        """刷新节目的最近出现时间，节目不存在时返回 False."""
        async with self._session() as session:
            stmt = update(Episode).where(Episode.id == episode_id).values(seen_at=timestamp)
            result = await session.execute(stmt)
            await session.commit()
            return result.rowcount > 0

    async def update_episode(self, episode_id: int, fields: dict[str, Any]) -> int:
        """更新节目字段，返回受影响行数."""
        async with self._session() as session:
            stmt = update(Episode).where(Episode.id == episode_id).values(**fields)
            result = await session.execute(stmt)
            await session.commit()
            return result.rowcount

    async def delete_episode(self, episode_id: int) -> bool:
        """删除节目."""
        async with self._session() as session:
            result = await session.execute(delete(Episode).where(Episode.id == episode_id))
            await session.commit()
            return result.rowcount == 1

    async def list_episodes(
        self,
        subscription_id: int | None = None,
        state: str | None = None,
    ) -> list[Episode]:
        """按订阅和状态筛选节目，最新发布的在前."""
        stmt = select(Episode)
        if subscription_id is not None:
            stmt = stmt.where(Episode.subscription_id == subscription_id)
        if state is not None:
            stmt = stmt.where(Episode.state == state)
        stmt = stmt.order_by(Episode.published_at.desc())

        async with self._session() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def delete_stale_episodes(self, state: str) -> int:
        """删除指定状态中、最近出现时间早于所属订阅同步时间的节目."""
        stale = (
            select(Episode.id)
            .join(Subscription, Episode.subscription_id == Subscription.id)
            .where(
                Episode.state == state,
                Subscription.refreshed_at.is_not(None),
                Episode.seen_at < Subscription.refreshed_at,
            )
        )

        async with self._session() as session:
            result = await session.execute(stale)
            ids = list(result.scalars().all())
            if ids:
                await session.execute(delete(Episode).where(Episode.id.in_(ids)))
                await session.commit()

        if ids:
            logger.info(f"清理了 {len(ids)} 个已不在 feed 中的节目 (state={state})")
        return len(ids)
