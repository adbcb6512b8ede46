"""测试刷新周期执行器."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from conftest import FEED_URL, make_item, make_rss
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from podsync.core import refresh_runner
from podsync.core.refresh_runner import RefreshRunner, get_current_cycle_id
from podsync.core.store import SqlStore
from podsync.core.subscriptions import SubscriptionManager
from podsync.core.sync import SyncConfig, SyncService
from podsync.models.sync import SyncStatus

BROKEN_URL = "http://broken.example.com/feed.xml"


@pytest.fixture
async def service(
    store: SqlStore, sync_config: SyncConfig, http_client: httpx.AsyncClient
):
    """使用模拟网络的同步服务."""
    async with SyncService(store, sync_config, client=http_client) as service:
        yield service


class TestRefreshAll:
    """测试 refresh_all."""

    async def test_aggregates_outcomes(
        self,
        service: SyncService,
        store: SqlStore,
        test_session: AsyncSession,
        feed_server: dict,
    ) -> None:
        """汇总每个订阅的结果，单个失败不影响其他订阅."""
        manager = SubscriptionManager(store)
        await manager.add_subscription(FEED_URL)
        await manager.add_subscription(BROKEN_URL)
        feed_server[FEED_URL] = make_rss(
            make_item("One", "http://example.com/1.mp3"),
            make_item("Two", "http://example.com/2.mp3"),
        )
        feed_server[BROKEN_URL] = lambda request: httpx.Response(503)

        report = await RefreshRunner(service, test_session, concurrency=2).refresh_all()

        status = report.status
        assert status.status == "success"
        assert status.feeds_total == 2
        assert status.feeds_ok == 1
        assert status.feeds_failed == 1
        assert status.new_episodes == 2
        assert status.error_message is not None
        assert status.completed_at is not None
        assert {o.source for o in report.outcomes} == {FEED_URL, BROKEN_URL}
        assert get_current_cycle_id() is None

        result = await test_session.execute(select(SyncStatus))
        assert len(result.scalars().all()) == 1

    async def test_no_subscriptions(
        self, service: SyncService, test_session: AsyncSession
    ) -> None:
        """没有订阅时也记录一次周期."""
        report = await RefreshRunner(service, test_session).refresh_all()

        assert report.status.status == "success"
        assert report.status.feeds_total == 0
        assert report.outcomes == []

    async def test_unexpected_error_marks_cycle_failed(
        self, store: SqlStore, test_session: AsyncSession
    ) -> None:
        """周期异常中止时记录失败状态."""
        await SubscriptionManager(store).add_subscription(FEED_URL)
        service = MagicMock()
        service.store = store
        service.sync_subscription = AsyncMock(side_effect=RuntimeError("boom"))

        report = await RefreshRunner(service, test_session).refresh_all()

        assert report.status.status == "failed"
        assert report.status.error_message == "boom"
        assert refresh_runner.get_current_cycle_id() is None

    async def test_cancelled_cycle_is_closed(
        self, store: SqlStore, test_session: AsyncSession
    ) -> None:
        """周期被取消时状态记录为失败，不会停留在运行中."""
        await SubscriptionManager(store).add_subscription(FEED_URL)
        service = MagicMock()
        service.store = store
        service.sync_subscription = AsyncMock(side_effect=asyncio.CancelledError())

        with pytest.raises(asyncio.CancelledError):
            await RefreshRunner(service, test_session).refresh_all()

        result = await test_session.execute(select(SyncStatus))
        status = result.scalars().one()
        assert status.status == "failed"
        assert status.error_message == "刷新周期被取消"
        assert status.completed_at is not None
        assert get_current_cycle_id() is None
