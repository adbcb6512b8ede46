"""刷新周期执行器 - 并发同步所有订阅."""

import asyncio
import logging
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from podsync.core.refresh import RefreshMode
from podsync.core.sync import SyncOutcome, SyncService
from podsync.models.subscription import Subscription
from podsync.models.sync import SyncStatus
from podsync.utils.timeutils import utcnow

logger = logging.getLogger(__name__)


@dataclass
class RefreshReport:
    """刷新周期结果."""

    status: SyncStatus
    outcomes: list[SyncOutcome] = field(default_factory=list)


# 全局状态：当前运行中的刷新周期
_current_cycle_id: int | None = None


def get_current_cycle_id() -> int | None:
    """获取当前正在运行的刷新周期 ID."""
    return _current_cycle_id


class RefreshRunner:
    """刷新周期执行器：每个订阅一个任务，订阅之间没有顺序保证."""

    def __init__(
        self,
        service: SyncService,
        session: AsyncSession,
        concurrency: int = 4,
    ) -> None:
        self.service = service
        self.session = session
        self.concurrency = concurrency

    async def refresh_all(self, refresh_mode: RefreshMode | None = None) -> RefreshReport:
        """
        同步全部订阅.

        Args:
            refresh_mode: 覆盖所有订阅的刷新模式，默认使用各订阅自己的模式

        Returns:
            RefreshReport: 周期状态和每个订阅的结果
        """
        global _current_cycle_id

        subscriptions = await self.service.store.list_subscriptions()

        status = SyncStatus(
            status="running",
            feeds_total=len(subscriptions),
            started_at=utcnow(),
        )
        self.session.add(status)
        await self.session.commit()
        _current_cycle_id = status.id

        logger.info(f"开始刷新 {len(subscriptions)} 个订阅，并发数 {self.concurrency}")

        # 使用信号量控制并发
        semaphore = asyncio.Semaphore(self.concurrency)

        async def sync_with_semaphore(subscription: Subscription) -> SyncOutcome:
            async with semaphore:
                return await self.service.sync_subscription(subscription.id, refresh_mode)

        outcomes: list[SyncOutcome] = []
        try:
            outcomes = list(
                await asyncio.gather(*(sync_with_semaphore(s) for s in subscriptions))
            )
        except Exception as e:
            logger.exception("刷新周期异常中止")
            status.status = "failed"
            status.error_message = str(e)
        else:
            status.status = "success"
            status.feeds_ok = sum(1 for outcome in outcomes if outcome.ok)
            status.feeds_failed = len(outcomes) - status.feeds_ok
            status.new_episodes = sum(outcome.new_episodes for outcome in outcomes)
            if status.feeds_failed:
                status.error_message = f"{status.feeds_failed} 个订阅同步失败"
        finally:
            # 被取消时两个分支都不会执行
            if status.status == "running":
                status.status = "failed"
                status.error_message = "刷新周期被取消"
            status.completed_at = utcnow()
            await self.session.commit()
            _current_cycle_id = None

        logger.info(
            f"刷新完成: 成功={status.feeds_ok}, "
            f"失败={status.feeds_failed}, 新节目={status.new_episodes}"
        )
        return RefreshReport(status=status, outcomes=outcomes)
