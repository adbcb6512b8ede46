"""定时任务定义."""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from podsync.config import Settings, get_effective_setting

logger = logging.getLogger(__name__)

REFRESH_JOB_ID = "refresh_task"

_scheduler: AsyncIOScheduler | None = None


async def refresh_task(settings: Settings) -> None:
    """刷新任务：同步全部订阅."""
    from podsync.core.refresh_runner import RefreshRunner, get_current_cycle_id
    from podsync.core.sync import create_sync_service
    from podsync.models.database import async_session_maker

    # 检查是否已有任务在运行
    if get_current_cycle_id():
        logger.info("已有刷新任务在运行，跳过本次调度")
        return

    logger.info("开始刷新任务...")

    concurrency = get_effective_setting("refresh_concurrency")
    concurrency = int(concurrency) if concurrency else settings.refresh_concurrency

    try:
        session_factory = async_session_maker()
        async with create_sync_service(session_factory, settings) as service:
            async with session_factory() as session:
                runner = RefreshRunner(service, session, concurrency)
                report = await runner.refresh_all()

        logger.info(
            f"刷新任务完成: 状态={report.status.status}, "
            f"新节目数={report.status.new_episodes}"
        )
    except Exception as e:
        logger.exception(f"刷新任务失败: {e}")


def _sync_interval(settings: Settings) -> int:
    interval = get_effective_setting("sync_interval_minutes")
    return int(interval) if interval else settings.sync_interval_minutes


def create_scheduler(settings: Settings) -> AsyncIOScheduler:
    """创建并启动定时任务调度器."""
    global _scheduler

    _scheduler = AsyncIOScheduler()
    interval = _sync_interval(settings)

    _scheduler.add_job(
        refresh_task,
        "interval",
        minutes=interval,
        args=[settings],
        id=REFRESH_JOB_ID,
        name="订阅刷新",
        replace_existing=True,
    )

    # 启动时立即执行一次刷新
    _scheduler.add_job(
        refresh_task,
        "date",  # 一次性任务
        args=[settings],
        id=f"{REFRESH_JOB_ID}_initial",
        name="初始刷新",
    )

    _scheduler.start()
    logger.info(f"定时任务调度器已启动，刷新间隔: {interval} 分钟")

    return _scheduler


def reschedule_refresh(minutes: int) -> None:
    """修改刷新间隔，调度器未启动时忽略."""
    if _scheduler is None:
        return
    _scheduler.reschedule_job(REFRESH_JOB_ID, trigger="interval", minutes=minutes)
    logger.info(f"刷新间隔已调整为 {minutes} 分钟")


async def shutdown_scheduler() -> None:
    """关闭定时任务调度器."""
    global _scheduler
    if _scheduler:
        _scheduler.shutdown(wait=False)
        logger.info("定时任务调度器已关闭")
        _scheduler = None
