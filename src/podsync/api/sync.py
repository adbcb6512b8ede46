"""同步 API."""

from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from podsync.config import get_effective_setting, get_settings
from podsync.core import sync as sync_core
from podsync.core.refresh import REFRESH_MODES, RefreshMode
from podsync.core.refresh_runner import RefreshRunner, get_current_cycle_id
from podsync.models.database import get_session, get_session_factory
from podsync.models.subscription import Subscription
from podsync.models.sync import SyncStatus

router = APIRouter(prefix="/api/sync", tags=["sync"])


def _resolve_mode(name: str | None) -> RefreshMode | None:
    if name is None:
        return None
    mode = REFRESH_MODES.get(name)
    if mode is None:
        raise HTTPException(status_code=400, detail=f"未知的刷新模式: {name}")
    return mode


@router.post("")
async def trigger_sync(
    refresh_mode: str | None = Query(None, description="覆盖所有订阅的刷新模式"),
    session: AsyncSession = Depends(get_session),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> dict:
    """触发一次完整的刷新周期."""
    mode = _resolve_mode(refresh_mode)

    if get_current_cycle_id():
        raise HTTPException(status_code=409, detail="已有刷新任务在运行")

    concurrency = get_effective_setting("refresh_concurrency")
    concurrency = int(concurrency) if concurrency else get_settings().refresh_concurrency

    async with sync_core.create_sync_service(session_factory) as service:
        runner = RefreshRunner(service, session, concurrency)
        report = await runner.refresh_all(mode)

    status = report.status
    return {
        "success": status.status == "success" and status.feeds_failed == 0,
        "status": status.status,
        "feeds_total": status.feeds_total,
        "feeds_ok": status.feeds_ok,
        "feeds_failed": status.feeds_failed,
        "new_episodes": status.new_episodes,
        "error": status.error_message,
        "outcomes": [asdict(outcome) for outcome in report.outcomes],
    }


@router.post("/{subscription_id}")
async def trigger_subscription_sync(
    subscription_id: int,
    refresh_mode: str | None = Query(None, description="本次使用的刷新模式"),
    session: AsyncSession = Depends(get_session),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> dict:
    """同步单个订阅."""
    mode = _resolve_mode(refresh_mode)

    subscription = await session.get(Subscription, subscription_id)
    if not subscription:
        raise HTTPException(status_code=404, detail="订阅不存在")

    async with sync_core.create_sync_service(session_factory) as service:
        outcome = await service.sync_subscription(subscription_id, mode)

    return {"success": outcome.ok, **asdict(outcome)}


@router.get("/status")
async def get_sync_status(
    session: AsyncSession = Depends(get_session),
) -> dict:
    """获取最近的刷新周期状态."""
    stmt = select(SyncStatus).order_by(SyncStatus.started_at.desc()).limit(5)
    result = await session.execute(stmt)
    statuses = result.scalars().all()

    return {
        "running": get_current_cycle_id() is not None,
        "items": [
            {
                "id": s.id,
                "status": s.status,
                "feeds_total": s.feeds_total,
                "feeds_ok": s.feeds_ok,
                "feeds_failed": s.feeds_failed,
                "new_episodes": s.new_episodes,
                "error_message": s.error_message,
                "started_at": s.started_at.isoformat(),
                "completed_at": s.completed_at.isoformat() if s.completed_at else None,
            }
            for s in statuses
        ],
    }
