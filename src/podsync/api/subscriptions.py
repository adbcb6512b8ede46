"""订阅 API."""

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from podsync.core.refresh import DEFAULT_REFRESH_MODE, REFRESH_MODES
from podsync.core.store import SqlStore
from podsync.core.subscriptions import SubscriptionManager, canonicalize_url
from podsync.models.database import get_session, get_session_factory
from podsync.models.episode import Episode, EpisodeState
from podsync.models.subscription import Subscription

router = APIRouter(prefix="/api/subscriptions", tags=["subscriptions"])


def _subscription_to_dict(subscription: Subscription) -> dict:
    return {
        "id": subscription.id,
        "feed_url": subscription.feed_url,
        "title": subscription.title,
        "link": subscription.link,
        "short_description": subscription.short_description,
        "image_url": subscription.image_url,
        "state": subscription.state,
        "refresh_mode": subscription.refresh_mode,
        "error": subscription.error,
        "refreshed_at": subscription.refreshed_at.isoformat()
        if subscription.refreshed_at
        else None,
    }


@router.get("")
async def list_subscriptions(
    session: AsyncSession = Depends(get_session),
) -> dict:
    """获取订阅列表."""
    stmt = select(Subscription).order_by(
        Subscription.title.asc().nulls_last(), Subscription.feed_url.asc()
    )
    result = await session.execute(stmt)
    subscriptions = result.scalars().all()

    return {
        "total": len(subscriptions),
        "items": [_subscription_to_dict(s) for s in subscriptions],
    }


@router.get("/{subscription_id}")
async def get_subscription(
    subscription_id: int,
    session: AsyncSession = Depends(get_session),
) -> dict:
    """获取订阅详情."""
    subscription = await session.get(Subscription, subscription_id)
    if not subscription:
        raise HTTPException(status_code=404, detail="订阅不存在")

    data = _subscription_to_dict(subscription)
    data["description"] = subscription.description
    data["created_at"] = subscription.created_at.isoformat()
    return data


class SubscribeRequest(BaseModel):
    """订阅请求."""

    url: str
    refresh_mode: str = DEFAULT_REFRESH_MODE.name


@router.post("", status_code=201)
async def subscribe(
    request: SubscribeRequest,
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> dict:
    """添加订阅，首次同步由下一次刷新完成."""
    mode = REFRESH_MODES.get(request.refresh_mode)
    if mode is None:
        raise HTTPException(
            status_code=400, detail=f"未知的刷新模式: {request.refresh_mode}"
        )

    manager = SubscriptionManager(SqlStore(session_factory))
    subscription_id = await manager.add_subscription(request.url, mode)
    if subscription_id is None:
        raise HTTPException(status_code=409, detail="已订阅")

    return {
        "id": subscription_id,
        "feed_url": canonicalize_url(request.url),
        "refresh_mode": mode.name,
    }


@router.get("/{subscription_id}/episodes")
async def list_subscription_episodes(
    subscription_id: int,
    state: str | None = Query(None, description="节目状态: new|gone"),
    session: AsyncSession = Depends(get_session),
) -> dict:
    """获取订阅的节目列表，最新发布的在前."""
    if state is not None and state not in (EpisodeState.NEW, EpisodeState.GONE):
        raise HTTPException(status_code=400, detail=f"未知的节目状态: {state}")

    subscription = await session.get(Subscription, subscription_id)
    if not subscription:
        raise HTTPException(status_code=404, detail="订阅不存在")

    stmt = select(Episode).where(Episode.subscription_id == subscription_id)
    if state:
        stmt = stmt.where(Episode.state == state)
    stmt = stmt.order_by(Episode.published_at.desc())

    result = await session.execute(stmt)
    episodes = result.scalars().all()

    return {
        "total": len(episodes),
        "items": [
            {
                "id": e.id,
                "title": e.title,
                "audio_url": e.audio_url,
                "audio_size": e.audio_size,
                "short_description": e.short_description,
                "link": e.link,
                "image_url": e.image_url,
                "state": e.state,
                "published_at": e.published_at.isoformat(),
                "seen_at": e.seen_at.isoformat(),
            }
            for e in episodes
        ],
    }
