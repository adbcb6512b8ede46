"""节目 API."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from podsync.core.cleanup import EpisodeCleaner
from podsync.core.store import SqlStore
from podsync.models.database import get_session_factory
from podsync.models.episode import EpisodeState

router = APIRouter(prefix="/api/episodes", tags=["episodes"])


@router.post("/clear-new")
async def clear_new_episodes(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> dict:
    """把所有新节目标记为已删除."""
    cleaner = EpisodeCleaner(SqlStore(session_factory))
    cleared = await cleaner.clear_new_episodes()
    return {"cleared": cleared}


@router.post("/{episode_id}/gone")
async def mark_episode_gone(
    episode_id: int,
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> dict:
    """标记节目为已删除，已不在 feed 中的节目直接删除记录."""
    store = SqlStore(session_factory)
    episode = await store.get_episode(episode_id)
    if not episode:
        raise HTTPException(status_code=404, detail="节目不存在")

    if episode.state != EpisodeState.GONE:
        await EpisodeCleaner(store).mark_episode_gone(episode_id)

    remaining = await store.get_episode(episode_id)
    return {
        "id": episode_id,
        "deleted": remaining is None,
        "state": remaining.state if remaining else None,
    }
