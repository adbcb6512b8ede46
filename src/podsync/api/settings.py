"""设置 API."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from podsync.config import (
    get_effective_setting,
    get_settings,
    set_dynamic_settings,
)
from podsync.models.app_settings import AppSettings
from podsync.models.database import get_session
from podsync.utils.timeutils import utcnow

router = APIRouter(prefix="/api/settings", tags=["settings"])


class SettingsResponse(BaseModel):
    """设置响应."""

    sync_interval_minutes: int
    refresh_concurrency: int
    fetch_timeout_seconds: int
    max_episodes_to_parse: int
    image_dir: str


def _effective_int(key: str, default: int) -> int:
    value = get_effective_setting(key)
    return int(value) if value else default


@router.get("")
async def get_current_settings(
    session: AsyncSession = Depends(get_session),
) -> SettingsResponse:
    """获取当前设置（动态配置优先）."""
    # 加载数据库配置到缓存
    await load_dynamic_settings(session)

    env_settings = get_settings()

    return SettingsResponse(
        sync_interval_minutes=_effective_int(
            "sync_interval_minutes", env_settings.sync_interval_minutes
        ),
        refresh_concurrency=_effective_int(
            "refresh_concurrency", env_settings.refresh_concurrency
        ),
        fetch_timeout_seconds=_effective_int(
            "fetch_timeout_seconds", env_settings.fetch_timeout_seconds
        ),
        max_episodes_to_parse=env_settings.max_episodes_to_parse,
        image_dir=env_settings.image_dir,
    )


async def load_dynamic_settings(session: AsyncSession) -> None:
    """从数据库加载动态配置到缓存."""
    result = await session.execute(select(AppSettings).where(AppSettings.id == 1))
    db_settings = result.scalar_one_or_none()

    if db_settings:
        settings_dict: dict[str, str | int | None] = {
            "sync_interval_minutes": db_settings.sync_interval_minutes,
            "refresh_concurrency": db_settings.refresh_concurrency,
            "fetch_timeout_seconds": db_settings.fetch_timeout_seconds,
        }
        set_dynamic_settings(settings_dict)


class SettingsUpdateRequest(BaseModel):
    """设置更新请求."""

    sync_interval_minutes: int | None = Field(default=None, ge=1)
    refresh_concurrency: int | None = Field(default=None, ge=1, le=32)
    fetch_timeout_seconds: int | None = Field(default=None, ge=1)


class SettingsUpdateResponse(BaseModel):
    """设置更新响应."""

    success: bool
    message: str


@router.put("")
async def update_settings(
    request: SettingsUpdateRequest,
    session: AsyncSession = Depends(get_session),
) -> SettingsUpdateResponse:
    """更新设置（保存到数据库，立即生效）."""
    from podsync.scheduler import reschedule_refresh

    # 获取或创建配置记录
    result = await session.execute(select(AppSettings).where(AppSettings.id == 1))
    db_settings = result.scalar_one_or_none()

    if not db_settings:
        db_settings = AppSettings(id=1)
        session.add(db_settings)

    # 更新非空字段
    update_fields = request.model_dump(exclude_unset=True)
    for key, value in update_fields.items():
        if value is not None:
            setattr(db_settings, key, value)

    db_settings.updated_at = utcnow()
    await session.commit()

    # 重新加载到缓存
    await load_dynamic_settings(session)

    # 如果更新了同步间隔，重新调度定时任务
    if update_fields.get("sync_interval_minutes"):
        reschedule_refresh(update_fields["sync_interval_minutes"])

    return SettingsUpdateResponse(success=True, message="设置已更新")
