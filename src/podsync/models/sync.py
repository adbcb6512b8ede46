"""SyncStatus 同步状态模型."""

from datetime import datetime

from sqlmodel import Field, SQLModel

from podsync.utils.timeutils import utcnow


class SyncStatus(SQLModel, table=True):
    """刷新周期状态."""

    __tablename__ = "sync_status"  # type: ignore[assignment]

    id: int | None = Field(default=None, primary_key=True)
    status: str = Field(description="状态: running|success|failed")
    feeds_total: int = Field(default=0, description="订阅总数")
    feeds_ok: int = Field(default=0, description="同步成功数")
    feeds_failed: int = Field(default=0, description="同步失败数")
    new_episodes: int = Field(default=0, description="新节目数")
    error_message: str | None = Field(default=None, description="错误信息")
    started_at: datetime = Field(default_factory=utcnow)
    completed_at: datetime | None = Field(default=None)
