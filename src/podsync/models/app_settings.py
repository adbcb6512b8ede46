"""应用动态配置模型."""

from datetime import datetime

from sqlmodel import Field, SQLModel

from podsync.utils.timeutils import utcnow


class AppSettings(SQLModel, table=True):
    """应用动态配置表（单行存储）."""

    __tablename__ = "app_settings"  # type: ignore[assignment]

    id: int = Field(default=1, primary_key=True)

    sync_interval_minutes: int | None = Field(default=None)
    refresh_concurrency: int | None = Field(default=None)  # 同步并发数
    fetch_timeout_seconds: int | None = Field(default=None)

    updated_at: datetime = Field(default_factory=utcnow)
