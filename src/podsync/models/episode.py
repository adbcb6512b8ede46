"""Episode 节目模型."""

from datetime import datetime

from sqlalchemy import BigInteger, Column, ForeignKey
from sqlmodel import Field, SQLModel

from podsync.utils.timeutils import utcnow


class EpisodeState:
    """节目状态枚举."""

    NEW = "new"
    GONE = "gone"


class Episode(SQLModel, table=True):
    """播客节目."""

    __tablename__ = "episodes"  # type: ignore[assignment]

    id: int = Field(
        sa_column=Column(BigInteger, primary_key=True, autoincrement=False),
        description="音频 URL 的内容寻址 ID",
    )
    subscription_id: int = Field(
        sa_column=Column(
            BigInteger, ForeignKey("subscriptions.id"), index=True, nullable=False
        ),
        description="关联 Subscription",
    )
    title: str = Field(description="标题")
    audio_url: str = Field(description="音频 URL")
    audio_size: int | None = Field(default=None, description="音频大小（字节）")
    description: str | None = Field(default=None, description="简化后的 HTML 描述")
    short_description: str | None = Field(default=None, description="纯文本短描述")
    link: str | None = Field(default=None, description="原文链接")
    image_url: str | None = Field(default=None, description="节目图片 URL")
    published_at: datetime = Field(description="发布时间（已修正）")
    state: str = Field(default=EpisodeState.NEW, description="状态: new|gone")
    seen_at: datetime = Field(description="最近一次在 feed 中出现的时间")
    created_at: datetime = Field(default_factory=utcnow)
