"""Subscription 订阅模型."""

from datetime import datetime

from sqlalchemy import BigInteger, Column
from sqlmodel import Field, SQLModel

from podsync.utils.timeutils import utcnow


class SubscriptionState:
    """订阅状态枚举."""

    UNSEEN = "unseen"
    SEEN_ONCE = "seen_once"
    REFRESH_FAILED = "refresh_failed"


class Subscription(SQLModel, table=True):
    """播客订阅."""

    __tablename__ = "subscriptions"  # type: ignore[assignment]

    id: int = Field(
        sa_column=Column(BigInteger, primary_key=True, autoincrement=False),
        description="feed URL 的内容寻址 ID",
    )
    feed_url: str = Field(description="Feed URL")
    title: str | None = Field(default=None, description="播客标题")
    link: str | None = Field(default=None, description="网站 URL")
    description: str | None = Field(default=None, description="简化后的 HTML 描述")
    short_description: str | None = Field(default=None, description="纯文本短描述")
    image_url: str | None = Field(default=None, description="封面图片 URL")
    refreshed_at: datetime | None = Field(default=None, description="最近一次成功同步时间")
    error: str | None = Field(default=None, description="最近一次同步错误")
    state: str = Field(
        default=SubscriptionState.UNSEEN,
        description="状态: unseen|seen_once|refresh_failed",
    )
    refresh_mode: str = Field(default="all", description="一次性刷新模式")
    created_at: datetime = Field(default_factory=utcnow)
