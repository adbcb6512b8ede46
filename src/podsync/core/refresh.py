"""刷新窗口策略 - 决定哪些新节目标记为 NEW."""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta


@dataclass(frozen=True)
class RefreshMode:
    """刷新模式：数量预算 + 最大发布时长."""

    name: str
    count: float = math.inf
    max_age: timedelta = timedelta.max


REFRESH_MODES: dict[str, RefreshMode] = {
    "all": RefreshMode("all"),
    "none": RefreshMode("none", count=0),
    "last": RefreshMode("last", count=1),
    "week": RefreshMode("week", max_age=timedelta(days=7)),
    "month": RefreshMode("month", max_age=timedelta(days=31)),
}

DEFAULT_REFRESH_MODE = REFRESH_MODES["all"]


def get_refresh_mode(name: str | None) -> RefreshMode:
    """按名称获取刷新模式，未知名称回落到默认模式."""
    if name is None:
        return DEFAULT_REFRESH_MODE
    return REFRESH_MODES.get(name, DEFAULT_REFRESH_MODE)


def should_mark_new(
    marked_so_far: int,
    pub_date: datetime | None,
    mode: RefreshMode,
    timestamp: datetime,
) -> bool:
    """
    判断节目是否应标记为 NEW.

    Args:
        marked_so_far: 本次同步中已标记为 NEW 的新节目数
        pub_date: feed 提供的原始发布时间（可能为空或不合理）
        mode: 刷新模式
        timestamp: 本次同步时间

    Returns:
        True 表示标记为 NEW
    """
    if marked_so_far >= mode.count:
        return False
    if pub_date is None:
        return True
    return timestamp - pub_date < mode.max_age
