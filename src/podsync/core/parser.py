"""Feed 解析适配层 - 把 feedparser 的结果转换为类型化结构."""

import io
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import feedparser

from podsync.core.errors import FeedParseError

logger = logging.getLogger(__name__)


@dataclass
class Enclosure:
    """节目附件（媒体引用）."""

    url: str
    mime_type: str | None = None
    length: int | None = None


@dataclass
class FeedItem:
    """Feed 中的单个条目."""

    title: str | None = None
    link: str | None = None
    description: str | None = None
    image_link: str | None = None
    pub_date: datetime | None = None
    enclosures: list[Enclosure] = field(default_factory=list)


@dataclass
class Feed:
    """解析后的 Feed."""

    title: str | None = None
    link: str | None = None
    description: str | None = None
    image_link: str | None = None
    items: list[FeedItem] = field(default_factory=list)


def _parse_length(value: Any) -> int | None:
    """解析 enclosure length，无效值返回 None."""
    if value in (None, ""):
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def _parse_date(parsed: Any) -> datetime | None:
    """把 feedparser 的 struct_time（UTC）转换为 naive datetime."""
    if not parsed:
        return None
    try:
        return datetime(*parsed[:6])
    except (TypeError, ValueError):
        return None


def _image_href(node: Any) -> str | None:
    """提取 image / itunes:image 的 href."""
    image = node.get("image")
    if isinstance(image, dict):
        href = image.get("href") or image.get("url")
        if href:
            return str(href)
    thumbnails = node.get("media_thumbnail") or []
    if thumbnails and thumbnails[0].get("url"):
        return str(thumbnails[0]["url"])
    return None


def _item_description(entry: Any) -> str | None:
    """条目描述，summary 优先，其次 content."""
    summary = entry.get("summary")
    if summary:
        return str(summary)
    contents = entry.get("content") or []
    if contents and contents[0].get("value"):
        return str(contents[0]["value"])
    return None


def _convert_entry(entry: Any) -> FeedItem:
    """转换单个 feedparser 条目."""
    enclosures = [
        Enclosure(
            url=str(enclosure.get("href") or enclosure.get("url") or ""),
            mime_type=enclosure.get("type") or None,
            length=_parse_length(enclosure.get("length")),
        )
        for enclosure in entry.get("enclosures", [])
        if enclosure.get("href") or enclosure.get("url")
    ]
    return FeedItem(
        title=entry.get("title"),
        link=entry.get("link"),
        description=_item_description(entry),
        image_link=_image_href(entry),
        pub_date=_parse_date(entry.get("published_parsed") or entry.get("updated_parsed")),
        enclosures=enclosures,
    )


class FeedParser:
    """基于 feedparser 的解析器."""

    def parse(self, content: bytes, max_items: int) -> Feed:
        """
        解析 feed 内容.

        Args:
            content: 原始字节
            max_items: 最多转换的条目数（feedparser 仍会解析整个文档，
                不限制解析耗时和内存）

        Returns:
            Feed: 类型化的 feed

        Raises:
            FeedParseError: 内容不是可识别的 feed
        """
        result = feedparser.parse(io.BytesIO(content))

        if not result.entries and not result.get("version"):
            reason = result.get("bozo_exception") or "无法识别的 feed 格式"
            msg = f"Feed 解析失败: {reason}"
            raise FeedParseError(msg)

        if result.bozo:
            logger.info(f"Feed 存在格式问题，继续解析: {result.get('bozo_exception')}")

        channel = result.feed
        items = [_convert_entry(entry) for entry in result.entries[:max_items]]

        return Feed(
            title=channel.get("title"),
            link=channel.get("link"),
            description=channel.get("subtitle") or channel.get("description"),
            image_link=_image_href(channel),
            items=items,
        )
