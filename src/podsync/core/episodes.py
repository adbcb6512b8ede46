"""节目提取 - 从 feed 条目构建节目记录."""

import logging
import re
from dataclasses import dataclass
from datetime import datetime

import httpx

from podsync.core.errors import StoreError, StoreUnavailableError
from podsync.core.identity import generate_id
from podsync.core.parser import FeedItem
from podsync.core.store import Store
from podsync.fetcher.images import ImageCache
from podsync.fetcher.probe import ContentLengthProbe
from podsync.models.episode import Episode, EpisodeState
from podsync.utils.html_parser import short_description, simplify_html

logger = logging.getLogger(__name__)

AUDIO_TYPE_PATTERN = re.compile(r"\Aaudio/.*\Z", re.DOTALL)

# 播客常用且播放器普遍支持的格式
AUDIO_EXTENSIONS = (".mp3", ".ogg", ".flac", ".aac", ".wav", ".m4a", ".oga")

# 部分 feed 用很小的数值占位，低于该值时重新探测
MIN_PLAUSIBLE_SIZE = 10 * 1024

# 2000 年以前没有播客，更早的发布时间视为无效
PODCAST_EPOCH = datetime(2000, 1, 1)


class SkipReason:
    """条目未插入的原因."""

    NO_AUDIO = "no_audio"
    ALREADY_PRESENT = "already_present"
    MALFORMED_URL = "malformed_url"
    STORE_ERROR = "store_error"


@dataclass
class AudioSource:
    """条目中的音频来源."""

    url: str
    size: int | None = None


@dataclass
class ExtractResult:
    """单个条目的提取结果."""

    episode_id: int | None = None
    episode: Episode | None = None
    skip_reason: str | None = None

    @property
    def inserted(self) -> bool:
        """是否插入了新节目."""
        return self.episode is not None


def url_points_to_audio(link: str) -> bool:
    """URL 是否以音频扩展名结尾."""
    return link.lower().endswith(AUDIO_EXTENSIONS)


def resolve_audio(item: FeedItem) -> AudioSource | None:
    """
    找出条目的音频地址.

    多个 enclosure 符合条件时取最后一个；都不符合时，
    若条目链接本身指向音频文件则使用链接（大小未知）。
    """
    audio: AudioSource | None = None
    for enclosure in item.enclosures:
        if enclosure.mime_type:
            matches = AUDIO_TYPE_PATTERN.match(enclosure.mime_type) is not None
        else:
            matches = url_points_to_audio(enclosure.url)
        if matches:
            audio = AudioSource(url=enclosure.url, size=enclosure.length)

    if audio is None and item.link and url_points_to_audio(item.link):
        logger.debug(f"使用 <link> 作为音频地址: {item.link}")
        audio = AudioSource(url=item.link)

    return audio


def correct_date(date: datetime | None, current: datetime) -> datetime:
    """缺失、晚于当前或早于 2000 年的发布时间替换为当前时间."""
    if date is None or date > current or date < PODCAST_EPOCH:
        return current
    return date


def build_episode(
    item: FeedItem,
    audio: AudioSource,
    subscription_id: int,
    timestamp: datetime,
    mark_new: bool,
    placeholder_title: str,
) -> Episode:
    """根据条目构建节目记录（不访问存储）."""
    description = None
    short = None
    if item.description is not None:
        description = simplify_html(item.description)
        short = short_description(description)

    return Episode(
        id=generate_id(audio.url),
        subscription_id=subscription_id,
        title=item.title if item.title is not None else placeholder_title,
        audio_url=audio.url,
        audio_size=audio.size,
        description=description,
        short_description=short,
        link=item.link,
        image_url=item.image_link,
        published_at=correct_date(item.pub_date, timestamp),
        state=EpisodeState.NEW if mark_new else EpisodeState.GONE,
        seen_at=timestamp,
    )


class EpisodeExtractor:
    """把 feed 条目写入存储：去重、补全大小、插入并触发图片下载."""

    def __init__(
        self,
        store: Store,
        prober: ContentLengthProbe,
        images: ImageCache,
        placeholder_title: str,
    ) -> None:
        self.store = store
        self.prober = prober
        self.images = images
        self.placeholder_title = placeholder_title

    async def extract(
        self,
        item: FeedItem,
        subscription_id: int,
        timestamp: datetime,
        mark_new: bool,
    ) -> ExtractResult:
        """
        处理单个条目.

        Args:
            item: feed 条目
            subscription_id: 所属订阅
            timestamp: 本次同步时间
            mark_new: 刷新窗口策略的判断结果

        Returns:
            ExtractResult: 插入的节目或跳过原因

        Raises:
            StoreUnavailableError: 存储不可用
        """
        title = item.title if item.title is not None else self.placeholder_title

        audio = resolve_audio(item)
        if audio is None:
            logger.info(f"{title} 没有音频，跳过")
            return ExtractResult(skip_reason=SkipReason.NO_AUDIO)

        episode_id = generate_id(audio.url)
        try:
            if await self.store.touch_episode_last_seen(episode_id, timestamp):
                return ExtractResult(
                    episode_id=episode_id, skip_reason=SkipReason.ALREADY_PRESENT
                )
        except StoreUnavailableError:
            raise
        except StoreError as e:
            logger.error(f"节目 {episode_id} 更新时间戳失败，跳过: {e}")
            return ExtractResult(episode_id=episode_id, skip_reason=SkipReason.STORE_ERROR)

        if audio.size is None or audio.size < MIN_PLAUSIBLE_SIZE:
            try:
                probed = await self.prober.probe(audio.url)
            except (httpx.InvalidURL, httpx.UnsupportedProtocol) as e:
                logger.error(f"节目 {item.link} 的音频地址格式错误: {audio.url} ({e})")
                return ExtractResult(
                    episode_id=episode_id, skip_reason=SkipReason.MALFORMED_URL
                )
            except httpx.HTTPError as e:
                logger.warning(f"无法获取 {audio.url} 的大小，保留原值: {e}")
            else:
                if probed is not None:
                    audio.size = probed

        episode = build_episode(
            item,
            audio,
            subscription_id,
            timestamp,
            mark_new,
            self.placeholder_title,
        )
        try:
            await self.store.insert_episode(episode)
        except StoreUnavailableError:
            raise
        except StoreError as e:
            logger.error(f"节目 {episode_id} 插入失败: {e}")
            return ExtractResult(episode_id=episode_id, skip_reason=SkipReason.STORE_ERROR)

        if mark_new:
            logger.debug(f"新节目: {title}")
            if item.image_link and not self.images.is_downloaded(episode_id):
                self.images.download(episode_id, item.image_link)

        return ExtractResult(episode_id=episode_id, episode=episode)
