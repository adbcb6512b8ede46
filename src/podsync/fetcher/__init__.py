"""网络辅助模块：音频大小探测与图片缓存."""

from podsync.fetcher.images import ImageCache
from podsync.fetcher.probe import ContentLengthProbe

__all__ = [
    "ContentLengthProbe",
    "ImageCache",
]
