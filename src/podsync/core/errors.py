"""同步引擎异常定义."""


class PodsyncError(Exception):
    """所有 podsync 异常的基类."""


class FeedFetchError(PodsyncError):
    """Feed 下载失败."""


class FeedParseError(PodsyncError):
    """Feed 结构无法解析."""


class StoreError(PodsyncError):
    """存储层拒绝了写入."""


class StoreUnavailableError(StoreError):
    """存储层不可用（连接丢失等系统性故障）."""
