"""podsync - 播客订阅同步引擎."""

__version__ = "0.1.0"
