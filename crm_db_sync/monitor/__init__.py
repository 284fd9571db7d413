"""监控模块"""

from .logger import setup_logger
from .tracker import FileTracker, RedisTracker, build_tracker

__all__ = ["setup_logger", "FileTracker", "RedisTracker", "build_tracker"]
