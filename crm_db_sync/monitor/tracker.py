"""
运行时间记录器

记录每次同步开始的时间，进程重启后 Runner 可以从上次的位置继续。
"""
import os
from datetime import datetime
from pathlib import Path
from typing import Optional

import redis
from loguru import logger

from ..config.config import Config


class FileTracker:
    """使用本地文件记录上次运行时间"""

    def __init__(self, path: str):
        self.path = Path(path)

    @property
    def last_run(self) -> Optional[datetime]:
        """上次运行时间，文件不存在或为空时返回 None"""
        if not self.path.exists():
            return None

        content = self.path.read_text(encoding='utf-8').strip()
        return datetime.fromisoformat(content) if content else None

    def track(self, time: datetime) -> None:
        """记录运行时间"""
        if self.path.parent and not self.path.parent.exists():
            os.makedirs(self.path.parent, exist_ok=True)
        self.path.write_text(time.isoformat(), encoding='utf-8')


class RedisTracker:
    """使用 Redis 记录上次运行时间"""

    def __init__(self, redis_client: redis.Redis, key: str = "crm_db_sync:last_run"):
        self.redis = redis_client
        self.key = key

    @property
    def last_run(self) -> Optional[datetime]:
        value = self.redis.get(self.key)
        if not value:
            return None
        if isinstance(value, bytes):
            value = value.decode('utf-8')
        return datetime.fromisoformat(value)

    def track(self, time: datetime) -> None:
        self.redis.set(self.key, time.isoformat())


def build_tracker(config: Config):
    """根据配置创建记录器，未配置时返回 None"""
    if config.redis and config.redis.enabled:
        client = redis.Redis(
            host=config.redis.host,
            port=config.redis.port,
            db=config.redis.db,
            decode_responses=True
        )
        logger.info(f"Tracking runs in redis key {config.redis.key}")
        return RedisTracker(client, config.redis.key)

    if config.sync and config.sync.tracker_file:
        logger.info(f"Tracking runs in {config.sync.tracker_file}")
        return FileTracker(config.sync.tracker_file)

    return None
