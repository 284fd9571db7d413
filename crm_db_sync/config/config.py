"""
配置管理模块
"""
import json
import os
from typing import Dict, Any, Optional
from dataclasses import dataclass, asdict
from pathlib import Path


class ConfigurationError(ValueError):
    """配置错误（启动时致命，不做恢复）"""


@dataclass
class DatabaseConfig:
    """数据库配置"""
    url: str = "sqlite:///crm_sync.db"
    echo: bool = False


@dataclass
class SyncConfig:
    """同步配置"""
    interval: float = 5  # 轮询间隔（秒）
    delay: float = 1  # 查询窗口偏移（秒），容忍时钟偏差与写入可见延迟
    verbose: bool = False  # 是否输出到控制台
    tracker_file: Optional[str] = None  # 记录上次运行时间的文件


@dataclass
class RedisConfig:
    """Redis配置（可选，用于记录上次运行时间）"""
    enabled: bool = False
    host: str = "localhost"
    port: int = 6379
    db: int = 0
    key: str = "crm_db_sync:last_run"


@dataclass
class MonitorConfig:
    """监控配置"""
    log_level: str = "INFO"
    log_file: str = "sync.log"
    log_max_size: str = "100MB"
    log_backup_count: int = 10


class Config:
    """配置管理器"""

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path or self._find_config_file()
        self._data: Dict[str, Any] = {}

        # 配置对象
        self.database: Optional[DatabaseConfig] = None
        self.sync: Optional[SyncConfig] = None
        self.redis: Optional[RedisConfig] = None
        self.monitor: Optional[MonitorConfig] = None

        # 加载配置
        self.load()

    def _find_config_file(self) -> str:
        """查找配置文件"""
        search_paths = [
            Path.cwd() / "config.json",
            Path.cwd() / "config" / "config.json",
            Path.home() / ".crm_db_sync" / "config.json",
            Path("/etc/crm_db_sync/config.json")
        ]

        for path in search_paths:
            if path.exists():
                return str(path)

        # 默认配置文件路径
        return str(Path.cwd() / "config.json")

    def load(self) -> None:
        """加载配置文件"""
        if not os.path.exists(self.config_path):
            self._create_default_config()

        with open(self.config_path, 'r', encoding='utf-8') as f:
            self._data = json.load(f)

        self._parse_config()

    def _parse_config(self) -> None:
        """解析配置"""
        try:
            self.database = DatabaseConfig(**self._data.get('database', {}))
            self.sync = SyncConfig(**self._data.get('sync', {}))
            self.redis = RedisConfig(**self._data.get('redis', {}))
            self.monitor = MonitorConfig(**self._data.get('monitor', {}))
        except TypeError as e:
            raise ConfigurationError(f"Invalid configuration in {self.config_path}: {e}") from e

    def _create_default_config(self) -> None:
        """创建默认配置文件"""
        default_config = {
            "database": asdict(DatabaseConfig()),
            "sync": asdict(SyncConfig()),
            "redis": asdict(RedisConfig()),
            "monitor": asdict(MonitorConfig())
        }

        directory = os.path.dirname(self.config_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.config_path, 'w', encoding='utf-8') as f:
            json.dump(default_config, f, indent=4, ensure_ascii=False)

        self._data = default_config

    def save(self) -> None:
        """保存配置"""
        config_dict = {
            "database": asdict(self.database) if self.database else {},
            "sync": asdict(self.sync) if self.sync else {},
            "redis": asdict(self.redis) if self.redis else {},
            "monitor": asdict(self.monitor) if self.monitor else {}
        }

        with open(self.config_path, 'w', encoding='utf-8') as f:
            json.dump(config_dict, f, indent=4, ensure_ascii=False)

    def validate(self) -> bool:
        """验证配置是否有效"""
        if not self.database or not self.database.url:
            raise ConfigurationError("Database configuration is missing a url")

        if not self.sync or self.sync.interval <= 0:
            raise ConfigurationError("Sync interval must be positive")

        if self.sync.delay < 0:
            raise ConfigurationError("Sync delay must not be negative")

        return True

    def get(self, key: str, default: Any = None) -> Any:
        """获取配置值"""
        keys = key.split('.')
        value = self._data

        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
                if value is None:
                    return default
            else:
                return default

        return value

    def set(self, key: str, value: Any) -> None:
        """设置配置值"""
        keys = key.split('.')
        data = self._data

        for k in keys[:-1]:
            if k not in data:
                data[k] = {}
            data = data[k]

        data[keys[-1]] = value
        self._parse_config()

    def reload(self) -> None:
        """重新加载配置"""
        self.load()
