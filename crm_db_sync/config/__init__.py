"""配置模块"""

from .config import (
    Config,
    ConfigurationError,
    DatabaseConfig,
    MonitorConfig,
    RedisConfig,
    SyncConfig,
)

__all__ = [
    "Config",
    "ConfigurationError",
    "DatabaseConfig",
    "MonitorConfig",
    "RedisConfig",
    "SyncConfig",
]
