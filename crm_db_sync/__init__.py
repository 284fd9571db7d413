"""
CRM 与本地数据库双向同步系统
"""

__version__ = "0.1.0"

from .config.config import Config
from .core.mapping import Mapping
from .core.registry import Registry
from .core.worker import Worker

__all__ = ["Config", "Mapping", "Registry", "Worker"]
