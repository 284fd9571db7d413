"""数据库操作模块"""

from .database import Database
from .models import Base, SyncedMixin
from .store import LocalStore

__all__ = ["Database", "Base", "SyncedMixin", "LocalStore"]
