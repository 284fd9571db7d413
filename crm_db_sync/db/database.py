"""
数据库连接封装
"""
from contextlib import contextmanager
from typing import Iterator

from loguru import logger
from sqlalchemy import create_engine, text
from sqlalchemy.orm import Session, sessionmaker

from ..config.config import DatabaseConfig
from .models import Base
from .store import LocalStore


class Database:
    """数据库操作类"""

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self._engine = None
        self._session_factory = None
        self._init_engine()

    def _init_engine(self) -> None:
        """初始化数据库引擎"""
        try:
            self._engine = create_engine(
                self.config.url,
                echo=self.config.echo,
                pool_pre_ping=True
            )
            self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
            logger.info(f"Database engine initialized: {self._engine.url.render_as_string(hide_password=True)}")
        except Exception as e:
            logger.error(f"Failed to initialize database engine: {e}")
            raise

    @property
    def engine(self):
        return self._engine

    @contextmanager
    def session(self) -> Iterator[Session]:
        """获取数据库会话（上下文管理器）"""
        session = self._session_factory()
        try:
            yield session
        except Exception as e:
            session.rollback()
            logger.error(f"Database operation error: {e}")
            raise
        finally:
            session.close()

    def store(self) -> LocalStore:
        """创建一个长期使用的本地存储（由 Worker 持有）"""
        return LocalStore(self._session_factory())

    def create_tables(self, base=Base) -> None:
        """创建模型对应的表"""
        base.metadata.create_all(self._engine)
        logger.info("Sync tables created/verified")

    def test_connection(self) -> bool:
        """测试数据库连接"""
        try:
            with self.session() as session:
                session.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error(f"Database connection test failed: {e}")
            return False
