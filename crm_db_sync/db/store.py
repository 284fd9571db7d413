"""
本地数据存储

对 SQLAlchemy 会话的最小封装，提供同步核心需要的操作。
"""
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from loguru import logger
from sqlalchemy.orm import Session


class LocalStore:
    """本地数据存储"""

    def __init__(self, session: Session):
        self.session = session

    def find_by_cross_reference(self, model, crm_id: str) -> Optional[Any]:
        """根据CRM ID查找本地记录"""
        if not crm_id:
            return None

        # 关联构建过程中可能存在未保存的记录，查询时不能自动 flush
        with self.session.no_autoflush:
            return self.session.query(model).filter(model.crm_id == crm_id).first()

    def create(self, model, attrs: Dict[str, Any]) -> Any:
        """创建记录"""
        record = model(**attrs)
        self.session.add(record)
        self.session.commit()
        logger.debug(f"Created {model.__name__} {record.crm_id}")
        return record

    def update(self, record, attrs: Dict[str, Any]) -> Any:
        """更新记录"""
        for key, value in attrs.items():
            setattr(record, key, value)
        self.session.commit()
        return record

    def query_modified_between(self, model, since: datetime, before: datetime) -> List[Any]:
        """查询 [since, before) 时间窗口内修改过的记录"""
        return (
            self.session.query(model)
            .filter(model.updated_at >= since, model.updated_at < before)
            .order_by(model.updated_at)
            .all()
        )

    def delete(self, record) -> None:
        """删除记录"""
        self.session.delete(record)
        self.session.commit()

    def save_all(self, records: Iterable[Any]) -> None:
        """批量保存记录（同时提交会话中其它待保存的修改）"""
        self.session.add_all(list(records))
        self.session.commit()

    def rollback(self) -> None:
        """回滚当前事务"""
        self.session.rollback()
