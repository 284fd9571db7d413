"""
关联记录缓存

一次关联处理过程中，同一条记录最多查询或构建一次。
"""
from typing import Any, Dict, Optional, Tuple


class AssociationCache:
    """关联记录缓存，键为 (本地模型, CRM ID)"""

    def __init__(self, record: Any = None):
        self._records: Dict[Tuple[type, str], Any] = {}
        # 数据库查询结果（包括未找到）
        self._lookups: Dict[Tuple[type, str], Optional[Any]] = {}
        if record is not None:
            self.add(record)

    def add(self, record: Any) -> None:
        """缓存一条本地记录（可以是未保存的记录）"""
        if not record.crm_id:
            raise ValueError(f"Cannot cache {type(record).__name__} without a crm_id")
        self._records[(type(record), record.crm_id)] = record

    def find(self, record_type, crm_id: str) -> Optional[Any]:
        """先查缓存，再查数据库，查询结果同样会被缓存"""
        key = (record_type.model, crm_id)
        if key in self._records:
            return self._records[key]

        if key not in self._lookups:
            instance = record_type.find(crm_id)
            self._lookups[key] = instance.record if instance is not None else None

        return self._lookups[key]

    def __contains__(self, key: Tuple[type, str]) -> bool:
        return key in self._records

    def __len__(self) -> int:
        return len(self._records)
