"""
记录实例

对两侧原始记录的统一封装：本地 ORM 对象和 CRM 记录字典。
"""
from datetime import datetime
from typing import Any, Dict, Optional

from ..crm.client import ID_FIELD, MODSTAMP_FIELD, SYNCHRONIZED_FIELD


def to_datetime(value: Any) -> Optional[datetime]:
    """将 CRM 返回的时间值转换为本地时区的 naive datetime"""
    if value is None:
        return None
    if not isinstance(value, datetime):
        value = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    if value.tzinfo is not None:
        value = value.astimezone().replace(tzinfo=None)
    return value


def updated_internally(last_synchronized: Optional[datetime],
                       last_update: Optional[datetime]) -> bool:
    """最近一次修改是否由同步程序写入（精确到秒）"""
    if last_synchronized is None or last_update is None:
        return False
    return last_synchronized.replace(microsecond=0) >= last_update.replace(microsecond=0)


class LocalInstance:
    """本地记录实例"""

    def __init__(self, record, mapping, store):
        self.record = record
        self.mapping = mapping
        self.store = store

    @property
    def id(self) -> Optional[str]:
        return self.record.crm_id

    @property
    def synced(self) -> bool:
        return bool(self.record.crm_id)

    @property
    def attributes(self) -> Dict[str, Any]:
        return {field: getattr(self.record, field) for field in self.mapping.local_fields}

    @property
    def crm_attributes(self) -> Dict[str, Any]:
        return self.mapping.convert_to_crm(self.attributes)

    @property
    def last_update(self) -> Optional[datetime]:
        return self.record.updated_at

    @property
    def last_synchronized(self) -> Optional[datetime]:
        return self.record.synchronized_at

    def updated_internally(self) -> bool:
        return updated_internally(self.last_synchronized, self.last_update)

    def update(self, attributes: Dict[str, Any], when: Optional[datetime] = None) -> "LocalInstance":
        """写入同步数据，同时记录同步时间"""
        when = when or datetime.now()
        attrs = dict(attributes)
        attrs.update(synchronized_at=when, updated_at=when)
        self.store.update(self.record, attrs)
        return self

    def link(self, crm_id: str, when: Optional[datetime] = None) -> "LocalInstance":
        """写入 CRM ID，已经关联的记录不允许改为其它ID"""
        if self.record.crm_id and self.record.crm_id != crm_id:
            raise ValueError(
                f"{type(self.record).__name__} is already linked to {self.record.crm_id}, "
                f"refusing to relink it to {crm_id}"
            )
        when = when or datetime.now()
        self.store.update(self.record, {
            'crm_id': crm_id,
            'synchronized_at': when,
            'updated_at': when,
        })
        return self

    def destroy(self) -> None:
        self.store.delete(self.record)

    def __repr__(self):
        return f"<LocalInstance {type(self.record).__name__} crm_id={self.id}>"


class CRMInstance:
    """CRM 记录实例"""

    def __init__(self, record: Dict[str, Any], mapping, record_type):
        self.record = record
        self.mapping = mapping
        self.record_type = record_type

    @property
    def id(self) -> str:
        return self.record[ID_FIELD]

    @property
    def attributes(self) -> Dict[str, Any]:
        """映射字段的当前值（以 CRM 字段名为键）"""
        return self.mapping.crm_values(self.record)

    @property
    def local_attributes(self) -> Dict[str, Any]:
        return self.mapping.convert_to_local(self.record)

    @property
    def last_update(self) -> Optional[datetime]:
        return to_datetime(self.record.get(MODSTAMP_FIELD))

    @property
    def last_synchronized(self) -> Optional[datetime]:
        return to_datetime(self.record.get(SYNCHRONIZED_FIELD))

    def updated_internally(self) -> bool:
        return updated_internally(self.last_synchronized, self.last_update)

    def update(self, attributes: Dict[str, Any], when: Optional[datetime] = None) -> "CRMInstance":
        self.record_type.update(self, attributes, when)
        return self

    def __repr__(self):
        return f"<CRMInstance {self.mapping.crm_object_type} {self.id}>"
