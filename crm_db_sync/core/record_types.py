"""
记录类型

两种能力等价的记录类型：本地数据库模型和 CRM 对象类型。
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from loguru import logger

from ..crm.client import CRMClient, Condition, SYNCHRONIZED_FIELD
from ..db.store import LocalStore
from .association_cache import AssociationCache
from .field_processor import FieldProcessor
from .instances import CRMInstance, LocalInstance


class LocalRecordType:
    """本地数据库记录类型"""

    def __init__(self, model, mapping, store: LocalStore):
        self.model = model
        self.mapping = mapping
        self.store = store

    def find(self, crm_id: str) -> Optional[LocalInstance]:
        """根据CRM ID查找本地记录"""
        record = self.store.find_by_cross_reference(self.model, crm_id)
        return self._instance(record) if record is not None else None

    def build(self, source, when: Optional[datetime] = None):
        """根据 CRM 数据构建一条未保存的本地记录"""
        return self.model(**self._attributes_for(source, when))

    def create(self, source, when: Optional[datetime] = None) -> LocalInstance:
        """
        根据 CRM 数据创建本地记录

        同时构建映射上声明的关联，新记录与关联记录一起保存。
        """
        record = self.build(source, when)
        cache = AssociationCache(record)
        built = []
        for association in self.mapping.associations:
            built.extend(association.build(record, source.record, cache))

        self.store.save_all([record] + built)
        logger.debug(f"Created {self.model.__name__} for {self.mapping.crm_object_type} {source.id}")
        return self._instance(record)

    def sync(self, source, when: Optional[datetime] = None) -> LocalInstance:
        """按 CRM ID 创建或更新本地记录，属性未变化时不写入"""
        instance = self.find(source.id)
        if instance is None:
            return self.create(source, when)

        attrs = self.mapping.convert_to_local(source.attributes)
        current = instance.attributes
        if all(current.get(key) == value for key, value in attrs.items()):
            return instance

        return instance.update(attrs, when)

    def modified(self, window) -> List[LocalInstance]:
        """窗口内修改过的本地记录"""
        records = self.store.query_modified_between(self.model, window.since, window.before)
        return [self._instance(record) for record in records]

    def save(self, records: List[Any]) -> None:
        """批量保存记录"""
        self.store.save_all(records)

    def _attributes_for(self, source, when: Optional[datetime]) -> Dict[str, Any]:
        when = when or datetime.now()
        attrs = self.mapping.convert_to_local(source.attributes)
        attrs.update(crm_id=source.id, synchronized_at=when, updated_at=when)
        return attrs

    def _instance(self, record) -> LocalInstance:
        return LocalInstance(record, self.mapping, self.store)


class CRMRecordType:
    """CRM 记录类型"""

    def __init__(self, object_type: str, mapping, client: CRMClient,
                 field_processor: FieldProcessor):
        self.object_type = object_type
        self.mapping = mapping
        self.client = client
        self.field_processor = field_processor

    @property
    def read_fields(self) -> List[str]:
        """当前用户可读取的映射字段"""
        return self.field_processor.available_fields(
            self.object_type,
            self.mapping.crm_fields + [SYNCHRONIZED_FIELD],
            "read"
        )

    def find(self, crm_id: str) -> Optional[CRMInstance]:
        record = self.client.find(self.object_type, crm_id, fields=self.read_fields)
        return self._instance(record) if record is not None else None

    def where(self, condition: Optional[Condition] = None) -> List[CRMInstance]:
        """查询满足条件的所有记录（不限时间窗口）"""
        records = self.client.query(self.object_type, condition=condition, fields=self.read_fields)
        return [self._instance(record) for record in records]

    def modified(self, window, condition: Optional[Condition] = None) -> List[CRMInstance]:
        """窗口内修改过的 CRM 记录"""
        records = self.client.query(
            self.object_type,
            condition=condition,
            since=window.since,
            before=window.before,
            fields=self.read_fields
        )
        return [self._instance(record) for record in records]

    def create(self, source: LocalInstance, when: Optional[datetime] = None) -> CRMInstance:
        """根据本地记录创建 CRM 记录，并把新ID写回本地记录"""
        when = when or datetime.now()
        attrs = self._writable(source.crm_attributes, "create", when)
        crm_id = self.client.create(self.object_type, attrs)
        source.link(crm_id, when)

        logger.debug(f"Created {self.object_type} {crm_id} from {source}")
        return self.find(crm_id)

    def sync(self, source: LocalInstance, when: Optional[datetime] = None) -> Optional[CRMInstance]:
        """按 CRM ID 创建或更新 CRM 记录"""
        if not source.synced:
            return self.create(source, when)

        instance = self.find(source.id)
        if instance is None:
            logger.warning(f"{self.object_type} {source.id} no longer exists, skipping {source}")
            return None

        attrs = source.crm_attributes
        current = instance.attributes
        if all(current.get(key) == value for key, value in attrs.items()):
            return instance

        return instance.update(attrs, when)

    def update(self, instance: CRMInstance, attributes: Dict[str, Any],
               when: Optional[datetime] = None) -> None:
        attrs = self._writable(attributes, "update", when or datetime.now())
        if not attrs:
            return

        self.client.update(self.object_type, instance.id, attrs)
        instance.record.update(attrs)

    def _writable(self, attributes: Dict[str, Any], action: str, when: datetime) -> Dict[str, Any]:
        attrs = dict(attributes)
        attrs[SYNCHRONIZED_FIELD] = when
        return self.field_processor.process(self.object_type, attrs, action)

    def _instance(self, record: Dict[str, Any]) -> CRMInstance:
        return CRMInstance(record, self.mapping, self)
