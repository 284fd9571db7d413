"""
关联关系

三种关联共享同一组操作：lookup、fields、synced_for、build、lookups。

- BelongsTo / HasOne：查找字段在父记录上，父记录的 CRM 字段指向关联记录
- HasMany：查找字段在子记录上，父记录本身不占用任何字段

build 只构建不保存，由调用方统一保存。
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

from loguru import logger
from sqlalchemy import inspect

from ..config.config import ConfigurationError
from ..crm.client import ID_FIELD
from .association_cache import AssociationCache


class Association(ABC):
    """关联关系基类"""

    # 本地 relationship 是否为集合
    collection = False

    def __init__(self, name: str, through: str, build: bool = True):
        self.name = name
        self.lookup = through
        self.auto_build = build
        self.mapping = None

    @property
    @abstractmethod
    def fields(self) -> List[str]:
        """本记录上被该关联占用的 CRM 字段"""

    @abstractmethod
    def synced_for(self, instance) -> bool:
        """关联的 CRM 记录是否已经同步到本地"""

    @abstractmethod
    def build(self, local_parent, crm_parent: Dict[str, Any],
              cache: Optional[AssociationCache] = None) -> List[Any]:
        """关联已存在的本地记录，并返回新构建的未保存记录"""

    @abstractmethod
    def lookups(self, local_record) -> Dict[str, str]:
        """{查找字段: 关联记录的 CRM ID}"""

    def target_model(self):
        """关联的本地模型，来自本地模型上同名的 relationship"""
        if self.mapping is None:
            raise ConfigurationError(f"Association '{self.name}' is not attached to a mapping")
        relationships = inspect(self.mapping.local_model).relationships
        return relationships[self.name].mapper.class_

    def target_mappings(self) -> List:
        """
        关联模型已注册的映射（按注册顺序）

        同一模型有多个映射时，调用方按顺序取第一个匹配的映射。
        """
        if self.mapping.registry is None:
            raise ConfigurationError(f"{self.mapping} has not been registered")
        return self.mapping.registry.for_local(self.target_model())

    def __repr__(self):
        return f"<{type(self).__name__} {self.name} through {self.lookup}>"


class BelongsTo(Association):
    """父记录的查找字段指向关联记录，本地外键在父记录上"""

    collection = False

    @property
    def fields(self) -> List[str]:
        return [self.lookup]

    def synced_for(self, instance) -> bool:
        return _singular_synced_for(self, instance)

    def build(self, local_parent, crm_parent, cache=None):
        return _singular_build(self, local_parent, crm_parent, cache)

    def lookups(self, local_record) -> Dict[str, str]:
        return _singular_lookups(self, local_record)


class HasOne(Association):
    """父记录的查找字段指向关联记录，本地外键在关联记录上"""

    collection = False

    @property
    def fields(self) -> List[str]:
        return [self.lookup]

    def synced_for(self, instance) -> bool:
        return _singular_synced_for(self, instance)

    def build(self, local_parent, crm_parent, cache=None):
        return _singular_build(self, local_parent, crm_parent, cache)

    def lookups(self, local_record) -> Dict[str, str]:
        return _singular_lookups(self, local_record)


class HasMany(Association):
    """子记录的查找字段指向父记录"""

    collection = True

    @property
    def fields(self) -> List[str]:
        return []

    def synced_for(self, instance) -> bool:
        mapping, children = self._children(instance.id)
        return any(mapping.local_record_type.find(child.id) is not None for child in children)

    def build(self, local_parent, crm_parent, cache=None):
        if cache is None:
            cache = AssociationCache()

        parent_id = crm_parent.get(ID_FIELD)
        if not parent_id:
            return []

        mapping, children = self._children(parent_id)
        collection = getattr(local_parent, self.name)
        built = []

        for child in children:
            existing = cache.find(mapping.local_record_type, child.id)
            if existing is not None:
                if existing not in collection:
                    collection.append(existing)
                continue

            if not self.auto_build:
                continue

            record = mapping.local_record_type.build(child)
            collection.append(record)
            cache.add(record)
            built.append(record)

        if built:
            logger.debug(f"Built {len(built)} {self.name} for {self.mapping.crm_object_type} {parent_id}")
        return built

    def lookups(self, local_record) -> Dict[str, str]:
        # 查找字段在子记录上，父记录没有需要写回的值
        return {}

    def _children(self, parent_id: str) -> Tuple[Any, List]:
        """第一个能查到子记录的映射及其子记录"""
        for mapping in self.target_mappings():
            def linked(attrs, mapping=mapping):
                return attrs.get(self.lookup) == parent_id and mapping.condition_met(attrs)

            children = mapping.crm_record_type.where(linked)
            if children:
                return mapping, children

        return None, []


def _singular_synced_for(association: Association, instance) -> bool:
    linked_id = instance.record.get(association.lookup)
    if not linked_id:
        return False

    return any(
        mapping.local_record_type.find(linked_id) is not None
        for mapping in association.target_mappings()
    )


def _singular_build(association: Association, local_parent, crm_parent: Dict[str, Any],
                    cache: Optional[AssociationCache]) -> List[Any]:
    if cache is None:
        cache = AssociationCache()

    linked_id = crm_parent.get(association.lookup)
    if not linked_id:
        return []

    mappings = association.target_mappings()
    for mapping in mappings:
        existing = cache.find(mapping.local_record_type, linked_id)
        if existing is not None:
            setattr(local_parent, association.name, existing)
            return []

    if not association.auto_build:
        return []

    for mapping in mappings:
        instance = mapping.crm_record_type.find(linked_id)
        if instance is None:
            continue

        record = mapping.local_record_type.build(instance)
        setattr(local_parent, association.name, record)
        cache.add(record)
        logger.debug(f"Built {association.name} from {mapping.crm_object_type} {linked_id}")
        return [record]

    return []


def _singular_lookups(association: Association, local_record) -> Dict[str, str]:
    associated = getattr(local_record, association.name, None)
    if associated is None or not associated.crm_id:
        return {}
    return {association.lookup: associated.crm_id}
