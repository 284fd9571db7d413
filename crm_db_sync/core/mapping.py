"""
映射配置

一个映射把一种本地模型绑定到一种 CRM 对象类型：字段对应关系、过滤条件、关联关系。
"""
from typing import Any, Callable, Dict, Iterable, List, Optional

from sqlalchemy import inspect

from ..config.config import ConfigurationError
from .record_types import CRMRecordType, LocalRecordType
from .strategies import AlwaysStrategy

_MISSING = object()


def deep_get(record: Dict[str, Any], path: str, default: Any = None) -> Any:
    """
    读取字段值，支持关联路径

    deep_get({"Account": {"Name": "Acme"}}, "Account.Name") -> "Acme"
    """
    if path in record:
        return record[path]

    value: Any = record
    for part in path.split('.'):
        if not isinstance(value, dict) or part not in value:
            return default
        value = value[part]
    return value


class Mapping:
    """本地模型与 CRM 对象类型之间的映射"""

    def __init__(self, local_model, crm_object_type: str,
                 fields: Optional[Dict[str, str]] = None,
                 condition: Optional[Callable[[Dict[str, Any]], bool]] = None,
                 associations: Iterable = (),
                 strategy=None):
        self.local_model = local_model
        self.crm_object_type = crm_object_type
        self.condition = condition
        self.strategy = strategy or AlwaysStrategy()
        self.registry = None

        self._fields: Dict[str, str] = {}
        self.fields = fields or {}

        self.associations: List = []
        for association in associations:
            self.add_association(association)

    @property
    def fields(self) -> Dict[str, str]:
        """字段对应关系 {本地字段: CRM字段}"""
        return dict(self._fields)

    @fields.setter
    def fields(self, fields: Dict[str, str]) -> None:
        self._fields = {}
        self.add_fields(**fields)

    def add_fields(self, **fields: str) -> None:
        """添加字段映射，两侧字段名都必须唯一"""
        merged = dict(self._fields)
        merged.update(fields)

        for local_field in fields:
            if not hasattr(self.local_model, local_field):
                raise ConfigurationError(
                    f"{self.local_model.__name__} has no attribute '{local_field}'"
                )

        crm_fields = list(merged.values())
        duplicates = sorted({field for field in crm_fields if crm_fields.count(field) > 1})
        if duplicates:
            raise ConfigurationError(
                f"CRM fields mapped more than once in {self}: {', '.join(duplicates)}"
            )

        self._fields = merged

    @property
    def local_fields(self) -> List[str]:
        return list(self._fields.keys())

    @property
    def crm_fields(self) -> List[str]:
        """需要从 CRM 读取的字段：映射字段加上关联的查找字段"""
        fields = list(self._fields.values())
        for association in self.associations:
            for field in association.fields:
                if field not in fields:
                    fields.append(field)
        return fields

    def add_association(self, association) -> None:
        """添加关联关系，关联名必须是本地模型上的 relationship"""
        relationships = inspect(self.local_model).relationships
        if association.name not in relationships:
            raise ConfigurationError(
                f"{self.local_model.__name__} has no relationship '{association.name}'"
            )
        if relationships[association.name].uselist != association.collection:
            kind = "a collection" if association.collection else "a single record"
            raise ConfigurationError(
                f"{type(association).__name__} '{association.name}' on {self.local_model.__name__} "
                f"requires a relationship holding {kind}"
            )
        if self.association(association.name) is not None:
            raise ConfigurationError(f"Association '{association.name}' already defined for {self}")
        if association.mapping is not None and association.mapping is not self:
            raise ConfigurationError(f"Association '{association.name}' already belongs to {association.mapping}")

        association.mapping = self
        self.associations.append(association)

    def association(self, name: str):
        for association in self.associations:
            if association.name == name:
                return association
        return None

    def crm_values(self, record: Dict[str, Any]) -> Dict[str, Any]:
        """从 CRM 记录中取出映射字段的值"""
        values = {}
        for field in self.crm_fields:
            value = deep_get(record, field, _MISSING)
            if value is not _MISSING:
                values[field] = value
        return values

    def convert_to_local(self, crm_attributes: Dict[str, Any]) -> Dict[str, Any]:
        """CRM 字段 -> 本地字段"""
        attrs = {}
        for local_field, crm_field in self._fields.items():
            value = deep_get(crm_attributes, crm_field, _MISSING)
            if value is not _MISSING:
                attrs[local_field] = value
        return attrs

    def convert_to_crm(self, local_attributes: Dict[str, Any]) -> Dict[str, Any]:
        """本地字段 -> CRM 字段"""
        return {
            crm_field: local_attributes[local_field]
            for local_field, crm_field in self._fields.items()
            if local_field in local_attributes
        }

    def condition_met(self, attributes: Dict[str, Any]) -> bool:
        """CRM 属性是否满足映射的过滤条件（没有条件时总是满足）"""
        if self.condition is None:
            return True
        return bool(self.condition(attributes))

    @property
    def local_record_type(self):
        return LocalRecordType(self.local_model, self, self._registry().store)

    @property
    def crm_record_type(self):
        registry = self._registry()
        return CRMRecordType(self.crm_object_type, self, registry.client, registry.field_processor)

    def _registry(self):
        if self.registry is None:
            raise ConfigurationError(f"{self} has not been registered")
        return self.registry

    def __repr__(self):
        return f"<Mapping {self}>"

    def __str__(self):
        return f"{self.local_model.__name__} <-> {self.crm_object_type}"
