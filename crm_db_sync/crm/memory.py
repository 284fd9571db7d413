"""
内存 CRM 客户端

在进程内模拟 CRM 记录存储，用于本地开发和测试。记录以字典保存，
写入不可写字段时与真实 CRM 一样拒绝整个请求。
"""
import copy
import itertools
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional

from loguru import logger

from .client import (
    CRMClient,
    CRMError,
    Condition,
    ID_FIELD,
    MODSTAMP_FIELD,
)


class InMemoryCRMClient(CRMClient):
    """内存 CRM 客户端"""

    def __init__(self, clock: Callable[[], datetime] = datetime.now):
        self.clock = clock
        self._fields: Dict[str, Dict[str, Dict[str, bool]]] = {}
        self._records: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._sequence = itertools.count(1)
        self.describe_calls = 0

    def define(self, object_type: str, fields: Dict[str, Dict[str, bool]]) -> None:
        """
        定义对象类型及其字段权限

        fields格式:
        {
            "Name": {"createable": True, "updateable": True},
            ...
        }
        """
        self._fields[object_type] = {
            name: {
                'createable': bool(perms.get('createable', True)),
                'updateable': bool(perms.get('updateable', True)),
            }
            for name, perms in fields.items()
        }
        self._records.setdefault(object_type, {})

    def find(self, object_type: str, record_id: str,
             fields: Optional[Iterable[str]] = None) -> Optional[Dict[str, Any]]:
        if not record_id:
            return None
        record = self._table(object_type).get(record_id)
        return self._project(record, fields) if record else None

    def create(self, object_type: str, attrs: Dict[str, Any]) -> str:
        self._check_writable(object_type, attrs, 'createable')

        record_id = f"a0{next(self._sequence):016d}"
        record = copy.deepcopy(attrs)
        record[ID_FIELD] = record_id
        record[MODSTAMP_FIELD] = self.clock()
        self._table(object_type)[record_id] = record

        logger.debug(f"Created {object_type} {record_id}")
        return record_id

    def update(self, object_type: str, record_id: str, attrs: Dict[str, Any]) -> None:
        record = self._table(object_type).get(record_id)
        if record is None:
            raise CRMError(f"{object_type} {record_id} does not exist")
        self._check_writable(object_type, attrs, 'updateable')

        record.update(copy.deepcopy(attrs))
        record[MODSTAMP_FIELD] = self.clock()
        logger.debug(f"Updated {object_type} {record_id}")

    def query(self, object_type: str,
              condition: Optional[Condition] = None,
              since: Optional[datetime] = None,
              before: Optional[datetime] = None,
              fields: Optional[Iterable[str]] = None) -> List[Dict[str, Any]]:
        results = []
        for record in self._table(object_type).values():
            modified = record[MODSTAMP_FIELD]
            if since is not None and modified < since:
                continue
            if before is not None and modified >= before:
                continue
            if condition is not None and not condition(record):
                continue
            results.append(self._project(record, fields))

        return sorted(results, key=lambda r: r[MODSTAMP_FIELD])

    def describe_fields(self, object_type: str) -> Dict[str, Dict[str, bool]]:
        if object_type not in self._fields:
            raise CRMError(f"Unknown object type: {object_type}")
        self.describe_calls += 1
        return copy.deepcopy(self._fields[object_type])

    def touch(self, object_type: str, record_id: str, when: datetime) -> None:
        """直接修改记录的修改时间（模拟其它客户端的写入时间）"""
        self._table(object_type)[record_id][MODSTAMP_FIELD] = when

    def _table(self, object_type: str) -> Dict[str, Dict[str, Any]]:
        if object_type not in self._records:
            raise CRMError(f"Unknown object type: {object_type}")
        return self._records[object_type]

    def _check_writable(self, object_type: str, attrs: Dict[str, Any], permission: str) -> None:
        """与真实 CRM 一致：只要有一个字段不可写，整个请求失败"""
        fields = self._fields.get(object_type, {})
        rejected = [name for name in attrs if not fields.get(name, {}).get(permission)]
        if rejected:
            raise CRMError(f"Fields not {permission} on {object_type}: {', '.join(sorted(rejected))}")

    def _project(self, record: Dict[str, Any], fields: Optional[Iterable[str]]) -> Dict[str, Any]:
        """只返回请求的字段（关联路径按第一段保留）"""
        if fields is None:
            return copy.deepcopy(record)

        keep = {ID_FIELD, MODSTAMP_FIELD}
        keep.update(field.split('.', 1)[0] for field in fields)
        return {key: copy.deepcopy(value) for key, value in record.items() if key in keep}
