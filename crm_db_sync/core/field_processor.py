"""
字段权限处理器

根据 CRM 的字段元数据过滤写入请求，避免因为一个不可写的字段导致整条记录写入失败。
"""
import re
from typing import Any, Dict, Iterable, List

from loguru import logger

from ..crm.client import CRMClient

# 通过关联对象访问字段，例如 Account.Name、Owner__r.Email
RELATIONSHIP_MATCHER = re.compile(r"^[A-Za-z_]\w*\.\w")

ACTIONS = ("read", "create", "update")


class FieldProcessor:
    """字段权限处理器"""

    def __init__(self, client: CRMClient):
        self.client = client
        self._field_cache: Dict[str, Dict[str, Dict[str, bool]]] = {}

    def reset(self) -> None:
        """清空字段元数据缓存"""
        self._field_cache = {}

    def available_fields(self, object_type: str, fields: Iterable[str],
                         action: str = "read") -> List[str]:
        """
        从给定字段中筛选出允许执行指定操作的字段

        读取时关联路径字段总是允许的，不做权限检查；
        如果关联不存在，CRM 会在查询时报错。
        """
        return [
            field for field in fields
            if (action == "read" and self._relationship(field))
            or self._available(object_type, field, action)
        ]

    def process(self, object_type: str, attributes: Dict[str, Any],
                action: str) -> Dict[str, Any]:
        """去掉不可写的字段，返回可以提交的属性"""
        processed = {
            field: value for field, value in attributes.items()
            if self._available(object_type, field, action)
        }

        dropped = set(attributes) - set(processed)
        if dropped:
            logger.debug(f"Dropping fields not available to {action} on {object_type}: "
                         f"{', '.join(sorted(dropped))}")

        return processed

    def _available(self, object_type: str, field: str, action: str) -> bool:
        if action not in ACTIONS:
            raise ValueError(f"Unknown field action: {action}")

        permissions = self._field_metadata(object_type).get(field)
        if not permissions:
            return False

        return permissions[action]

    def _relationship(self, field: str) -> bool:
        return bool(RELATIONSHIP_MATCHER.match(field))

    def _field_metadata(self, object_type: str) -> Dict[str, Dict[str, bool]]:
        """获取对象所有字段的读写权限（每种对象只请求一次）"""
        if object_type not in self._field_cache:
            fields = self.client.describe_fields(object_type)
            self._field_cache[object_type] = {
                name: {
                    'read': True,
                    'create': bool(field.get('createable')),
                    'update': bool(field.get('updateable')),
                }
                for name, field in fields.items()
            }
            logger.debug(f"Cached field metadata for {object_type}")

        return self._field_cache[object_type]
