"""
映射注册表

持有进程级共享状态：所有映射、CRM 客户端、本地存储以及字段权限缓存。
配置阶段只能追加，运行阶段冻结为只读。
"""
from typing import Iterator, List, Optional

from loguru import logger

from ..config.config import ConfigurationError
from ..crm.client import CRMClient
from ..db.store import LocalStore
from .field_processor import FieldProcessor
from .mapping import Mapping


class Registry:
    """映射注册表"""

    def __init__(self, client: CRMClient, store: LocalStore,
                 field_processor: Optional[FieldProcessor] = None):
        self.client = client
        self.store = store
        self.field_processor = field_processor or FieldProcessor(client)
        self._mappings: List[Mapping] = []
        self._frozen = False

    def register(self, mapping: Mapping) -> Mapping:
        """注册映射"""
        if self._frozen:
            raise ConfigurationError(f"Cannot register {mapping} while the registry is running")
        if mapping.registry is not None and mapping.registry is not self:
            raise ConfigurationError(f"{mapping} is already registered elsewhere")
        if mapping in self._mappings:
            return mapping

        for existing in self._mappings:
            if (existing.local_model is mapping.local_model
                    and existing.crm_object_type == mapping.crm_object_type):
                raise ConfigurationError(f"Duplicate mapping for {mapping}")

        mapping.registry = self
        self._mappings.append(mapping)
        logger.debug(f"Registered mapping {mapping}")
        return mapping

    def for_local(self, model) -> List[Mapping]:
        """某个本地模型的所有映射（按注册顺序）"""
        return [mapping for mapping in self._mappings if mapping.local_model is model]

    def for_crm(self, object_type: str) -> List[Mapping]:
        """某个 CRM 对象类型的所有映射（按注册顺序）"""
        return [mapping for mapping in self._mappings if mapping.crm_object_type == object_type]

    def freeze(self) -> None:
        """进入运行阶段，之后不允许再注册映射"""
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def reset(self) -> None:
        """清空所有映射和字段缓存（测试隔离用）"""
        for mapping in self._mappings:
            mapping.registry = None
        self._mappings = []
        self._frozen = False
        self.field_processor.reset()

    def __iter__(self) -> Iterator[Mapping]:
        return iter(list(self._mappings))

    def __len__(self) -> int:
        return len(self._mappings)

    def __contains__(self, mapping: Mapping) -> bool:
        return mapping in self._mappings
