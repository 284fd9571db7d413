"""
CRM 客户端接口

同步核心只依赖这里定义的最小接口，具体的网络协议由实现类负责。
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional

# CRM 记录的系统字段
ID_FIELD = "Id"
MODSTAMP_FIELD = "SystemModstamp"
SYNCHRONIZED_FIELD = "SynchronizedAt__c"

Condition = Callable[[Dict[str, Any]], bool]


class CRMClient(ABC):
    """CRM 客户端接口"""

    @abstractmethod
    def find(self, object_type: str, record_id: str,
             fields: Optional[Iterable[str]] = None) -> Optional[Dict[str, Any]]:
        """根据ID查找记录，不存在时返回 None"""

    @abstractmethod
    def create(self, object_type: str, attrs: Dict[str, Any]) -> str:
        """创建记录，返回记录ID"""

    @abstractmethod
    def update(self, object_type: str, record_id: str, attrs: Dict[str, Any]) -> None:
        """更新记录"""

    @abstractmethod
    def query(self, object_type: str,
              condition: Optional[Condition] = None,
              since: Optional[datetime] = None,
              before: Optional[datetime] = None,
              fields: Optional[Iterable[str]] = None) -> List[Dict[str, Any]]:
        """查询 [since, before) 窗口内修改过且满足条件的记录"""

    @abstractmethod
    def describe_fields(self, object_type: str) -> Dict[str, Dict[str, bool]]:
        """
        获取对象字段的权限信息

        Returns:
            {字段名: {"createable": bool, "updateable": bool}}
        """


class CRMError(Exception):
    """CRM 请求失败"""
