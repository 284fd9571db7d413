"""
变更累加器

按 CRM ID 汇总一次迭代中两侧检测到的变更。
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterator, Optional, Tuple

LOCAL = "local"
CRM = "crm"


@dataclass
class Change:
    """一条记录在两侧的变更"""
    local_timestamp: Optional[datetime] = None
    crm_timestamp: Optional[datetime] = None
    local_attributes: Optional[Dict[str, Any]] = None
    crm_attributes: Optional[Dict[str, Any]] = None

    @property
    def local_changed(self) -> bool:
        return self.local_attributes is not None

    @property
    def crm_changed(self) -> bool:
        return self.crm_attributes is not None

    def winner(self) -> str:
        """
        决定以哪一侧为准

        两侧都有变更时修改时间较晚的一侧获胜，时间相同时以 CRM 为准。
        """
        if self.crm_changed and self.local_changed:
            return LOCAL if self.local_timestamp > self.crm_timestamp else CRM
        return CRM if self.crm_changed else LOCAL


class Accumulator:
    """变更累加器"""

    def __init__(self):
        self._changes: Dict[str, Change] = {}

    def store(self, side: str, crm_id: str, timestamp: datetime,
              attributes: Dict[str, Any]) -> Change:
        """记录一侧的变更，同一侧重复记录时保留较新的数据"""
        change = self._changes.setdefault(crm_id, Change())

        if side == LOCAL:
            if change.local_timestamp is None or timestamp >= change.local_timestamp:
                change.local_timestamp = timestamp
                change.local_attributes = dict(attributes)
        elif side == CRM:
            if change.crm_timestamp is None or timestamp >= change.crm_timestamp:
                change.crm_timestamp = timestamp
                change.crm_attributes = dict(attributes)
        else:
            raise ValueError(f"Unknown side: {side}")

        return change

    def store_local(self, instance) -> Change:
        return self.store(LOCAL, instance.id, instance.last_update, instance.attributes)

    def store_crm(self, instance) -> Change:
        return self.store(CRM, instance.id, instance.last_update, instance.attributes)

    def items(self) -> Iterator[Tuple[str, Change]]:
        return iter(list(self._changes.items()))

    def get(self, crm_id: str) -> Optional[Change]:
        return self._changes.get(crm_id)

    def __getitem__(self, crm_id: str) -> Change:
        return self._changes[crm_id]

    def __contains__(self, crm_id: str) -> bool:
        return crm_id in self._changes

    def __len__(self) -> int:
        return len(self._changes)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._changes))
