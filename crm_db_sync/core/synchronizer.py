"""
变更应用
"""
from loguru import logger

from .accumulator import CRM, Accumulator, Change
from .mapping import Mapping


class Synchronizer:
    """
    把累加的变更写到另一侧

    两侧都有变更时修改时间较晚的一侧获胜，时间相同时以 CRM 为准；
    只有一侧有变更时直接写到另一侧。单条记录失败只记录日志，不影响其它记录。
    """

    def __init__(self, mapping: Mapping):
        self.mapping = mapping

    def run(self, changes: Accumulator) -> int:
        """返回实际写入的记录数"""
        applied = 0

        for crm_id, change in changes.items():
            try:
                if self._apply(crm_id, change):
                    applied += 1
            except Exception:
                logger.exception(f"Failed to synchronize {self.mapping.crm_object_type} {crm_id}")
                self.mapping.registry.store.rollback()

        if applied:
            logger.info(f"Applied {applied} changes for {self.mapping}")
        return applied

    def _apply(self, crm_id: str, change: Change) -> bool:
        local = self.mapping.local_record_type.find(crm_id)
        crm = self.mapping.crm_record_type.find(crm_id)
        if local is None or crm is None:
            # 没有对应记录的交给 Initializer 处理
            logger.debug(f"Skipping {self.mapping.crm_object_type} {crm_id}: no counterpart yet")
            return False

        if change.winner() == CRM:
            attrs = self.mapping.convert_to_local(change.crm_attributes)
            current = local.attributes
            if all(current.get(key) == value for key, value in attrs.items()):
                return False
            local.update(attrs)
        else:
            attrs = self.mapping.convert_to_crm(change.local_attributes)
            current = crm.attributes
            if all(current.get(key) == value for key, value in attrs.items()):
                return False
            crm.update(attrs)

        logger.debug(f"Synchronized {self.mapping.crm_object_type} {crm_id} from {change.winner()}")
        return True
