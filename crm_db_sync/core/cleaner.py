"""
过期记录清理
"""
from loguru import logger

from .mapping import Mapping
from .runner import Runner


class Cleaner:
    """CRM 记录不再满足映射条件时，删除本地的副本"""

    def __init__(self, mapping: Mapping, runner: Runner):
        self.mapping = mapping
        self.runner = runner

    def run(self) -> int:
        if self.mapping.condition is None:
            return 0

        removed = 0
        invalid = self.runner.crm_instances(
            self.mapping,
            condition=lambda attrs: not self.mapping.condition_met(attrs)
        )
        for instance in invalid:
            local = self.mapping.local_record_type.find(instance.id)
            if local is None:
                continue

            local.destroy()
            removed += 1
            logger.debug(f"Removed {self.mapping.local_model.__name__} for {self.mapping.crm_object_type} {instance.id}")

        if removed:
            logger.info(f"Removed {removed} stale records for {self.mapping}")
        return removed
