"""
新记录初始化
"""
from loguru import logger

from .mapping import Mapping
from .runner import Runner


class Initializer:
    """为只存在于一侧的新记录在另一侧创建对应记录"""

    def __init__(self, mapping: Mapping, runner: Runner):
        self.mapping = mapping
        self.runner = runner

    def run(self) -> int:
        """返回创建的记录数"""
        created = 0

        if not self.mapping.strategy.passive:
            for instance in self.runner.crm_instances(self.mapping):
                if self._import(instance):
                    created += 1

        for instance in self.runner.local_instances(self.mapping):
            if instance.synced:
                continue
            if self._export(instance):
                created += 1

        if created:
            logger.info(f"Initialized {created} records for {self.mapping}")
        return created

    def _import(self, crm_instance) -> bool:
        """CRM -> 本地"""
        record_type = self.mapping.local_record_type
        if record_type.find(crm_instance.id) is not None:
            return False
        if not self.mapping.strategy.build(crm_instance):
            return False

        record_type.create(crm_instance)
        return True

    def _export(self, local_instance) -> bool:
        """本地 -> CRM"""
        if not self.mapping.condition_met(local_instance.crm_attributes):
            return False

        self.mapping.crm_record_type.create(local_instance)
        return True
