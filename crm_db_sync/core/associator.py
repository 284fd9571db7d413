"""
关联关系同步
"""
from loguru import logger

from .association_cache import AssociationCache
from .mapping import Mapping
from .runner import Runner


class Associator:
    """
    同步窗口内修改过的记录的关联关系

    CRM 一侧较新（或时间相同）时，根据 CRM 查找字段构建本地关联，新建的记录统一保存；
    本地一侧较新时，把本地关联的 CRM ID 写回 CRM 查找字段。
    """

    def __init__(self, mapping: Mapping, runner: Runner):
        self.mapping = mapping
        self.runner = runner

    def run(self) -> None:
        if not self.mapping.associations:
            return

        self._build_from_crm()
        self._write_lookups()

    def _build_from_crm(self) -> None:
        cache = AssociationCache()
        local_type = self.mapping.local_record_type
        built = []

        for instance in self.runner.crm_instances(self.mapping):
            local = local_type.find(instance.id)
            if local is None:
                continue
            if _newer(local.last_update, instance.last_update):
                continue

            cache.add(local.record)
            for association in self.mapping.associations:
                built.extend(association.build(local.record, instance.record, cache))

        # 父记录上的关联修改也在这里一起提交
        local_type.save(built)
        if built:
            logger.info(f"Built {len(built)} associated records for {self.mapping}")

    def _write_lookups(self) -> None:
        crm_type = self.mapping.crm_record_type
        written = 0

        for local in self.runner.local_instances(self.mapping):
            if not local.synced:
                continue

            crm = crm_type.find(local.id)
            if crm is None or not _newer(local.last_update, crm.last_update):
                continue

            lookups = {}
            for association in self.mapping.associations:
                lookups.update(association.lookups(local.record))

            current = crm.record
            changed = {field: value for field, value in lookups.items() if current.get(field) != value}
            if changed:
                crm.update(changed)
                written += 1

        if written:
            logger.info(f"Updated lookups on {written} {self.mapping.crm_object_type} records")


def _newer(first, second) -> bool:
    """first 是否严格晚于 second"""
    if first is None:
        return False
    if second is None:
        return True
    return first > second
