"""
变更收集
"""
from typing import Optional

from loguru import logger

from .accumulator import Accumulator
from .mapping import Mapping
from .runner import Runner


class Collector:
    """收集两侧在时间窗口内的变更"""

    def __init__(self, mapping: Mapping, runner: Runner):
        self.mapping = mapping
        self.runner = runner

    def run(self, accumulator: Optional[Accumulator] = None) -> Accumulator:
        if accumulator is None:
            accumulator = Accumulator()

        for instance in self.runner.crm_instances(self.mapping):
            # 同步程序自己写入的修改不再回传
            if instance.updated_internally():
                continue
            accumulator.store_crm(instance)

        for instance in self.runner.local_instances(self.mapping):
            if not instance.synced or instance.updated_internally():
                continue
            accumulator.store_local(instance)

        logger.debug(f"Collected {len(accumulator)} changes for {self.mapping}")
        return accumulator
