"""
同步主循环
"""
import threading
import time
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Dict, Optional

from loguru import logger

from ..config.config import SyncConfig
from .accumulator import Accumulator
from .associator import Associator
from .cleaner import Cleaner
from .collector import Collector
from .initializer import Initializer
from .mapping import Mapping
from .registry import Registry
from .runner import Runner
from .synchronizer import Synchronizer


class Worker:
    """
    轮询同步所有已注册的映射

    每次迭代分两轮：第一轮对每个映射依次清理、初始化、收集变更、同步关联；
    第二轮在所有变更收集完后再逐个映射应用变更。
    单个任务失败只记录日志并跳过，停止请求只在两次迭代之间生效。
    """

    def __init__(self, registry: Registry, config: Optional[SyncConfig] = None,
                 tracker=None, clock: Callable[[], datetime] = datetime.now):
        self.registry = registry
        self.config = config or SyncConfig()
        self.tracker = tracker
        self.clock = clock
        self.changes: Dict[Mapping, Accumulator] = {}

        last_run = tracker.last_run if tracker else None
        self.runner = Runner(self.config.delay, last_run=last_run, clock=clock)
        self._stop_event = threading.Event()

    def start(self) -> None:
        """启动轮询，直到 stop() 被调用"""
        logger.info("Starting sync worker...")
        self.registry.freeze()

        while not self.stopped:
            started = time.monotonic()
            self.perform()
            runtime = time.monotonic() - started

            if runtime < self.config.interval and not self.stopped:
                self._stop_event.wait(self.config.interval - runtime)

        logger.info("Sync worker stopped")

    def stop(self) -> None:
        """在当前迭代结束后退出"""
        logger.info("Exiting...")
        self._stop_event.set()

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def perform(self) -> None:
        """执行一次完整的同步迭代"""
        self.registry.freeze()

        with self._track():
            self._reset()

            for mapping in self.registry:
                self._task("CLEANING RECORDS", mapping, lambda: Cleaner(mapping, self.runner).run())
                self._task("PROPAGATING RECORDS", mapping, lambda: Initializer(mapping, self.runner).run())
                self._task("COLLECTING CHANGES", mapping,
                           lambda: Collector(mapping, self.runner).run(self.changes[mapping]))
                self._task("UPDATING ASSOCIATIONS", mapping, lambda: Associator(mapping, self.runner).run())

            # 所有映射的变更都收集完之后才能应用
            for mapping in self.registry:
                self._task("APPLYING CHANGES", mapping,
                           lambda: Synchronizer(mapping).run(self.changes[mapping]))

    def _reset(self) -> None:
        """为新的迭代重置状态"""
        window = self.runner.tick()
        self.changes = {mapping: Accumulator() for mapping in self.registry}
        logger.debug(f"Window: {window.since.isoformat()} - {window.before.isoformat()}")

    @contextmanager
    def _track(self):
        """记录本次迭代的开始时间，供下次启动时继续"""
        if not self.tracker:
            yield
            return

        runtime = self.clock()
        last_run = self.tracker.last_run
        logger.info(f"SYNCHRONIZING{f' from {last_run.isoformat()}' if last_run else ''}")

        yield

        logger.info("DONE")
        self.tracker.track(runtime)

    def _task(self, name: str, mapping: Mapping, action: Callable[[], object]) -> bool:
        """执行一个命名任务，失败时记录完整错误并继续"""
        logger.info(f"  {name} between {mapping.local_model.__name__} and {mapping.crm_object_type}")
        started = time.monotonic()
        try:
            action()
        except Exception:
            logger.exception(f"  {name} failed for {mapping}")
            self.registry.store.rollback()
            return False

        logger.info("  COMPLETE after %.4f" % (time.monotonic() - started))
        return True
