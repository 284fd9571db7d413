"""
同步时间窗口
"""
from collections import namedtuple
from datetime import datetime, timedelta
from typing import Callable, List, Optional

# 半开区间 [since, before)
Window = namedtuple('Window', ['since', 'before'])

# 第一次运行且没有历史记录时的起点
EPOCH = datetime(1970, 1, 1)

DEFAULT_DELAY = 1


class Runner:
    """计算每次迭代的查询时间窗口"""

    def __init__(self, delay: float = DEFAULT_DELAY,
                 last_run: Optional[datetime] = None,
                 clock: Callable[[], datetime] = datetime.now):
        self.delay = timedelta(seconds=delay)
        self.clock = clock
        self._before = last_run - self.delay if last_run else None
        self._window: Optional[Window] = None

    def tick(self) -> Window:
        """推进时间窗口，每次迭代调用一次"""
        before = self.clock() - self.delay
        since = self._before if self._before is not None else EPOCH
        # 时钟回拨时不让窗口倒退
        if before < since:
            before = since

        self._before = before
        self._window = Window(since, before)
        return self._window

    def window(self) -> Window:
        if self._window is None:
            raise RuntimeError("Runner has not been ticked yet")
        return self._window

    def crm_instances(self, mapping, condition=None) -> List:
        """窗口内修改过的 CRM 记录，默认使用映射的过滤条件"""
        if condition is None:
            condition = mapping.condition_met
        return mapping.crm_record_type.modified(self.window(), condition)

    def local_instances(self, mapping) -> List:
        """窗口内修改过的本地记录"""
        return mapping.local_record_type.modified(self.window())
