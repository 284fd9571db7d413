"""同步核心模块"""

from .accumulator import Accumulator, Change
from .associations import BelongsTo, HasMany, HasOne
from .field_processor import FieldProcessor
from .mapping import Mapping
from .registry import Registry
from .runner import Runner, Window
from .strategies import AlwaysStrategy, AssociatedStrategy, PassiveStrategy
from .worker import Worker

__all__ = [
    "Accumulator",
    "Change",
    "BelongsTo",
    "HasMany",
    "HasOne",
    "FieldProcessor",
    "Mapping",
    "Registry",
    "Runner",
    "Window",
    "AlwaysStrategy",
    "AssociatedStrategy",
    "PassiveStrategy",
    "Worker",
]
