"""
初始化策略

决定 Initializer 是否为新出现的 CRM 记录创建本地记录。
"""
from ..config.config import ConfigurationError


class AlwaysStrategy:
    """导入所有满足过滤条件的 CRM 记录"""

    passive = False

    def build(self, instance) -> bool:
        return True


class PassiveStrategy:
    """从不导入；只同步已经关联过的记录"""

    passive = True

    def build(self, instance) -> bool:
        return False


class AssociatedStrategy:
    """只在指定关联的记录已经同步到本地时导入"""

    passive = False

    def __init__(self, association_name: str):
        self.association_name = association_name

    def build(self, instance) -> bool:
        association = instance.mapping.association(self.association_name)
        if association is None:
            raise ConfigurationError(
                f"{instance.mapping} has no association named '{self.association_name}'"
            )
        return association.synced_for(instance)
