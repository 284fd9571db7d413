"""CRM 客户端模块"""

from .client import (
    CRMClient,
    CRMError,
    ID_FIELD,
    MODSTAMP_FIELD,
    SYNCHRONIZED_FIELD,
)
from .memory import InMemoryCRMClient

__all__ = [
    "CRMClient",
    "CRMError",
    "InMemoryCRMClient",
    "ID_FIELD",
    "MODSTAMP_FIELD",
    "SYNCHRONIZED_FIELD",
]
