"""
数据库模型定义
"""
from datetime import datetime

from sqlalchemy import Column, DateTime, String
from sqlalchemy.orm import declarative_base


Base = declarative_base()


class SyncedMixin:
    """
    参与同步的本地模型需要的字段

    crm_id:          CRM 记录ID（交叉引用ID），一经写入不可修改
    synchronized_at: 最近一次由同步程序写入的时间
    updated_at:      最近一次修改时间
    """

    crm_id = Column(String(18), index=True, unique=True, nullable=True)
    synchronized_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.now, nullable=False)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now, nullable=False)
