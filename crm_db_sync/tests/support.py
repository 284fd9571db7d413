"""
测试用的模型、CRM 对象定义和运行环境
"""
import unittest
from datetime import datetime, timedelta

from sqlalchemy import Column, ForeignKey, Integer, String
from sqlalchemy.orm import declarative_base, relationship

from crm_db_sync.config.config import DatabaseConfig
from crm_db_sync.core.mapping import Mapping
from crm_db_sync.core.registry import Registry
from crm_db_sync.core.runner import Runner
from crm_db_sync.crm.memory import InMemoryCRMClient
from crm_db_sync.db.database import Database
from crm_db_sync.db.models import SyncedMixin

ModelBase = declarative_base()


class User(ModelBase, SyncedMixin):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    email = Column(String(255))

    custom_object = relationship("CustomObject", uselist=False, back_populates="user")


class CustomObject(ModelBase, SyncedMixin):
    __tablename__ = "custom_objects"

    id = Column(Integer, primary_key=True)
    name = Column(String(255))
    example = Column(String(255))
    user_id = Column(Integer, ForeignKey("users.id"))

    user = relationship("User", back_populates="custom_object")
    details = relationship("Detail", back_populates="custom_object")


class Detail(ModelBase, SyncedMixin):
    __tablename__ = "details"

    id = Column(Integer, primary_key=True)
    name = Column(String(255))
    custom_object_id = Column(Integer, ForeignKey("custom_objects.id"))

    custom_object = relationship("CustomObject", back_populates="details")


CRM_OBJECTS = {
    "CustomObject__c": {
        "Name": {},
        "Example_Field__c": {},
        "Friend__c": {},
        "SynchronizedAt__c": {},
        "CreatedBy__c": {"createable": False, "updateable": False},
        "ExternalKey__c": {"createable": True, "updateable": False},
    },
    "Contact": {
        "Email": {},
        "Favorite__c": {},
        "SynchronizedAt__c": {},
    },
    "CustomObjectDetail__c": {
        "Name": {},
        "CustomObject__c": {},
        "SynchronizedAt__c": {},
    },
}


def ago(seconds: float) -> datetime:
    return datetime.now() - timedelta(seconds=seconds)


def custom_object_mapping(**kwargs) -> Mapping:
    return Mapping(CustomObject, "CustomObject__c",
                   fields={"name": "Name", "example": "Example_Field__c"}, **kwargs)


def user_mapping(**kwargs) -> Mapping:
    return Mapping(User, "Contact", fields={"email": "Email"}, **kwargs)


def detail_mapping(**kwargs) -> Mapping:
    return Mapping(Detail, "CustomObjectDetail__c", fields={"name": "Name"}, **kwargs)


class SyncTestCase(unittest.TestCase):
    """内存数据库加内存 CRM 的测试基类"""

    def setUp(self):
        self.database = Database(DatabaseConfig(url="sqlite://"))
        self.database.create_tables(ModelBase)
        self.store = self.database.store()
        self.session = self.store.session

        self.client = InMemoryCRMClient()
        for object_type, fields in CRM_OBJECTS.items():
            self.client.define(object_type, fields)

        self.registry = Registry(self.client, self.store)
        self.runner = Runner(delay=0)

    def tearDown(self):
        self.registry.reset()
        self.session.close()
        self.database.engine.dispose()

    def crm_record(self, object_type: str, modified: datetime = None, **attrs) -> str:
        """在 CRM 中创建一条记录，并把修改时间设为 modified"""
        record_id = self.client.create(object_type, attrs)
        self.client.touch(object_type, record_id, modified or ago(10))
        return record_id

    def local_record(self, model, updated_at: datetime = None, **attrs):
        """在本地数据库中创建一条记录"""
        attrs["updated_at"] = updated_at or ago(10)
        return self.store.create(model, attrs)

    def count(self, model) -> int:
        return self.session.query(model).count()
