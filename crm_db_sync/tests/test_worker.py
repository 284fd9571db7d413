"""
同步主循环测试
"""
from datetime import datetime, timedelta
from unittest.mock import Mock, patch

from crm_db_sync.config.config import ConfigurationError, SyncConfig
from crm_db_sync.core.associations import BelongsTo, HasMany, HasOne
from crm_db_sync.core.strategies import PassiveStrategy
from crm_db_sync.core.worker import Worker
from crm_db_sync.monitor.tracker import FileTracker

from .support import (
    CustomObject,
    Detail,
    SyncTestCase,
    User,
    ago,
    custom_object_mapping,
    detail_mapping,
    user_mapping,
)


class TestWorker(SyncTestCase):
    """同步主循环测试"""

    def setUp(self):
        super().setUp()
        self.mapping = self.registry.register(custom_object_mapping())
        self.config = SyncConfig(interval=5, delay=0)

    def test_perform_round_trip(self):
        """一次迭代导入 CRM 新记录，下一次迭代把本地修改写回 CRM"""
        crm_id = self.crm_record("CustomObject__c", Name="Sample", Example_Field__c="One")
        worker = Worker(self.registry, self.config)

        worker.perform()

        record = self.session.query(CustomObject).one()
        self.assertEqual(record.crm_id, crm_id)

        record.name = "Edited"
        record.synchronized_at = ago(30)
        record.updated_at = datetime.now()
        self.session.commit()

        worker.perform()

        self.assertEqual(self.client.find("CustomObject__c", crm_id)["Name"], "Edited")
        self.assertEqual(self.count(CustomObject), 1)

    def test_failed_task_does_not_stop_iteration(self):
        """一个任务失败时，其它任务和映射照常执行"""
        self.crm_record("CustomObject__c", Name="Sample")
        worker = Worker(self.registry, self.config)

        with patch("crm_db_sync.core.worker.Cleaner.run", side_effect=RuntimeError("boom")):
            worker.perform()

        self.assertEqual(self.count(CustomObject), 1)

    def test_task_reports_failure(self):
        worker = Worker(self.registry, self.config)

        self.assertFalse(worker._task("CLEANING RECORDS", self.mapping, Mock(side_effect=RuntimeError("boom"))))
        self.assertTrue(worker._task("CLEANING RECORDS", self.mapping, Mock(return_value=0)))

    def test_registry_is_frozen_while_running(self):
        worker = Worker(self.registry, self.config)

        worker.perform()

        self.assertTrue(self.registry.frozen)
        with self.assertRaises(ConfigurationError):
            self.registry.register(user_mapping())

    def test_stop_ends_loop_after_iteration(self):
        worker = Worker(self.registry, self.config)

        with patch.object(worker, "perform", side_effect=worker.stop) as perform:
            worker.start()

        self.assertEqual(perform.call_count, 1)
        self.assertTrue(worker.stopped)

    def test_tracker_records_each_run(self):
        tracker = Mock(spec=FileTracker)
        tracker.last_run = None
        worker = Worker(self.registry, self.config, tracker=tracker)

        worker.perform()

        tracker.track.assert_called_once()
        self.assertIsInstance(tracker.track.call_args[0][0], datetime)

    def test_resumes_from_tracker(self):
        last_run = datetime(2024, 5, 1, 12, 0, 0)
        tracker = Mock(spec=FileTracker)
        tracker.last_run = last_run
        worker = Worker(self.registry, SyncConfig(interval=5, delay=2), tracker=tracker)

        window = worker.runner.tick()

        self.assertEqual(window.since, last_run - timedelta(seconds=2))


class TestWorkerAssociations(SyncTestCase):
    """导入 CRM 记录时同步关联关系"""

    def setUp(self):
        super().setUp()
        self.config = SyncConfig(interval=5, delay=0)

    def run_worker(self, iterations: int = 2) -> None:
        worker = Worker(self.registry, self.config)
        for _ in range(iterations):
            worker.perform()

    def test_belongs_to_is_built_on_import(self):
        """关联记录只存在于 CRM 时，随父记录一起创建"""
        self.registry.register(custom_object_mapping(associations=[BelongsTo("user", through="Friend__c")]))
        self.registry.register(user_mapping())
        contact_id = self.crm_record("Contact", Email="somebody@example.com")
        self.crm_record("CustomObject__c", Name="Sample", Friend__c=contact_id)

        self.run_worker()

        record = self.session.query(CustomObject).one()
        self.assertEqual(self.count(User), 1)
        self.assertIsNotNone(record.user)
        self.assertEqual(record.user.crm_id, contact_id)
        self.assertEqual(record.user.email, "somebody@example.com")

    def test_belongs_to_attaches_record_imported_earlier(self):
        """关联记录先被自己的映射导入时，直接建立关联"""
        self.registry.register(user_mapping())
        self.registry.register(custom_object_mapping(associations=[BelongsTo("user", through="Friend__c")]))
        contact_id = self.crm_record("Contact", Email="somebody@example.com")
        self.crm_record("CustomObject__c", Name="Sample", Friend__c=contact_id)

        self.run_worker()

        user = self.session.query(User).one()
        self.assertIs(self.session.query(CustomObject).one().user, user)
        self.assertEqual(user.crm_id, contact_id)

    def test_has_one_is_built_on_import(self):
        self.registry.register(user_mapping(associations=[HasOne("custom_object", through="Favorite__c")]))
        self.registry.register(custom_object_mapping(strategy=PassiveStrategy()))
        object_id = self.crm_record("CustomObject__c", Name="Favorite")
        self.crm_record("Contact", Email="somebody@example.com", Favorite__c=object_id)

        self.run_worker()

        user = self.session.query(User).one()
        self.assertEqual(self.count(CustomObject), 1)
        self.assertIsNotNone(user.custom_object)
        self.assertEqual(user.custom_object.crm_id, object_id)

    def test_has_many_is_built_on_import(self):
        """子记录只存在于 CRM 时，随父记录一起创建"""
        self.registry.register(custom_object_mapping(associations=[HasMany("details", through="CustomObject__c")]))
        self.registry.register(detail_mapping(strategy=PassiveStrategy()))
        object_id = self.crm_record("CustomObject__c", Name="Parent")
        detail_ids = [
            self.crm_record("CustomObjectDetail__c", Name=f"Detail {n}", CustomObject__c=object_id)
            for n in range(3)
        ]

        self.run_worker()

        record = self.session.query(CustomObject).one()
        self.assertEqual(self.count(Detail), 3)
        self.assertEqual(sorted(detail.crm_id for detail in record.details), sorted(detail_ids))
        for detail in self.session.query(Detail):
            self.assertEqual(detail.custom_object_id, record.id)
