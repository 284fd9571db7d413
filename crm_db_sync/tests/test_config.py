"""
配置与运行记录测试
"""
import json
import os
import sys
import tempfile
import unittest
from datetime import datetime
from unittest.mock import Mock

import redis
from loguru import logger

from crm_db_sync.config.config import Config, ConfigurationError, MonitorConfig
from crm_db_sync.monitor.logger import setup_logger
from crm_db_sync.monitor.tracker import FileTracker, RedisTracker, build_tracker


class TestConfig(unittest.TestCase):
    """配置管理器测试"""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.tmpdir.name, "config.json")

    def tearDown(self):
        self.tmpdir.cleanup()

    def write(self, data):
        with open(self.path, 'w', encoding='utf-8') as f:
            json.dump(data, f)

    def test_creates_default_config(self):
        config = Config(self.path)

        self.assertTrue(os.path.exists(self.path))
        self.assertEqual(config.sync.interval, 5)
        self.assertEqual(config.sync.delay, 1)
        self.assertFalse(config.redis.enabled)
        self.assertTrue(config.validate())

    def test_loads_values(self):
        self.write({
            "database": {"url": "sqlite:///sync.db"},
            "sync": {"interval": 30, "delay": 2, "tracker_file": "last_run.txt"},
        })

        config = Config(self.path)

        self.assertEqual(config.database.url, "sqlite:///sync.db")
        self.assertEqual(config.sync.interval, 30)
        self.assertEqual(config.get("sync.delay"), 2)
        self.assertEqual(config.get("sync.missing", "default"), "default")

    def test_set_updates_dataclasses(self):
        config = Config(self.path)

        config.set("sync.interval", 60)

        self.assertEqual(config.sync.interval, 60)

    def test_unknown_keys_are_rejected(self):
        self.write({"sync": {"poll_interval": 30}})

        with self.assertRaises(ConfigurationError):
            Config(self.path)

    def test_validate(self):
        config = Config(self.path)

        config.set("sync.interval", 0)
        with self.assertRaises(ConfigurationError):
            config.validate()

        config.set("sync.interval", 5)
        config.set("sync.delay", -1)
        with self.assertRaises(ConfigurationError):
            config.validate()

    def test_save_round_trip(self):
        config = Config(self.path)
        config.sync.interval = 15
        config.save()

        self.assertEqual(Config(self.path).sync.interval, 15)


class TestTrackers(unittest.TestCase):
    """运行记录测试"""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_file_tracker(self):
        path = os.path.join(self.tmpdir.name, "state", "last_run")
        tracker = FileTracker(path)
        self.assertIsNone(tracker.last_run)

        run = datetime(2024, 5, 1, 12, 30, 15)
        tracker.track(run)

        self.assertEqual(FileTracker(path).last_run, run)

    def test_redis_tracker(self):
        client = Mock(spec=redis.Redis)
        client.get.return_value = b"2024-05-01T12:30:15"
        tracker = RedisTracker(client, "sync:last_run")

        self.assertEqual(tracker.last_run, datetime(2024, 5, 1, 12, 30, 15))

        tracker.track(datetime(2024, 5, 2, 8, 0, 0))
        client.set.assert_called_once_with("sync:last_run", "2024-05-02T08:00:00")

    def test_redis_tracker_without_value(self):
        client = Mock(spec=redis.Redis)
        client.get.return_value = None

        self.assertIsNone(RedisTracker(client).last_run)

    def test_build_tracker(self):
        path = os.path.join(self.tmpdir.name, "config.json")
        config = Config(path)
        self.assertIsNone(build_tracker(config))

        config.set("sync.tracker_file", os.path.join(self.tmpdir.name, "last_run"))
        self.assertIsInstance(build_tracker(config), FileTracker)


class TestLogger(unittest.TestCase):
    """日志配置测试"""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()

    def tearDown(self):
        logger.remove()
        logger.add(sys.stderr)
        self.tmpdir.cleanup()

    def test_file_sinks(self):
        """普通日志和错误日志分别写入文件"""
        log_file = os.path.join(self.tmpdir.name, "sync.log")
        setup_logger(MonitorConfig(log_file=log_file))

        logger.info("  COMPLETE after 0.0100")
        logger.error("  CLEANING RECORDS failed")
        logger.remove()

        with open(log_file, encoding='utf-8') as f:
            content = f.read()
        with open(os.path.join(self.tmpdir.name, "sync.error.log"), encoding='utf-8') as f:
            errors = f.read()

        self.assertIn("COMPLETE after", content)
        self.assertIn("CLEANING RECORDS failed", content)
        self.assertNotIn("COMPLETE after", errors)
        self.assertIn("CLEANING RECORDS failed", errors)
