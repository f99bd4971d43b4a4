"""Unit tests for src/core/cloudwatch_logging.py."""

import logging
from unittest.mock import MagicMock, patch

from src.core.cloudwatch_logging import RecordStoreLogFilter, setup_cloudwatch_logging


def _record(name: str, level: int) -> logging.LogRecord:
    return logging.LogRecord(name, level, __file__, 1, "msg", None, None)


class TestRecordStoreLogFilter:
    def test_passes_info_from_tracked_modules(self):
        f = RecordStoreLogFilter()
        assert f.filter(_record("src.services.reconciler", logging.INFO)) is True
        assert f.filter(_record("src.services.credit_service", logging.WARNING)) is True

    def test_drops_info_from_other_modules(self):
        assert RecordStoreLogFilter().filter(_record("uvicorn.access", logging.INFO)) is False

    def test_drops_debug_everywhere(self):
        assert RecordStoreLogFilter().filter(_record("src.services.reconciler", logging.DEBUG)) is False

    def test_passes_errors_from_anywhere(self):
        assert RecordStoreLogFilter().filter(_record("sqlalchemy.engine", logging.ERROR)) is True


class TestSetup:
    def test_disabled_by_default(self):
        assert setup_cloudwatch_logging() is False

    def test_handler_failure_is_reported(self, monkeypatch):
        monkeypatch.setenv("CLOUDWATCH_ENABLED", "true")
        with patch("watchtower.CloudWatchLogHandler", MagicMock(side_effect=RuntimeError("no creds"))):
            assert setup_cloudwatch_logging() is False
