"""
Unit tests for logging manager, log context and metrics
"""

import logging

import pytest

from utils.exceptions import NotFoundError
from utils.logging_manager import (
    LogContext, LoggingManager, MetricsLogger, log_execution, logging_manager
)


@pytest.fixture(autouse=True)
def clean_metrics():
    logging_manager.reset_metrics()
    yield
    logging_manager.reset_metrics()


@pytest.mark.unit
class TestLoggingManager:

    def test_singleton(self):
        assert LoggingManager() is logging_manager

    def test_get_logger_default_name(self):
        assert logging_manager.get_logger().name == "quoteshare"
        assert logging_manager.get_logger("QuoteEngine").name == "QuoteEngine"


@pytest.mark.unit
class TestLogContext:

    def test_success_counts(self, caplog):
        with caplog.at_level(logging.INFO, logger="QuoteEngine"):
            with LogContext("QuoteEngine", "like_quote", user_id="u1", quote_id=3, password="secret"):
                pass

        metrics = logging_manager.get_metrics()
        assert metrics["QuoteEngine.like_quote_started"] == 1
        assert metrics["QuoteEngine.like_quote_completed"] == 1
        assert "user_id:u1" in caplog.text
        assert "secret" not in caplog.text

    def test_failure_counts_and_reraises(self, caplog):
        with caplog.at_level(logging.WARNING, logger="QuoteEngine"):
            with pytest.raises(NotFoundError):
                with LogContext("QuoteEngine", "rate_quote"):
                    raise NotFoundError("Quote not found")

        assert logging_manager.get_metrics()["QuoteEngine.rate_quote_failed"] == 1
        assert any(record.levelno == logging.WARNING for record in caplog.records)

    async def test_log_execution_async(self, caplog):
        @log_execution("Auth", "login")
        async def login(email, password, user_id=None):
            return email

        with caplog.at_level(logging.INFO, logger="Auth"):
            assert await login("a@example.com", "pw", user_id="u9") == "a@example.com"

        assert logging_manager.get_metrics()["Auth.login_completed"] == 1
        assert "user_id:u9" in caplog.text

    def test_log_execution_sync_default_operation(self):
        @log_execution("Config")
        def load():
            return "ok"

        assert load() == "ok"
        assert logging_manager.get_metrics()["Config.load_completed"] == 1


@pytest.mark.unit
class TestMetricsLogger:

    def test_increment_and_timing(self):
        metrics = MetricsLogger("Test")
        metrics.increment("hits")
        metrics.increment("hits", 2)
        metrics.timing("request", 0.5)

        snapshot = metrics.get_metrics()
        assert snapshot["Test.hits"] == {'count': 2, 'latest': 2, 'sum': 3}
        assert snapshot["Test.request_duration"]["latest"] == 0.5
        assert logging_manager.get_metrics()["Test.hits"] == 3

        metrics.reset()
        assert metrics.get_metrics() == {}
