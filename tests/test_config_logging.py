"""
Tests for configuration and structured logging
"""

import json
import logging
import sys
import pytest

from loanbook import config as config_module
from loanbook.config import LoanbookConfig, get_config, reload_config
from loanbook.logging_config import JSONFormatter, get_logger, log_action, setup_logging


class TestConfig:
    """Test environment-driven configuration"""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("LOANBOOK_API_PORT", raising=False)
        config = LoanbookConfig(_env_file=None)

        assert config.api_port == 8090
        assert config.default_currency == "USD"
        assert config.default_amortization_policy == "equal_installment"
        assert config.append_delinquency_notice is True

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("LOANBOOK_API_PORT", "9100")
        monkeypatch.setenv("LOANBOOK_STORAGE_BACKEND", "memory")
        monkeypatch.setenv("LOANBOOK_ENABLE_AUDIT_LOGGING", "false")

        config = LoanbookConfig(_env_file=None)
        assert config.api_port == 9100
        assert config.storage_backend == "memory"
        assert config.enable_audit_logging is False

    def test_reload(self, monkeypatch):
        original = get_config()
        monkeypatch.setenv("LOANBOOK_DEFAULT_CURRENCY", "EUR")
        try:
            assert reload_config().default_currency == "EUR"
            assert get_config().default_currency == "EUR"
        finally:
            config_module.config = original


@pytest.fixture
def log_file(tmp_path):
    """Route the loanbook logger to a file and restore it afterwards"""
    path = tmp_path / "loanbook.log"
    yield path
    logger = logging.getLogger("loanbook")
    for handler in logger.handlers[:]:
        handler.close()
        logger.removeHandler(handler)
    logger.propagate = True


class TestLogging:
    """Test structured log output"""

    def test_json_lines(self, log_file):
        setup_logging("INFO", log_file=str(log_file))
        log_action(get_logger("loanbook.loans"), "info", "Payment recorded",
                   action="record_payment", resource="payment:PM-1", extra={"amount": "$100.00"})

        entry = json.loads(log_file.read_text().strip().splitlines()[-1])
        assert entry["message"] == "Payment recorded"
        assert entry["logger"] == "loanbook.loans"
        assert entry["level"] == "INFO"
        assert entry["action"] == "record_payment"
        assert entry["resource"] == "payment:PM-1"
        assert entry["extra"] == {"amount": "$100.00"}
        assert "correlation_id" not in entry

    def test_level_filtering(self, log_file):
        setup_logging("WARNING", log_file=str(log_file))
        log_action(get_logger("loanbook.loans"), "info", "quiet")
        log_action(get_logger("loanbook.loans"), "warning", "Payment rejected")

        lines = log_file.read_text().strip().splitlines()
        assert len(lines) == 1
        assert json.loads(lines[0])["message"] == "Payment rejected"

    def test_text_format(self, log_file):
        setup_logging("INFO", fmt="text", log_file=str(log_file))
        get_logger("loanbook.storage").warning("SQLite transaction rolled back")

        line = log_file.read_text().strip()
        assert "WARNING loanbook.storage: SQLite transaction rolled back" in line

    def test_formatter_includes_exception(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = logging.LogRecord("loanbook", logging.ERROR, __file__, 1, "failed", None, sys.exc_info())

        entry = json.loads(JSONFormatter().format(record))
        assert "ValueError: boom" in entry["exception"]
