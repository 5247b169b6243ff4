"""
Tests for configuration and structured logging
"""

import json
import logging

from wallet_ledger.config import LedgerConfig, get_config, reload_config
from wallet_ledger.logging_config import JSONFormatter, get_logger, log_action, setup_logging


class TestLedgerConfig:
    """Test environment-based configuration"""

    def test_defaults(self):
        config = LedgerConfig()

        assert config.transaction_timeout_seconds == 10.0
        assert config.transaction_max_wait_seconds == 5.0
        assert config.jwt_algorithm == "HS256"

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("LEDGER_API_PORT", "6001")
        monkeypatch.setenv("LEDGER_INITIAL_BALANCE", "250.00")
        try:
            config = reload_config()
            assert config.api_port == 6001
            assert config.initial_balance == "250.00"
            assert get_config() is config
        finally:
            monkeypatch.undo()
            reload_config()


class TestLogging:
    """Test JSON structured logging"""

    def make_record(self, logger_name="wallet_ledger.test"):
        return logging.getLogger(logger_name).makeRecord(
            logger_name, logging.INFO, __file__, 1, "hello %s", ("world",), None
        )

    def test_json_formatter(self):
        record = self.make_record()
        record.user_id = "acc1"
        record.action = "transfer"

        entry = json.loads(JSONFormatter().format(record))

        assert entry["message"] == "hello world"
        assert entry["level"] == "INFO"
        assert entry["user_id"] == "acc1"
        assert entry["action"] == "transfer"
        assert "correlation_id" not in entry

    def test_log_action_attaches_fields(self, tmp_path):
        log_file = tmp_path / "ledger.log"
        logger = setup_logging("INFO", "json", str(log_file), logger_name="wallet_ledger.test_action")

        log_action(logger, "info", "Transfer committed", user_id="acc1",
                   action="transfer", correlation_id="req-1", extra={"amount": "5.00"})
        log_action(logger, "debug", "not emitted")
        for handler in logger.handlers:
            handler.flush()

        lines = log_file.read_text().splitlines()
        assert len(lines) == 1
        entry = json.loads(lines[0])
        assert entry["correlation_id"] == "req-1"
        assert entry["extra"] == {"amount": "5.00"}

    def test_text_format(self, tmp_path):
        log_file = tmp_path / "ledger.log"
        logger = setup_logging("DEBUG", "text", str(log_file), logger_name="wallet_ledger.test_text")

        logger.debug("plain line")
        for handler in logger.handlers:
            handler.flush()

        assert "DEBUG [wallet_ledger.test_text] plain line" in log_file.read_text()

    def test_get_logger(self):
        assert get_logger("wallet_ledger.transfers").name == "wallet_ledger.transfers"
