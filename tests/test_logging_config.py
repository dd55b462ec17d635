"""
Tests for logging setup.
"""
import logging
import logging.handlers

from src.logging_config import APP_LOGGER_NAME, get_logger, setup_logging


class TestSetupLogging:

    def test_console_only_by_default(self, monkeypatch):
        monkeypatch.delenv("LOG_FILE", raising=False)
        logger = setup_logging(app_log_level="DEBUG")

        assert logger.name == APP_LOGGER_NAME
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        assert logger.propagate is False

    def test_repeated_setup_does_not_stack_handlers(self, monkeypatch):
        monkeypatch.delenv("LOG_FILE", raising=False)
        setup_logging()
        logger = setup_logging()
        assert len(logger.handlers) == 1

    def test_rotating_file_handler(self, tmp_path):
        log_file = tmp_path / "logs" / "planner.log"
        logger = setup_logging(log_file=str(log_file))

        assert any(isinstance(h, logging.handlers.RotatingFileHandler) for h in logger.handlers)
        assert log_file.parent.is_dir()

        for handler in logger.handlers:
            handler.close()
        setup_logging(log_file=None)

    def test_levels_from_environment(self, monkeypatch):
        monkeypatch.delenv("LOG_FILE", raising=False)
        monkeypatch.setenv("APP_LOG_LEVEL", "WARNING")
        monkeypatch.setenv("THIRD_PARTY_LOG_LEVEL", "ERROR")

        logger = setup_logging()

        assert logger.level == logging.WARNING
        assert logging.getLogger("sqlalchemy.engine").level == logging.ERROR

    def test_unknown_level_falls_back_to_info(self, monkeypatch):
        monkeypatch.delenv("LOG_FILE", raising=False)
        logger = setup_logging(app_log_level="chatty")
        assert logger.level == logging.INFO


class TestGetLogger:

    def test_nests_module_loggers(self):
        assert get_logger("src.services.recurrence").name == "pocket_planner.src.services.recurrence"

    def test_does_not_double_prefix(self):
        assert get_logger("pocket_planner.jobs").name == "pocket_planner.jobs"
        assert get_logger().name == APP_LOGGER_NAME
