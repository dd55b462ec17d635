import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Optional


APP_LOGGER_NAME = "pocket_planner"


def setup_logging(
    app_log_level: Optional[str] = None,
    third_party_log_level: Optional[str] = None,
    log_file: Optional[str] = None,
    max_file_size: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
) -> logging.Logger:
    """
    Set up logging for the Pocket Planner API and its scheduled jobs.

    Args:
        app_log_level: Log level for application logs (default: INFO)
        third_party_log_level: Log level for third-party libraries (default: WARNING)
        log_file: Optional log file path. If None, logs only to console
        max_file_size: Maximum size of log file before rotation (bytes)
        backup_count: Number of backup log files to keep

    Returns:
        Logger instance for the application
    """
    app_log_level = app_log_level or os.getenv("APP_LOG_LEVEL", "INFO")
    third_party_log_level = third_party_log_level or os.getenv("THIRD_PARTY_LOG_LEVEL", "WARNING")
    log_file = log_file or os.getenv("LOG_FILE")

    app_level = getattr(logging, app_log_level.upper(), logging.INFO)
    third_party_level = getattr(logging, third_party_log_level.upper(), logging.WARNING)

    app_logger = logging.getLogger(APP_LOGGER_NAME)
    app_logger.setLevel(app_level)

    # Re-running setup (tests, reloads) must not stack handlers
    app_logger.handlers.clear()

    formatter = logging.Formatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(app_level)
    console_handler.setFormatter(formatter)
    app_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_file_size,
            backupCount=backup_count
        )
        file_handler.setLevel(app_level)
        file_handler.setFormatter(formatter)
        app_logger.addHandler(file_handler)

    third_party_loggers = [
        "sqlalchemy.engine",
        "sqlalchemy.engine.Engine",
        "sqlalchemy.dialects",
        "sqlalchemy.pool",
        "sqlalchemy.orm",
        "alembic",
        "faker",
        "uvicorn.access",
        "uvicorn.error",
        "httpx",
    ]

    for logger_name in third_party_loggers:
        logging.getLogger(logger_name).setLevel(third_party_level)

    app_logger.propagate = False

    return app_logger


def get_logger(name: str = APP_LOGGER_NAME) -> logging.Logger:
    """
    Get a logger nested under the application logger.

    Args:
        name: Logger name (typically the module's __name__)

    Returns:
        Logger instance
    """
    if name == APP_LOGGER_NAME or name.startswith(f"{APP_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{APP_LOGGER_NAME}.{name}")
