"""
Logging configuration for the Jobtrack API and its scheduled jobs.

Provides structured logging without exposing secrets.
"""
import logging
import sys
from pathlib import Path
from logging.handlers import RotatingFileHandler

from jobtrack.core import config


def setup_logging(log_level: str = None, log_file: str = "jobtrack.log"):
    """
    Configure application logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
            Defaults to LOG_LEVEL from the environment.
        log_file: File name inside LOG_DIR for the rotating file handler
    """
    level = getattr(logging, (log_level or config.LOG_LEVEL).upper(), logging.INFO)

    log_dir = Path(config.LOG_DIR)
    log_dir.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger()
    logger.setLevel(level)
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    ))

    file_handler = RotatingFileHandler(
        log_dir / log_file,
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=5
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    ))

    logger.addHandler(console_handler)
    logger.addHandler(file_handler)

    # Quiet noisy third-party loggers
    logging.getLogger("uvicorn").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("alembic").setLevel(logging.INFO)


def sanitize_log_data(data: dict) -> dict:
    """
    Sanitize log data to remove sensitive information.

    Args:
        data: Dictionary to sanitize

    Returns:
        Sanitized copy with secret-looking values redacted
    """
    sanitized = data.copy()
    sensitive_keys = [
        "password", "token", "secret", "key",
        "database_url", "authorization",
    ]

    for key in sanitized:
        if any(sensitive in key.lower() for sensitive in sensitive_keys):
            sanitized[key] = "***REDACTED***"

    return sanitized
