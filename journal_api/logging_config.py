# journal_api/logging_config.py
"""
Logging configuration: structured JSON or human-readable console output,
optional rotating file handlers, and a dedicated business-event logger.
"""

import logging
import sys
import json
from pathlib import Path
from datetime import datetime, timezone
from typing import Any
from logging.handlers import RotatingFileHandler, TimedRotatingFileHandler
import traceback

from .config import settings


class StructuredFormatter(logging.Formatter):
    """
    Formats records as single-line JSON for log aggregation services
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        # Extra fields passed via extra={} in log calls
        if hasattr(record, "extra_data"):
            log_data["extra"] = record.extra_data

        if getattr(record, "user_id", None):
            log_data["user_id"] = record.user_id

        if getattr(record, "request_id", None):
            log_data["request_id"] = record.request_id

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": traceback.format_exception(*record.exc_info)
            }

        return json.dumps(log_data, default=str)


class HumanReadableFormatter(logging.Formatter):
    """
    Human-readable formatter for console output during development
    """

    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[32m',       # Green
        'WARNING': '\033[33m',    # Yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[35m',   # Magenta
    }
    RESET = '\033[0m'

    def format(self, record: logging.LogRecord) -> str:
        levelname = record.levelname
        if settings.ENVIRONMENT == "development":
            color = self.COLORS.get(levelname, self.RESET)
            colored_levelname = f"{color}{levelname:8s}{self.RESET}"
        else:
            colored_levelname = f"{levelname:8s}"

        timestamp = datetime.fromtimestamp(record.created).strftime('%Y-%m-%d %H:%M:%S')

        message = f"{timestamp} | {colored_levelname} | {record.name:25s} | {record.getMessage()}"

        if getattr(record, "user_id", None):
            message += f" [user={record.user_id}]"

        if getattr(record, "request_id", None):
            message += f" [req={record.request_id[:8]}]"

        if record.exc_info:
            message += f"\n{self.formatException(record.exc_info)}"

        return message


def setup_logging():
    """
    Configure logging for the entire application.
    Called once, before the FastAPI app is created.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    root_logger.handlers.clear()

    # ========================================================================
    # CONSOLE HANDLER (stdout)
    # ========================================================================
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG if settings.ENVIRONMENT == "development" else logging.INFO)

    if settings.LOG_FORMAT == "json":
        console_handler.setFormatter(StructuredFormatter())
    else:
        console_handler.setFormatter(HumanReadableFormatter())

    root_logger.addHandler(console_handler)

    # ========================================================================
    # FILE HANDLERS - general logs by size, errors by day, business events
    # ========================================================================
    if settings.ENABLE_FILE_LOGGING:
        log_dir = Path("logs")
        log_dir.mkdir(exist_ok=True)

        file_handler = RotatingFileHandler(
            log_dir / "app.log",
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
            encoding="utf-8"
        )
        file_handler.setLevel(logging.INFO)
        file_handler.setFormatter(StructuredFormatter())
        root_logger.addHandler(file_handler)

        error_handler = TimedRotatingFileHandler(
            log_dir / "errors.log",
            when="midnight",
            interval=1,
            backupCount=30,
            encoding="utf-8"
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(StructuredFormatter())
        root_logger.addHandler(error_handler)

        business_handler = RotatingFileHandler(
            log_dir / "business.log",
            maxBytes=10 * 1024 * 1024,
            backupCount=10,
            encoding="utf-8"
        )
        business_handler.setLevel(logging.INFO)
        business_handler.setFormatter(StructuredFormatter())
        business_logger.addHandler(business_handler)
        business_logger.propagate = False

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("stripe").setLevel(logging.WARNING)
    logging.getLogger("google_genai").setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info(
        "Logging configured",
        extra={
            "extra_data": {
                "environment": settings.ENVIRONMENT,
                "log_level": settings.LOG_LEVEL,
                "log_format": settings.LOG_FORMAT,
                "file_logging": settings.ENABLE_FILE_LOGGING
            }
        }
    )


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a specific module

    Usage:
        from journal_api.logging_config import get_logger
        logger = get_logger(__name__)
    """
    return logging.getLogger(name)


# Business event logger for tracking entry, prompt and billing events
business_logger = logging.getLogger("business")


def log_business_event(
    event_type: str,
    user_id: str = None,
    **kwargs: Any
):
    """
    Log important business events for analytics and auditing

    Examples:
        - entry_created
        - prompt_generated
        - checkout_created
        - subscription_upgraded

    Usage:
        log_business_event(
            "prompt_generated",
            user_id="user_123",
            entry_id="6f1c...",
            prompts_used=4
        )
    """
    business_logger.info(
        f"Business Event: {event_type}",
        extra={
            "user_id": user_id,
            "extra_data": {
                "event_type": event_type,
                **kwargs
            }
        }
    )
