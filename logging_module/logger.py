"""Process-wide logging setup.

Installs a plain-text console handler and a rotating JSON file handler on
the root logger, so every module's ``logging.getLogger(__name__)`` output
(including ``extra={"event": ...}`` fields) ends up in both places.
"""

import json
import logging
import os
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from typing import Optional

from logging_module.config import LoggingConfig

CONSOLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# LogRecord attributes that are not user-supplied extras
_RESERVED_RECORD_KEYS = frozenset(
    [
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "message",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "thread",
        "threadName",
        "taskName",
        "exc_info",
        "exc_text",
        "stack_info",
        "asctime",
    ]
)

# Marks handlers installed by setup_logging so repeated calls replace them
_HANDLER_TAG = "_loopcast_handler"


class JsonFormatter(logging.Formatter):
    """JSON log formatter for structured logging.

    Formats log records as JSON with timestamp, level, message, and extra fields.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON.

        Args:
            record: Log record to format

        Returns:
            JSON-formatted string
        """
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_RECORD_KEYS and not key.startswith("_"):
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(
    config: Optional[LoggingConfig] = None,
    logger_name: Optional[str] = None,
) -> logging.Logger:
    """Configure console and rotating file logging.

    Args:
        config: Logging configuration (loaded from environment if omitted)
        logger_name: Logger to configure; the root logger by default

    Returns:
        The configured logger
    """
    if config is None:
        from logging_module.config import get_config

        config = get_config()
    else:
        config.validate()

    level = getattr(logging, config.log_level)
    logger = logging.getLogger(logger_name)
    logger.setLevel(level)

    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_TAG, False):
            logger.removeHandler(handler)
            handler.close()

    # Console handler (stdout)
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    if config.json_console:
        console_handler.setFormatter(JsonFormatter())
    else:
        console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    setattr(console_handler, _HANDLER_TAG, True)
    logger.addHandler(console_handler)

    # Rotating file handler (JSON format)
    try:
        os.makedirs(config.log_path, exist_ok=True)
        log_file = os.path.join(config.log_path, config.log_file_name)

        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=config.log_file_max_bytes,
            backupCount=config.log_file_backup_count,
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(JsonFormatter())
        setattr(file_handler, _HANDLER_TAG, True)
        logger.addHandler(file_handler)
    except OSError as e:
        logger.warning(f"Could not create log file: {e}. Logging to console only.")

    return logger
