"""Logging module.

Console and rotating JSON file logging shared by every loopcast package.
"""

from logging_module.config import LoggingConfig
from logging_module.logger import JsonFormatter, setup_logging

__all__ = ["LoggingConfig", "JsonFormatter", "setup_logging"]

__version__ = "1.0.0"
