"""Pytest configuration and fixtures for logging_module tests."""

import logging

import pytest

from logging_module.config import LoggingConfig


@pytest.fixture
def test_config(tmp_path):
    """Create test configuration writing into a temporary directory."""
    return LoggingConfig(
        log_level="DEBUG",
        log_path=str(tmp_path / "logs"),
        log_file_name="test.log",
        log_file_max_bytes=1024 * 1024,
        log_file_backup_count=2,
    )


@pytest.fixture
def isolated_logger():
    """Name of a logger whose handlers are removed after the test."""
    name = "loopcast_test"
    yield name
    logger = logging.getLogger(name)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
