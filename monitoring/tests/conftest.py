"""Pytest fixtures for monitoring tests."""

import pytest

from monitoring.config import MonitoringConfig
from monitoring.tests.fakes import FakeClock


@pytest.fixture
def clock():
    """Fake monotonic clock."""
    return FakeClock()


@pytest.fixture
def monitoring_config():
    """Monitoring configuration with the production defaults."""
    return MonitoringConfig(
        health_check_interval=30.0,
        max_restart_attempts=5,
        restart_delay=10.0,
    )
