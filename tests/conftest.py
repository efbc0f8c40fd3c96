"""
Pytest configuration and shared fixtures for all tests
"""

import itertools
import os
import random
import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import pytest_asyncio

# Add project root to Python path
project_root = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, os.path.dirname(project_root))

from asset_manager.config import AssetConfig  # noqa: E402
from asset_manager.selector import AssetSelector  # noqa: E402
from ffmpeg_manager.config import FFmpegConfig  # noqa: E402
from ffmpeg_manager.process_manager import FFmpegProcessManager  # noqa: E402
from monitoring.config import MonitoringConfig  # noqa: E402
from monitoring.health_monitor import HealthMonitor  # noqa: E402
from monitoring.restart_policy import RestartPolicy  # noqa: E402
from monitoring.tests.fakes import FakeClock  # noqa: E402
from stream_supervisor.config import StreamConfig  # noqa: E402
from stream_supervisor.supervisor import StreamSupervisor  # noqa: E402
from tests.fixtures.encoders import FakeEncoderFarm  # noqa: E402

CATALOG_SIZE = 145


@pytest.fixture(scope="session")
def project_root_path():
    """Return the project root directory path."""
    return os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


@pytest.fixture(scope="session")
def test_env_vars():
    """Provide test environment variables."""
    return {
        "STREAM_KEY": "abc",
        "STREAM_URL": "rtmp://host",
        "CATALOG_SIZE": str(CATALOG_SIZE),
        "ROTATION_CAPACITY": "61",
        "HEALTH_CHECK_INTERVAL": "30",
        "MAX_RESTART_ATTEMPTS": "5",
        "RESTART_DELAY": "10",
        "FFMPEG_BINARY": "ffmpeg",
        "FFMPEG_START_TIMEOUT": "1",
        "FFMPEG_STOP_TIMEOUT": "0.1",
        "LOG_LEVEL": "DEBUG",
    }


@pytest.fixture
def mock_env(monkeypatch, test_env_vars, tmp_path):
    """Mock environment variables for testing."""
    for key, value in test_env_vars.items():
        monkeypatch.setenv(key, value)
    monkeypatch.setenv("LOG_PATH", str(tmp_path / "logs"))


@pytest.fixture
def assets_dir(tmp_path: Path) -> Path:
    """Create a full numbered catalog of (empty) video files."""
    directory = tmp_path / "assets"
    directory.mkdir()
    for index in range(CATALOG_SIZE):
        (directory / f"{index:03d}.mp4").touch()
    return directory


@pytest.fixture
def farm():
    """Patch process spawning with fake FFmpeg processes."""
    farm = FakeEncoderFarm()
    with patch("asyncio.create_subprocess_exec", AsyncMock(side_effect=farm.spawn)):
        yield farm


@pytest.fixture
def rng():
    """RNG drawing 42, 43, 44, ..."""
    rng = MagicMock(spec=random.Random)
    rng.randrange.side_effect = (i % CATALOG_SIZE for i in itertools.count(42))
    return rng


@pytest.fixture
def sleep():
    """Backoff sleep that returns immediately."""
    return AsyncMock(return_value=None)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def monitoring_config():
    return MonitoringConfig(
        health_check_interval=30.0, max_restart_attempts=5, restart_delay=10.0
    )


@pytest_asyncio.fixture
async def supervisor(assets_dir, rng, sleep, clock, farm, monitoring_config):
    """Supervisor with real components; only spawning and the backoff are faked."""
    supervisor = StreamSupervisor(
        selector=AssetSelector(
            AssetConfig(
                assets_path=str(assets_dir),
                catalog_size=CATALOG_SIZE,
                rotation_capacity=61,
            ),
            rng=rng,
        ),
        process_manager=FFmpegProcessManager(
            config=FFmpegConfig(ffmpeg_binary="ffmpeg", start_timeout=1.0, stop_timeout=0.1)
        ),
        health_monitor=HealthMonitor(monitoring_config, clock=clock),
        restart_policy=RestartPolicy(monitoring_config),
        sleep=sleep,
    )
    yield supervisor
    await supervisor.shutdown()


@pytest.fixture
def stream_config():
    return StreamConfig(stream_key="abc", stream_url="rtmp://host")
