"""
Pytest configuration and fixtures for stream supervisor tests.
"""

import itertools
import random
from datetime import datetime
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from asset_manager.config import AssetConfig
from asset_manager.selector import AssetSelector
from ffmpeg_manager.process_manager import EncoderHandle, FFmpegProcessManager, ProcessState
from monitoring.config import MonitoringConfig
from monitoring.health_monitor import HealthMonitor
from monitoring.restart_policy import RestartPolicy
from monitoring.tests.fakes import FakeClock
from stream_supervisor.config import StreamConfig
from stream_supervisor.supervisor import StreamSupervisor

CATALOG_SIZE = 145


def make_handle(pid: int, content_path: str, destination: str) -> EncoderHandle:
    """Create a handle for a running encoder."""
    return EncoderHandle(
        pid=pid,
        content_path=content_path,
        destination=destination,
        started_at=datetime.now(),
        state=ProcessState.RUNNING,
    )


@pytest.fixture
def assets_dir(tmp_path: Path) -> Path:
    """Create a full catalog of (empty) media files."""
    for index in range(CATALOG_SIZE):
        (tmp_path / f"{index:03d}.mp4").touch()
    return tmp_path


@pytest.fixture
def asset_config(assets_dir: Path) -> AssetConfig:
    return AssetConfig(
        assets_path=str(assets_dir),
        filename_pattern="{index:03d}.mp4",
        catalog_size=CATALOG_SIZE,
        rotation_capacity=61,
    )


@pytest.fixture
def rng() -> MagicMock:
    """RNG drawing 42, 43, 44, ... so every pick is deterministic."""
    rng = MagicMock(spec=random.Random)
    rng.randrange.side_effect = (i % CATALOG_SIZE for i in itertools.count(42))
    return rng


@pytest.fixture
def selector(asset_config: AssetConfig, rng: MagicMock) -> AssetSelector:
    return AssetSelector(asset_config, rng=rng)


@pytest.fixture
def process_manager() -> MagicMock:
    """Encoder adapter whose launches succeed immediately with fresh handles."""
    manager = MagicMock(spec=FFmpegProcessManager)
    pids = itertools.count(1000)

    async def launch(content_path: str, destination: str) -> EncoderHandle:
        return make_handle(next(pids), content_path, destination)

    manager.launch = AsyncMock(side_effect=launch)
    manager.cleanup = AsyncMock()
    manager.get_status.return_value = {"state": "running"}
    return manager


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def monitoring_config() -> MonitoringConfig:
    return MonitoringConfig(
        health_check_interval=30.0,
        max_restart_attempts=5,
        restart_delay=10.0,
    )


@pytest.fixture
def health_monitor(monitoring_config: MonitoringConfig, clock: FakeClock) -> HealthMonitor:
    return HealthMonitor(monitoring_config, clock=clock)


@pytest.fixture
def restart_policy(monitoring_config: MonitoringConfig) -> RestartPolicy:
    return RestartPolicy(monitoring_config)


@pytest.fixture
def sleep() -> AsyncMock:
    """Backoff sleep that returns immediately."""
    return AsyncMock(return_value=None)


@pytest_asyncio.fixture
async def supervisor(selector, process_manager, health_monitor, restart_policy, sleep):
    """Supervisor wired to the mocked adapter; shut down after the test."""
    supervisor = StreamSupervisor(
        selector=selector,
        process_manager=process_manager,
        health_monitor=health_monitor,
        restart_policy=restart_policy,
        sleep=sleep,
    )
    yield supervisor
    await supervisor.shutdown()


@pytest.fixture
def stream_config() -> StreamConfig:
    return StreamConfig(stream_key="abc", stream_url="rtmp://host")


@pytest.fixture
def encoder_listener(process_manager: MagicMock):
    """Return a function that fetches the listener registered with the adapter."""

    def get_listener():
        return process_manager.set_event_listener.call_args.args[0]

    return get_listener
