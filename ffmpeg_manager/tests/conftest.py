"""
Pytest configuration and fixtures for FFmpeg manager tests.
"""

import tempfile
from pathlib import Path
from typing import Generator

import pytest

from ffmpeg_manager.command_builder import FFmpegCommandBuilder
from ffmpeg_manager.config import FFmpegConfig
from ffmpeg_manager.log_parser import FFmpegLogParser
from ffmpeg_manager.process_manager import FFmpegProcessManager


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def test_content_file(temp_dir: Path) -> Path:
    """Create a test video file."""
    content_file = temp_dir / "042.mp4"
    content_file.touch()  # Create empty file for testing
    return content_file


@pytest.fixture
def test_config() -> FFmpegConfig:
    """Create a test configuration."""
    return FFmpegConfig(
        ffmpeg_binary="ffmpeg",
        log_level="info",
        start_timeout=1.0,
        stop_timeout=0.1,
        stderr_tail_lines=5,
    )


@pytest.fixture
def command_builder(test_config: FFmpegConfig) -> FFmpegCommandBuilder:
    """Create a command builder for testing."""
    return FFmpegCommandBuilder(test_config)


@pytest.fixture
def log_parser() -> FFmpegLogParser:
    """Create a log parser for testing."""
    return FFmpegLogParser()


@pytest.fixture
def process_manager(test_config: FFmpegConfig) -> FFmpegProcessManager:
    """Create a process manager for testing."""
    return FFmpegProcessManager(config=test_config)


@pytest.fixture
def sample_error_lines() -> list:
    """Sample FFmpeg error lines for testing."""
    return [
        "[tcp @ 0x55d0c8a0] Connection to tcp://live.example.com:1935 failed: Connection refused",
        "[fatal] No such file or directory: /path/to/missing.mp4",
        "[error] RTMP connection error: stream closed",
        "[error] Encoding failed",
        "av_interleaved_write_frame(): Broken pipe",
    ]
