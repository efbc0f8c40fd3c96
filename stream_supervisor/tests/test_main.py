"""
Tests for the command line entry point.
"""

import asyncio
import logging
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from stream_supervisor import __main__ as entry


@pytest.fixture
def cli_env(monkeypatch, tmp_path, assets_dir):
    """Environment for a complete, valid configuration."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("STREAM_KEY", "abc")
    monkeypatch.setenv("STREAM_URL", "rtmp://host")
    monkeypatch.setenv("LOG_PATH", str(tmp_path / "logs"))
    monkeypatch.setenv("LOG_LEVEL", "INFO")


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


class TestParseArgs:
    """Test argument parsing."""

    def test_defaults(self):
        args = entry.parse_args([])

        assert args.log_level is None
        assert args.check is False

    def test_options(self):
        args = entry.parse_args(["--log-level", "DEBUG", "--check"])

        assert args.log_level == "DEBUG"
        assert args.check is True


class TestMain:
    """Test main()."""

    def test_missing_stream_settings(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("LOG_PATH", str(tmp_path / "logs"))
        monkeypatch.delenv("STREAM_KEY", raising=False)
        monkeypatch.delenv("STREAM_URL", raising=False)

        assert entry.main([]) == 2

    def test_check_with_complete_assets(self, cli_env, asset_config):
        with patch.object(entry, "get_asset_config", return_value=asset_config):
            assert entry.main(["--check"]) == 0

    def test_check_warns_about_missing_assets(self, cli_env, asset_config, assets_dir, caplog):
        (assets_dir / "007.mp4").unlink()

        with patch.object(entry, "get_asset_config", return_value=asset_config):
            with caplog.at_level(logging.WARNING):
                assert entry.main(["--check"]) == 1

        assert "1 of 145 video files are missing" in caplog.text

    def test_runs_supervisor(self, cli_env, asset_config):
        run = AsyncMock(return_value=0)

        with patch.object(entry, "get_asset_config", return_value=asset_config), patch.object(
            entry, "run", run
        ):
            assert entry.main([]) == 0

        config = run.call_args.args[0]
        assert config.destination == "rtmp://host/abc"


class TestRun:
    """Test the supervisor run loop."""

    @pytest.mark.asyncio
    async def test_run_until_stopped(self, stream_config):
        supervisor = MagicMock()
        supervisor.start_stream = AsyncMock()
        supervisor.shutdown = AsyncMock()
        stop = asyncio.Event()
        stop.set()

        assert await entry.run(stream_config, supervisor=supervisor, stop=stop) == 0

        supervisor.start_stream.assert_awaited_once_with(stream_config)
        supervisor.shutdown.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_initial_failure_keeps_running(self, stream_config):
        """Test a failed first start leaves recovery to the supervisor."""
        supervisor = MagicMock()
        supervisor.start_stream = AsyncMock(side_effect=RuntimeError("boom"))
        supervisor.shutdown = AsyncMock()
        stop = asyncio.Event()
        stop.set()

        assert await entry.run(stream_config, supervisor=supervisor, stop=stop) == 0

        supervisor.shutdown.assert_awaited_once()
