"""
Tests for stream destination configuration.
"""

import pytest
from pydantic import ValidationError

from stream_supervisor.config import StreamConfig, SupervisorSettings


class TestStreamConfig:
    """Test StreamConfig."""

    def test_destination(self):
        config = StreamConfig(stream_key="abc", stream_url="rtmp://host")

        assert config.destination == "rtmp://host/abc"
        assert config.key_length == 3

    def test_key_hidden_from_repr(self):
        config = StreamConfig(stream_key="super-secret", stream_url="rtmp://host")

        assert "super-secret" not in repr(config)
        assert "super-secret" not in str(config)

    def test_immutable(self):
        config = StreamConfig(stream_key="abc", stream_url="rtmp://host")

        with pytest.raises(ValidationError):
            config.stream_url = "rtmp://elsewhere"

    @pytest.mark.parametrize(
        "key,url",
        [
            ("", "rtmp://host"),
            ("abc", ""),
            ("abc", "   "),
        ],
    )
    def test_rejects_empty_values(self, key, url):
        with pytest.raises(ValidationError):
            StreamConfig(stream_key=key, stream_url=url)


class TestSupervisorSettings:
    """Test SupervisorSettings."""

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("STREAM_KEY", "live_123")
        monkeypatch.setenv("STREAM_URL", "rtmp://a.rtmp.youtube.com/live2")

        config = SupervisorSettings().to_stream_config()

        assert config.stream_url == "rtmp://a.rtmp.youtube.com/live2"
        assert config.destination == "rtmp://a.rtmp.youtube.com/live2/live_123"

    def test_missing_key(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("STREAM_KEY", raising=False)
        monkeypatch.setenv("STREAM_URL", "rtmp://host")

        with pytest.raises(ValidationError):
            SupervisorSettings()
