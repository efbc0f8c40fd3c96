"""
Stream destination configuration.

``SupervisorSettings`` loads the publish endpoint from the environment;
``StreamConfig`` is the immutable value handed to the supervisor.
"""

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings


class StreamConfig(BaseModel):
    """Publish endpoint of a stream. The key is kept secret."""

    model_config = ConfigDict(frozen=True)

    stream_key: SecretStr = Field(..., description="Stream key appended to the URL")
    stream_url: str = Field(..., description="RTMP ingest URL without the key")

    @field_validator("stream_key")
    @classmethod
    def key_not_empty(cls, value: SecretStr) -> SecretStr:
        if not value.get_secret_value():
            raise ValueError("stream_key cannot be empty")
        return value

    @field_validator("stream_url")
    @classmethod
    def url_not_empty(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("stream_url cannot be empty")
        return value

    @property
    def destination(self) -> str:
        """Full publish URL: ``stream_url + "/" + stream_key``."""
        return f"{self.stream_url}/{self.stream_key.get_secret_value()}"

    @property
    def key_length(self) -> int:
        return len(self.stream_key.get_secret_value())


class SupervisorSettings(BaseSettings):
    """Stream endpoint settings from environment variables."""

    key: SecretStr = Field(..., description="Stream key (STREAM_KEY)")
    url: str = Field(..., description="RTMP ingest URL (STREAM_URL)")

    model_config = ConfigDict(
        env_prefix="STREAM_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore extra fields from environment
    )

    def to_stream_config(self) -> StreamConfig:
        """Build the immutable stream configuration."""
        return StreamConfig(stream_key=self.key, stream_url=self.url)
