"""
FFmpeg configuration and the fixed stream encoding contract.

The encoding parameters are identical for every session; only the input
file and the publish destination vary per launch.
"""

from dataclasses import dataclass

from pydantic import AliasChoices, ConfigDict, Field
from pydantic_settings import BaseSettings


@dataclass(frozen=True)
class EncodingConfig:
    """Fixed invocation parameters for an encode-and-publish session."""

    name: str
    threads: int  # applied to both decoding and encoding
    video_codec: str  # "libx264"
    video_preset: str  # "veryfast"
    video_tune: str  # "zerolatency"
    max_bitrate: str  # e.g., "2000k"
    buffer_size: str  # e.g., "4000k"
    pixel_format: str  # "yuv420p"
    keyframe_interval: int  # GOP size
    keyframe_min: int  # minimum GOP size
    audio_codec: str  # "aac"
    audio_bitrate: str  # e.g., "128k"
    audio_sample_rate: str  # e.g., "44100"
    output_format: str  # "flv" for RTMP push
    reconnect_delay_max: int  # seconds
    socket_timeout_us: int  # microseconds


STREAM_ENCODING = EncodingConfig(
    name="Looping RTMP push (x264)",
    threads=4,
    video_codec="libx264",
    video_preset="veryfast",
    video_tune="zerolatency",
    max_bitrate="2000k",
    buffer_size="4000k",
    pixel_format="yuv420p",
    keyframe_interval=60,
    keyframe_min=48,
    audio_codec="aac",
    audio_bitrate="128k",
    audio_sample_rate="44100",
    output_format="flv",
    reconnect_delay_max=5,
    socket_timeout_us=30_000_000,
)


class FFmpegConfig(BaseSettings):
    """FFmpeg adapter configuration from environment variables."""

    # FFmpeg binary
    ffmpeg_binary: str = Field(
        default="ffmpeg",
        description="Path to FFmpeg binary",
        validation_alias=AliasChoices("FFMPEG_BINARY", "ffmpeg_binary"),
    )

    # Logging
    log_level: str = Field(
        default="info",
        description="FFmpeg log level (quiet, panic, fatal, error, warning, info, verbose, debug)",
    )

    # Process management
    start_timeout: float = Field(
        default=30.0,
        description="Seconds to wait for the first progress report before giving up on a launch",
        gt=0.0,
        le=300.0,
    )

    stop_timeout: float = Field(
        default=5.0,
        description="Seconds between SIGTERM and SIGKILL when terminating a session",
        ge=0.0,
        le=60.0,
    )

    stderr_tail_lines: int = Field(
        default=20,
        description="Number of trailing stderr lines kept for failure reports",
        ge=1,
        le=500,
    )

    model_config = ConfigDict(
        env_prefix="FFMPEG_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore extra fields from environment
    )

    def get_encoding_config(self) -> EncodingConfig:
        """Get the fixed encoding contract."""
        return STREAM_ENCODING


def get_config() -> FFmpegConfig:
    """
    Get FFmpeg configuration from environment variables.

    Returns:
        FFmpegConfig: Configuration instance
    """
    return FFmpegConfig()
