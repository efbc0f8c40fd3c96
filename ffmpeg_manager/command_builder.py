"""
FFmpeg command builder.

Constructs the fixed encode-and-publish command: a local file read at native
rate and looped forever, pushed as FLV to an RTMP destination.
"""

import logging
from typing import List, Optional

from ffmpeg_manager.config import FFmpegConfig

logger = logging.getLogger(__name__)


class FFmpegCommandBuilder:
    """
    Builds FFmpeg commands for streaming a looped video file.

    Everything except the input path and destination comes from the fixed
    encoding contract.
    """

    def __init__(self, config: FFmpegConfig):
        """
        Initialize command builder.

        Args:
            config: FFmpeg configuration
        """
        self.config = config
        self.encoding_config = config.get_encoding_config()

    def build_command(self, content_path: str, destination: str) -> List[str]:
        """
        Build complete FFmpeg command for streaming.

        Args:
            content_path: Path to the video file to loop
            destination: Full publish URL (stream URL plus key)

        Returns:
            List of command arguments for subprocess

        Raises:
            ValueError: If content_path or destination is empty
        """
        if not content_path or not content_path.strip():
            raise ValueError("content_path cannot be empty")
        if not destination or not destination.strip():
            raise ValueError("destination cannot be empty")

        cmd = [self.config.ffmpeg_binary]

        # Global options
        cmd.extend(self._build_global_options())

        # Video input (looping)
        cmd.extend(self._build_input(content_path))

        # Video encoding
        cmd.extend(self._build_video_encoding())

        # Audio encoding
        cmd.extend(self._build_audio_encoding())

        # Output options
        cmd.extend(self._build_output_options(destination))

        logger.debug(f"Built FFmpeg command for {content_path}")
        return cmd

    def _build_global_options(self) -> List[str]:
        """Build global FFmpeg options."""
        return [
            "-hide_banner",  # Hide FFmpeg banner in output
            "-loglevel",
            self.config.log_level,
            "-stats",  # Progress lines are the start signal
        ]

    def _build_input(self, content_path: str) -> List[str]:
        """Build input options."""
        enc = self.encoding_config
        return [
            "-re",  # Read input at native frame rate
            "-stream_loop",
            "-1",  # Loop indefinitely
            "-threads",
            str(enc.threads),
            "-reconnect",
            "1",
            "-reconnect_streamed",
            "1",
            "-reconnect_delay_max",
            str(enc.reconnect_delay_max),
            "-i",
            content_path,
        ]

    def _build_video_encoding(self) -> List[str]:
        """Build video encoding options."""
        enc = self.encoding_config
        return [
            "-c:v", enc.video_codec,
            "-preset", enc.video_preset,
            "-tune", enc.video_tune,
            "-maxrate", enc.max_bitrate,
            "-bufsize", enc.buffer_size,
            "-pix_fmt", enc.pixel_format,
            "-g", str(enc.keyframe_interval),
            "-keyint_min", str(enc.keyframe_min),
            "-sc_threshold", "0",  # Disable scene change detection
            "-threads", str(enc.threads),
        ]

    def _build_audio_encoding(self) -> List[str]:
        """Build audio encoding options."""
        enc = self.encoding_config
        return [
            "-c:a", enc.audio_codec,
            "-b:a", enc.audio_bitrate,
            "-ar", enc.audio_sample_rate,
            "-ac", "2",
        ]

    def _build_output_options(self, destination: str) -> List[str]:
        """Build output format options."""
        enc = self.encoding_config
        return [
            "-f", enc.output_format,
            "-rw_timeout", str(enc.socket_timeout_us),
            destination,
        ]

    def get_command_string(self, content_path: str, destination: str) -> str:
        """
        Get FFmpeg command as a single string with the destination masked.

        The destination carries the stream key, so it is replaced before the
        command is handed to a logger.

        Args:
            content_path: Path to the video file
            destination: Full publish URL

        Returns:
            Space-separated command string
        """
        cmd = self.build_command(content_path, destination)
        cmd[-1] = mask_destination(destination)
        return " ".join(cmd)


def mask_destination(destination: str) -> str:
    """
    Hide the stream key (last path segment) of a publish URL.

    Args:
        destination: Full publish URL

    Returns:
        URL with the key replaced by asterisks
    """
    base, sep, key = destination.rpartition("/")
    if not sep or not key:
        return destination
    return f"{base}/{'*' * min(len(key), 8)}"


def create_command_builder(config: Optional[FFmpegConfig] = None) -> FFmpegCommandBuilder:
    """
    Factory function to create a command builder.

    Args:
        config: Optional FFmpeg configuration (creates default if not provided)

    Returns:
        FFmpegCommandBuilder instance
    """
    if config is None:
        from ffmpeg_manager.config import get_config
        config = get_config()

    return FFmpegCommandBuilder(config)
