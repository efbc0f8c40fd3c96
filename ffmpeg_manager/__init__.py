"""
FFmpeg Process Manager

Encode-and-publish process adapter for the looping stream daemon: builds the
fixed FFmpeg invocation, detects when a session is live, classifies failures
and terminates sessions.

Version: 1.0.0
"""

__version__ = "1.0.0"

from ffmpeg_manager.command_builder import FFmpegCommandBuilder
from ffmpeg_manager.config import STREAM_ENCODING, EncodingConfig, FFmpegConfig
from ffmpeg_manager.log_parser import FailureClass, FailureInfo, FFmpegLogParser
from ffmpeg_manager.process_manager import (
    EncoderEvent,
    EncoderEventType,
    EncoderHandle,
    EncoderStartError,
    FFmpegProcessManager,
)

__all__ = [
    "FFmpegCommandBuilder",
    "FFmpegConfig",
    "EncodingConfig",
    "STREAM_ENCODING",
    "FailureClass",
    "FailureInfo",
    "FFmpegLogParser",
    "EncoderEvent",
    "EncoderEventType",
    "EncoderHandle",
    "EncoderStartError",
    "FFmpegProcessManager",
]
