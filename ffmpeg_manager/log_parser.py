"""
FFmpeg log parser.

Parses FFmpeg stderr output to detect the first progress report, pick out
errors and warnings, and classify process failures.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Sequence, Set

logger = logging.getLogger(__name__)


class LogLevel(str, Enum):
    """FFmpeg log levels."""

    DEBUG = "debug"
    VERBOSE = "verbose"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    FATAL = "fatal"
    PANIC = "panic"


class ErrorType(str, Enum):
    """Types of FFmpeg errors."""

    CONNECTION_FAILED = "connection_failed"
    FILE_NOT_FOUND = "file_not_found"
    RTMP_ERROR = "rtmp_error"
    IO_ERROR = "io_error"
    ENCODER_ERROR = "encoder_error"
    UNKNOWN = "unknown"


class FailureClass(str, Enum):
    """Coarse classification of a process failure."""

    TRANSIENT_NETWORK = "transient_network"
    UNCLASSIFIED = "unclassified"


# Substrings that mark a failure as a dropped connection or forced kill
TRANSIENT_FAILURE_MARKERS = (
    "SIGKILL",
    "Connection refused",
    "Connection timed out",
)


def classify_failure(*texts: str) -> FailureClass:
    """
    Classify a failure from its message and any captured output.

    Args:
        texts: Error message and optional stderr fragments

    Returns:
        TRANSIENT_NETWORK if any marker appears, otherwise UNCLASSIFIED
    """
    haystack = "\n".join(t for t in texts if t).lower()
    for marker in TRANSIENT_FAILURE_MARKERS:
        if marker.lower() in haystack:
            return FailureClass.TRANSIENT_NETWORK
    return FailureClass.UNCLASSIFIED


@dataclass
class FailureInfo:
    """Details of a failed encoder session."""

    message: str
    failure_class: FailureClass = FailureClass.UNCLASSIFIED
    exit_code: Optional[int] = None
    stderr_tail: List[str] = field(default_factory=list)

    @property
    def is_transient(self) -> bool:
        return self.failure_class is FailureClass.TRANSIENT_NETWORK

    @classmethod
    def from_message(
        cls,
        message: str,
        exit_code: Optional[int] = None,
        stderr_tail: Sequence[str] = (),
    ) -> "FailureInfo":
        """Build a FailureInfo, classifying it from the message and stderr."""
        tail = list(stderr_tail)
        return cls(
            message=message,
            failure_class=classify_failure(message, *tail),
            exit_code=exit_code,
            stderr_tail=tail,
        )

    @classmethod
    def from_exception(cls, exc: BaseException) -> "FailureInfo":
        """Build a FailureInfo for an exception raised while starting a session."""
        failure = getattr(exc, "failure", None)
        if isinstance(failure, FailureInfo):
            return failure
        return cls.from_message(f"{type(exc).__name__}: {exc}")


@dataclass
class FFmpegMetrics:
    """Latest progress report from FFmpeg's ``-stats`` output."""

    frame_count: int = 0
    fps: float = 0.0
    bitrate: str = "0kbits/s"
    speed: float = 0.0
    time: str = "00:00:00.00"
    dup_frames: int = 0
    drop_frames: int = 0
    last_update: Optional[datetime] = None


@dataclass
class FFmpegError:
    """An error or warning line reported by FFmpeg."""

    timestamp: datetime
    level: LogLevel
    error_type: ErrorType
    message: str
    raw_line: str

    @property
    def is_error(self) -> bool:
        return self.level in _ERROR_LEVELS


_ERROR_LEVELS = frozenset({LogLevel.ERROR, LogLevel.FATAL, LogLevel.PANIC})

# Checked in order; the first match wins
_ERROR_SIGNATURES = [
    (
        ErrorType.CONNECTION_FAILED,
        re.compile(
            r"connection (?:refused|timed out|reset)|(?:failed|unable) to connect"
            r"|could not (?:open|connect)",
            re.IGNORECASE,
        ),
    ),
    (
        ErrorType.FILE_NOT_FOUND,
        re.compile(r"no such file or directory|does not exist", re.IGNORECASE),
    ),
    (
        ErrorType.RTMP_ERROR,
        re.compile(r"rtmp.*(?:error|connection.*closed)|failed to update rtmp", re.IGNORECASE),
    ),
    (
        ErrorType.IO_ERROR,
        re.compile(r"i/o error|input/output error|broken pipe", re.IGNORECASE),
    ),
    (
        ErrorType.ENCODER_ERROR,
        re.compile(
            r"encoding failed|encoder.*error|error (?:encoding|while encoding)", re.IGNORECASE
        ),
    ),
]

_LEVEL_TAG = re.compile(r"\[(panic|fatal|error|warning|verbose|debug)\]", re.IGNORECASE)
_CONTEXT_PREFIX = re.compile(r"^(?:\[[^\]]*\]\s*)+")
_PROGRESS_FIELD = re.compile(r"(\w+)=\s*(\S+)")

MAX_MESSAGE_LENGTH = 200


class FFmpegLogParser:
    """
    Incremental parser for one FFmpeg process's stderr.

    Progress lines (``frame=... speed=...x``) update ``metrics``; the first
    one marks the session as producing output. Other lines are matched
    against known error signatures and collected, deduplicated, into
    ``errors`` and ``warnings``.
    """

    def __init__(self):
        self.metrics = FFmpegMetrics()
        self.errors: List[FFmpegError] = []
        self.warnings: List[FFmpegError] = []
        self._seen: Set[str] = set()

    @property
    def has_progress(self) -> bool:
        """True once FFmpeg has reported at least one encoded frame."""
        return self.metrics.last_update is not None

    def parse_line(self, line: str) -> Optional[FFmpegError]:
        """
        Parse a single line of FFmpeg output.

        Args:
            line: Line of FFmpeg stderr output

        Returns:
            FFmpegError if a new error/warning is detected, None otherwise
        """
        line = line.strip()
        if not line or self._record_progress(line):
            return None

        error = self._match_error(line)
        if error is None:
            return None

        key = f"{error.error_type.value}:{error.message[:50]}"
        if key in self._seen:
            return None
        self._seen.add(key)
        logger.debug(f"FFmpeg {error.level.value} ({error.error_type.value}): {error.message}")

        if error.is_error:
            self.errors.append(error)
        else:
            self.warnings.append(error)
        return error

    def _record_progress(self, line: str) -> bool:
        fields = dict(_PROGRESS_FIELD.findall(line))
        if "frame" not in fields or "speed" not in fields:
            return False

        try:
            frame_count = int(fields["frame"])
            speed = float(fields["speed"].rstrip("x"))
            fps = float(fields.get("fps", self.metrics.fps))
            dup_frames = int(fields.get("dup", self.metrics.dup_frames))
            drop_frames = int(fields.get("drop", self.metrics.drop_frames))
        except ValueError:
            # "N/A" placeholders before the first encoded frame
            return False

        if frame_count <= 0:
            # Still connecting or probing input; nothing encoded yet
            return True

        metrics = self.metrics
        metrics.frame_count = frame_count
        metrics.speed = speed
        metrics.fps = fps
        metrics.dup_frames = dup_frames
        metrics.drop_frames = drop_frames
        metrics.time = fields.get("time", metrics.time)
        metrics.bitrate = fields.get("bitrate", metrics.bitrate)
        metrics.last_update = datetime.now()
        return True

    def _match_error(self, line: str) -> Optional[FFmpegError]:
        error_type = ErrorType.UNKNOWN
        for candidate, pattern in _ERROR_SIGNATURES:
            if pattern.search(line):
                error_type = candidate
                break

        level = self._line_level(line, known=error_type is not ErrorType.UNKNOWN)
        if level not in _ERROR_LEVELS and level is not LogLevel.WARNING:
            return None
        if error_type is ErrorType.UNKNOWN and level not in _ERROR_LEVELS:
            return None

        return FFmpegError(
            timestamp=datetime.now(),
            level=level,
            error_type=error_type,
            message=self._strip_context(line),
            raw_line=line,
        )

    @staticmethod
    def _line_level(line: str, known: bool) -> LogLevel:
        tag = _LEVEL_TAG.search(line)
        if tag:
            return LogLevel(tag.group(1).lower())

        lowered = line.lower()
        if "fatal error" in lowered:
            return LogLevel.FATAL
        if "error" in lowered:
            return LogLevel.ERROR
        if "warning" in lowered:
            return LogLevel.WARNING
        # Connection and pipe failures are printed without a level
        return LogLevel.ERROR if known else LogLevel.INFO

    @staticmethod
    def _strip_context(line: str) -> str:
        message = _CONTEXT_PREFIX.sub("", line).strip()
        if len(message) > MAX_MESSAGE_LENGTH:
            message = message[: MAX_MESSAGE_LENGTH - 3] + "..."
        return message

    def last_error_message(self) -> Optional[str]:
        """Message of the most recent error, if any."""
        return self.errors[-1].message if self.errors else None

    def get_metrics_summary(self) -> Dict:
        """
        Get summary of current metrics.

        Returns:
            Dictionary with metric values and error counts
        """
        metrics = self.metrics
        return {
            "frame_count": metrics.frame_count,
            "fps": metrics.fps,
            "bitrate": metrics.bitrate,
            "speed": metrics.speed,
            "time": metrics.time,
            "dup_frames": metrics.dup_frames,
            "drop_frames": metrics.drop_frames,
            "last_update": metrics.last_update.isoformat() if metrics.last_update else None,
            "total_errors": len(self.errors),
            "total_warnings": len(self.warnings),
        }
