"""
FFmpeg process manager.

Wraps a single encode-and-publish FFmpeg invocation: launches it, waits
until it actually produces output, reports failures and natural ends to a
listener, and terminates it on request.
"""

import asyncio
import logging
import re
import signal
import subprocess
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Deque, Dict, Optional, Set

import psutil

from ffmpeg_manager.command_builder import (
    FFmpegCommandBuilder,
    create_command_builder,
    mask_destination,
)
from ffmpeg_manager.config import FFmpegConfig
from ffmpeg_manager.log_parser import FailureInfo, FFmpegLogParser

logger = logging.getLogger(__name__)

_LINE_SPLIT = re.compile(r"[\r\n]")


class ProcessState(str, Enum):
    """FFmpeg process states."""

    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"
    CRASHED = "crashed"


class EncoderEventType(str, Enum):
    """Lifecycle events reported after a session has started."""

    FAILED = "failed"
    ENDED = "ended"


class EncoderStartError(Exception):
    """Raised when FFmpeg exits or stalls before producing any output."""

    def __init__(self, failure: FailureInfo):
        self.failure = failure
        super().__init__(failure.message)


@dataclass(eq=False)
class EncoderHandle:
    """A launched FFmpeg process and its bookkeeping."""

    pid: int
    content_path: str
    destination: str
    started_at: datetime
    state: ProcessState = ProcessState.STARTING
    process: Optional[asyncio.subprocess.Process] = None
    log_parser: FFmpegLogParser = field(default_factory=FFmpegLogParser)
    stderr_tail: Deque[str] = field(default_factory=lambda: deque(maxlen=20))
    terminating: bool = False
    started: Optional[asyncio.Future] = None
    watch_task: Optional[asyncio.Task] = None
    usage: Optional[psutil.Process] = None


@dataclass
class EncoderEvent:
    """Lifecycle event delivered to the registered listener."""

    type: EncoderEventType
    handle: EncoderHandle
    failure: Optional[FailureInfo] = None


EventListener = Callable[[EncoderEvent], None]


def _track_usage(pid: int) -> Optional[psutil.Process]:
    """Open a psutil handle for the process and prime its CPU counter."""
    try:
        proc = psutil.Process(pid)
        # The first interval-less reading only sets the baseline
        proc.cpu_percent(interval=None)
        return proc
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        return None


class FFmpegProcessManager:
    """
    Manages the FFmpeg encode-and-publish process lifecycle.

    Features:
    - Launch resolves only once FFmpeg reports encoding progress
    - Failure and natural-end events pushed to a listener
    - Fire-and-forget termination (SIGTERM, then SIGKILL after a grace period)
    - Events from terminated processes are suppressed
    """

    def __init__(
        self,
        config: Optional[FFmpegConfig] = None,
        command_builder: Optional[FFmpegCommandBuilder] = None,
    ):
        """
        Initialize process manager.

        Args:
            config: FFmpeg configuration (creates default if not provided)
            command_builder: Command builder instance (creates default if not provided)
        """
        if config is None:
            from ffmpeg_manager.config import get_config

            config = get_config()

        self.config = config

        if command_builder is None:
            command_builder = create_command_builder(config)

        self.command_builder = command_builder

        self._listener: Optional[EventListener] = None
        self._background_tasks: Set[asyncio.Task] = set()

        logger.info("FFmpeg Process Manager initialized")

    def set_event_listener(self, listener: EventListener) -> None:
        """
        Set the callback that receives lifecycle events.

        Args:
            listener: Called with each EncoderEvent, on the event loop
        """
        self._listener = listener
        logger.debug("Event listener set")

    async def launch(self, content_path: str, destination: str) -> EncoderHandle:
        """
        Launch FFmpeg and wait until it is actually streaming.

        Args:
            content_path: Path to the video file to loop
            destination: Full publish URL

        Returns:
            EncoderHandle for the running process

        Raises:
            EncoderStartError: If FFmpeg cannot be spawned, exits, or produces
                no progress within ``start_timeout``
        """
        cmd = self.command_builder.build_command(content_path, destination)
        logger.info(
            "Initializing FFmpeg stream...",
            extra={"event": "encoder_launch", "content_path": content_path},
        )
        logger.debug(
            f"Command: {self.command_builder.get_command_string(content_path, destination)}"
        )

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
            )
        except OSError as e:
            failure = FailureInfo.from_message(f"Failed to spawn FFmpeg: {e}")
            logger.error(failure.message)
            raise EncoderStartError(failure) from e

        handle = EncoderHandle(
            pid=process.pid,
            content_path=content_path,
            destination=destination,
            started_at=datetime.now(),
            process=process,
            stderr_tail=deque(maxlen=self.config.stderr_tail_lines),
            started=asyncio.get_running_loop().create_future(),
        )
        handle.usage = _track_usage(process.pid)
        handle.watch_task = asyncio.create_task(self._watch(handle))

        try:
            await asyncio.wait_for(
                asyncio.shield(handle.started), timeout=self.config.start_timeout
            )
        except asyncio.TimeoutError:
            failure = FailureInfo.from_message(
                f"FFmpeg produced no output within {self.config.start_timeout}s",
                stderr_tail=handle.stderr_tail,
            )
            logger.error(f"{failure.message} (PID: {handle.pid})")
            self.terminate(handle)
            raise EncoderStartError(failure) from None
        except asyncio.CancelledError:
            self.terminate(handle)
            raise

        handle.state = ProcessState.RUNNING
        logger.info(
            f"FFmpeg process started (PID: {handle.pid}) streaming to "
            f"{mask_destination(destination)}",
            extra={"event": "encoder_started", "pid": handle.pid},
        )
        return handle

    def terminate(self, handle: EncoderHandle) -> None:
        """
        Stop a session without waiting for it to exit.

        Sends SIGTERM immediately and SIGKILL after ``stop_timeout`` if the
        process is still alive. Errors are logged, never raised.

        Args:
            handle: Handle returned by launch
        """
        handle.terminating = True
        if handle.started is not None and not handle.started.done():
            handle.started.set_exception(
                EncoderStartError(FailureInfo.from_message("FFmpeg terminated before start"))
            )
            # Consumed here so an unawaited future does not warn
            handle.started.exception()

        process = handle.process
        if process is None or process.returncode is not None:
            handle.state = ProcessState.STOPPED
            return

        handle.state = ProcessState.STOPPING
        try:
            logger.debug(f"Gracefully terminating process {handle.pid}")
            process.terminate()  # SIGTERM
        except ProcessLookupError:
            logger.debug(f"Process {handle.pid} already terminated")
            handle.state = ProcessState.STOPPED
            return
        except Exception as e:
            logger.error(f"Error killing previous stream (PID: {handle.pid}): {e}")
            return

        task = asyncio.create_task(self._ensure_stopped(handle))
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    async def _ensure_stopped(self, handle: EncoderHandle) -> None:
        """Escalate to SIGKILL if the process ignores SIGTERM."""
        process = handle.process
        try:
            await asyncio.wait_for(process.wait(), timeout=self.config.stop_timeout)
            logger.debug(f"Process {handle.pid} terminated successfully")
        except asyncio.TimeoutError:
            logger.warning(f"Process {handle.pid} did not terminate gracefully, force killing")
            try:
                process.kill()  # SIGKILL
            except ProcessLookupError:
                pass
            except Exception as e:
                logger.error(f"Error force killing process {handle.pid}: {e}")
        except Exception as e:
            logger.error(f"Error waiting for process {handle.pid} to exit: {e}")
        handle.state = ProcessState.STOPPED

    async def _watch(self, handle: EncoderHandle) -> None:
        """Read FFmpeg stderr until exit, then report the outcome."""
        process = handle.process
        buffer = ""
        try:
            if process.stderr is not None:
                while True:
                    chunk = await process.stderr.read(4096)
                    if not chunk:
                        break
                    buffer += chunk.decode("utf-8", errors="replace")
                    *lines, buffer = _LINE_SPLIT.split(buffer)
                    for line in lines:
                        self._handle_line(handle, line)
                if buffer:
                    self._handle_line(handle, buffer)

            returncode = await process.wait()
        except Exception as e:
            logger.error(f"Error monitoring FFmpeg process {handle.pid}: {e}", exc_info=True)
            returncode = process.returncode

        self._report_exit(handle, returncode)

    def _handle_line(self, handle: EncoderHandle, line: str) -> None:
        line = line.strip()
        if not line:
            return

        error = handle.log_parser.parse_line(line)
        if error:
            logger.warning(f"FFmpeg {error.level.value}: {error.message}")
            handle.stderr_tail.append(line)
        elif not handle.log_parser.has_progress:
            handle.stderr_tail.append(line)

        started = handle.started
        if handle.log_parser.has_progress and started is not None and not started.done():
            started.set_result(True)

    def _report_exit(self, handle: EncoderHandle, returncode: Optional[int]) -> None:
        """Translate a process exit into a start failure or lifecycle event."""
        if returncode == 0:
            failure = None
        else:
            failure = FailureInfo.from_message(
                self._describe_exit(handle, returncode),
                exit_code=returncode,
                stderr_tail=handle.stderr_tail,
            )

        if handle.started is not None and not handle.started.done():
            handle.state = ProcessState.CRASHED
            handle.started.set_exception(
                EncoderStartError(
                    failure
                    or FailureInfo.from_message(
                        "FFmpeg exited before producing output",
                        exit_code=returncode,
                        stderr_tail=handle.stderr_tail,
                    )
                )
            )
            return

        if handle.terminating:
            handle.state = ProcessState.STOPPED
            logger.debug(f"Process {handle.pid} exited after termination (code {returncode})")
            return

        if failure is None:
            handle.state = ProcessState.STOPPED
            logger.info("Stream ended normally", extra={"event": "encoder_ended", "pid": handle.pid})
            self._emit(EncoderEvent(EncoderEventType.ENDED, handle))
        else:
            handle.state = ProcessState.CRASHED
            logger.error(
                f"Streaming error: {failure.message}",
                extra={
                    "event": "encoder_failed",
                    "pid": handle.pid,
                    "failure_class": failure.failure_class.value,
                },
            )
            if failure.stderr_tail:
                logger.error("FFmpeg stderr: " + "\n".join(failure.stderr_tail))
            self._emit(EncoderEvent(EncoderEventType.FAILED, handle, failure))

    @staticmethod
    def _describe_exit(handle: EncoderHandle, returncode: Optional[int]) -> str:
        if returncode is not None and returncode < 0:
            try:
                name = signal.Signals(-returncode).name
            except ValueError:
                name = str(-returncode)
            return f"ffmpeg was killed with signal {name}"

        detail = handle.log_parser.last_error_message()
        if detail is None and handle.stderr_tail:
            detail = handle.stderr_tail[-1]
        message = f"ffmpeg exited with code {returncode}"
        return f"{message}: {detail}" if detail else message

    def _emit(self, event: EncoderEvent) -> None:
        if self._listener is None:
            logger.warning(f"No event listener configured for: {event.type.value}")
            return
        try:
            self._listener(event)
        except Exception as e:
            logger.error(f"Event listener failed for {event.type.value}: {e}", exc_info=True)

    async def cleanup(self) -> None:
        """Wait for pending terminations to finish."""
        if self._background_tasks:
            await asyncio.gather(*list(self._background_tasks), return_exceptions=True)
        logger.info("Cleanup complete")

    def get_status(self, handle: Optional[EncoderHandle]) -> Dict:
        """
        Get current status of an FFmpeg process.

        Args:
            handle: Handle to report on (None if no session)

        Returns:
            Dictionary with process status information
        """
        if handle is None:
            return {
                "state": ProcessState.STOPPED,
                "pid": None,
                "content_path": None,
                "uptime_seconds": 0,
            }

        uptime = (datetime.now() - handle.started_at).total_seconds()
        status = {
            "state": handle.state,
            "pid": handle.pid,
            "content_path": handle.content_path,
            "uptime_seconds": uptime,
            "metrics": handle.log_parser.get_metrics_summary(),
        }

        if handle.state in (ProcessState.STARTING, ProcessState.RUNNING):
            if handle.usage is None:
                handle.usage = _track_usage(handle.pid)
            if handle.usage is not None:
                try:
                    # Percentage since the previous reading on this handle
                    status["cpu_percent"] = handle.usage.cpu_percent(interval=None)
                    status["memory_mb"] = handle.usage.memory_info().rss / 1024 / 1024
                except (psutil.NoSuchProcess, psutil.AccessDenied):
                    pass

        return status
