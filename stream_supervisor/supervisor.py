"""
Stream supervisor.

Drives the select -> launch -> monitor -> teardown -> restart cycle for a
single looping stream, recovering from encoder failures with a bounded
number of delayed restart attempts.
"""

import asyncio
import functools
import logging
from typing import Awaitable, Callable, Dict, Optional

from asset_manager.selector import AssetSelector
from ffmpeg_manager.command_builder import mask_destination
from ffmpeg_manager.log_parser import FailureInfo
from ffmpeg_manager.process_manager import (
    EncoderEvent,
    EncoderEventType,
    EncoderHandle,
    FFmpegProcessManager,
)
from monitoring.health_monitor import HealthMonitor
from monitoring.restart_policy import RestartPolicy
from stream_supervisor.config import StreamConfig
from stream_supervisor.models import (
    EventKind,
    StreamSession,
    SupervisorEvent,
    SupervisorState,
)

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class StreamSupervisor:
    """
    Supervises one stream session at a time.

    Features:
    - Content rotation through the asset selector
    - Launch resolves to LIVE only once the encoder produces output
    - Encoder failures, natural ends and failed health checks share one
      restart path with a fixed backoff
    - Halts after the maximum number of restart attempts until the next
      explicit start_stream

    All state changes happen on the event loop while holding ``_lock``:
    starts hold it for their whole duration and queued events are applied
    under it, so an event is judged against the session that was current
    once any in-flight start has finished.
    """

    def __init__(
        self,
        selector: Optional[AssetSelector] = None,
        process_manager: Optional[FFmpegProcessManager] = None,
        health_monitor: Optional[HealthMonitor] = None,
        restart_policy: Optional[RestartPolicy] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        """
        Initialize the supervisor.

        Args:
            selector: Content selector (created from environment if not provided)
            process_manager: Encoder process adapter (created from environment if not provided)
            health_monitor: Health monitor (created from environment if not provided)
            restart_policy: Restart policy (created from environment if not provided)
            sleep: Coroutine used for the restart backoff
        """
        self.selector = selector or AssetSelector()
        self.process_manager = process_manager or FFmpegProcessManager()
        self.health_monitor = health_monitor or HealthMonitor()
        self.restart_policy = restart_policy or RestartPolicy()
        self._sleep = sleep

        self.process_manager.set_event_listener(self._on_encoder_event)

        self._state = SupervisorState.STOPPED
        self._config: Optional[StreamConfig] = None
        self._session: Optional[StreamSession] = None
        self._attempts = 0
        self._generation = 0
        self._session_count = 0

        self._lock = asyncio.Lock()
        self._events: Optional[asyncio.Queue] = None
        self._consumer_task: Optional[asyncio.Task] = None
        self._restart_task: Optional[asyncio.Task] = None

        logger.info("Stream supervisor initialized")

    @property
    def state(self) -> SupervisorState:
        return self._state

    @property
    def attempts(self) -> int:
        """Restart attempts made in the current failure streak."""
        return self._attempts

    @property
    def session(self) -> Optional[StreamSession]:
        return self._session

    @property
    def config(self) -> Optional[StreamConfig]:
        return self._config

    @property
    def restart_pending(self) -> bool:
        return self._restart_task is not None and not self._restart_task.done()

    async def start_stream(self, config: StreamConfig) -> Optional[StreamSession]:
        """
        Start streaming to the configured destination.

        Cancels any scheduled restart and resets the attempt counter. If the
        start fails, a delayed restart is scheduled and the error re-raised.

        Args:
            config: Stream destination

        Returns:
            The live session

        Raises:
            ContentNotFoundError: If the selected content file is missing
            EncoderStartError: If FFmpeg failed before producing output
        """
        self._ensure_consumer()

        logger.info(
            "Starting stream with configuration",
            extra={
                "event": "stream_start_requested",
                "stream_url": config.stream_url,
                "stream_key_length": config.key_length,
            },
        )

        async with self._lock:
            self._generation += 1
            generation = self._generation
            self._cancel_restart()
            self._config = config
            self._attempts = 0

        try:
            return await self._start(config, generation)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Failed to start stream: {e}", exc_info=True)
            async with self._lock:
                if generation == self._generation:
                    self._begin_restart(FailureInfo.from_exception(e))
            raise

    async def _start(self, config: StreamConfig, generation: int) -> Optional[StreamSession]:
        """Pick content, replace the current session and launch a new one."""
        async with self._lock:
            if generation != self._generation:
                logger.info("Skipping start superseded by a newer start_stream")
                return self._session

            self._state = SupervisorState.STARTING
            content = self.selector.pick()

            self._teardown_session()

            handle = await self.process_manager.launch(str(content.path), config.destination)

            self._session_count += 1
            session = StreamSession(
                session_id=self._session_count,
                content=content,
                destination=config.destination,
                handle=handle,
            )
            session.health.mark_healthy(self.health_monitor.clock())
            self._session = session
            self._attempts = 0
            self._state = SupervisorState.LIVE

            self.health_monitor.start(
                session.health,
                functools.partial(self._on_health_check_failed, handle),
            )

            logger.info(
                f"Stream started successfully (session {session.session_id}, "
                f"content {content.content_id})",
                extra={
                    "event": "stream_live",
                    "session_id": session.session_id,
                    "content_id": content.content_id,
                    "pid": handle.pid,
                },
            )
            return session

    def _teardown_session(self) -> None:
        """Stop monitoring and terminate the current session, if any."""
        session = self._session
        self._session = None
        self.health_monitor.stop()

        if session is None:
            return

        session.health.mark_unhealthy()
        try:
            self.process_manager.terminate(session.handle)
        except Exception as e:
            logger.error(f"Error killing previous stream: {e}", exc_info=True)

    def _begin_restart(self, failure: Optional[FailureInfo]) -> None:
        """Consult the restart policy and schedule a restart or halt."""
        pending = self._restart_task
        if pending is not None and not pending.done() and pending is not asyncio.current_task():
            logger.debug("Restart already scheduled")
            return

        self._state = SupervisorState.RESTARTING
        if self._session is not None:
            self._session.health.mark_unhealthy()

        decision = self.restart_policy.evaluate(self._attempts, failure)
        if not decision.should_restart:
            self._halt(decision.reason)
            return

        self._attempts += 1
        logger.warning(
            f"Attempting stream restart (attempt {self._attempts}/"
            f"{self.restart_policy.max_attempts}) in {decision.delay}s",
            extra={
                "event": "restart_scheduled",
                "attempt": self._attempts,
                "delay_seconds": decision.delay,
            },
        )
        self._restart_task = asyncio.create_task(
            self._restart_after(decision.delay, self._generation)
        )

    async def _restart_after(self, delay: float, generation: int) -> None:
        await self._sleep(delay)

        if generation != self._generation or self._state is not SupervisorState.RESTARTING:
            logger.info("Skipping stale restart")
            return

        try:
            await self._start(self._config, generation)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Stream restart failed: {e}", exc_info=True)
            async with self._lock:
                if generation == self._generation:
                    self._begin_restart(FailureInfo.from_exception(e))

    def _halt(self, reason: str) -> None:
        self._state = SupervisorState.HALTED
        self._teardown_session()

        if self._attempts >= self.restart_policy.max_attempts:
            message = (
                f"Maximum stream attempts ({self.restart_policy.max_attempts}) reached. "
                f"Waiting for manual intervention."
            )
        else:
            message = f"Stream halted ({reason}). Waiting for manual intervention."

        logger.error(
            message,
            extra={"event": "supervisor_halted", "reason": reason, "attempts": self._attempts},
        )

    def _cancel_restart(self) -> Optional[asyncio.Task]:
        task = self._restart_task
        self._restart_task = None
        if task is not None and not task.done():
            task.cancel()
            logger.info("Cancelled pending stream restart")
            return task
        return None

    def _ensure_consumer(self) -> None:
        if self._events is None:
            self._events = asyncio.Queue()
        if self._consumer_task is None or self._consumer_task.done():
            self._consumer_task = asyncio.create_task(self._consume_events())

    def _enqueue(self, event: SupervisorEvent) -> None:
        if self._events is None:
            logger.warning(f"Dropping {event.kind.value}: supervisor not started")
            return
        self._events.put_nowait(event)

    def _on_encoder_event(self, event: EncoderEvent) -> None:
        if event.type is EncoderEventType.ENDED:
            kind = EventKind.ENCODER_ENDED
        else:
            kind = EventKind.ENCODER_FAILED
        self._enqueue(SupervisorEvent(kind=kind, handle=event.handle, failure=event.failure))

    def _on_health_check_failed(self, handle: EncoderHandle) -> None:
        self._enqueue(SupervisorEvent(kind=EventKind.HEALTH_CHECK_FAILED, handle=handle))

    async def _consume_events(self) -> None:
        while True:
            event = await self._events.get()
            try:
                async with self._lock:
                    self._apply_event(event)
            except Exception as e:
                logger.error(f"Error handling {event.kind.value}: {e}", exc_info=True)
            finally:
                self._events.task_done()

    def _apply_event(self, event: SupervisorEvent) -> None:
        session = self._session
        if session is None or event.handle is not session.handle:
            logger.debug(f"Ignoring {event.kind.value} from a previous session")
            return

        if self._state not in (SupervisorState.LIVE, SupervisorState.RESTARTING):
            logger.debug(f"Ignoring {event.kind.value} while {self._state.value}")
            return

        session.health.mark_unhealthy()

        if event.kind is EventKind.ENCODER_ENDED:
            logger.info(
                f"Stream ended (session {session.session_id})",
                extra={"event": "stream_ended", "session_id": session.session_id},
            )
        elif event.kind is EventKind.ENCODER_FAILED:
            failure_class = event.failure.failure_class.value if event.failure else None
            logger.error(
                f"Stream failed (session {session.session_id}): "
                f"{event.failure.message if event.failure else 'unknown error'}",
                extra={
                    "event": "stream_failed",
                    "session_id": session.session_id,
                    "failure_class": failure_class,
                },
            )

        self._begin_restart(event.failure)

    async def shutdown(self) -> None:
        """Cancel restarts and monitoring, terminate the session and stop."""
        logger.info("Shutting down stream supervisor")
        self._generation += 1
        cancelled = self._cancel_restart()
        if cancelled is not None:
            await asyncio.gather(cancelled, return_exceptions=True)

        async with self._lock:
            self._teardown_session()
            self._state = SupervisorState.STOPPED

        if self._consumer_task is not None:
            self._consumer_task.cancel()
            try:
                await self._consumer_task
            except asyncio.CancelledError:
                pass
            self._consumer_task = None

        await self.process_manager.cleanup()
        logger.info("Stream supervisor stopped")

    def get_status(self) -> Dict:
        """
        Get supervisor status.

        Returns:
            Dictionary with state, attempts, session and encoder details
        """
        session = self._session
        return {
            "state": self._state.value,
            "attempts": self._attempts,
            "max_attempts": self.restart_policy.max_attempts,
            "restart_pending": self.restart_pending,
            "destination": mask_destination(self._config.destination) if self._config else None,
            "session_id": session.session_id if session else None,
            "content_id": session.content.content_id if session else None,
            "content_path": str(session.content.path) if session else None,
            "healthy": session.health.healthy if session else False,
            "monitor": self.health_monitor.state.value,
            "recently_played": len(self.selector.recently_played),
            "encoder": self.process_manager.get_status(session.handle if session else None),
            "recovery": self.restart_policy.get_recovery_stats(),
        }
