"""Interval health monitoring for the live stream session."""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from monitoring.config import MonitoringConfig

logger = logging.getLogger(__name__)


class MonitorState(str, Enum):
    """Health monitor states."""

    IDLE = "idle"
    MONITORING = "monitoring"


@dataclass
class HealthState:
    """Health flag of a session and when it was last checked.

    ``healthy`` is cleared by the encoder failure/end path; the monitor only
    advances ``last_check``.
    """

    healthy: bool = False
    last_check: float = 0.0

    def mark_healthy(self, now: float) -> None:
        self.healthy = True
        self.last_check = now

    def mark_unhealthy(self) -> None:
        self.healthy = False


class HealthMonitor:
    """Periodically checks the current session and requests a restart when
    it has been flagged unhealthy for at least one full interval.
    """

    def __init__(
        self,
        config: Optional[MonitoringConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize health monitor.

        Args:
            config: Monitoring configuration
            clock: Monotonic time source in seconds
        """
        if config is None:
            from monitoring.config import get_config

            config = get_config()

        self.config = config
        self.clock = clock

        self._state = MonitorState.IDLE
        self._health: Optional[HealthState] = None
        self._on_unhealthy: Optional[Callable[[], None]] = None
        self._task: Optional[asyncio.Task] = None

        logger.info(f"Health monitor initialized (interval: {self.config.health_check_interval}s)")

    @property
    def state(self) -> MonitorState:
        return self._state

    @property
    def interval(self) -> float:
        return self.config.health_check_interval

    def start(self, health: HealthState, on_unhealthy: Callable[[], None]) -> None:
        """Start monitoring a session, replacing any previous one.

        Args:
            health: Health state of the session that just went live
            on_unhealthy: Called when a restart should be requested
        """
        self.stop()
        self._health = health
        self._on_unhealthy = on_unhealthy
        self._state = MonitorState.MONITORING
        self._task = asyncio.create_task(self._run())
        logger.debug("Health monitoring started")

    def stop(self) -> None:
        """Stop monitoring and cancel the pending interval timer."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        self._health = None
        self._on_unhealthy = None
        if self._state is MonitorState.MONITORING:
            logger.debug("Health monitoring stopped")
        self._state = MonitorState.IDLE

    def check(self) -> bool:
        """Run a single health check.

        Returns:
            True if a restart was requested
        """
        if self._state is not MonitorState.MONITORING or self._health is None:
            return False

        now = self.clock()
        elapsed = now - self._health.last_check
        if elapsed < self.interval:
            return False

        triggered = False
        if not self._health.healthy:
            logger.warning(
                "Stream health check failed. Attempting restart...",
                extra={"event": "health_check_failed", "elapsed_seconds": round(elapsed, 1)},
            )
            triggered = True
            if self._on_unhealthy is not None:
                self._on_unhealthy()

        self._health.last_check = now
        return triggered

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                self.check()
            except Exception as e:
                logger.error(f"Error during health check: {e}", exc_info=True)
