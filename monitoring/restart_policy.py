"""Restart policy for encoder session failures."""

import logging
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Deque, Optional

from ffmpeg_manager.log_parser import FailureClass, FailureInfo
from monitoring.config import MonitoringConfig

logger = logging.getLogger(__name__)


class RecoveryAction(str, Enum):
    """Recovery actions that can be decided."""

    RESTART = "restart"
    HALT = "halt"


@dataclass(frozen=True)
class RestartDecision:
    """Outcome of evaluating a failure."""

    action: RecoveryAction
    delay: float = 0.0
    reason: str = ""

    @property
    def should_restart(self) -> bool:
        return self.action is RecoveryAction.RESTART


@dataclass
class RecoveryAttempt:
    """Record of a restart decision."""

    action: RecoveryAction
    timestamp: datetime
    attempt: int
    failure_class: Optional[FailureClass] = None
    error_message: Optional[str] = None


class RestartPolicy:
    """Decides whether a failed session is retried after a backoff or halted.

    The policy is stateless with respect to the attempt counter: the caller
    owns the counter and passes it in. Only the decision history is kept
    here, bounded by ``recovery_history_size``.
    """

    def __init__(self, config: Optional[MonitoringConfig] = None):
        """Initialize restart policy.

        Args:
            config: Monitoring configuration
        """
        if config is None:
            from monitoring.config import get_config

            config = get_config()

        self.config = config
        self._recovery_history: Deque[RecoveryAttempt] = deque(
            maxlen=self.config.recovery_history_size
        )
        self._last_restart_time: Optional[datetime] = None
        self._halt_count: int = 0

        logger.info(
            f"Restart policy initialized (max attempts: {self.config.max_restart_attempts}, "
            f"delay: {self.config.restart_delay}s)"
        )

    @property
    def max_attempts(self) -> int:
        return self.config.max_restart_attempts

    @property
    def restart_delay(self) -> float:
        return self.config.restart_delay

    def evaluate(self, attempts: int, failure: Optional[FailureInfo] = None) -> RestartDecision:
        """Decide what to do about a failure.

        Args:
            attempts: Restart attempts already made in the current failure streak
            failure: Description of the failure, if known

        Returns:
            RestartDecision with the action and backoff delay
        """
        now = datetime.now()
        failure_class = failure.failure_class if failure else None
        message = failure.message if failure else None

        if failure is not None:
            logger.info(
                f"Failure classified as {failure.failure_class.value}: {failure.message}",
                extra={"event": "failure_classified", "failure_class": failure.failure_class.value},
            )

        if attempts >= self.max_attempts:
            decision = RestartDecision(
                action=RecoveryAction.HALT,
                reason=f"max restart attempts ({self.max_attempts}) reached",
            )
        elif (
            self.config.halt_on_unclassified_failure
            and failure is not None
            and not failure.is_transient
        ):
            decision = RestartDecision(
                action=RecoveryAction.HALT,
                reason="unclassified failure",
            )
        else:
            decision = RestartDecision(
                action=RecoveryAction.RESTART,
                delay=self.restart_delay,
                reason=f"attempt {attempts + 1}/{self.max_attempts}",
            )
            self._last_restart_time = now

        if decision.action is RecoveryAction.HALT:
            self._halt_count += 1

        self._recovery_history.append(
            RecoveryAttempt(
                action=decision.action,
                timestamp=now,
                attempt=attempts,
                failure_class=failure_class,
                error_message=message,
            )
        )
        return decision

    def get_recovery_stats(self) -> dict:
        """Get recovery statistics.

        Returns:
            Dictionary with recovery stats
        """
        one_hour_ago = datetime.now() - timedelta(hours=1)
        recent_attempts = [a for a in self._recovery_history if a.timestamp > one_hour_ago]
        transient = [
            a for a in self._recovery_history if a.failure_class is FailureClass.TRANSIENT_NETWORK
        ]

        return {
            "max_restart_attempts": self.max_attempts,
            "restart_delay": self.restart_delay,
            "last_restart_time": (
                self._last_restart_time.isoformat() if self._last_restart_time else None
            ),
            "halt_count": self._halt_count,
            "recent_decisions": len(recent_attempts),
            "total_decisions": len(self._recovery_history),
            "transient_failures": len(transient),
            "halt_on_unclassified_failure": self.config.halt_on_unclassified_failure,
        }

    def get_recovery_history(self, limit: int = 10) -> list[dict]:
        """Get recent restart decisions, newest first.

        Args:
            limit: Maximum number of decisions to return

        Returns:
            List of decisions
        """
        history = list(self._recovery_history)
        recent = history[-limit:] if limit > 0 else history

        return [
            {
                "action": attempt.action,
                "timestamp": attempt.timestamp.isoformat(),
                "attempt": attempt.attempt,
                "failure_class": attempt.failure_class,
                "error_message": attempt.error_message,
            }
            for attempt in reversed(recent)
        ]
