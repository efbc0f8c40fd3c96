"""Monitoring module.

Provides interval health checks for the live session and the restart policy
applied to encoder failures.
"""

from .config import MonitoringConfig
from .health_monitor import HealthMonitor, HealthState, MonitorState
from .restart_policy import RecoveryAction, RestartDecision, RestartPolicy

__all__ = [
    "MonitoringConfig",
    "HealthMonitor",
    "HealthState",
    "MonitorState",
    "RecoveryAction",
    "RestartDecision",
    "RestartPolicy",
]

__version__ = "1.0.0"
