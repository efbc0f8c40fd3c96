"""Configuration for monitoring module."""

import os
from dataclasses import dataclass


@dataclass
class MonitoringConfig:
    """Configuration for health checks and restart policy."""

    # Health checks
    health_check_interval: float = 30.0  # seconds

    # Restart policy
    max_restart_attempts: int = 5
    restart_delay: float = 10.0  # seconds between a failure and the next attempt
    halt_on_unclassified_failure: bool = False
    recovery_history_size: int = 50

    @classmethod
    def from_env(cls) -> "MonitoringConfig":
        """Create configuration from environment variables.

        Returns:
            MonitoringConfig instance
        """
        return cls(
            health_check_interval=float(os.getenv("HEALTH_CHECK_INTERVAL", "30.0")),
            max_restart_attempts=int(os.getenv("MAX_RESTART_ATTEMPTS", "5")),
            restart_delay=float(os.getenv("RESTART_DELAY", "10.0")),
            halt_on_unclassified_failure=(
                os.getenv("HALT_ON_UNCLASSIFIED_FAILURE", "false").lower() == "true"
            ),
            recovery_history_size=int(os.getenv("RECOVERY_HISTORY_SIZE", "50")),
        )

    def validate(self) -> None:
        """Validate configuration values.

        Raises:
            ValueError: If configuration is invalid
        """
        if self.health_check_interval <= 0:
            raise ValueError(f"Invalid health_check_interval: {self.health_check_interval}")

        if self.max_restart_attempts < 0:
            raise ValueError(f"Invalid max_restart_attempts: {self.max_restart_attempts}")

        if self.restart_delay < 0:
            raise ValueError(f"Invalid restart_delay: {self.restart_delay}")

        if self.recovery_history_size < 1:
            raise ValueError(f"Invalid recovery_history_size: {self.recovery_history_size}")


def get_config() -> MonitoringConfig:
    """Get monitoring configuration from environment.

    Returns:
        MonitoringConfig instance
    """
    config = MonitoringConfig.from_env()
    config.validate()
    return config
