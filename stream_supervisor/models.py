"""Supervisor state and session types."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from asset_manager.catalog import ContentItem
from ffmpeg_manager.log_parser import FailureInfo
from ffmpeg_manager.process_manager import EncoderHandle
from monitoring.health_monitor import HealthState


class SupervisorState(str, Enum):
    """Stream supervisor states."""

    STOPPED = "stopped"
    STARTING = "starting"
    LIVE = "live"
    RESTARTING = "restarting"
    HALTED = "halted"


@dataclass(eq=False)
class StreamSession:
    """A live encode session and its health."""

    session_id: int
    content: ContentItem
    destination: str
    handle: EncoderHandle
    health: HealthState = field(default_factory=HealthState)
    started_at: datetime = field(default_factory=datetime.now)


class EventKind(str, Enum):
    """Events applied by the supervisor's event consumer."""

    ENCODER_FAILED = "encoder_failed"
    ENCODER_ENDED = "encoder_ended"
    HEALTH_CHECK_FAILED = "health_check_failed"


@dataclass
class SupervisorEvent:
    """Something happened to the session owning ``handle``."""

    kind: EventKind
    handle: EncoderHandle
    failure: Optional[FailureInfo] = None
