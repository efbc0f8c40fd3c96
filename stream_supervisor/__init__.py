"""
Stream Supervisor - supervised looping stream daemon.

Keeps one FFmpeg encode-and-publish session live at a time, rotating
content and restarting after failures until attempts are exhausted.
"""

from stream_supervisor.config import StreamConfig, SupervisorSettings
from stream_supervisor.models import (
    EventKind,
    StreamSession,
    SupervisorEvent,
    SupervisorState,
)
from stream_supervisor.supervisor import StreamSupervisor

__version__ = "1.0.0"
__all__ = [
    "StreamConfig",
    "SupervisorSettings",
    "EventKind",
    "StreamSession",
    "SupervisorEvent",
    "SupervisorState",
    "StreamSupervisor",
]
