"""
Events the supervisor reports back to its caller.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class SupervisorState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPING = "stopping"


class NoticeKind(Enum):
    STARTED = "started"
    STOPPED_BY_USER = "stopped_by_user"
    SPAWN_FAILED = "spawn_failed"
    RETRYING = "retrying"
    GAVE_UP = "gave_up"
    TERMINATION_TIMEOUT = "termination_timeout"


class ControlResult(Enum):
    """Immediate outcome of a control call."""

    OK = "ok"
    ALREADY_RUNNING = "already_running"
    ALREADY_STOPPING = "already_stopping"
    NOT_RUNNING = "not_running"
    SPAWN_FAILED = "spawn_failed"
    SHUT_DOWN = "shut_down"


@dataclass(frozen=True)
class Notice:
    kind: NoticeKind
    message: str
    attempt: Optional[int] = None
    delay: Optional[float] = None
    error: Optional[Exception] = None


class SupervisorListener:
    """
    Receives supervisor events. Subclass and override what you need.

    ``on_state_changed`` and ``on_notice`` are called on the supervisor's
    worker thread; ``on_output_line`` is called on the process reader thread.
    Implementations must not block for long.
    """

    def on_state_changed(self, running: bool) -> None:
        pass

    def on_output_line(self, text: str) -> None:
        pass

    def on_notice(self, notice: Notice) -> None:
        pass
