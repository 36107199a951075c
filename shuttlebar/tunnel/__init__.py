"""
Tunnel supervision for ShuttleBar.

This package launches and supervises the sshuttle process:
- target: the remote endpoint and launch arguments
- supervisor: lifecycle, output forwarding and automatic restarts
- events: notices and the listener interface
- errors: error taxonomy attached to notices
"""

from .errors import (
    SupervisorError,
    SpawnError,
    UnexpectedExit,
    RetryExhausted,
    TerminationTimeout,
)
from .events import (
    ControlResult,
    Notice,
    NoticeKind,
    SupervisorListener,
    SupervisorState,
)
from .supervisor import TunnelSupervisor
from .target import TunnelTarget, build_command

__all__ = [
    "TunnelSupervisor",
    "TunnelTarget",
    "build_command",
    "ControlResult",
    "Notice",
    "NoticeKind",
    "SupervisorListener",
    "SupervisorState",
    "SupervisorError",
    "SpawnError",
    "UnexpectedExit",
    "RetryExhausted",
    "TerminationTimeout",
]
