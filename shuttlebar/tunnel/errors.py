"""
Error taxonomy for the tunnel supervisor.

These exceptions are never raised across the supervisor boundary. They are
attached to notices so the caller can present them.
"""


class SupervisorError(Exception):
    """Base class for supervisor errors."""


class SpawnError(SupervisorError):
    """The sshuttle program could not be launched."""

    def __init__(self, command, cause):
        self.command = list(command)
        self.cause = cause
        super().__init__(f"Failed to launch {self.command[0]}: {cause}")


class UnexpectedExit(SupervisorError):
    """The process terminated without a preceding stop request."""

    def __init__(self, pid, returncode):
        self.pid = pid
        self.returncode = returncode
        super().__init__(f"sshuttle (pid {pid}) exited unexpectedly with status {returncode}")


class RetryExhausted(SupervisorError):
    """Automatic restarts were abandoned after the retry budget ran out."""

    def __init__(self, attempts):
        self.attempts = attempts
        super().__init__(f"Gave up after {attempts} restart attempts")


class TerminationTimeout(SupervisorError):
    """The process ignored SIGTERM for the whole grace period and was killed."""

    def __init__(self, pid, grace):
        self.pid = pid
        self.grace = grace
        super().__init__(f"sshuttle (pid {pid}) did not exit within {grace:g}s, killed")
