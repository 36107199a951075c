"""
Supervision of the sshuttle process.

TunnelSupervisor launches sshuttle for the current TunnelTarget, forwards its
output, and restarts it after an unexpected exit with a constant delay until
the retry budget runs out. Every state change runs on a single worker thread;
caller requests, process exits and timer expiries are all posted to it as
messages, so a stop can never race with a pending restart.
"""

import os
import shlex
import signal
import subprocess
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from threading import Event, Thread, Timer
from typing import Callable, List, Optional

from .. import config
from ..logging_config import get_logger
from .errors import RetryExhausted, SpawnError, TerminationTimeout, UnexpectedExit
from .events import ControlResult, Notice, NoticeKind, SupervisorListener, SupervisorState
from .target import TunnelTarget, build_command

logger = get_logger(__name__)


class RunningProcess:
    """Handle to a live sshuttle process, owned by the supervisor."""

    def __init__(self, process, command: List[str]):
        self.process = process
        self.pid = process.pid
        self.command = command
        self.started_at = time.monotonic()
        self.pgid = _own_process_group(process.pid)
        self.reader: Optional[Thread] = None
        self.waiter: Optional[Thread] = None
        self.kill_timer = None

    def uptime(self) -> float:
        return time.monotonic() - self.started_at


def _own_process_group(pid) -> Optional[int]:
    """Return pid if it leads its own process group, else None."""
    try:
        pgid = os.getpgid(pid)
    except OSError:
        return None
    return pgid if pgid == pid else None


class TunnelSupervisor:
    """Owns the lifecycle of exactly one sshuttle process."""

    def __init__(
        self,
        program_path: str,
        target: TunnelTarget,
        listener: Optional[SupervisorListener] = None,
        max_retries: int = config.DEFAULT_MAX_RETRIES,
        retry_delay: float = config.DEFAULT_RETRY_DELAY,
        termination_grace: float = config.DEFAULT_TERMINATION_GRACE,
        spawner: Callable = subprocess.Popen,
        timer_factory: Callable = Timer,
    ):
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")

        self._program_path = program_path
        self._target = target
        self._listener = listener or SupervisorListener()
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self._termination_grace = termination_grace
        self._spawner = spawner
        self._timer_factory = timer_factory

        # Everything below is only touched on the worker thread
        self._state = SupervisorState.IDLE
        self._process: Optional[RunningProcess] = None
        self._attempts = 0
        self._user_stopping = False
        self._retry_timer = None
        self._retry_token = 0

        self._idle = Event()
        self._idle.set()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="shuttlebar-supervisor")

    # --- Read-only snapshots ---

    @property
    def state(self) -> SupervisorState:
        return self._state

    @property
    def running(self) -> bool:
        return self._state is SupervisorState.RUNNING

    @property
    def target(self) -> TunnelTarget:
        return self._target

    @property
    def attempts(self) -> int:
        return self._attempts

    @property
    def pid(self) -> Optional[int]:
        handle = self._process
        return handle.pid if handle else None

    # --- Control interface ---

    def start(self) -> Future:
        """Launch sshuttle unless it is already running."""
        return self._submit(self._start)

    def stop(self) -> Future:
        """Stop sshuttle and cancel any pending automatic restart."""
        return self._submit(self._stop)

    def reconfigure(self, target: TunnelTarget) -> Future:
        """Use a new target for the next launch. A live process is not touched."""
        if not isinstance(target, TunnelTarget):
            raise TypeError(f"Expected TunnelTarget, got {type(target).__name__}")
        return self._submit(self._reconfigure, target)

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until no process is held. Returns False on timeout."""
        return self._idle.wait(timeout)

    def shutdown(self, timeout: Optional[float] = None) -> None:
        """
        Stop the tunnel, wait for it to exit and stop the worker thread.

        Never raises. Calling it again, or calling start()/stop() afterwards,
        yields ControlResult.SHUT_DOWN.
        """
        try:
            result = self.stop().result(timeout)
        except FutureTimeoutError:
            logger.warning("Supervisor worker did not respond at shutdown")
            self._executor.shutdown(wait=False)
            return
        if result is ControlResult.SHUT_DOWN:
            logger.debug("Supervisor already shut down")
            return
        if not self._idle.wait(timeout):
            logger.warning("sshuttle still running at shutdown")
        self._executor.shutdown(wait=True)
        logger.debug("Supervisor shut down")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.shutdown(timeout=self._termination_grace + 1)

    # --- Worker thread plumbing ---

    def _submit(self, fn, *args) -> Future:
        try:
            return self._executor.submit(self._guarded, fn, *args)
        except RuntimeError:
            logger.debug(f"Supervisor shut down, rejecting {fn.__name__}")
            rejected: Future = Future()
            rejected.set_result(ControlResult.SHUT_DOWN)
            return rejected

    def _post(self, fn, *args) -> None:
        """Deliver an internal event from a waiter thread or timer."""
        try:
            self._executor.submit(self._guarded, fn, *args)
        except RuntimeError:
            logger.debug(f"Supervisor shut down, dropping {fn.__name__}")

    def _guarded(self, fn, *args):
        try:
            return fn(*args)
        except Exception:
            logger.exception(f"Supervisor error in {fn.__name__}")
            return None

    def _emit_state(self, running: bool) -> None:
        try:
            self._listener.on_state_changed(running)
        except Exception:
            logger.exception("State listener failed")

    def _notify(self, notice: Notice) -> None:
        try:
            self._listener.on_notice(notice)
        except Exception:
            logger.exception("Notice listener failed")

    def _deliver_line(self, line: str) -> None:
        try:
            self._listener.on_output_line(line)
        except Exception:
            logger.exception("Output listener failed")

    # --- Worker thread handlers ---

    def _start(self) -> ControlResult:
        if self._state is not SupervisorState.IDLE:
            logger.info("sshuttle is already running.")
            return ControlResult.ALREADY_RUNNING

        self._user_stopping = False
        self._cancel_retry()
        return self._launch(reset_attempts=True)

    def _launch(self, reset_attempts: bool) -> ControlResult:
        command = build_command(self._program_path, self._target)
        logger.info(f"Attempting to start sshuttle: {shlex.join(command)}")

        try:
            process = self._spawner(
                command,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                encoding="utf-8",
                errors="replace",
                bufsize=1,
                start_new_session=True,
            )
        except (OSError, ValueError, subprocess.SubprocessError) as e:
            error = SpawnError(command, e)
            logger.error(f"Failed to start sshuttle: {e}")
            self._notify(
                Notice(NoticeKind.SPAWN_FAILED, f"Failed to start VPN: {e}", error=error)
            )
            return ControlResult.SPAWN_FAILED

        handle = RunningProcess(process, command)
        self._process = handle
        self._state = SupervisorState.RUNNING
        self._idle.clear()
        if reset_attempts:
            self._attempts = 0

        handle.reader = Thread(
            target=self._read_output,
            args=(handle,),
            name=f"sshuttle-reader-{handle.pid}",
            daemon=True,
        )
        handle.reader.start()

        # ssh and the firewall helper inherit stdout, so EOF can come long
        # after sshuttle itself exits; exits are detected separately
        handle.waiter = Thread(
            target=self._wait_for_exit,
            args=(handle,),
            name=f"sshuttle-waiter-{handle.pid}",
            daemon=True,
        )
        handle.waiter.start()

        logger.info(f"sshuttle started (pid {handle.pid})")
        self._emit_state(True)
        self._notify(Notice(NoticeKind.STARTED, "VPN started successfully", attempt=self._attempts))
        return ControlResult.OK

    def _read_output(self, handle: RunningProcess) -> None:
        """Reader thread: forward output lines until the pipe closes."""
        stream = handle.process.stdout
        if stream is None:
            return
        try:
            for raw in stream:
                line = raw.rstrip("\r\n")
                if line.strip():
                    logger.debug(f"sshuttle: {line.strip()}")
                    self._deliver_line(line)
        except (OSError, ValueError) as e:
            logger.debug(f"Output stream of pid {handle.pid} closed: {e}")
        logger.debug(f"Output of pid {handle.pid} ended")

    def _wait_for_exit(self, handle: RunningProcess) -> None:
        """Waiter thread: reap the process and report its exit."""
        returncode = handle.process.wait()
        self._post(self._on_exit, handle, returncode)

    def _on_exit(self, handle: RunningProcess, returncode) -> None:
        if handle is not self._process:
            logger.debug(f"Ignoring exit of stale sshuttle process (pid {handle.pid})")
            return

        logger.info(
            f"sshuttle exited with status {returncode} after {handle.uptime():.1f}s"
        )
        self._release(handle)
        self._emit_state(False)

        if self._user_stopping:
            self._user_stopping = False
            self._attempts = 0
            logger.info("sshuttle stopped by user, no retry.")
            self._notify(Notice(NoticeKind.STOPPED_BY_USER, "VPN stopped"))
            return

        error = UnexpectedExit(handle.pid, returncode)
        if self._attempts < self._max_retries:
            self._attempts += 1
            logger.warning(
                f"Retrying sshuttle in {self._retry_delay:g} seconds "
                f"(attempt {self._attempts} of {self._max_retries})..."
            )
            self._notify(
                Notice(
                    NoticeKind.RETRYING,
                    f"VPN dropped, retrying in {self._retry_delay:g}s "
                    f"(attempt {self._attempts} of {self._max_retries})",
                    attempt=self._attempts,
                    delay=self._retry_delay,
                    error=error,
                )
            )
            self._schedule_retry()
        else:
            exhausted = RetryExhausted(self._attempts)
            logger.error(f"sshuttle keeps exiting: {exhausted}")
            self._notify(
                Notice(
                    NoticeKind.GAVE_UP,
                    f"VPN gave up after {self._attempts} attempts",
                    attempt=self._attempts,
                    error=exhausted,
                )
            )

    def _schedule_retry(self) -> None:
        self._retry_token += 1
        timer = self._timer_factory(
            self._retry_delay, self._post, args=(self._retry_fired, self._retry_token)
        )
        timer.daemon = True
        timer.start()
        self._retry_timer = timer

    def _cancel_retry(self) -> bool:
        """Invalidate any pending restart. Returns True if one was pending."""
        pending = self._retry_timer is not None
        self._retry_token += 1
        if self._retry_timer is not None:
            self._retry_timer.cancel()
            self._retry_timer = None
        return pending

    def _retry_fired(self, token: int) -> None:
        if token != self._retry_token:
            logger.debug("Ignoring canceled restart")
            return
        self._retry_timer = None

        if self._user_stopping or self._state is not SupervisorState.IDLE:
            logger.info("Retry canceled due to stop")
            return

        self._launch(reset_attempts=False)

    def _stop(self) -> ControlResult:
        self._user_stopping = True
        retry_was_pending = self._cancel_retry()
        handle = self._process

        if handle is None:
            self._attempts = 0
            if retry_was_pending:
                logger.info("Pending sshuttle restart canceled")
                self._notify(Notice(NoticeKind.STOPPED_BY_USER, "VPN reconnect canceled"))
            else:
                logger.info("sshuttle is not running.")
            return ControlResult.NOT_RUNNING

        if self._state is SupervisorState.STOPPING:
            logger.debug("sshuttle is already stopping")
            return ControlResult.ALREADY_STOPPING

        self._state = SupervisorState.STOPPING
        self._attempts = 0
        logger.info(f"Stopping sshuttle (pid {handle.pid})")
        try:
            handle.process.terminate()
        except OSError as e:
            # Already gone; its exit event is on the way
            logger.debug(f"terminate() failed for pid {handle.pid}: {e}")

        handle.kill_timer = self._timer_factory(
            self._termination_grace, self._post, args=(self._termination_deadline, handle)
        )
        handle.kill_timer.daemon = True
        handle.kill_timer.start()
        return ControlResult.OK

    def _termination_deadline(self, handle: RunningProcess) -> None:
        if handle is not self._process:
            return

        error = TerminationTimeout(handle.pid, self._termination_grace)
        logger.error(str(error))
        try:
            handle.process.kill()
        except OSError as e:
            logger.debug(f"kill() failed for pid {handle.pid}: {e}")
        if handle.pgid is not None:
            try:
                os.killpg(handle.pgid, signal.SIGKILL)
            except OSError as e:
                logger.debug(f"killpg() failed for group {handle.pgid}: {e}")

        # The waiter thread reaps the process; its exit event will be stale
        self._release(handle)
        self._user_stopping = False
        self._emit_state(False)
        self._notify(Notice(NoticeKind.TERMINATION_TIMEOUT, str(error), error=error))
        self._notify(Notice(NoticeKind.STOPPED_BY_USER, "VPN stopped"))

    def _reconfigure(self, target: TunnelTarget) -> ControlResult:
        self._target = target
        if self._state is SupervisorState.IDLE:
            logger.info(f"Tunnel target set to {target}")
        else:
            logger.info(f"Tunnel target set to {target}, takes effect on next start")
        return ControlResult.OK

    def _release(self, handle: RunningProcess) -> None:
        if handle.kill_timer is not None:
            handle.kill_timer.cancel()
            handle.kill_timer = None
        self._process = None
        self._state = SupervisorState.IDLE
        self._idle.set()
