"""
Command execution utilities for ShuttleBar.

Short-lived helper commands (version checks, opening the log) go through
run_command. The long-running sshuttle process is owned by the tunnel
supervisor instead.
"""

import shlex
import subprocess

from .. import config
from ..logging_config import get_logger

logger = get_logger(__name__)


def run_command(command, capture=False, timeout=config.COMMAND_TIMEOUT):
    """
    Execute a command with error handling and logging.

    Args:
        command: Command to execute (list of strings)
        capture: If True, return command output; if False, return success status
        timeout: Seconds to wait before giving up on the command

    Returns:
        If capture=True: Command output string or None on error
        If capture=False: True on success, False on failure
    """
    logger.debug(f"Running command: {shlex.join(command)}")

    try:
        result = subprocess.run(
            command,
            check=False,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="ignore",
            timeout=timeout,
        )

        if result.returncode != 0:
            logger.debug(f"Command '{command}' failed with status {result.returncode}")
            if result.stderr:
                logger.debug(f"Stderr: {result.stderr.strip()}")

            return (
                ((result.stdout or "") + (result.stderr or "")).strip()
                if capture
                else False
            )

        return result.stdout.strip() if capture else True

    except FileNotFoundError:
        logger.error(f"Command not found: {command[0]}")
        return None if capture else False
    except subprocess.TimeoutExpired:
        logger.error(f"Command '{command}' timed out after {timeout}s")
        return None if capture else False
    except Exception as e:
        logger.error(f"Unexpected error running command '{command}': {e}")
        return None if capture else False
