"""
Locating and inspecting the sshuttle executable.
"""

import os
import shutil
from pathlib import Path

from .. import config
from ..logging_config import get_logger
from ..utils import run_command

logger = get_logger(__name__)


def _is_executable(path):
    return Path(path).is_file() and os.access(path, os.X_OK)


def find_sshuttle_binary(configured_path=""):
    """
    Find the sshuttle executable.

    A configured path wins when it is set; otherwise the common Homebrew and
    system install locations are checked before falling back to PATH.
    """
    if configured_path:
        path = os.path.expanduser(configured_path)
        if _is_executable(path):
            logger.debug(f"Using configured sshuttle binary: {path}")
            return path
        logger.warning(f"Configured sshuttle path is not executable: {path}")
        return None

    for path in config.SSHUTTLE_COMMON_PATHS:
        if _is_executable(path):
            logger.debug(f"Found sshuttle binary: {path}")
            return path

    path = shutil.which(config.SSHUTTLE_EXECUTABLE)
    if path:
        logger.debug(f"Found sshuttle on PATH: {path}")
        return path

    logger.debug("No sshuttle binary found")
    return None


def get_sshuttle_version(binary):
    """Return the version string reported by sshuttle, or None."""
    if not binary:
        return None
    output = run_command([binary, "--version"], capture=True)
    if not output:
        return None
    return output.splitlines()[0].strip()


def resolve_program_path(configured_path=""):
    """
    Path handed to the supervisor.

    When nothing can be found the bare executable name is returned so the
    launch fails with a spawn error the user gets notified about.
    """
    found = find_sshuttle_binary(configured_path)
    if found:
        return found
    if configured_path:
        return os.path.expanduser(configured_path)
    return config.SSHUTTLE_EXECUTABLE
