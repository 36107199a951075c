"""
ShuttleBar - sshuttle VPN menu bar controller for macOS.

Launches sshuttle from the status bar, keeps it alive with a bounded
restart policy and reports what happens through desktop notifications.
"""

__version__ = "0.1.0"
__license__ = "MIT"

from . import config, logging_config

__all__ = ["config", "logging_config"]
