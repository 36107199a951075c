"""
External program integrations for ShuttleBar.
"""

from .sshuttle import find_sshuttle_binary, get_sshuttle_version

__all__ = ["find_sshuttle_binary", "get_sshuttle_version"]
