"""
Utility functions for ShuttleBar.
"""

from .commands import run_command

__all__ = ["run_command"]
