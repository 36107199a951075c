"""
Configuration management for ShuttleBar.

This module holds the application constants and handles loading and saving
the TOML settings file that stores the retry policy and the default tunnel
target.
"""

import copy
import logging
from pathlib import Path

import toml

# --- App Constants ---
APP_NAME = "shuttlebar"
APP_TITLE = "sshuttle"
LOG_DIR = Path.home() / "Library" / "Logs"
LOG_FILE = LOG_DIR / "shuttlebar.log"

# --- Logging Constants ---
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# --- Supervisor Constants ---
DEFAULT_MAX_RETRIES = 5
DEFAULT_RETRY_DELAY = 5.0  # seconds, constant between attempts
DEFAULT_TERMINATION_GRACE = 5.0  # seconds before SIGTERM escalates to SIGKILL
DEFAULT_DEBUG = False

# --- sshuttle Constants ---
SSHUTTLE_EXECUTABLE = "sshuttle"
SSHUTTLE_COMMON_PATHS = [
    "/opt/homebrew/bin/sshuttle",
    "/usr/local/bin/sshuttle",
    "/usr/bin/sshuttle",
]
COMMAND_TIMEOUT = 10  # seconds

# --- Menu Bar Titles ---
TITLE_RUNNING = f"🟢 {APP_TITLE}"
TITLE_IDLE = f"⚪️ {APP_TITLE}"

# Placeholder target used until the user configures a real one
DEFAULT_TARGET_CONFIG = {
    "remote": "user@example.com",
    "subnet": "0.0.0.0/0",
    "dns": True,
    "latency_control": False,
    "auto_hosts": True,
}

# Default configuration for the application
DEFAULT_CONFIG = {
    "settings": {
        "debug": DEFAULT_DEBUG,
        "sshuttle_path": "",  # Empty means auto-detect
        "max_retries": DEFAULT_MAX_RETRIES,
        "retry_delay": DEFAULT_RETRY_DELAY,
        "termination_grace": DEFAULT_TERMINATION_GRACE,
    },
    "target": DEFAULT_TARGET_CONFIG.copy(),
}


def get_config_path():
    """Gets the path to the configuration file."""
    return Path.home() / ".config" / APP_NAME / "config.toml"


def _merge_defaults(loaded):
    """Fill in any section or key missing from a loaded configuration."""
    merged = copy.deepcopy(DEFAULT_CONFIG)
    for section, values in loaded.items():
        if isinstance(values, dict) and isinstance(merged.get(section), dict):
            merged[section].update(values)
        else:
            merged[section] = values
    return merged


def load_config():
    """Loads the configuration from the TOML file."""
    path = get_config_path()
    if not path.exists():
        # Create a default config if one doesn't exist
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            toml.dump(DEFAULT_CONFIG, f)
        return copy.deepcopy(DEFAULT_CONFIG)

    with open(path, "r") as f:
        loaded = toml.load(f)

    # stdlib logging here so loading config never initializes the app loggers
    logger = logging.getLogger(__name__)
    logger.debug(f"Loaded configuration sections: {list(loaded.keys())}")
    return _merge_defaults(loaded)


def save_config(cfg):
    """Writes the configuration back to the TOML file."""
    path = get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        toml.dump(cfg, f)
    return path


def settings_from_config(cfg):
    """Extract the supervisor settings from a configuration dict."""
    settings = cfg.get("settings", {})
    return {
        "sshuttle_path": settings.get("sshuttle_path", "") or "",
        "max_retries": int(settings.get("max_retries", DEFAULT_MAX_RETRIES)),
        "retry_delay": float(settings.get("retry_delay", DEFAULT_RETRY_DELAY)),
        "termination_grace": float(
            settings.get("termination_grace", DEFAULT_TERMINATION_GRACE)
        ),
    }


def target_from_config(cfg):
    """Build a TunnelTarget from the [target] section of a configuration dict."""
    from .tunnel.target import TunnelTarget

    values = {**DEFAULT_TARGET_CONFIG, **cfg.get("target", {})}
    return TunnelTarget(
        remote=values["remote"],
        subnet=values["subnet"],
        dns=bool(values["dns"]),
        latency_control=bool(values["latency_control"]),
        auto_hosts=bool(values["auto_hosts"]),
    )


def target_to_config(target):
    """Serialize a TunnelTarget into a [target] section dict."""
    return {
        "remote": target.remote,
        "subnet": target.subnet,
        "dns": target.dns,
        "latency_control": target.latency_control,
        "auto_hosts": target.auto_hosts,
    }


if __name__ == "__main__":
    config = load_config()
    import json

    print(json.dumps(config, indent=4))
