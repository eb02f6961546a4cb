"""
User settings support.

Reads/writes ``~/.speedlens/settings.json``, kept separate from the
history file.

Supported keys::

    ping_count = 10              # latency samples per cycle
    endpoints = [...]            # HEAD targets, used in rotation
    download_url = "..."         # accepts ?bytes=N
    upload_url = "..."           # null -> simulate the upload
    request_timeout = 10.0       # per-request timeout in seconds
    auto_test_interval = 1800    # seconds between repeated runs
    speed_unit = "Mbps"          # Mbps | Kbps | Gbps
    notifications = true
    servers = [{"name": ..., "url": ...}, ...]   # multi-server targets
"""
from __future__ import annotations

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Tuple

from .constants import (
    AUTO_TEST_INTERVAL,
    DEFAULT_PING_COUNT,
    DEFAULT_TIMEOUT,
    DOWNLOAD_URL,
    MULTI_SERVERS,
    PING_ENDPOINTS,
    UPLOAD_URL,
)
from .exceptions import PersistenceError

logger = logging.getLogger(__name__)

_CONFIG_DIR = os.path.join(Path.home(), ".speedlens")
_CONFIG_FILE = "settings.json"

SPEED_UNITS = ("Mbps", "Kbps", "Gbps")


def _config_path() -> str:
    return os.path.join(_CONFIG_DIR, _CONFIG_FILE)


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DEFAULTS: Dict[str, Any] = {
    "ping_count": DEFAULT_PING_COUNT,
    "endpoints": list(PING_ENDPOINTS),
    "download_url": DOWNLOAD_URL,
    "upload_url": UPLOAD_URL,
    "request_timeout": DEFAULT_TIMEOUT,
    "auto_test_interval": AUTO_TEST_INTERVAL,
    "speed_unit": "Mbps",
    "notifications": True,
    "servers": [dict(s) for s in MULTI_SERVERS],
}


# ---------------------------------------------------------------------------
# Read / Write
# ---------------------------------------------------------------------------

def load_config() -> Dict[str, Any]:
    """Load settings from disk, returning defaults for missing keys."""
    path = _config_path()
    config = copy.deepcopy(DEFAULTS)

    if not os.path.isfile(path):
        return config

    try:
        with open(path, encoding="utf-8") as fh:
            user = json.load(fh)
        if isinstance(user, dict):
            config.update(user)
    except (json.JSONDecodeError, IOError) as exc:
        logger.warning("Ignoring unreadable settings file %s: %s", path, exc)

    if config.get("speed_unit") not in SPEED_UNITS:
        config["speed_unit"] = DEFAULTS["speed_unit"]

    return config


def save_config(config: Dict[str, Any]) -> str:
    """Write *config* to disk atomically.  Returns the file path."""
    path = _config_path()
    tmp = f"{path}.tmp"

    try:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(tmp, "w", encoding="utf-8") as fh:
            json.dump(config, fh, indent=2, ensure_ascii=False)
        os.replace(tmp, path)
    except OSError as exc:
        raise PersistenceError(f"Failed to save settings to {path}: {exc}") from exc

    return path


def get_config_value(key: str) -> Any:
    """Get a single settings value."""
    if key not in DEFAULTS:
        raise ValueError(f"Unknown setting: {key!r}")
    return load_config()[key]


def set_config_value(key: str, value: Any) -> str:
    """Set a single settings value and persist.  Returns file path."""
    if key not in DEFAULTS:
        raise ValueError(f"Unknown setting: {key!r}")
    if key == "speed_unit" and value not in SPEED_UNITS:
        raise ValueError(f"speed_unit must be one of {', '.join(SPEED_UNITS)}")
    config = load_config()
    config[key] = value
    return save_config(config)


def parse_assignment(text: str) -> Tuple[str, Any]:
    """
    Split ``KEY=VALUE`` from the command line.

    VALUE is read as JSON when it parses (numbers, booleans, ``null``,
    lists) and kept as a plain string otherwise.
    """
    key, sep, raw = text.partition("=")
    key = key.strip()
    if not sep or not key:
        raise ValueError(f"Expected KEY=VALUE, got {text!r}")
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        value = raw
    return key, value


def config_path() -> str:
    """Return the settings file path (for display purposes)."""
    return _config_path()
