"""
Logging setup for the CLI.

Log lines go to stderr through rich's handler so they render cleanly next
to the dashboard.  The level comes from ``SPEEDLENS_LOG_LEVEL`` (DEBUG,
INFO, WARNING, ERROR, CRITICAL; default WARNING)::

    $ SPEEDLENS_LOG_LEVEL=DEBUG python speedlens.py
"""
from __future__ import annotations

import logging
import os
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

ENV_VAR = "SPEEDLENS_LOG_LEVEL"
DEFAULT_LEVEL = "WARNING"

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def resolve_level(name: Optional[str] = None) -> int:
    """Map a level name to its logging constant; unknown names give WARNING."""
    if name is None:
        name = os.environ.get(ENV_VAR, DEFAULT_LEVEL)
    return _LEVELS.get(name.strip().upper(), logging.WARNING)


def configure_logging(level: Optional[str] = None) -> int:
    """Configure the root logger once per process.  Returns the level used."""
    log_level = resolve_level(level)
    logging.basicConfig(
        level=log_level,
        format="%(name)s: %(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )
    logging.getLogger(__name__).info(
        "Logging configured: level=%s", logging.getLevelName(log_level)
    )
    return log_level
