"""
Events emitted by :class:`probe.engine.ProbeEngine` while a cycle runs.

Listeners are plain callables taking one event.  Progress events are
advisory; nothing in the result depends on them.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Union

INFO = "info"
SUCCESS = "success"
WARNING = "warning"
ERROR = "error"


@dataclass(frozen=True)
class ProgressEvent:
    """Phase name plus percent-complete for progress bars."""

    phase: str
    percent: float
    message: str = ""


@dataclass(frozen=True)
class Notification:
    """A short, user-visible message."""

    message: str
    level: str = INFO


Event = Union[ProgressEvent, Notification]
Listener = Callable[[Event], None]
