"""
Test history persistence.

Results are stored newest-first as a single JSON array in
``~/.speedlens/history.json``.  Every write replaces the whole snapshot via
write-tmp-then-rename, so a crash mid-write leaves the previous snapshot
intact.
"""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Iterator, List, Optional, Tuple

from .constants import HISTORY_CAPACITY
from .exceptions import PersistenceError
from .models import ProbeResult

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

_DEFAULT_DIR = os.path.join(Path.home(), ".speedlens")
_DEFAULT_FILE = "history.json"


def default_history_path() -> str:
    return os.path.join(_DEFAULT_DIR, _DEFAULT_FILE)


# ---------------------------------------------------------------------------
# Storage backend
# ---------------------------------------------------------------------------

class JsonFileStorage:
    """One JSON array in one file."""

    def __init__(self, path: Optional[str] = None) -> None:
        self.path = path or default_history_path()

    def read(self) -> List[Any]:
        if not os.path.isfile(self.path):
            return []
        try:
            with open(self.path, encoding="utf-8") as fh:
                data = json.load(fh)
        except (json.JSONDecodeError, OSError) as exc:
            raise PersistenceError(f"Failed to read history from {self.path}: {exc}") from exc
        if not isinstance(data, list):
            raise PersistenceError(f"History file {self.path} does not hold a list")
        return data

    def write(self, entries: List[Any]) -> None:
        dir_path = os.path.dirname(self.path) or "."
        tmp = os.path.join(dir_path, f".tmp_{os.path.basename(self.path)}")

        try:
            os.makedirs(dir_path, exist_ok=True)
            with open(tmp, "w", encoding="utf-8") as fh:
                json.dump(entries, fh, indent=2, ensure_ascii=False)
            os.replace(tmp, self.path)
        except OSError as exc:
            try:
                os.unlink(tmp)
            except OSError:
                pass
            raise PersistenceError(f"Failed to save history to {self.path}: {exc}") from exc


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

class HistoryStore:
    """
    Capacity-bounded, newest-first collection of :class:`ProbeResult`.

    Mutations update memory first, then persist.  If persisting raises
    :class:`PersistenceError` the in-memory state is still the authority for
    the rest of the session.
    """

    def __init__(
        self,
        storage: Optional[JsonFileStorage] = None,
        capacity: int = HISTORY_CAPACITY,
    ) -> None:
        self.storage = storage or JsonFileStorage()
        self.capacity = capacity
        self._entries: List[ProbeResult] = []

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ProbeResult]:
        return iter(tuple(self._entries))

    # -- Read ---------------------------------------------------------------

    def load(self) -> int:
        """Replace memory with the persisted snapshot.  Returns entry count."""
        raw = self.storage.read()
        entries: List[ProbeResult] = []
        for item in raw:
            try:
                entries.append(ProbeResult.from_dict(item))
            except (AttributeError, KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping corrupt history entry: %s", exc)
        self._entries = entries[: self.capacity]
        return len(self._entries)

    def all(self) -> Tuple[ProbeResult, ...]:
        return tuple(self._entries)

    def recent(self, n: int) -> Tuple[ProbeResult, ...]:
        return tuple(self._entries[:n])

    # -- Write --------------------------------------------------------------

    def append(self, result: ProbeResult) -> None:
        """Prepend *result*, drop the oldest beyond capacity, persist."""
        self._entries.insert(0, result)
        del self._entries[self.capacity:]
        self._persist()

    def clear(self) -> None:
        self._entries = []
        self._persist()

    def _persist(self) -> None:
        self.storage.write([r.to_dict() for r in self._entries])
