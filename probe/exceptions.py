"""Exception hierarchy for the probe engine."""


class ProbeError(Exception):
    """Base class for all probe errors."""


class PersistenceError(ProbeError):
    """Reading or writing the persisted history failed."""


class CycleCancelled(ProbeError):
    """A running probe cycle was stopped by the user."""
