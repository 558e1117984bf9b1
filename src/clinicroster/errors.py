"""Exceptions raised by the roster engine.

Per-day and per-staff problems are never raised; they are reported as
unresolved issues on the run outcome. Only conditions that must abort a run
before anything is written are exceptions.
"""


class RosterError(Exception):
    """Base class for all roster engine errors."""


class ConfigurationError(RosterError, ValueError):
    """Requirement or ratio configuration is missing or inconsistent."""


class PeriodNotFoundError(RosterError, LookupError):
    """The requested scheduling period does not exist."""

    def __init__(self, period_id: str):
        super().__init__(f"Scheduling period not found: {period_id}")
        self.period_id = period_id


class PeriodLockedError(RosterError):
    """Another assignment run holds the period."""

    def __init__(self, period_id: str):
        super().__init__(f"Scheduling period {period_id} is already being assigned")
        self.period_id = period_id


class InvalidStateTransition(RosterError):
    """A run tried to move between states out of order."""

    def __init__(self, current, requested):
        super().__init__(
            f"Cannot move run from {current.value} to {requested.value}"
        )
        self.current = current
        self.requested = requested
