"""Validation and issue carry-over for assignment runs."""

from clinicroster.validation.carryover import CarryoverTracker, IssueResolver
from clinicroster.validation.validator import ScheduleValidator, ValidationResult

__all__ = [
    "CarryoverTracker",
    "IssueResolver",
    "ScheduleValidator",
    "ValidationResult",
]
