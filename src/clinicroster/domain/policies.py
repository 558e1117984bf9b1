"""Policy definitions for roster rules.

This module contains configurable policies for weekly quotas and the
fairness gate on leave requests. Policies are kept separate from the
assignment engine to allow independent testing and easy modification.
"""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from clinicroster.domain.models import LeaveType, StaffMember


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up.

    Python's ``round`` uses banker's rounding, which would turn 2.5 into 2.
    """
    return int(math.floor(value + 0.5))


class QuotaPolicy(ABC):
    """Abstract base class for weekly workday quotas."""

    @abstractmethod
    def weekly_quota(self, staff: StaffMember) -> int:
        """Number of WORK plus annual-leave days owed per calendar week."""
        pass

    def off_target(self, staff: StaffMember, business_days: int) -> int:
        """Number of OFF rows expected in a week with ``business_days`` days."""
        return max(0, business_days - self.weekly_quota(staff))


class LeaveGatePolicy(ABC):
    """Abstract base class for fairness-gated leave approval."""

    @abstractmethod
    def can_apply(self, overall_score: float, leave_type: LeaveType) -> bool:
        """Check whether a staff member with this score may take the leave."""
        pass

    def rejection_reason(
        self, overall_score: float, leave_type: LeaveType
    ) -> Optional[str]:
        """Explain why the leave is refused, or None when it is allowed."""
        if self.can_apply(overall_score, leave_type):
            return None
        return (
            f"Fairness score {overall_score:.1f} is below the threshold "
            f"for {leave_type.value} leave"
        )


@dataclass
class DefaultQuotaPolicy(QuotaPolicy):
    """Quota taken from the contracted work type.

    Attributes:
        overrides: Optional per-staff quota overrides keyed by staff id.
    """

    overrides: Optional[dict] = None

    def weekly_quota(self, staff: StaffMember) -> int:
        if self.overrides and staff.id in self.overrides:
            return self.overrides[staff.id]
        return staff.work_type.days_per_week


@dataclass
class DefaultLeaveGatePolicy(LeaveGatePolicy):
    """Annual leave needs a score of 60, an OFF request needs 75."""

    annual_threshold: float = 60.0
    off_threshold: float = 75.0

    def can_apply(self, overall_score: float, leave_type: LeaveType) -> bool:
        if leave_type is LeaveType.ANNUAL:
            return overall_score >= self.annual_threshold
        return overall_score >= self.off_threshold
