"""Post-run review of on-hold leave requests."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from clinicroster.domain.models import (
    LeaveRecord,
    LeaveStatus,
    RunOutcome,
    SchedulingPeriod,
)
from clinicroster.domain.policies import DefaultLeaveGatePolicy, LeaveGatePolicy
from clinicroster.logger import get_logger

logger = get_logger("on_hold")


@dataclass
class OnHoldReviewResult:
    """Outcome of reviewing a period's on-hold leave.

    ``still_on_hold`` pairs each record with the reason it was not approved.
    """

    approved: list[LeaveRecord] = field(default_factory=list)
    still_on_hold: list = field(default_factory=list)


class OnHoldReviewer:
    """Approves on-hold leave that the finished schedule can absorb.

    A record is approved when its owner passes the fairness gate for the
    leave type and is not scheduled to work on that date. Approved leave
    becomes CONFIRMED and takes effect on the next run of the period.

    Example:
        >>> reviewer = OnHoldReviewer(store)
        >>> result = reviewer.review(period, outcome)
        >>> len(result.approved)
        2
    """

    def __init__(self, store, gate_policy: Optional[LeaveGatePolicy] = None):
        self.store = store
        self.gate_policy = gate_policy or DefaultLeaveGatePolicy()

    def review(self, period: SchedulingPeriod, outcome: RunOutcome) -> OnHoldReviewResult:
        window = period.window_dates()
        records = self.store.leave_between(
            period.clinic_id, window[0], window[-1], {LeaveStatus.ON_HOLD}
        )
        records.sort(key=lambda r: (r.created_at or datetime.min, r.date, r.staff_id))
        working = {(a.staff_id, a.date) for a in outcome.assignments if a.is_work}

        result = OnHoldReviewResult()
        for record in records:
            reason = self._refusal(record, outcome, working)
            if reason:
                result.still_on_hold.append((record, reason))
                continue
            self.store.set_leave_status(record, LeaveStatus.CONFIRMED)
            result.approved.append(record)

        logger.info(
            "On-hold review for %s: %d approved, %d still on hold",
            period.id,
            len(result.approved),
            len(result.still_on_hold),
        )
        return result

    def _refusal(self, record: LeaveRecord, outcome: RunOutcome, working: set) -> Optional[str]:
        score = outcome.get_fairness(record.staff_id)
        if score is None:
            return "Staff member is not active in this period"
        reason = self.gate_policy.rejection_reason(score.overall_score, record.leave_type)
        if reason:
            return reason
        if (record.staff_id, record.date) in working:
            return "Scheduled to work on this date"
        return None
