"""Issue resolution and carry-over between periods.

Critical issues get one more fallback attempt. Whatever remains is
classified as justified or not and tagged with the status the next period
should see.
"""

from datetime import date
from typing import Iterable, Optional

from clinicroster.domain.models import (
    CategoryRequirement,
    IssueSeverity,
    IssueStatus,
    IssueType,
    UnresolvedIssue,
)
from clinicroster.logger import get_logger
from clinicroster.scheduling.candidate_pool import CandidateSelector, native_pool
from clinicroster.scheduling.context import RunContext

logger = get_logger("carryover")


class IssueResolver:
    """Retries and classifies validation issues.

    Example:
        >>> resolver = IssueResolver(selector)
        >>> if resolver.retry(ctx, result.issues):
        ...     result = validator.validate(ctx)
        >>> final = resolver.classify(ctx, result.issues)
    """

    def __init__(self, selector: CandidateSelector):
        self.selector = selector

    def _requirement(
        self, ctx: RunContext, issue: UnresolvedIssue
    ) -> Optional[CategoryRequirement]:
        requirement_day = ctx.requirements.get(issue.date)
        if requirement_day is None:
            return None
        for requirement in requirement_day.categories:
            if (
                requirement.category == issue.category
                and requirement.department == issue.department
            ):
                return requirement
        return None

    def retry_shortage(self, ctx: RunContext, issue: UnresolvedIssue) -> bool:
        """Try once more to fill a short slot. Returns True when fully filled."""
        requirement = self._requirement(ctx, issue)
        if requirement is None or ctx.is_holiday(issue.date):
            return False
        filled = len(ctx.assigned(issue.date, requirement.department, requirement.category))
        missing = requirement.count - filled
        if missing <= 0:
            return True
        placed = self.selector.fill(ctx, issue.date, requirement, missing, allow_flexible=True)
        return placed >= missing

    def retry_staff_shortage(self, ctx: RunContext, issue: UnresolvedIssue) -> bool:
        """Give an under-quota staff member extra WORK in their native category."""
        sid = issue.staff_id
        monday = issue.week_start
        if sid not in ctx.staff or monday is None:
            return False
        while ctx.quota_gap(sid, monday) > 0:
            open_days = [
                day
                for day in ctx.dates_in_week(monday)
                if not ctx.is_holiday(day)
                and ctx.is_free(sid, day)
                and not ctx.is_excluded(sid, day)
            ]
            if not open_days:
                return False
            day = max(open_days, key=lambda d: (ctx.off_count(d), -d.toordinal()))
            ctx.assign_work(sid, day, ctx.staff[sid].category)
        return True

    def needs_retry(self, ctx: RunContext, issue: UnresolvedIssue) -> bool:
        if issue.severity is IssueSeverity.CRITICAL:
            return issue.issue_type in (IssueType.SHORTAGE, IssueType.STAFF_SHORTAGE)
        if issue.issue_type is IssueType.SHORTAGE:
            return not self.shortage_justified(ctx, issue)
        return False

    def retry(self, ctx: RunContext, issues: Iterable[UnresolvedIssue]) -> int:
        """Make one fallback attempt per retryable issue.

        Returns:
            Number of issues the retry fixed.
        """
        fixed = 0
        for issue in issues:
            if not self.needs_retry(ctx, issue):
                continue
            if issue.issue_type is IssueType.SHORTAGE:
                ok = self.retry_shortage(ctx, issue)
            else:
                ok = self.retry_staff_shortage(ctx, issue)
            if ok:
                fixed += 1
                logger.info("Retry fixed: %s", issue.message)
        return fixed

    def shortage_justified(self, ctx: RunContext, issue: UnresolvedIssue) -> bool:
        """A shortage is justified only when every eligible staff is at quota."""
        requirement = self._requirement(ctx, issue)
        if requirement is None:
            return True
        eligible = native_pool(ctx, issue.date, requirement, ignore_quota=True)
        return all(ctx.is_at_quota(sid, issue.date) for sid in eligible)

    def justify(self, ctx: RunContext, issue: UnresolvedIssue) -> tuple:
        """Return (justified, reason) for an issue."""
        if issue.issue_type is IssueType.SHORTAGE:
            if self.shortage_justified(ctx, issue):
                return True, "All eligible staff are at weekly quota"
            return False, "Eligible staff still have quota available"
        if issue.issue_type is IssueType.STAFF_SHORTAGE:
            if issue.staff_id and issue.week_start and ctx.has_leave_in_week(
                issue.staff_id, issue.week_start
            ):
                return True, "Confirmed leave in week"
            return False, "No open day was available"
        if issue.issue_type is IssueType.EXCESS:
            return True, "Deferred to next period"
        return True, "Fairness imbalance deferred to next period"

    def classify(
        self, ctx: RunContext, issues: Iterable[UnresolvedIssue]
    ) -> list[UnresolvedIssue]:
        """Mark each issue justified or not and set its carry status."""
        final = []
        for issue in issues:
            issue.justified, issue.justification = self.justify(ctx, issue)
            if issue.severity is IssueSeverity.CRITICAL:
                issue.status = IssueStatus.PENDING_NEXT_PERIOD
            else:
                issue.status = IssueStatus.CARRY_TO_NEXT_PERIOD
            final.append(issue)
        return sorted(
            final,
            key=lambda i: (
                i.severity.rank,
                i.date or i.week_start or date.min,
                i.issue_type.value,
                i.staff_id or "",
                i.category or "",
            ),
        )


def recurrence_key(issue: UnresolvedIssue) -> tuple:
    """Identity of a problem across periods, ignoring dates."""
    return (issue.issue_type, issue.staff_id, issue.department, issue.category)


class CarryoverTracker:
    """Links a period's issues with the previous period's open issues."""

    def reconcile(
        self,
        previous: Iterable[UnresolvedIssue],
        current: Iterable[UnresolvedIssue],
    ) -> list[UnresolvedIssue]:
        """Resolve previous issues that no longer occur.

        Recurring issues carry the previous count forward on the new issue.

        Returns:
            The previous issues with updated statuses.
        """
        current = list(current)
        current_keys = {}
        for issue in current:
            current_keys.setdefault(recurrence_key(issue), []).append(issue)

        updated = []
        for old in previous:
            matches = current_keys.get(recurrence_key(old))
            if matches:
                for issue in matches:
                    issue.carry_count = max(issue.carry_count, old.carry_count + 1)
            else:
                old.status = IssueStatus.RESOLVED
            updated.append(old)
        resolved = sum(1 for issue in updated if issue.status is IssueStatus.RESOLVED)
        if updated:
            logger.info("%d of %d carried issues resolved", resolved, len(updated))
        return updated
