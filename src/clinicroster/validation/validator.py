"""Validation of a finished assignment run.

Rechecks every schedule invariant against the final RunContext. Leave
conflicts and holiday WORK are repaired in place; everything else is
reported as an UnresolvedIssue.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from clinicroster.domain.models import (
    IssueSeverity,
    IssueType,
    UnresolvedIssue,
    week_start,
)
from clinicroster.logger import get_logger
from clinicroster.scheduling.context import RunContext
from clinicroster.scheduling.fairness import FairnessScoreEngine
from clinicroster.scheduling.priority_assigner import shortage_issue

logger = get_logger("validation")


@dataclass
class ValidationResult:
    """Result of validating a run."""

    is_valid: bool = True
    issues: list[UnresolvedIssue] = field(default_factory=list)
    repairs: list[str] = field(default_factory=list)

    def add_issue(self, issue: UnresolvedIssue) -> None:
        """Add an issue; a CRITICAL one marks the result invalid."""
        self.issues.append(issue)
        if issue.severity is IssueSeverity.CRITICAL:
            self.is_valid = False

    def add_repair(self, note: str) -> None:
        self.repairs.append(note)

    def of_type(self, issue_type: IssueType) -> list[UnresolvedIssue]:
        return [i for i in self.issues if i.issue_type is issue_type]


class ScheduleValidator:
    """Validates a run against all invariants.

    Example:
        >>> validator = ScheduleValidator(engine)
        >>> result = validator.validate(ctx)
        >>> for issue in result.issues:
        ...     print(issue)
    """

    def __init__(self, engine: FairnessScoreEngine):
        self.engine = engine

    def validate(self, ctx: RunContext) -> ValidationResult:
        result = ValidationResult()
        self.repair_leave_conflicts(ctx, result)
        self.repair_holiday_work(ctx, result)
        self.check_headcount(ctx, result)
        self.check_quota(ctx, result)
        self.check_fairness(ctx, result)
        for note in result.repairs:
            logger.warning("Repaired: %s", note)
        return result

    def repair_leave_conflicts(self, ctx: RunContext, result: ValidationResult) -> None:
        for day in ctx.dates:
            for row in ctx.rows_on(day):
                if row.is_work and ctx.leave_record(row.staff_id, day) is not None:
                    ctx.restore_leave(row.staff_id, day)
                    result.add_repair(
                        f"{row.staff_id} on {day.isoformat()}: WORK replaced by confirmed leave"
                    )

    def repair_holiday_work(self, ctx: RunContext, result: ValidationResult) -> None:
        for day in ctx.dates:
            if not ctx.is_holiday(day):
                continue
            for row in ctx.rows_on(day):
                if row.is_work:
                    ctx.release_work(row.staff_id, day)
                    result.add_repair(
                        f"{row.staff_id} on {day.isoformat()}: WORK on holiday set OFF"
                    )

    def check_headcount(self, ctx: RunContext, result: ValidationResult) -> None:
        """Compare per date/department/category headcount with requirements."""
        for day in ctx.dates:
            if ctx.is_holiday(day):
                continue
            requirement_day = ctx.requirements.get(day)
            categories = requirement_day.categories if requirement_day else []
            priority = ctx.classification(day).effective_tag(self.engine.enabled).priority

            for requirement in categories:
                filled = len(ctx.assigned(day, requirement.department, requirement.category))
                if filled < requirement.count:
                    must_fill = filled < requirement.min_required
                    result.add_issue(
                        shortage_issue(
                            ctx,
                            day,
                            requirement,
                            requirement.count - filled,
                            must_fill,
                            priority,
                        )
                    )
                elif filled > requirement.count:
                    result.add_issue(
                        self._excess(
                            ctx,
                            day,
                            requirement.department,
                            requirement.category,
                            filled - requirement.count,
                            requirement.count,
                        )
                    )

            uncovered = defaultdict(int)
            for row in ctx.rows_on(day):
                if not row.is_work:
                    continue
                covered = any(
                    r.category == row.category
                    and r.department in (None, row.department)
                    for r in categories
                )
                if not covered:
                    uncovered[(row.department, row.category)] += 1
            for (department, category), extra in sorted(uncovered.items()):
                result.add_issue(self._excess(ctx, day, department, category, extra, 0))

    def _excess(
        self,
        ctx: RunContext,
        day: date,
        department: Optional[str],
        category: str,
        extra: int,
        required: int,
    ) -> UnresolvedIssue:
        return UnresolvedIssue(
            issue_type=IssueType.EXCESS,
            severity=IssueSeverity.WARNING,
            message=(
                f"{day.isoformat()} {department or 'any department'}/{category}: "
                f"{extra} more than the {required} required"
            ),
            department=department,
            category=category,
            date=day,
            week_start=week_start(day),
            period_id=ctx.period.id,
        )

    def check_quota(self, ctx: RunContext, result: ValidationResult) -> None:
        """Per staff/week WORK+ANNUAL against quota, skipping holiday weeks."""
        for monday in ctx.weeks:
            if monday in ctx.holiday_weeks:
                continue
            for sid, member in ctx.staff.items():
                gap = ctx.quota_gap(sid, monday)
                if gap > 0:
                    result.add_issue(
                        UnresolvedIssue(
                            issue_type=IssueType.STAFF_SHORTAGE,
                            severity=IssueSeverity.CRITICAL,
                            message=(
                                f"{member.name} has {ctx.quota_used(sid, monday)} of "
                                f"{ctx.quota(sid)} days in week of {monday.isoformat()}"
                            ),
                            staff_id=sid,
                            department=member.department,
                            category=member.category,
                            week_start=monday,
                            suggestion="Assign an extra shift or review leave",
                            period_id=ctx.period.id,
                        )
                    )
                elif gap < 0:
                    result.add_issue(
                        UnresolvedIssue(
                            issue_type=IssueType.EXCESS,
                            severity=IssueSeverity.INFO,
                            message=(
                                f"{member.name} is {-gap} day(s) over quota in week of "
                                f"{monday.isoformat()}"
                            ),
                            staff_id=sid,
                            department=member.department,
                            category=member.category,
                            week_start=monday,
                            period_id=ctx.period.id,
                        )
                    )

    def check_fairness(self, ctx: RunContext, result: ValidationResult) -> None:
        """Flag cohorts whose deviation spread exceeds the tolerance."""
        tolerance = self.engine.settings.tolerance
        for (department, category) in sorted(ctx.cohorts()):
            for dimension in sorted(self.engine.enabled, key=lambda d: d.value):
                spread = self.engine.cohort_spread(ctx, department, category, dimension)
                if spread > tolerance:
                    result.add_issue(
                        UnresolvedIssue(
                            issue_type=IssueType.UNFAIR,
                            severity=IssueSeverity.INFO,
                            message=(
                                f"{department}/{category} {dimension.value} spread "
                                f"{spread:.1f} exceeds {tolerance:g}"
                            ),
                            department=department,
                            category=category,
                            suggestion="Rebalance in the next period",
                            period_id=ctx.period.id,
                        )
                    )
