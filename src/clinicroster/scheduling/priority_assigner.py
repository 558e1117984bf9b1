"""Phase 1: fill day requirements in priority order."""

from datetime import date

from clinicroster.domain.models import (
    CategoryRequirement,
    FillStrategy,
    IssueSeverity,
    IssueType,
    RunState,
    UnresolvedIssue,
    week_start,
)
from clinicroster.logger import get_logger
from clinicroster.scheduling.candidate_pool import CandidateSelector
from clinicroster.scheduling.context import RunContext

logger = get_logger("phase1")


def shortage_issue(
    ctx: RunContext,
    day: date,
    requirement: CategoryRequirement,
    missing: int,
    must_fill: bool,
    priority: int,
) -> UnresolvedIssue:
    """Build a SHORTAGE issue for an unfilled slot.

    Must-fill shortfalls are CRITICAL on fairness-priority days and WARNING
    otherwise; soft-target shortfalls are always WARNING.
    """
    severity = (
        IssueSeverity.CRITICAL if must_fill and priority > 0 else IssueSeverity.WARNING
    )
    department = requirement.department or "any department"
    return UnresolvedIssue(
        issue_type=IssueType.SHORTAGE,
        severity=severity,
        message=(
            f"{day.isoformat()} {department}/{requirement.category}: "
            f"short by {missing} of {requirement.count}"
        ),
        department=requirement.department,
        category=requirement.category,
        date=day,
        week_start=week_start(day),
        suggestion="Add flexible staff for this category or adjust requirements",
        period_id=ctx.period.id,
    )


class PriorityAssigner:
    """Fills each date's category requirements, highest-priority days first.

    Within a calendar week, dates are ordered by effective priority
    descending then chronologically. Per date, must-fill parts are filled
    before soft targets.
    """

    def __init__(self, selector: CandidateSelector):
        self.selector = selector

    def ordered_dates(self, ctx: RunContext, monday: date) -> list[date]:
        enabled = self.selector.engine.enabled
        return sorted(
            ctx.dates_in_week(monday),
            key=lambda d: (-ctx.classification(d).effective_tag(enabled).priority, d),
        )

    def assign_day(self, ctx: RunContext, day: date) -> int:
        """Fill one date. Returns the number of WORK rows placed."""
        requirement_day = ctx.requirements.get(day)
        if requirement_day is None or not requirement_day.categories:
            return 0
        priority = self.selector.day_tag(ctx, day).priority

        must_fill = sorted(
            (r for r in requirement_day.categories if r.min_required > 0),
            key=lambda r: -r.min_required,
        )
        placed = 0
        for requirement in must_fill:
            allow_flexible = requirement.strategy is FillStrategy.NATIVE_THEN_FLEXIBLE
            got = self.selector.fill(
                ctx, day, requirement, requirement.min_required, allow_flexible
            )
            placed += got
            if got < requirement.min_required:
                missing = requirement.min_required - got + requirement.soft_count
                ctx.provisional_issues.append(
                    shortage_issue(ctx, day, requirement, missing, True, priority)
                )
                logger.debug(
                    "%s %s short by %d after flexible fallback",
                    day,
                    requirement.category,
                    missing,
                )

        for requirement in requirement_day.categories:
            soft = requirement.soft_count
            if soft <= 0:
                continue
            if len(ctx.assigned(day, requirement.department, requirement.category)) < requirement.min_required:
                # Already reported together with the must-fill shortfall
                continue
            got = self.selector.fill(ctx, day, requirement, soft, allow_flexible=False)
            placed += got
            if got < soft:
                ctx.provisional_issues.append(
                    shortage_issue(ctx, day, requirement, soft - got, False, priority)
                )
        return placed

    def run(self, ctx: RunContext) -> None:
        placed = 0
        for monday in ctx.weeks:
            for day in self.ordered_dates(ctx, monday):
                placed += self.assign_day(ctx, day)
        logger.info(
            "Priority pass placed %d WORK rows, %d shortages",
            placed,
            len(ctx.provisional_issues),
        )
        ctx.advance(RunState.PRIORITY_ASSIGNED)
