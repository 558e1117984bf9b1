"""Phase 2: bring every staff member to their weekly quota."""

from datetime import date
from typing import Optional

from clinicroster.domain.models import (
    DayType,
    FairnessDimension,
    IssueSeverity,
    IssueType,
    RunState,
    UnresolvedIssue,
)
from clinicroster.logger import get_logger
from clinicroster.scheduling.context import RunContext
from clinicroster.scheduling.fairness import FairnessScoreEngine

logger = get_logger("phase2")


class QuotaReconciler:
    """Reconciles WORK+ANNUAL counts with weekly quotas.

    For each week:
        1. Under-quota staff take any open category slot (native first,
           then flexible).
        2. Over-quota staff give WORK back while the week is below its OFF
           target: fewest-OFF date first, most over-worked staff there.
        3. Under-quota staff take WORK while the week is above its OFF
           target: most-OFF date first, most under-worked staff there.
        4. Anyone still under quota gets a STAFF_SHORTAGE issue.
    """

    def __init__(self, engine: FairnessScoreEngine):
        self.engine = engine

    def _carried_staff(self, ctx: RunContext) -> set:
        return {
            issue.staff_id
            for issue in ctx.carried_issues
            if issue.issue_type is IssueType.STAFF_SHORTAGE and issue.staff_id
        }

    def under_quota(self, ctx: RunContext, monday: date) -> list[str]:
        """Under-quota staff, carried shortages first, then most under-worked."""
        carried = self._carried_staff(ctx)
        under = [sid for sid in ctx.staff if ctx.quota_gap(sid, monday) > 0]
        ranked = self.engine.rank(ctx, under, DayType.NORMAL)
        return sorted(ranked, key=lambda sid: sid not in carried)

    def over_quota(self, ctx: RunContext, monday: date) -> list[str]:
        return [sid for sid in ctx.staff if ctx.quota_gap(sid, monday) < 0]

    def _open_days(self, ctx: RunContext, staff_id: str, monday: date) -> list[date]:
        return [
            day
            for day in ctx.dates_in_week(monday)
            if not ctx.is_holiday(day)
            and ctx.is_free(staff_id, day)
            and not ctx.is_excluded(staff_id, day)
        ]

    def find_open_slot(
        self, ctx: RunContext, staff_id: str, monday: date
    ) -> Optional[tuple]:
        """Find (date, category, is_flexible) with an unfilled slot for the staff."""
        member = ctx.staff[staff_id]
        days = self._open_days(ctx, staff_id, monday)
        for flexible in (False, True):
            for day in days:
                requirement_day = ctx.requirements.get(day)
                if requirement_day is None:
                    continue
                for requirement in requirement_day.categories:
                    if requirement.department not in (None, member.department):
                        continue
                    if flexible:
                        if requirement.category not in member.flexible_for_categories:
                            continue
                    elif requirement.category != member.category:
                        continue
                    filled = len(ctx.assigned(day, requirement.department, requirement.category))
                    if filled < requirement.count:
                        return day, requirement.category, flexible
        return None

    def fill_open_slots(self, ctx: RunContext, monday: date) -> int:
        placed = 0
        for sid in self.under_quota(ctx, monday):
            while ctx.quota_gap(sid, monday) > 0:
                slot = self.find_open_slot(ctx, sid, monday)
                if slot is None:
                    break
                day, category, flexible = slot
                ctx.assign_work(sid, day, category, is_flexible=flexible)
                placed += 1
        return placed

    def trim_over_quota(self, ctx: RunContext, monday: date) -> int:
        """Convert WORK to OFF for over-quota staff while OFF rows are short."""
        moved = 0
        target = ctx.week_off_target(monday)
        while ctx.week_off_total(monday) < target:
            over = set(self.over_quota(ctx, monday))
            candidates = [
                (day, sid)
                for day in ctx.dates_in_week(monday)
                for sid in over
                if ctx.row(sid, day).is_work
            ]
            if not candidates:
                break
            day = min(
                {d for d, _ in candidates}, key=lambda d: (ctx.off_count(d), d)
            )
            on_day = sorted(sid for d, sid in candidates if d == day)
            sid = min(
                on_day,
                key=lambda s: self.engine.deviation(ctx, s, FairnessDimension.TOTAL),
            )
            ctx.release_work(sid, day)
            moved += 1
        return moved

    def top_up_under_quota(self, ctx: RunContext, monday: date) -> int:
        """Convert OFF to WORK for under-quota staff while OFF rows are in excess."""
        moved = 0
        target = ctx.week_off_target(monday)
        while ctx.week_off_total(monday) > target:
            candidates = [
                (day, sid)
                for sid in self.under_quota(ctx, monday)
                for day in self._open_days(ctx, sid, monday)
            ]
            if not candidates:
                break
            day = max(
                {d for d, _ in candidates}, key=lambda d: (ctx.off_count(d), -d.toordinal())
            )
            on_day = sorted(sid for d, sid in candidates if d == day)
            sid = max(
                on_day,
                key=lambda s: self.engine.deviation(ctx, s, FairnessDimension.TOTAL),
            )
            ctx.assign_work(sid, day, ctx.staff[sid].category)
            moved += 1
        return moved

    def report_shortfalls(self, ctx: RunContext, monday: date) -> None:
        for sid in ctx.staff:
            gap = ctx.quota_gap(sid, monday)
            if gap <= 0:
                continue
            member = ctx.staff[sid]
            on_leave = ctx.has_leave_in_week(sid, monday)
            ctx.provisional_issues.append(
                UnresolvedIssue(
                    issue_type=IssueType.STAFF_SHORTAGE,
                    severity=IssueSeverity.INFO if on_leave else IssueSeverity.WARNING,
                    message=(
                        f"{member.name} is {gap} day(s) under quota in week of "
                        f"{monday.isoformat()}"
                    ),
                    staff_id=sid,
                    department=member.department,
                    category=member.category,
                    week_start=monday,
                    justified=on_leave,
                    justification="Confirmed leave in week" if on_leave else "",
                    period_id=ctx.period.id,
                )
            )

    def run(self, ctx: RunContext) -> None:
        for monday in ctx.weeks:
            filled = self.fill_open_slots(ctx, monday)
            trimmed = self.trim_over_quota(ctx, monday)
            topped = self.top_up_under_quota(ctx, monday)
            self.report_shortfalls(ctx, monday)
            logger.debug(
                "Week %s: filled %d open slots, WORK->OFF %d, OFF->WORK %d",
                monday,
                filled,
                trimmed,
                topped,
            )
        ctx.advance(RunState.QUOTA_RECONCILED)
