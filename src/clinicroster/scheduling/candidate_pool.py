"""Candidate pools for filling category slots."""

from datetime import date

from clinicroster.domain.models import CategoryRequirement, DayType, FairnessDimension
from clinicroster.scheduling.context import RunContext
from clinicroster.scheduling.fairness import FairnessScoreEngine


def _eligible(ctx: RunContext, staff_id: str, day: date, ignore_quota: bool) -> bool:
    if ctx.is_excluded(staff_id, day) or not ctx.is_free(staff_id, day):
        return False
    return ignore_quota or not ctx.is_at_quota(staff_id, day)


def native_pool(
    ctx: RunContext,
    day: date,
    requirement: CategoryRequirement,
    ignore_quota: bool = False,
) -> list[str]:
    """Active staff of the requirement's department/category who can work ``day``."""
    return [
        sid
        for sid, member in ctx.staff.items()
        if member.category == requirement.category
        and (requirement.department is None or member.department == requirement.department)
        and _eligible(ctx, sid, day, ignore_quota)
    ]


def flexible_pool(
    ctx: RunContext,
    day: date,
    requirement: CategoryRequirement,
    ignore_quota: bool = False,
) -> list[str]:
    """Staff flexible for the category who can work ``day``, unordered."""
    return [
        sid
        for sid, member in ctx.staff.items()
        if requirement.category in member.flexible_for_categories
        and member.category != requirement.category
        and (requirement.department is None or member.department == requirement.department)
        and _eligible(ctx, sid, day, ignore_quota)
    ]


class CandidateSelector:
    """Ranks pools with the fairness engine.

    Example:
        >>> selector = CandidateSelector(engine)
        >>> chosen = selector.select_native(ctx, day, requirement, 2)
    """

    def __init__(self, engine: FairnessScoreEngine):
        self.engine = engine

    def day_tag(self, ctx: RunContext, day: date) -> DayType:
        return ctx.classification(day).effective_tag(self.engine.enabled)

    def select_native(
        self,
        ctx: RunContext,
        day: date,
        requirement: CategoryRequirement,
        count: int,
        ignore_quota: bool = False,
    ) -> list[str]:
        if count <= 0:
            return []
        pool = native_pool(ctx, day, requirement, ignore_quota)
        return self.engine.rank(ctx, pool, self.day_tag(ctx, day))[:count]

    def select_flexible(
        self,
        ctx: RunContext,
        day: date,
        requirement: CategoryRequirement,
        count: int,
        ignore_quota: bool = False,
    ) -> list[str]:
        """Flexible staff by flexibility priority, then total deviation."""
        if count <= 0:
            return []
        pool = flexible_pool(ctx, day, requirement, ignore_quota)
        ctx.rng.shuffle(pool)
        pool.sort(
            key=lambda sid: (
                ctx.staff[sid].flexibility_priority,
                self.engine.adjusted_deviation(ctx, sid, FairnessDimension.TOTAL),
            ),
            reverse=True,
        )
        return pool[:count]

    def fill(
        self,
        ctx: RunContext,
        day: date,
        requirement: CategoryRequirement,
        count: int,
        allow_flexible: bool,
        ignore_quota: bool = False,
    ) -> int:
        """Assign up to ``count`` staff, natives first. Returns how many were placed.

        Staff are placed one at a time so each pick sees the updated tallies.
        """
        placed = 0
        while placed < count:
            chosen = self.select_native(ctx, day, requirement, 1, ignore_quota)
            if not chosen:
                break
            ctx.assign_work(chosen[0], day, requirement.category)
            placed += 1
        while allow_flexible and placed < count:
            chosen = self.select_flexible(ctx, day, requirement, 1, ignore_quota)
            if not chosen:
                break
            ctx.assign_work(chosen[0], day, requirement.category, is_flexible=True)
            placed += 1
        return placed
