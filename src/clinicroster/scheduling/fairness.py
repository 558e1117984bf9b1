"""Fairness scoring.

Measures, for each staff member and fairness dimension, how far the
member's realized workload sits from the department's own average. The
engine reads live tallies from the RunContext, so scores self-correct as
assignments change during a run.
"""

from typing import Optional

from clinicroster.domain.models import (
    DayType,
    DimensionScore,
    FairnessDimension,
    LeaveType,
    StaffFairnessScore,
)
from clinicroster.domain.policies import DefaultLeaveGatePolicy, LeaveGatePolicy
from clinicroster.domain.settings import BaselineMode, FairnessSettings
from clinicroster.scheduling.context import RunContext

STATUS_BAND = 0.5

# Ranking keys per effective day tag, most significant first
RANK_DIMENSIONS = {
    DayType.NIGHT: (FairnessDimension.NIGHT,),
    DayType.WEEKEND: (FairnessDimension.TOTAL, FairnessDimension.WEEKEND),
    DayType.HOLIDAY_ADJACENT: (
        FairnessDimension.TOTAL,
        FairnessDimension.HOLIDAY_ADJACENT,
    ),
    DayType.HOLIDAY: (FairnessDimension.TOTAL,),
    DayType.NORMAL: (FairnessDimension.TOTAL,),
}


def clamp_score(value: float) -> float:
    return max(0.0, min(100.0, value))


def deviation_score(deviation: float) -> float:
    return clamp_score(100.0 - 10.0 * abs(deviation))


def deviation_status(deviation: float) -> str:
    if deviation < -STATUS_BAND:
        return "ahead"
    if deviation > STATUS_BAND:
        return "behind"
    return "on_track"


class FairnessScoreEngine:
    """Computes baselines, deviations and scores from a RunContext.

    Attributes:
        settings: Enabled dimensions, weights and tolerance.
        baseline_mode: REALIZED cohort average or SNAPSHOT baselines.
        snapshot_baselines: Fixed baselines per staff id and dimension,
            used only in SNAPSHOT mode.
        gate_policy: Leave gate consulted for can_apply flags.
    """

    def __init__(
        self,
        settings: Optional[FairnessSettings] = None,
        baseline_mode: BaselineMode = BaselineMode.REALIZED,
        snapshot_baselines: Optional[dict] = None,
        gate_policy: Optional[LeaveGatePolicy] = None,
    ):
        self.settings = settings or FairnessSettings()
        self.baseline_mode = baseline_mode
        self.snapshot_baselines = snapshot_baselines or {}
        self.gate_policy = gate_policy or DefaultLeaveGatePolicy()

    @property
    def enabled(self) -> frozenset:
        return self.settings.enabled_dimensions()

    def baseline(self, ctx: RunContext, staff_id: str, dimension: FairnessDimension) -> float:
        if self.baseline_mode is BaselineMode.SNAPSHOT:
            fixed = self.snapshot_baselines.get(staff_id, {}).get(dimension)
            if fixed is not None:
                return float(fixed)
        department = ctx.staff[staff_id].department
        headcount = ctx.department_headcount(department)
        if headcount == 0:
            return 0.0
        return ctx.department_total(department, dimension) / headcount

    def deviation(self, ctx: RunContext, staff_id: str, dimension: FairnessDimension) -> float:
        """Baseline minus actual; positive means under-worked."""
        return self.baseline(ctx, staff_id, dimension) - ctx.actual(staff_id, dimension)

    def cohort_mean_deviation(
        self, ctx: RunContext, staff_id: str, dimension: FairnessDimension
    ) -> float:
        member = ctx.staff[staff_id]
        peers = ctx.cohort(member.department, member.category)
        if not peers:
            return 0.0
        return sum(self.deviation(ctx, peer, dimension) for peer in peers) / len(peers)

    def adjusted_deviation(
        self, ctx: RunContext, staff_id: str, dimension: FairnessDimension
    ) -> float:
        """Deviation relative to the staff member's department/category cohort."""
        return self.deviation(ctx, staff_id, dimension) - self.cohort_mean_deviation(
            ctx, staff_id, dimension
        )

    def overall_from_deviations(self, deviations: dict) -> float:
        """Overall score from a weighted mean of enabled-dimension deviations."""
        weighted = 0.0
        weights = 0.0
        for dimension in self.enabled:
            if dimension not in deviations:
                continue
            weight = self.settings.weight(dimension)
            weighted += weight * deviations[dimension]
            weights += weight
        if weights == 0:
            return 100.0
        return clamp_score(100.0 - 10.0 * abs(weighted / weights))

    def can_apply_leave(self, overall_score: float, leave_type: LeaveType) -> bool:
        return self.gate_policy.can_apply(overall_score, leave_type)

    def rank_key(self, ctx: RunContext, staff_id: str, tag: DayType) -> tuple:
        """Sort key for candidate ranking; larger means more under-worked."""
        return tuple(
            self.adjusted_deviation(ctx, staff_id, dimension)
            for dimension in RANK_DIMENSIONS[tag]
        )

    def rank(self, ctx: RunContext, staff_ids: list, tag: DayType) -> list:
        """Order candidates most under-worked first.

        Candidates are shuffled with the run's RNG before a stable sort so
        equally-deviated staff are tie-broken reproducibly.
        """
        candidates = list(staff_ids)
        ctx.rng.shuffle(candidates)
        return sorted(candidates, key=lambda sid: self.rank_key(ctx, sid, tag), reverse=True)

    def _dimension_score(
        self, dimension: FairnessDimension, baseline: float, actual: float, deviation: float
    ) -> DimensionScore:
        percentage = (actual / baseline * 100.0) if baseline else 0.0
        return DimensionScore(
            dimension=dimension,
            baseline=round(baseline, 1),
            actual=round(actual, 1),
            deviation=round(deviation, 1),
            score=round(deviation_score(deviation), 1),
            status=deviation_status(deviation),
            percentage=round(percentage, 1),
        )

    def score_staff(self, ctx: RunContext, staff_id: str) -> StaffFairnessScore:
        """Score one staff member across all enabled dimensions.

        Deviations are raw baseline minus actual; the cohort adjustment
        applies to candidate ranking only.
        """
        member = ctx.staff[staff_id]
        dimensions = {}
        deviations = {}
        for dimension in sorted(self.enabled, key=lambda d: d.value):
            baseline = self.baseline(ctx, staff_id, dimension)
            actual = ctx.actual(staff_id, dimension)
            deviation = baseline - actual
            deviations[dimension] = deviation
            dimensions[dimension] = self._dimension_score(
                dimension, baseline, actual, deviation
            )
        overall = round(self.overall_from_deviations(deviations), 1)
        return StaffFairnessScore(
            staff_id=staff_id,
            department=member.department,
            category=member.category,
            dimensions=dimensions,
            overall_score=overall,
            can_apply_annual=self.can_apply_leave(overall, LeaveType.ANNUAL),
            can_apply_off=self.can_apply_leave(overall, LeaveType.OFF),
        )

    def snapshot(self, ctx: RunContext) -> list:
        """Scores for every active staff member."""
        return [self.score_staff(ctx, sid) for sid in ctx.staff]

    def cohort_spread(
        self, ctx: RunContext, department: str, category: str, dimension: FairnessDimension
    ) -> float:
        """Max minus min deviation within a cohort."""
        peers = ctx.cohort(department, category)
        if len(peers) < 2:
            return 0.0
        values = [self.deviation(ctx, sid, dimension) for sid in peers]
        return max(values) - min(values)
