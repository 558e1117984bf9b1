"""Assignment orchestration.

Drives one period through every phase:
PREPARED -> PRIORITY_ASSIGNED -> QUOTA_RECONCILED -> HOLIDAY_OVERRIDDEN
-> VALIDATED -> COMPLETED | CRITICAL_UNRESOLVED.

All reads happen before the first phase and all writes after the last, so
no partial period is ever visible through the store.
"""

import random
from datetime import timedelta
from typing import Optional

from clinicroster.domain.calendar import DayClassifier
from clinicroster.domain.models import (
    IssueSeverity,
    LeaveStatus,
    PeriodStatus,
    RunOutcome,
    RunState,
    SchedulingPeriod,
)
from clinicroster.domain.policies import (
    DefaultLeaveGatePolicy,
    DefaultQuotaPolicy,
    LeaveGatePolicy,
    QuotaPolicy,
)
from clinicroster.domain.requirements import RequirementCalculator
from clinicroster.errors import PeriodLockedError, PeriodNotFoundError
from clinicroster.logger import get_logger, log_timing
from clinicroster.scheduling.candidate_pool import CandidateSelector
from clinicroster.scheduling.context import RunContext
from clinicroster.scheduling.fairness import FairnessScoreEngine
from clinicroster.scheduling.holiday_override import HolidayOverride
from clinicroster.scheduling.priority_assigner import PriorityAssigner
from clinicroster.scheduling.quota_reconciler import QuotaReconciler
from clinicroster.storage.snapshots import POST_RUN, PRE_RUN, take_snapshot
from clinicroster.validation.carryover import CarryoverTracker, IssueResolver
from clinicroster.validation.validator import ScheduleValidator

logger = get_logger("orchestrator")


class AssignmentOrchestrator:
    """Runs the auto-assignment for a scheduling period.

    The store must implement every port in :mod:`clinicroster.storage.ports`.

    Example:
        >>> orchestrator = AssignmentOrchestrator(store)
        >>> outcome = orchestrator.run("2024-05")
        >>> outcome.period_status
        <PeriodStatus.COMPLETED: 'COMPLETED'>
    """

    def __init__(
        self,
        store,
        quota_policy: Optional[QuotaPolicy] = None,
        gate_policy: Optional[LeaveGatePolicy] = None,
        rng: Optional[random.Random] = None,
    ):
        self.store = store
        self.quota_policy = quota_policy or DefaultQuotaPolicy()
        self.gate_policy = gate_policy
        self.rng = rng

    def run(self, period_id: str) -> RunOutcome:
        """Assign a period end to end.

        Raises:
            PeriodNotFoundError: If the period does not exist.
            PeriodLockedError: If another run holds the period.
            ConfigurationError: If requirement or ratio config is unusable.
                The period status is restored and nothing is written.
        """
        period = self.store.get_period(period_id)
        if period is None:
            raise PeriodNotFoundError(period_id)
        if period.status is PeriodStatus.ASSIGNING:
            raise PeriodLockedError(period_id)

        previous_status = period.status
        self.store.set_period_status(period_id, PeriodStatus.ASSIGNING)
        logger.info("Starting assignment for period %s", period_id)
        try:
            with log_timing(f"assignment run {period_id}", logger):
                outcome = self._execute(period)
        except Exception:
            self.store.set_period_status(period_id, previous_status)
            logger.exception(
                "Assignment for %s failed; status restored to %s",
                period_id,
                previous_status.value,
            )
            raise
        return outcome

    def prepare(self, period: SchedulingPeriod) -> tuple:
        """Batch-load everything a run needs and build its context.

        Returns:
            Tuple of (RunContext, FairnessScoreEngine, warnings).
        """
        store = self.store
        clinic_id = period.clinic_id
        settings = store.settings(clinic_id)
        window = period.window_dates()
        start, end = window[0], window[-1]
        one_day = timedelta(days=1)

        staff = store.active_staff(clinic_id)
        leave = store.leave_between(clinic_id, start, end, {LeaveStatus.CONFIRMED})
        holidays = store.holidays_between(clinic_id, start - one_day, end + one_day)
        rosters = store.rosters_between(clinic_id, start, end)
        previous = store.previous_period(period)
        carried = store.issues(previous.id) if previous else []

        classifier = DayClassifier(holidays)
        business_dates = [d for d in window if settings.is_business_day(d)]
        classifications = classifier.classify_period(business_dates, rosters)

        calculator = RequirementCalculator(
            store.combination_rules(clinic_id), store.ratio_config(clinic_id), settings
        )
        requirements = calculator.build(business_dates, rosters, classifications, leave)

        gate = self.gate_policy or DefaultLeaveGatePolicy(
            annual_threshold=settings.annual_leave_threshold,
            off_threshold=settings.off_leave_threshold,
        )
        engine = FairnessScoreEngine(
            settings.fairness,
            settings.baseline_mode,
            store.snapshot_baselines(clinic_id, period),
            gate,
        )
        ctx = RunContext(
            period=period,
            staff=staff,
            requirements=requirements,
            classifications=classifications,
            leave=leave,
            settings=settings,
            quota_policy=self.quota_policy,
            prior_actuals=store.prior_actuals(clinic_id, period),
            carried_issues=carried,
            rng=self.rng,
        )
        logger.info(
            "Loaded %d staff, %d confirmed leave, %d holidays, %d business days",
            len(ctx.staff),
            len(leave),
            len(holidays),
            len(business_dates),
        )
        return ctx, engine, list(calculator.warnings)

    def assign(self, ctx: RunContext, engine: FairnessScoreEngine) -> list:
        """Run phases 1-4 on a prepared context and return the final issues."""
        selector = CandidateSelector(engine)

        with log_timing("phase 1 priority assignment", logger):
            PriorityAssigner(selector).run(ctx)
        with log_timing("phase 2 quota reconciliation", logger):
            QuotaReconciler(engine).run(ctx)
        with log_timing("phase 3 holiday override", logger):
            HolidayOverride().run(ctx)

        with log_timing("phase 4 validation", logger):
            validator = ScheduleValidator(engine)
            resolver = IssueResolver(selector)
            result = validator.validate(ctx)
            if resolver.retry(ctx, result.issues):
                result = validator.validate(ctx)
            issues = resolver.classify(ctx, result.issues)
        ctx.advance(RunState.VALIDATED)

        logger.info(
            "%d provisional issues during phases 1-3, %d after validation",
            len(ctx.provisional_issues),
            len(issues),
        )
        has_critical = any(i.severity is IssueSeverity.CRITICAL for i in issues)
        ctx.advance(RunState.CRITICAL_UNRESOLVED if has_critical else RunState.COMPLETED)
        return issues

    def _execute(self, period: SchedulingPeriod) -> RunOutcome:
        store = self.store
        ctx, engine, warnings = self.prepare(period)
        take_snapshot(store, period.id, PRE_RUN)

        issues = self.assign(ctx, engine)

        carried = CarryoverTracker().reconcile(ctx.carried_issues, issues)
        rows = ctx.to_assignments()
        fairness = engine.snapshot(ctx)

        store.replace_period_assignments(period.id, rows)
        store.save_scores(period.id, fairness)
        store.save_issues(period.id, issues)
        if carried:
            previous = store.previous_period(period)
            if previous is not None:
                store.update_issues(previous.id, carried)
        take_snapshot(store, period.id, POST_RUN)

        if ctx.state is RunState.COMPLETED:
            status = PeriodStatus.COMPLETED
        else:
            status = PeriodStatus.NEEDS_ATTENTION
        store.set_period_status(period.id, status)

        outcome = RunOutcome(
            period_id=period.id,
            state=ctx.state,
            period_status=status,
            assignments=rows,
            issues=issues,
            fairness=fairness,
            warnings=warnings,
            carried_issues=carried,
        )
        counts = {s.value: len(v) for s, v in outcome.issues_by_severity().items()}
        logger.info(
            "Period %s %s: %d WORK rows, issues %s",
            period.id,
            status.value,
            outcome.assignment_count,
            counts,
        )
        return outcome
