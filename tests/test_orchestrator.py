"""End-to-end tests for the assignment orchestrator."""

from collections import Counter
from datetime import timedelta

import pytest

from conftest import CLINIC, MONDAY, day, make_leave, make_staff, simple_store

from clinicroster.domain.models import (
    CombinationRule,
    DayType,
    FairnessDimension,
    IssueSeverity,
    IssueStatus,
    IssueType,
    LeaveStatus,
    LeaveType,
    PeriodStatus,
    ProviderRoster,
    RunState,
    SchedulingPeriod,
    ShiftType,
    UnresolvedIssue,
    WorkType,
)
from clinicroster.domain.policies import DefaultQuotaPolicy
from clinicroster.domain.settings import RatioConfig
from clinicroster.errors import ConfigurationError, PeriodLockedError, PeriodNotFoundError
from clinicroster.scheduling.orchestrator import AssignmentOrchestrator
from clinicroster.storage.snapshots import POST_RUN, PRE_RUN, diff_snapshots


def balanced_store():
    """Six four-day nurses covering four slots a day for one week."""
    staff = [make_staff(f"S{i}", work_type=WorkType.WEEK_4) for i in range(1, 7)]
    return simple_store(staff, per_day=4)


def row_key(rows) -> list:
    return [(r.staff_id, r.date, r.shift_type, r.category, r.is_flexible) for r in rows]


def short_staffed_store():
    """One four-day nurse with OFF leave on three of six business days."""
    leave = tuple(make_leave("A", day(i)) for i in range(3))
    return simple_store([make_staff("A", work_type=WorkType.WEEK_4)], per_day=1, leave=leave)


class TestBalancedRun:
    """Capacity exactly matches demand."""

    @pytest.fixture
    def outcome(self):
        store = balanced_store()
        return AssignmentOrchestrator(store).run("P1")

    def test_completes_without_issues(self, outcome):
        assert outcome.state is RunState.COMPLETED
        assert outcome.period_status is PeriodStatus.COMPLETED
        assert outcome.issues == []

    def test_every_staff_works_quota(self, outcome):
        work = Counter(a.staff_id for a in outcome.assignments if a.is_work)
        off = Counter(a.staff_id for a in outcome.assignments if a.shift_type is ShiftType.OFF)
        assert set(work.values()) == {4}
        assert set(off.values()) == {2}
        assert outcome.assignment_count == 24

    def test_one_row_per_staff_per_business_day(self, outcome):
        keys = [(a.staff_id, a.date) for a in outcome.assignments]
        assert len(keys) == len(set(keys)) == 36
        assert all(a.date.weekday() != 6 for a in outcome.assignments)

    def test_daily_headcount(self, outcome):
        per_day = Counter(a.date for a in outcome.assignments if a.is_work)
        assert set(per_day.values()) == {4}

    def test_fairness_scores_for_everyone(self, outcome):
        assert len(outcome.fairness) == 6
        assert all(s.overall_score > 90 for s in outcome.fairness)


class TestOrchestratorPersistence:
    """Writes, locking and rollback."""

    def test_results_written_to_store(self):
        store = balanced_store()
        outcome = AssignmentOrchestrator(store).run("P1")

        assert row_key(store.assignments("P1")) == row_key(outcome.assignments)
        assert len(store.scores("P1")) == 6
        assert store.get_period("P1").status is PeriodStatus.COMPLETED

    def test_rerun_is_idempotent(self):
        store = balanced_store()
        first = AssignmentOrchestrator(store).run("P1")
        second = AssignmentOrchestrator(store).run("P1")

        assert store.replace_calls == 2
        assert row_key(first.assignments) == row_key(second.assignments)
        assert row_key(store.assignments("P1")) == row_key(second.assignments)

    def test_unknown_period(self):
        with pytest.raises(PeriodNotFoundError):
            AssignmentOrchestrator(balanced_store()).run("nope")

    def test_locked_period(self):
        store = balanced_store()
        store.set_period_status("P1", PeriodStatus.ASSIGNING)
        with pytest.raises(PeriodLockedError):
            AssignmentOrchestrator(store).run("P1")

    def test_configuration_error_rolls_back(self):
        store = balanced_store()
        store.set_ratio_config(CLINIC, None)

        with pytest.raises(ConfigurationError):
            AssignmentOrchestrator(store).run("P1")

        assert store.get_period("P1").status is PeriodStatus.DRAFT
        assert store.assignments("P1") == []
        assert store.replace_calls == 0
        assert store.snapshots("P1") == []

    def test_invalid_ratios_rejected(self):
        store = balanced_store()
        store.set_ratio_config(CLINIC, RatioConfig(category_ratios={"nurse": 90}))
        with pytest.raises(ConfigurationError):
            AssignmentOrchestrator(store).run("P1")
        assert store.get_period("P1").status is PeriodStatus.DRAFT

    def test_snapshots_taken_around_run(self):
        store = balanced_store()
        AssignmentOrchestrator(store).run("P1")

        snapshots = store.snapshots("P1")
        assert [s.label for s in snapshots] == [PRE_RUN, POST_RUN]
        diff = diff_snapshots(snapshots[0], snapshots[1])
        assert len(diff.added) == 36

        AssignmentOrchestrator(store).run("P1")

        pre, post = store.snapshots("P1")[2:]
        assert diff_snapshots(pre, post).is_empty


class TestLeaveAndAttention:
    """Leave handling and critical outcomes."""

    def test_confirmed_leave_kept(self):
        store = balanced_store()
        store.add_leave(CLINIC, [make_leave("S1", day(0), LeaveType.ANNUAL)])

        outcome = AssignmentOrchestrator(store).run("P1")

        [row] = [a for a in outcome.assignments if a.staff_id == "S1" and a.date == day(0)]
        assert row.shift_type is ShiftType.ANNUAL
        assert row.from_leave

    def test_on_hold_leave_ignored(self):
        store = balanced_store()
        store.add_leave(
            CLINIC, [make_leave("S1", day(0), LeaveType.ANNUAL, status=LeaveStatus.ON_HOLD)]
        )

        outcome = AssignmentOrchestrator(store).run("P1")

        assert not any(a.from_leave for a in outcome.assignments)

    def test_critical_issue_needs_attention(self):
        store = short_staffed_store()

        outcome = AssignmentOrchestrator(store).run("P1")

        assert outcome.state is RunState.CRITICAL_UNRESOLVED
        assert outcome.period_status is PeriodStatus.NEEDS_ATTENTION
        [critical] = outcome.issues_by_severity()[IssueSeverity.CRITICAL]
        assert critical.issue_type is IssueType.STAFF_SHORTAGE
        assert critical.justified
        assert critical.status is IssueStatus.PENDING_NEXT_PERIOD
        # Assignments are still written
        assert len(store.assignments("P1")) == 6
        assert store.get_period("P1").status is PeriodStatus.NEEDS_ATTENTION

    def test_shortages_on_leave_days_are_justified(self):
        outcome = AssignmentOrchestrator(short_staffed_store()).run("P1")
        shortages = [i for i in outcome.issues if i.issue_type is IssueType.SHORTAGE]
        assert {i.date for i in shortages} == {day(0), day(1), day(2)}
        assert all(i.justified for i in shortages)
        assert all(i.status is IssueStatus.CARRY_TO_NEXT_PERIOD for i in shortages)

    def test_holiday_week_has_no_work_on_holiday(self):
        staff = [make_staff(sid) for sid in "ABC"]
        store = simple_store(staff, per_day=2, holidays=(day(2),))

        outcome = AssignmentOrchestrator(store).run("P1")

        assert not any(a.is_work for a in outcome.assignments if a.date == day(2))
        critical = outcome.issues_by_severity()[IssueSeverity.CRITICAL]
        assert not any(i.issue_type is IssueType.STAFF_SHORTAGE for i in critical)


class TestCarryover:
    """Issues linked across consecutive periods."""

    def _with_previous(self, store, issues):
        store.add_period(
            SchedulingPeriod("P0", CLINIC, MONDAY - timedelta(days=7), MONDAY - timedelta(days=1))
        )
        store.save_issues("P0", issues)

    def test_cleared_issue_resolved(self):
        store = balanced_store()
        self._with_previous(
            store,
            [
                UnresolvedIssue(
                    IssueType.SHORTAGE,
                    IssueSeverity.WARNING,
                    "short last week",
                    category="nurse",
                    date=day(-2),
                    status=IssueStatus.CARRY_TO_NEXT_PERIOD,
                )
            ],
        )

        outcome = AssignmentOrchestrator(store).run("P1")

        [old] = store.issues("P0")
        assert old.status is IssueStatus.RESOLVED
        assert outcome.carried_issues[0].status is IssueStatus.RESOLVED

    def test_recurring_issue_counted(self):
        store = short_staffed_store()
        self._with_previous(
            store,
            [
                UnresolvedIssue(
                    IssueType.STAFF_SHORTAGE,
                    IssueSeverity.CRITICAL,
                    "A short last week",
                    staff_id="A",
                    department="dental",
                    category="nurse",
                    week_start=MONDAY - timedelta(days=7),
                    status=IssueStatus.PENDING_NEXT_PERIOD,
                )
            ],
        )

        outcome = AssignmentOrchestrator(store).run("P1")

        [current] = [i for i in outcome.issues if i.issue_type is IssueType.STAFF_SHORTAGE]
        assert current.carry_count == 1
        [old] = store.issues("P0")
        assert old.status is IssueStatus.PENDING_NEXT_PERIOD


class TestFairnessConvergence:
    """Equal staff stay within one shift of each other over several weeks."""

    WEEKS = 4
    NIGHT_WEEKDAYS = (1, 3)

    @pytest.fixture
    def outcome(self):
        """Six nurses on two days a week, two slots a day, Tuesday and Thursday nights."""
        staff = [make_staff(f"N{i}") for i in range(1, 7)]
        store = simple_store(staff, per_day=2, weeks=self.WEEKS)
        end = MONDAY + timedelta(days=7 * self.WEEKS - 1)
        night_rosters = [
            ProviderRoster(r.date, r.providers, has_night_shift=True)
            for r in store.rosters_between(CLINIC, MONDAY, end).values()
            if r.date.weekday() in self.NIGHT_WEEKDAYS
        ]
        store.add_rosters(CLINIC, night_rosters)
        store.add_rules(CLINIC, [CombinationRule(("dr_a",), True, 2)])
        quotas = DefaultQuotaPolicy(overrides={s.id: 2 for s in staff})
        return AssignmentOrchestrator(store, quota_policy=quotas).run("P1")

    def _gap(self, outcome, dimension) -> float:
        deviations = [s.deviation(dimension) for s in outcome.fairness]
        return max(deviations) - min(deviations)

    def test_every_week_fully_covered(self, outcome):
        assert outcome.state is RunState.COMPLETED
        assert outcome.assignment_count == 2 * 6 * self.WEEKS

    def test_total_work_is_even(self, outcome):
        work = Counter(a.staff_id for a in outcome.assignments if a.is_work)
        assert set(work.values()) == {2 * self.WEEKS}
        assert self._gap(outcome, FairnessDimension.TOTAL) == 0.0

    @pytest.mark.parametrize(
        "dimension",
        [FairnessDimension.TOTAL, FairnessDimension.NIGHT, FairnessDimension.WEEKEND],
    )
    def test_deviation_gap_at_most_one(self, outcome, dimension):
        assert self._gap(outcome, dimension) <= 1.0

    def test_nights_and_saturdays_rotate(self, outcome):
        nights = Counter(
            a.staff_id
            for a in outcome.assignments
            if a.is_work and a.date.weekday() in self.NIGHT_WEEKDAYS
        )
        saturdays = Counter(
            a.staff_id for a in outcome.assignments if a.is_work and a.date.weekday() == 5
        )
        # 16 nights and 8 Saturdays shared by six nurses
        assert sorted(nights.values()) == [2, 2, 3, 3, 3, 3]
        assert len(saturdays) == 6
        assert max(saturdays.values()) - min(saturdays.values()) <= 1


class TestHolidayWindowEdges:
    """Holidays just outside the period still shape its classification."""

    def test_sunday_holiday_before_period(self):
        store = balanced_store()
        store.add_holidays(CLINIC, [day(-1)])

        ctx, _, _ = AssignmentOrchestrator(store).prepare(store.get_period("P1"))

        assert ctx.classification(day(0)).tag is DayType.HOLIDAY_ADJACENT
        assert ctx.classification(day(1)).tag is DayType.NORMAL

    def test_sunday_holiday_inside_period(self):
        store = balanced_store()
        store.add_holidays(CLINIC, [day(6)])

        ctx, _, _ = AssignmentOrchestrator(store).prepare(store.get_period("P1"))

        assert DayType.HOLIDAY_ADJACENT in ctx.classification(day(5)).traits
