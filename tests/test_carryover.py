"""Tests for issue retry, classification and carry-over."""

import pytest

from conftest import MONDAY, day, make_context, make_leave, make_staff

from clinicroster.domain.models import (
    IssueSeverity,
    IssueStatus,
    IssueType,
    UnresolvedIssue,
    WorkType,
)
from clinicroster.scheduling.candidate_pool import CandidateSelector
from clinicroster.validation.carryover import (
    CarryoverTracker,
    IssueResolver,
    recurrence_key,
)
from clinicroster.validation.validator import ScheduleValidator


@pytest.fixture
def validator(engine):
    return ScheduleValidator(engine)


@pytest.fixture
def resolver(engine):
    return IssueResolver(CandidateSelector(engine))


class TestIssueResolver:
    """Tests for IssueResolver."""

    def test_retry_fixes_critical_issues(self, validator, resolver):
        ctx = make_context([make_staff("A")], needs={day(5): {"nurse": 1}})
        result = validator.validate(ctx)
        assert not result.is_valid

        fixed = resolver.retry(ctx, result.issues)
        result = validator.validate(ctx)

        assert fixed == 2
        assert ctx.row("A", day(5)).is_work
        assert ctx.quota_gap("A", MONDAY) == 0
        assert result.is_valid

    def test_justified_shortage_not_retried(self, validator, resolver):
        ctx = make_context(
            [make_staff("A", work_type=WorkType.WEEK_4)], needs={day(4): {"nurse": 1}}
        )
        for offset in range(4):
            ctx.assign_work("A", day(offset), "nurse")
        [issue] = validator.validate(ctx).of_type(IssueType.SHORTAGE)

        assert resolver.shortage_justified(ctx, issue)
        assert not resolver.needs_retry(ctx, issue)
        assert resolver.retry(ctx, [issue]) == 0

    def test_unjustified_shortage_retried(self, validator, resolver):
        ctx = make_context([make_staff("A")], needs={day(4): {"nurse": 1}})
        [issue] = validator.validate(ctx).of_type(IssueType.SHORTAGE)

        assert not resolver.shortage_justified(ctx, issue)
        assert resolver.needs_retry(ctx, issue)
        assert resolver.retry(ctx, [issue]) == 1
        assert ctx.row("A", day(4)).is_work

    def test_staff_shortage_with_leave_is_justified(self, validator, resolver):
        leave = tuple(make_leave("A", day(i)) for i in range(3))
        ctx = make_context([make_staff("A", work_type=WorkType.WEEK_4)], leave=leave)
        for offset in (3, 4, 5):
            ctx.assign_work("A", day(offset), "nurse")
        [issue] = validator.validate(ctx).of_type(IssueType.STAFF_SHORTAGE)

        assert resolver.retry(ctx, [issue]) == 0
        justified, reason = resolver.justify(ctx, issue)
        assert justified
        assert reason == "Confirmed leave in week"

    def test_excess_and_unfair_always_deferred(self, resolver):
        ctx = make_context([make_staff("A")])
        excess = UnresolvedIssue(IssueType.EXCESS, IssueSeverity.WARNING, "extra")
        unfair = UnresolvedIssue(IssueType.UNFAIR, IssueSeverity.INFO, "spread")
        assert resolver.justify(ctx, excess)[0]
        assert resolver.justify(ctx, unfair)[0]
        assert not resolver.needs_retry(ctx, excess)

    def test_classify_sets_carry_status(self, resolver):
        ctx = make_context([make_staff("A")])
        issues = [
            UnresolvedIssue(IssueType.UNFAIR, IssueSeverity.INFO, "spread"),
            UnresolvedIssue(
                IssueType.STAFF_SHORTAGE,
                IssueSeverity.CRITICAL,
                "short",
                staff_id="A",
                week_start=MONDAY,
            ),
        ]

        final = resolver.classify(ctx, issues)

        assert [i.severity for i in final] == [IssueSeverity.CRITICAL, IssueSeverity.INFO]
        assert final[0].status is IssueStatus.PENDING_NEXT_PERIOD
        assert final[1].status is IssueStatus.CARRY_TO_NEXT_PERIOD
        assert not final[0].justified
        assert final[1].justified


class TestCarryoverTracker:
    """Tests for CarryoverTracker."""

    def _staff_shortage(self, staff_id: str, monday, carry_count: int = 0):
        return UnresolvedIssue(
            IssueType.STAFF_SHORTAGE,
            IssueSeverity.WARNING,
            f"{staff_id} short",
            staff_id=staff_id,
            department="dental",
            category="nurse",
            week_start=monday,
            status=IssueStatus.CARRY_TO_NEXT_PERIOD,
            carry_count=carry_count,
        )

    def test_recurrence_key_ignores_dates(self):
        first = self._staff_shortage("A", day(0))
        second = self._staff_shortage("A", day(28))
        assert recurrence_key(first) == recurrence_key(second)
        assert first.key != second.key

    def test_missing_issue_resolved(self):
        old = UnresolvedIssue(
            IssueType.SHORTAGE,
            IssueSeverity.WARNING,
            "short",
            category="nurse",
            date=day(-3),
        )

        [updated] = CarryoverTracker().reconcile([old], [])

        assert updated.status is IssueStatus.RESOLVED

    def test_recurring_issue_carries_count(self):
        old = self._staff_shortage("A", day(-7), carry_count=2)
        new = self._staff_shortage("A", day(0))

        [updated] = CarryoverTracker().reconcile([old], [new])

        assert updated.status is IssueStatus.CARRY_TO_NEXT_PERIOD
        assert new.carry_count == 3

    def test_mixed(self):
        recurring = self._staff_shortage("A", day(-7))
        gone = self._staff_shortage("B", day(-7))
        new = self._staff_shortage("A", day(0))

        updated = CarryoverTracker().reconcile([recurring, gone], [new])

        assert [i.status for i in updated] == [
            IssueStatus.CARRY_TO_NEXT_PERIOD,
            IssueStatus.RESOLVED,
        ]
        assert new.carry_count == 1
