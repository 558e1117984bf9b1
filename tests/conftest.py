"""Shared fixtures and builders for roster tests."""

import random
from datetime import date, timedelta
from typing import Optional

import pytest

from clinicroster.domain.calendar import DayClassifier
from clinicroster.domain.models import (
    CategoryRequirement,
    CombinationRule,
    DayRequirement,
    FillStrategy,
    LeaveRecord,
    LeaveStatus,
    LeaveType,
    ProviderRoster,
    SchedulingPeriod,
    StaffMember,
    WorkType,
)
from clinicroster.domain.settings import RatioConfig, RosterSettings
from clinicroster.scheduling.context import RunContext
from clinicroster.scheduling.fairness import FairnessScoreEngine
from clinicroster.storage.memory import InMemoryClinicStore

MONDAY = date(2024, 1, 15)  # This is a Monday
CLINIC = "clinic-1"


def day(offset: int) -> date:
    """Date ``offset`` days after the test Monday."""
    return MONDAY + timedelta(days=offset)


def make_staff(
    id: str,
    category: str = "nurse",
    department: str = "dental",
    work_type: WorkType = WorkType.WEEK_5,
    flexible: tuple = (),
    priority: int = 0,
    active: bool = True,
) -> StaffMember:
    """Helper to create test staff."""
    return StaffMember(
        id=id,
        name=id,
        department=department,
        category=category,
        work_type=work_type,
        flexible_for_categories=frozenset(flexible),
        flexibility_priority=priority,
        active=active,
    )


def make_leave(
    staff_id: str,
    on: date,
    leave_type: LeaveType = LeaveType.OFF,
    status: LeaveStatus = LeaveStatus.CONFIRMED,
) -> LeaveRecord:
    return LeaveRecord(staff_id=staff_id, date=on, leave_type=leave_type, status=status)


def make_context(
    staff: list,
    needs: Optional[dict] = None,
    holidays: tuple = (),
    night_dates: tuple = (),
    leave: tuple = (),
    prior_actuals: Optional[dict] = None,
    settings: Optional[RosterSettings] = None,
    weeks: int = 1,
    strategy: FillStrategy = FillStrategy.NATIVE_THEN_FLEXIBLE,
    seed: int = 7,
) -> RunContext:
    """Build a RunContext directly from per-date category needs.

    Args:
        staff: Staff members.
        needs: Mapping of date to {category: count or (count, min_required)}.
            Counts without a minimum are entirely must-fill.
        holidays: Holiday dates.
        night_dates: Dates whose roster runs a night shift.
        leave: Leave records.
        prior_actuals: Actuals carried in per staff id and dimension.
        settings: Run settings.
        weeks: Period length in weeks starting at MONDAY.
        strategy: Fill strategy for every requirement.
        seed: Tie-break seed.
    """
    settings = settings or RosterSettings()
    needs = needs or {}
    period = SchedulingPeriod("P1", CLINIC, MONDAY, MONDAY + timedelta(days=7 * weeks - 1))
    dates = [d for d in period.window_dates() if settings.is_business_day(d)]
    rosters = {d: ProviderRoster(d, ("dr",), d in night_dates) for d in dates}
    classifications = DayClassifier(holidays).classify_period(dates, rosters)

    excluded = {}
    for record in leave:
        if record.status is LeaveStatus.CONFIRMED:
            excluded.setdefault(record.date, set()).add(record.staff_id)

    requirements = {}
    for d in dates:
        categories = []
        for category, value in needs.get(d, {}).items():
            count, minimum = value if isinstance(value, tuple) else (value, value)
            categories.append(
                CategoryRequirement("dental", category, count, minimum, strategy)
            )
        requirements[d] = DayRequirement(
            date=d,
            classification=classifications[d],
            total_required=sum(c.count for c in categories),
            categories=categories,
            has_night_shift=d in night_dates,
            excluded_staff_ids=frozenset(excluded.get(d, ())),
        )

    return RunContext(
        period=period,
        staff=staff,
        requirements=requirements,
        classifications=classifications,
        leave=leave,
        settings=settings,
        prior_actuals=prior_actuals,
        rng=random.Random(seed),
    )


def simple_store(
    staff: list,
    per_day: int,
    weeks: int = 1,
    holidays: tuple = (),
    leave: tuple = (),
    ratios: Optional[dict] = None,
    period_id: str = "P1",
    start: date = MONDAY,
) -> InMemoryClinicStore:
    """Store with one provider every business day requiring ``per_day`` staff."""
    store = InMemoryClinicStore()
    store.add_staff(CLINIC, staff)
    end = start + timedelta(days=7 * weeks - 1)
    store.add_rosters(
        CLINIC,
        [
            ProviderRoster(start + timedelta(days=i), ("dr_a",))
            for i in range(7 * weeks)
            if (start + timedelta(days=i)).weekday() != 6
        ],
    )
    store.add_rules(CLINIC, [CombinationRule(("dr_a",), False, per_day)])
    store.set_ratio_config(CLINIC, RatioConfig(category_ratios=ratios or {"nurse": 100}))
    store.add_holidays(CLINIC, holidays)
    store.add_leave(CLINIC, leave)
    store.add_period(SchedulingPeriod(period_id, CLINIC, start, end))
    return store


@pytest.fixture
def engine():
    """Fairness engine with default settings."""
    return FairnessScoreEngine()
