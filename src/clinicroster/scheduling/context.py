"""Mutable state of a single assignment run.

The RunContext is created once per run and passed by reference to every
phase. All WORK changes go through :meth:`RunContext.assign_work` and
:meth:`RunContext.release_work` so that quota counters and fairness tallies
stay exact after every decision.
"""

import random
from collections import defaultdict
from datetime import date
from typing import Iterable, Optional

from clinicroster.domain.models import (
    Assignment,
    DayClassification,
    FairnessDimension,
    LeaveRecord,
    LeaveStatus,
    RunState,
    SchedulingPeriod,
    ShiftType,
    StaffMember,
    UnresolvedIssue,
    week_start,
)
from clinicroster.domain.policies import DefaultQuotaPolicy, QuotaPolicy
from clinicroster.domain.settings import RosterSettings
from clinicroster.errors import InvalidStateTransition

_TRANSITIONS = {
    RunState.PREPARED: {RunState.PRIORITY_ASSIGNED},
    RunState.PRIORITY_ASSIGNED: {RunState.QUOTA_RECONCILED},
    RunState.QUOTA_RECONCILED: {RunState.HOLIDAY_OVERRIDDEN},
    RunState.HOLIDAY_OVERRIDDEN: {RunState.VALIDATED},
    RunState.VALIDATED: {RunState.COMPLETED, RunState.CRITICAL_UNRESOLVED},
    RunState.COMPLETED: set(),
    RunState.CRITICAL_UNRESOLVED: set(),
}


def seed_for_period(period_id: str) -> int:
    """Stable seed derived from a period id (``hash`` is salted per process)."""
    seed = 0
    for char in period_id:
        seed = (seed * 31 + ord(char)) % (2**32)
    return seed


class RunContext:
    """Run-scoped maps, counters and tallies.

    Attributes:
        period: The period being assigned.
        settings: Run settings.
        staff: Active staff keyed by id.
        requirements: DayRequirement per business date in the run window.
        classifications: DayClassification per business date.
        rng: Injected randomness used only for tie-breaking.
        state: Current run state.
        provisional_issues: Issues raised by phases 1-3.
        holiday_weeks: Mondays of weeks where the holiday override removed WORK.
        carried_issues: Unresolved issues from the previous period.
    """

    def __init__(
        self,
        period: SchedulingPeriod,
        staff: Iterable[StaffMember],
        requirements: dict,
        classifications: dict,
        leave: Iterable[LeaveRecord] = (),
        settings: Optional[RosterSettings] = None,
        quota_policy: Optional[QuotaPolicy] = None,
        prior_actuals: Optional[dict] = None,
        carried_issues: Iterable[UnresolvedIssue] = (),
        rng: Optional[random.Random] = None,
    ):
        self.period = period
        self.settings = settings or RosterSettings()
        self.quota_policy = quota_policy or DefaultQuotaPolicy()
        self.staff = {s.id: s for s in sorted(staff, key=lambda s: s.id) if s.active}
        self.requirements = requirements
        self.classifications = classifications
        self.prior_actuals = prior_actuals or {}
        self.carried_issues = list(carried_issues)
        if rng is None:
            seed = self.settings.random_seed
            rng = random.Random(seed if seed is not None else seed_for_period(period.id))
        self.rng = rng

        self.state = RunState.PREPARED
        self.provisional_issues: list[UnresolvedIssue] = []
        self.holiday_weeks: set = set()

        self.dates = sorted(
            d for d in period.window_dates() if self.settings.is_business_day(d)
        )
        self.weeks = period.weeks()

        self._rows: dict = {day: {} for day in self.dates}
        self._leave: dict = {}
        self._quota_used: dict = defaultdict(int)
        self._actuals: dict = {
            sid: defaultdict(float, self.prior_actuals.get(sid, {})) for sid in self.staff
        }
        self._dept_totals: dict = defaultdict(lambda: defaultdict(float))
        self._dept_headcount: dict = defaultdict(int)
        self._cohorts: dict = defaultdict(list)

        for member in self.staff.values():
            self._dept_headcount[member.department] += 1
            self._cohorts[(member.department, member.category)].append(member.id)
            for dimension, value in self._actuals[member.id].items():
                self._dept_totals[member.department][dimension] += value

        for day in self.dates:
            for sid, member in self.staff.items():
                self._rows[day][sid] = Assignment(
                    staff_id=sid,
                    date=day,
                    shift_type=ShiftType.OFF,
                    department=member.department,
                )

        for record in leave:
            if record.status is not LeaveStatus.CONFIRMED:
                continue
            if record.staff_id not in self.staff or record.date not in self._rows:
                continue
            self._leave[(record.staff_id, record.date)] = record
            row = self._rows[record.date][record.staff_id]
            row.shift_type = record.leave_type.shift_type
            row.from_leave = True
            if row.shift_type is ShiftType.ANNUAL:
                self._quota_used[(record.staff_id, week_start(record.date))] += 1
                self._accrue(record.staff_id, FairnessDimension.TOTAL, 1)

    # -- state machine ----------------------------------------------------

    def advance(self, new_state: RunState) -> None:
        if new_state not in _TRANSITIONS[self.state]:
            raise InvalidStateTransition(self.state, new_state)
        self.state = new_state

    # -- lookups ------------------------------------------------------------

    def dates_in_week(self, monday: date) -> list[date]:
        return [d for d in self.dates if week_start(d) == monday]

    def row(self, staff_id: str, day: date) -> Assignment:
        return self._rows[day][staff_id]

    def rows_on(self, day: date) -> list[Assignment]:
        return list(self._rows[day].values())

    def classification(self, day: date) -> DayClassification:
        return self.classifications[day]

    def is_holiday(self, day: date) -> bool:
        return self.classifications[day].is_holiday

    def leave_record(self, staff_id: str, day: date) -> Optional[LeaveRecord]:
        return self._leave.get((staff_id, day))

    def has_leave_in_week(self, staff_id: str, monday: date) -> bool:
        return any(
            week_start(day) == monday for (sid, day) in self._leave if sid == staff_id
        )

    def quota(self, staff_id: str) -> int:
        return self.quota_policy.weekly_quota(self.staff[staff_id])

    def quota_used(self, staff_id: str, monday: date) -> int:
        """WORK plus ANNUAL rows for the staff member in the week."""
        return self._quota_used[(staff_id, monday)]

    def quota_gap(self, staff_id: str, monday: date) -> int:
        """Positive when under quota, negative when over."""
        return self.quota(staff_id) - self.quota_used(staff_id, monday)

    def is_at_quota(self, staff_id: str, day: date) -> bool:
        return self.quota_gap(staff_id, week_start(day)) <= 0

    def is_free(self, staff_id: str, day: date) -> bool:
        """Plain OFF row that is not backed by a leave record."""
        row = self._rows[day][staff_id]
        return row.shift_type is ShiftType.OFF and not row.from_leave

    def is_excluded(self, staff_id: str, day: date) -> bool:
        requirement = self.requirements.get(day)
        if requirement is not None and staff_id in requirement.excluded_staff_ids:
            return True
        return (staff_id, day) in self._leave

    def off_count(self, day: date) -> int:
        return sum(1 for row in self._rows[day].values() if row.shift_type is ShiftType.OFF)

    def week_off_total(self, monday: date) -> int:
        return sum(self.off_count(day) for day in self.dates_in_week(monday))

    def week_off_target(self, monday: date) -> int:
        business_days = len(self.dates_in_week(monday))
        return sum(
            self.quota_policy.off_target(member, business_days)
            for member in self.staff.values()
        )

    def assigned(self, day: date, department: Optional[str], category: str) -> list[Assignment]:
        """WORK rows filling a department/category on a date.

        A department of None matches every department.
        """
        return [
            row
            for row in self._rows[day].values()
            if row.is_work
            and row.category == category
            and (department is None or row.department == department)
        ]

    def work_rows(self) -> list[Assignment]:
        return [row for day in self.dates for row in self._rows[day].values() if row.is_work]

    # -- fairness tallies ---------------------------------------------------

    def actual(self, staff_id: str, dimension: FairnessDimension) -> float:
        return self._actuals[staff_id][dimension]

    def department_total(self, department: str, dimension: FairnessDimension) -> float:
        return self._dept_totals[department][dimension]

    def department_headcount(self, department: str) -> int:
        return self._dept_headcount[department]

    def cohort(self, department: str, category: str) -> list[str]:
        return self._cohorts[(department, category)]

    def cohorts(self) -> dict:
        return dict(self._cohorts)

    def _accrue(self, staff_id: str, dimension: FairnessDimension, amount: int) -> None:
        self._actuals[staff_id][dimension] += amount
        department = self.staff[staff_id].department
        self._dept_totals[department][dimension] += amount

    def _accrue_work(self, staff_id: str, day: date, amount: int) -> None:
        classification = self.classifications[day]
        for dimension in FairnessDimension:
            if classification.accrues_to(dimension):
                self._accrue(staff_id, dimension, amount)

    # -- mutations ----------------------------------------------------------

    def assign_work(
        self,
        staff_id: str,
        day: date,
        category: str,
        is_flexible: bool = False,
    ) -> Assignment:
        """Turn a free OFF row into WORK for ``category``."""
        if not self.is_free(staff_id, day):
            raise ValueError(f"{staff_id} is not free on {day.isoformat()}")
        row = self._rows[day][staff_id]
        requirement = self.requirements.get(day)
        night = requirement is not None and requirement.has_night_shift
        row.shift_type = ShiftType.WORK_NIGHT if night else ShiftType.WORK_DAY
        row.category = category
        row.is_flexible = is_flexible
        self._quota_used[(staff_id, week_start(day))] += 1
        self._accrue_work(staff_id, day, 1)
        return row

    def release_work(self, staff_id: str, day: date) -> Assignment:
        """Turn a WORK row back into OFF."""
        row = self._rows[day][staff_id]
        if not row.is_work:
            raise ValueError(f"{staff_id} is not working on {day.isoformat()}")
        row.shift_type = ShiftType.OFF
        row.category = None
        row.is_flexible = False
        self._quota_used[(staff_id, week_start(day))] -= 1
        self._accrue_work(staff_id, day, -1)
        return row

    def restore_leave(self, staff_id: str, day: date) -> Assignment:
        """Put a leave row back where a WORK row overrode it."""
        record = self._leave[(staff_id, day)]
        row = self._rows[day][staff_id]
        if row.is_work:
            self.release_work(staff_id, day)
        row.shift_type = record.leave_type.shift_type
        row.from_leave = True
        if row.shift_type is ShiftType.ANNUAL:
            self._quota_used[(staff_id, week_start(day))] += 1
            self._accrue(staff_id, FairnessDimension.TOTAL, 1)
        return row

    # -- export -------------------------------------------------------------

    def to_assignments(self) -> list[Assignment]:
        """One row per active staff per business day, ordered by date then staff."""
        return [
            Assignment(
                staff_id=row.staff_id,
                date=row.date,
                shift_type=row.shift_type,
                category=row.category,
                department=row.department,
                is_flexible=row.is_flexible,
                from_leave=row.from_leave,
            )
            for day in self.dates
            for row in self._rows[day].values()
        ]
