"""In-memory implementation of every storage port."""

import copy
from collections import defaultdict
from datetime import date
from typing import Iterable, Optional

from clinicroster.domain.models import (
    Assignment,
    AssignmentSnapshot,
    CombinationRule,
    LeaveRecord,
    LeaveStatus,
    PeriodStatus,
    ProviderRoster,
    SchedulingPeriod,
    StaffMember,
    UnresolvedIssue,
)
from clinicroster.domain.settings import RatioConfig, RosterSettings
from clinicroster.storage.ports import (
    FairnessScoreStore,
    HolidayCalendar,
    IssueLog,
    LeaveLedger,
    PeriodStore,
    RosterSource,
    StaffDirectory,
)


class InMemoryClinicStore(
    StaffDirectory,
    LeaveLedger,
    HolidayCalendar,
    RosterSource,
    PeriodStore,
    FairnessScoreStore,
    IssueLog,
):
    """Holds one or more clinics entirely in memory.

    Reads return copies so that callers cannot mutate stored state by
    accident; writes replace whole collections.

    Example:
        >>> store = InMemoryClinicStore()
        >>> store.add_staff("clinic-1", staff)
        >>> store.add_period(SchedulingPeriod("2024-05", "clinic-1", start, end))
    """

    def __init__(self):
        self._staff: dict = defaultdict(list)
        self._leave: dict = defaultdict(list)
        self._holidays: dict = defaultdict(set)
        self._rosters: dict = defaultdict(dict)
        self._rules: dict = defaultdict(list)
        self._ratios: dict = {}
        self._settings: dict = {}
        self._periods: dict = {}
        self._assignments: dict = {}
        self._snapshots: dict = defaultdict(list)
        self._scores: dict = {}
        self._issues: dict = {}
        self._prior_actuals: dict = defaultdict(dict)
        self._snapshot_baselines: dict = defaultdict(dict)
        self.replace_calls = 0

    # -- setup --------------------------------------------------------------

    def add_staff(self, clinic_id: str, staff: Iterable[StaffMember]) -> None:
        self._staff[clinic_id].extend(staff)

    def add_leave(self, clinic_id: str, records: Iterable[LeaveRecord]) -> None:
        self._leave[clinic_id].extend(records)

    def add_holidays(self, clinic_id: str, holidays: Iterable[date]) -> None:
        self._holidays[clinic_id].update(holidays)

    def add_rosters(self, clinic_id: str, rosters: Iterable[ProviderRoster]) -> None:
        for roster in rosters:
            self._rosters[clinic_id][roster.date] = roster

    def add_rules(self, clinic_id: str, rules: Iterable[CombinationRule]) -> None:
        self._rules[clinic_id].extend(rules)

    def set_ratio_config(self, clinic_id: str, config: Optional[RatioConfig]) -> None:
        self._ratios[clinic_id] = config

    def set_settings(self, clinic_id: str, settings: RosterSettings) -> None:
        self._settings[clinic_id] = settings

    def add_period(self, period: SchedulingPeriod) -> None:
        self._periods[period.id] = period

    def set_prior_actuals(self, clinic_id: str, period_id: str, actuals: dict) -> None:
        self._prior_actuals[clinic_id][period_id] = actuals

    def set_snapshot_baselines(self, clinic_id: str, period_id: str, baselines: dict) -> None:
        self._snapshot_baselines[clinic_id][period_id] = baselines

    # -- StaffDirectory -----------------------------------------------------

    def active_staff(self, clinic_id: str) -> list[StaffMember]:
        return [s for s in self._staff[clinic_id] if s.active]

    # -- LeaveLedger --------------------------------------------------------

    def leave_between(
        self,
        clinic_id: str,
        start: date,
        end: date,
        statuses: Optional[set] = None,
    ) -> list[LeaveRecord]:
        return [
            copy.copy(record)
            for record in self._leave[clinic_id]
            if start <= record.date <= end
            and (statuses is None or record.status in statuses)
        ]

    def set_leave_status(self, record: LeaveRecord, status: LeaveStatus) -> None:
        for clinic_records in self._leave.values():
            for stored in clinic_records:
                if stored.staff_id == record.staff_id and stored.date == record.date and (
                    record.id is None or stored.id == record.id
                ):
                    stored.status = status
        record.status = status

    # -- HolidayCalendar ----------------------------------------------------

    def holidays_between(self, clinic_id: str, start: date, end: date) -> set:
        return {h for h in self._holidays[clinic_id] if start <= h <= end}

    # -- RosterSource -------------------------------------------------------

    def rosters_between(self, clinic_id: str, start: date, end: date) -> dict:
        return {
            day: roster
            for day, roster in self._rosters[clinic_id].items()
            if start <= day <= end
        }

    def combination_rules(self, clinic_id: str) -> list:
        return list(self._rules[clinic_id])

    def ratio_config(self, clinic_id: str) -> Optional[RatioConfig]:
        return self._ratios.get(clinic_id)

    def settings(self, clinic_id: str) -> RosterSettings:
        return self._settings.get(clinic_id) or RosterSettings()

    # -- PeriodStore --------------------------------------------------------

    def get_period(self, period_id: str) -> Optional[SchedulingPeriod]:
        period = self._periods.get(period_id)
        return copy.copy(period) if period else None

    def set_period_status(self, period_id: str, status: PeriodStatus) -> None:
        self._periods[period_id].status = status

    def previous_period(self, period: SchedulingPeriod) -> Optional[SchedulingPeriod]:
        earlier = [
            p
            for p in self._periods.values()
            if p.clinic_id == period.clinic_id and p.end_date < period.start_date
        ]
        if not earlier:
            return None
        return copy.copy(max(earlier, key=lambda p: p.end_date))

    def assignments(self, period_id: str) -> list[Assignment]:
        return copy.deepcopy(self._assignments.get(period_id, []))

    def replace_period_assignments(self, period_id: str, rows: list[Assignment]) -> None:
        self._assignments[period_id] = copy.deepcopy(list(rows))
        self.replace_calls += 1

    def save_snapshot(self, snapshot: AssignmentSnapshot) -> None:
        self._snapshots[snapshot.period_id].append(copy.deepcopy(snapshot))

    def snapshots(self, period_id: str) -> list[AssignmentSnapshot]:
        return copy.deepcopy(self._snapshots[period_id])

    # -- FairnessScoreStore -------------------------------------------------

    def save_scores(self, period_id: str, scores: list) -> None:
        self._scores[period_id] = copy.deepcopy(scores)

    def scores(self, period_id: str) -> list:
        return copy.deepcopy(self._scores.get(period_id, []))

    def prior_actuals(self, clinic_id: str, period: SchedulingPeriod) -> dict:
        return copy.deepcopy(self._prior_actuals[clinic_id].get(period.id, {}))

    def snapshot_baselines(self, clinic_id: str, period: SchedulingPeriod) -> dict:
        return copy.deepcopy(self._snapshot_baselines[clinic_id].get(period.id, {}))

    # -- IssueLog -----------------------------------------------------------

    def save_issues(self, period_id: str, issues: list[UnresolvedIssue]) -> None:
        self._issues[period_id] = copy.deepcopy(list(issues))

    def issues(self, period_id: str) -> list[UnresolvedIssue]:
        return copy.deepcopy(self._issues.get(period_id, []))

    def update_issues(self, period_id: str, issues: list[UnresolvedIssue]) -> None:
        self._issues[period_id] = copy.deepcopy(list(issues))
