"""Storage boundary consumed by the assignment engine.

The engine only depends on these interfaces. Transactions, connection
handling and schema are the implementor's concern; the one requirement is
that :meth:`PeriodStore.replace_period_assignments` is atomic.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Optional

from clinicroster.domain.models import (
    Assignment,
    AssignmentSnapshot,
    LeaveRecord,
    LeaveStatus,
    PeriodStatus,
    SchedulingPeriod,
    StaffMember,
    UnresolvedIssue,
)
from clinicroster.domain.settings import RatioConfig, RosterSettings


class StaffDirectory(ABC):
    @abstractmethod
    def active_staff(self, clinic_id: str) -> list[StaffMember]:
        """All active staff of a clinic."""
        pass


class LeaveLedger(ABC):
    @abstractmethod
    def leave_between(
        self,
        clinic_id: str,
        start: date,
        end: date,
        statuses: Optional[set] = None,
    ) -> list[LeaveRecord]:
        """Leave records in [start, end], optionally filtered by status."""
        pass

    @abstractmethod
    def set_leave_status(self, record: LeaveRecord, status: LeaveStatus) -> None:
        pass


class HolidayCalendar(ABC):
    @abstractmethod
    def holidays_between(self, clinic_id: str, start: date, end: date) -> set:
        pass


class RosterSource(ABC):
    """Provider rosters plus the configuration that turns them into requirements."""

    @abstractmethod
    def rosters_between(self, clinic_id: str, start: date, end: date) -> dict:
        """Mapping of date to ProviderRoster."""
        pass

    @abstractmethod
    def combination_rules(self, clinic_id: str) -> list:
        pass

    @abstractmethod
    def ratio_config(self, clinic_id: str) -> Optional[RatioConfig]:
        pass

    @abstractmethod
    def settings(self, clinic_id: str) -> RosterSettings:
        pass


class PeriodStore(ABC):
    @abstractmethod
    def get_period(self, period_id: str) -> Optional[SchedulingPeriod]:
        pass

    @abstractmethod
    def set_period_status(self, period_id: str, status: PeriodStatus) -> None:
        pass

    @abstractmethod
    def previous_period(self, period: SchedulingPeriod) -> Optional[SchedulingPeriod]:
        pass

    @abstractmethod
    def assignments(self, period_id: str) -> list[Assignment]:
        pass

    @abstractmethod
    def replace_period_assignments(self, period_id: str, rows: list[Assignment]) -> None:
        """Atomically delete the period's rows and insert ``rows``."""
        pass

    @abstractmethod
    def save_snapshot(self, snapshot: AssignmentSnapshot) -> None:
        pass

    @abstractmethod
    def snapshots(self, period_id: str) -> list[AssignmentSnapshot]:
        pass


class FairnessScoreStore(ABC):
    @abstractmethod
    def save_scores(self, period_id: str, scores: list) -> None:
        """Persist the FairnessScoreSnapshot of a run."""
        pass

    @abstractmethod
    def scores(self, period_id: str) -> list:
        pass

    @abstractmethod
    def prior_actuals(self, clinic_id: str, period: SchedulingPeriod) -> dict:
        """Actuals carried into the period, keyed by staff id then dimension."""
        pass

    def snapshot_baselines(self, clinic_id: str, period: SchedulingPeriod) -> dict:
        """Fixed baselines used when the clinic runs in SNAPSHOT mode."""
        return {}


class IssueLog(ABC):
    @abstractmethod
    def save_issues(self, period_id: str, issues: list[UnresolvedIssue]) -> None:
        """Replace the period's issue list."""
        pass

    @abstractmethod
    def issues(self, period_id: str) -> list[UnresolvedIssue]:
        pass

    @abstractmethod
    def update_issues(self, period_id: str, issues: list[UnresolvedIssue]) -> None:
        """Write back status changes for a period's issues."""
        pass
