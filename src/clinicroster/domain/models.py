"""Domain models for the roster engine.

This module contains the core data structures used throughout the engine:
staff and leave records, provider rosters and requirement rules, the
per-run day classification and requirements, the generated assignment rows,
fairness scores and unresolved issues.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Optional


def week_start(day: date) -> date:
    """Return the Monday of the calendar week containing ``day``."""
    return day - timedelta(days=day.weekday())


class WorkType(Enum):
    """Contracted working days per calendar week."""

    WEEK_4 = "WEEK_4"
    WEEK_5 = "WEEK_5"

    @property
    def days_per_week(self) -> int:
        return 4 if self is WorkType.WEEK_4 else 5


class ShiftType(Enum):
    """Status of one staff member on one business day."""

    WORK_DAY = "WORK_DAY"
    WORK_NIGHT = "WORK_NIGHT"
    OFF = "OFF"
    ANNUAL = "ANNUAL"

    @property
    def is_work(self) -> bool:
        return self in (ShiftType.WORK_DAY, ShiftType.WORK_NIGHT)


class LeaveType(Enum):
    ANNUAL = "ANNUAL"
    OFF = "OFF"

    @property
    def shift_type(self) -> ShiftType:
        return ShiftType.ANNUAL if self is LeaveType.ANNUAL else ShiftType.OFF


class LeaveStatus(Enum):
    CONFIRMED = "CONFIRMED"
    ON_HOLD = "ON_HOLD"  # Deferred candidate, reviewed after a run
    PENDING = "PENDING"
    CANCELLED = "CANCELLED"


class DayType(Enum):
    """Classification tags for a calendar date.

    The integer priority is fixed: higher values are filled first and
    receive the strongest fairness attention.
    """

    HOLIDAY = "HOLIDAY"
    HOLIDAY_ADJACENT = "HOLIDAY_ADJACENT"
    WEEKEND = "WEEKEND"
    NIGHT = "NIGHT"
    NORMAL = "NORMAL"

    @property
    def priority(self) -> int:
        return _DAY_TYPE_PRIORITY[self]

    @property
    def dimension(self) -> Optional["FairnessDimension"]:
        """Fairness dimension a WORK row on this kind of day accrues to."""
        return _DAY_TYPE_DIMENSION.get(self)


class FairnessDimension(Enum):
    TOTAL = "total"
    NIGHT = "night"
    WEEKEND = "weekend"
    HOLIDAY = "holiday"
    HOLIDAY_ADJACENT = "holiday_adjacent"


_DAY_TYPE_PRIORITY = {
    DayType.HOLIDAY: 4,
    DayType.HOLIDAY_ADJACENT: 3,
    DayType.WEEKEND: 2,
    DayType.NIGHT: 1,
    DayType.NORMAL: 0,
}

_DAY_TYPE_DIMENSION = {
    DayType.HOLIDAY: FairnessDimension.HOLIDAY,
    DayType.HOLIDAY_ADJACENT: FairnessDimension.HOLIDAY_ADJACENT,
    DayType.WEEKEND: FairnessDimension.WEEKEND,
    DayType.NIGHT: FairnessDimension.NIGHT,
}


class FillStrategy(Enum):
    """How a category requirement may be satisfied."""

    NATIVE_ONLY = "NATIVE_ONLY"
    NATIVE_THEN_FLEXIBLE = "NATIVE_THEN_FLEXIBLE"


class IssueType(Enum):
    SHORTAGE = "SHORTAGE"  # A day/category slot could not be filled
    EXCESS = "EXCESS"  # More staff than required, or a staff over quota
    STAFF_SHORTAGE = "STAFF_SHORTAGE"  # A staff member is under weekly quota
    UNFAIR = "UNFAIR"  # Fairness spread above tolerance


class IssueSeverity(Enum):
    CRITICAL = "CRITICAL"
    WARNING = "WARNING"
    INFO = "INFO"

    @property
    def rank(self) -> int:
        return {"CRITICAL": 0, "WARNING": 1, "INFO": 2}[self.value]


class IssueStatus(Enum):
    OPEN = "OPEN"
    RESOLVED = "RESOLVED"
    PENDING_NEXT_PERIOD = "PENDING_NEXT_PERIOD"
    CARRY_TO_NEXT_PERIOD = "CARRY_TO_NEXT_PERIOD"


class PeriodStatus(Enum):
    DRAFT = "DRAFT"
    ASSIGNING = "ASSIGNING"  # Single-writer lock held by a running assignment
    COMPLETED = "COMPLETED"
    NEEDS_ATTENTION = "NEEDS_ATTENTION"


class RunState(Enum):
    PREPARED = "PREPARED"
    PRIORITY_ASSIGNED = "PRIORITY_ASSIGNED"
    QUOTA_RECONCILED = "QUOTA_RECONCILED"
    HOLIDAY_OVERRIDDEN = "HOLIDAY_OVERRIDDEN"
    VALIDATED = "VALIDATED"
    COMPLETED = "COMPLETED"
    CRITICAL_UNRESOLVED = "CRITICAL_UNRESOLVED"


@dataclass(frozen=True)
class StaffMember:
    """A clinic staff member.

    Attributes:
        id: Unique identifier.
        name: Display name.
        department: Department the staff member belongs to.
        category: Native job category within the department.
        work_type: Contracted days per week.
        flexible_for_categories: Other categories this person may cover.
        flexibility_priority: Higher values are drafted first as flexible cover.
        active: Inactive staff are ignored by the engine.
    """

    id: str
    name: str
    department: str
    category: str
    work_type: WorkType = WorkType.WEEK_5
    flexible_for_categories: frozenset = field(default_factory=frozenset)
    flexibility_priority: int = 0
    active: bool = True

    def can_fill(self, category: str) -> bool:
        return category == self.category or category in self.flexible_for_categories


@dataclass
class LeaveRecord:
    staff_id: str
    date: date
    leave_type: LeaveType
    status: LeaveStatus = LeaveStatus.CONFIRMED
    id: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class ProviderRoster:
    """Providers (doctors) on duty for a date, which drive requirements."""

    date: date
    providers: tuple
    has_night_shift: bool = False

    @property
    def combination_key(self) -> tuple:
        return (tuple(sorted(self.providers)), self.has_night_shift)


@dataclass(frozen=True)
class CategoryCount:
    """Explicit staffing count for one category.

    ``count`` is the soft target; ``min_required`` is the must-fill part.
    """

    count: int
    min_required: int = 0


@dataclass
class CombinationRule:
    """Requirement row for one provider combination.

    Attributes:
        providers: Providers on duty for the matching dates.
        has_night_shift: Whether the matching dates run a night shift.
        total_required: Total staff required.
        department_required: Explicit per-department counts.
        department_category_required: Explicit per-category counts
            keyed by department.
    """

    providers: tuple
    has_night_shift: bool
    total_required: int
    department_required: dict = field(default_factory=dict)
    department_category_required: dict = field(default_factory=dict)

    @property
    def combination_key(self) -> tuple:
        return (tuple(sorted(self.providers)), self.has_night_shift)


@dataclass(frozen=True)
class DayClassification:
    """Classification of a single date.

    Attributes:
        date: The classified date.
        traits: Every applicable day type (a date may be several at once).
        tag: The highest-priority trait.
    """

    date: date
    traits: frozenset
    tag: DayType

    @property
    def is_holiday(self) -> bool:
        return DayType.HOLIDAY in self.traits

    def accrues_to(self, dimension: FairnessDimension) -> bool:
        """Whether a WORK row on this date counts toward ``dimension``."""
        if dimension is FairnessDimension.TOTAL:
            return True
        return any(trait.dimension is dimension for trait in self.traits)

    def effective_tag(self, enabled: frozenset) -> DayType:
        """Highest trait whose fairness dimension is enabled.

        Holidays keep their tag regardless so the override pass sees them.
        """
        for trait in sorted(self.traits, key=lambda t: -t.priority):
            if trait is DayType.HOLIDAY or trait.dimension in enabled:
                return trait
        return DayType.NORMAL


@dataclass
class CategoryRequirement:
    """Staffing requirement for one department/category on one date.

    ``department`` of None means candidates may come from any department.
    """

    department: Optional[str]
    category: str
    count: int
    min_required: int
    strategy: FillStrategy = FillStrategy.NATIVE_THEN_FLEXIBLE
    explicit: bool = False

    @property
    def soft_count(self) -> int:
        return max(0, self.count - self.min_required)


@dataclass
class DayRequirement:
    date: date
    classification: DayClassification
    total_required: int = 0
    department_required: dict = field(default_factory=dict)
    categories: list = field(default_factory=list)
    has_night_shift: bool = False
    excluded_staff_ids: frozenset = field(default_factory=frozenset)
    matched: bool = True


@dataclass
class Assignment:
    """One row of the generated schedule."""

    staff_id: str
    date: date
    shift_type: ShiftType
    category: Optional[str] = None
    department: Optional[str] = None
    is_flexible: bool = False
    from_leave: bool = False

    @property
    def is_work(self) -> bool:
        return self.shift_type.is_work


@dataclass
class DimensionScore:
    dimension: FairnessDimension
    baseline: float
    actual: float
    deviation: float
    score: float
    status: str  # "ahead", "behind" or "on_track"
    percentage: float


@dataclass
class StaffFairnessScore:
    staff_id: str
    department: str
    category: str
    dimensions: dict = field(default_factory=dict)
    overall_score: float = 100.0
    can_apply_annual: bool = True
    can_apply_off: bool = True

    def deviation(self, dimension: FairnessDimension) -> float:
        score = self.dimensions.get(dimension)
        return score.deviation if score else 0.0


@dataclass
class UnresolvedIssue:
    """A problem the engine could not resolve during a run."""

    issue_type: IssueType
    severity: IssueSeverity
    message: str
    staff_id: Optional[str] = None
    department: Optional[str] = None
    category: Optional[str] = None
    date: Optional[date] = None
    week_start: Optional[date] = None
    suggestion: str = ""
    justified: bool = False
    justification: str = ""
    status: IssueStatus = IssueStatus.OPEN
    period_id: Optional[str] = None
    carry_count: int = 0

    @property
    def key(self) -> tuple:
        """Identity of the underlying problem across phases and periods."""
        return (
            self.issue_type,
            self.staff_id,
            self.department,
            self.category,
            self.date,
            self.week_start,
        )

    def __str__(self) -> str:
        return f"[{self.severity.value}] {self.issue_type.value}: {self.message}"


@dataclass
class SchedulingPeriod:
    """A recurring scheduling period (typically a month)."""

    id: str
    clinic_id: str
    start_date: date
    end_date: date
    status: PeriodStatus = PeriodStatus.DRAFT

    def weeks(self) -> list[date]:
        """Mondays of every calendar week intersecting the period."""
        weeks = []
        current = week_start(self.start_date)
        while current <= self.end_date:
            weeks.append(current)
            current += timedelta(days=7)
        return weeks

    def window_dates(self) -> list[date]:
        """All dates of the full weeks covering the period."""
        return [
            monday + timedelta(days=offset)
            for monday in self.weeks()
            for offset in range(7)
        ]


@dataclass
class AssignmentSnapshot:
    period_id: str
    label: str
    taken_at: datetime
    assignments: list = field(default_factory=list)


@dataclass
class RunOutcome:
    """Result of one assignment run."""

    period_id: str
    state: RunState
    period_status: PeriodStatus
    assignments: list = field(default_factory=list)
    issues: list = field(default_factory=list)
    fairness: list = field(default_factory=list)
    warnings: list = field(default_factory=list)
    carried_issues: list = field(default_factory=list)

    @property
    def assignment_count(self) -> int:
        return sum(1 for a in self.assignments if a.is_work)

    @property
    def has_critical(self) -> bool:
        return any(i.severity is IssueSeverity.CRITICAL for i in self.issues)

    def issues_by_severity(self) -> dict:
        grouped = {severity: [] for severity in IssueSeverity}
        for issue in self.issues:
            grouped[issue.severity].append(issue)
        return grouped

    def get_fairness(self, staff_id: str) -> Optional[StaffFairnessScore]:
        for score in self.fairness:
            if score.staff_id == staff_id:
                return score
        return None
