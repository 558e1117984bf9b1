"""Domain models, configuration and business rules for rostering."""

from clinicroster.domain.calendar import DayClassifier
from clinicroster.domain.models import (
    Assignment,
    AssignmentSnapshot,
    CategoryCount,
    CategoryRequirement,
    CombinationRule,
    DayClassification,
    DayRequirement,
    DayType,
    DimensionScore,
    FairnessDimension,
    FillStrategy,
    IssueSeverity,
    IssueStatus,
    IssueType,
    LeaveRecord,
    LeaveStatus,
    LeaveType,
    PeriodStatus,
    ProviderRoster,
    RunOutcome,
    RunState,
    SchedulingPeriod,
    ShiftType,
    StaffFairnessScore,
    StaffMember,
    UnresolvedIssue,
    WorkType,
    week_start,
)
from clinicroster.domain.policies import (
    DefaultLeaveGatePolicy,
    DefaultQuotaPolicy,
    LeaveGatePolicy,
    QuotaPolicy,
    round_half_up,
)
from clinicroster.domain.requirements import RequirementCalculator, split_by_ratio
from clinicroster.domain.settings import (
    BaselineMode,
    FairnessSettings,
    RatioConfig,
    RosterSettings,
)

__all__ = [
    # Models
    "Assignment",
    "AssignmentSnapshot",
    "CategoryCount",
    "CategoryRequirement",
    "CombinationRule",
    "DayClassification",
    "DayRequirement",
    "DayType",
    "DimensionScore",
    "FairnessDimension",
    "FillStrategy",
    "IssueSeverity",
    "IssueStatus",
    "IssueType",
    "LeaveRecord",
    "LeaveStatus",
    "LeaveType",
    "PeriodStatus",
    "ProviderRoster",
    "RunOutcome",
    "RunState",
    "SchedulingPeriod",
    "ShiftType",
    "StaffFairnessScore",
    "StaffMember",
    "UnresolvedIssue",
    "WorkType",
    "week_start",
    # Settings
    "BaselineMode",
    "FairnessSettings",
    "RatioConfig",
    "RosterSettings",
    # Policies
    "DefaultLeaveGatePolicy",
    "DefaultQuotaPolicy",
    "LeaveGatePolicy",
    "QuotaPolicy",
    "round_half_up",
    # Calendar and requirements
    "DayClassifier",
    "RequirementCalculator",
    "split_by_ratio",
]
