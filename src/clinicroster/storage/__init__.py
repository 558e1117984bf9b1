"""Storage boundary and the in-memory implementation."""

from clinicroster.storage.json_loader import (
    build_store,
    load_clinic_store,
    outcome_to_dict,
    save_outcome,
)
from clinicroster.storage.memory import InMemoryClinicStore
from clinicroster.storage.ports import (
    FairnessScoreStore,
    HolidayCalendar,
    IssueLog,
    LeaveLedger,
    PeriodStore,
    RosterSource,
    StaffDirectory,
)
from clinicroster.storage.snapshots import (
    POST_RUN,
    PRE_RUN,
    SnapshotDiff,
    diff_snapshots,
    restore_snapshot,
    take_snapshot,
)

__all__ = [
    # Ports
    "FairnessScoreStore",
    "HolidayCalendar",
    "IssueLog",
    "LeaveLedger",
    "PeriodStore",
    "RosterSource",
    "StaffDirectory",
    # Implementations
    "InMemoryClinicStore",
    "build_store",
    "load_clinic_store",
    "outcome_to_dict",
    "save_outcome",
    # Snapshots
    "POST_RUN",
    "PRE_RUN",
    "SnapshotDiff",
    "diff_snapshots",
    "restore_snapshot",
    "take_snapshot",
]
