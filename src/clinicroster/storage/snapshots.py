"""Pre/post-run snapshots for operator diff and rollback."""

from dataclasses import dataclass, field
from datetime import datetime

from clinicroster.domain.models import AssignmentSnapshot
from clinicroster.logger import get_logger
from clinicroster.storage.ports import PeriodStore

logger = get_logger("snapshots")

PRE_RUN = "PRE_RUN"
POST_RUN = "POST_RUN"


@dataclass
class SnapshotDiff:
    """Row-level difference between two snapshots.

    Rows are identified by (staff_id, date). ``changed`` holds
    (before, after) pairs.
    """

    added: list = field(default_factory=list)
    removed: list = field(default_factory=list)
    changed: list = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.removed or self.changed)

    def summary(self) -> str:
        return (
            f"{len(self.added)} added, {len(self.removed)} removed, "
            f"{len(self.changed)} changed"
        )


def take_snapshot(store: PeriodStore, period_id: str, label: str) -> AssignmentSnapshot:
    """Capture and store the period's current assignment rows."""
    snapshot = AssignmentSnapshot(
        period_id=period_id,
        label=label,
        taken_at=datetime.now(),
        assignments=store.assignments(period_id),
    )
    store.save_snapshot(snapshot)
    logger.debug(
        "Snapshot %s for %s: %d rows", label, period_id, len(snapshot.assignments)
    )
    return snapshot


def _row_state(row) -> tuple:
    return (row.shift_type, row.category, row.is_flexible)


def diff_snapshots(before: AssignmentSnapshot, after: AssignmentSnapshot) -> SnapshotDiff:
    old = {(a.staff_id, a.date): a for a in before.assignments}
    new = {(a.staff_id, a.date): a for a in after.assignments}
    diff = SnapshotDiff()
    for key in sorted(new.keys() - old.keys()):
        diff.added.append(new[key])
    for key in sorted(old.keys() - new.keys()):
        diff.removed.append(old[key])
    for key in sorted(old.keys() & new.keys()):
        if _row_state(old[key]) != _row_state(new[key]):
            diff.changed.append((old[key], new[key]))
    return diff


def restore_snapshot(store: PeriodStore, snapshot: AssignmentSnapshot) -> None:
    """Write a snapshot's rows back through the atomic replace."""
    store.replace_period_assignments(snapshot.period_id, list(snapshot.assignments))
    logger.info(
        "Restored %s snapshot of %s taken %s",
        snapshot.label,
        snapshot.period_id,
        snapshot.taken_at.isoformat(timespec="seconds"),
    )
