"""Tests for the in-memory store, JSON loading and snapshots."""

import json
from datetime import datetime, timedelta

import pytest

from conftest import CLINIC, MONDAY, day, make_leave, make_staff, simple_store

from clinicroster.domain.models import (
    Assignment,
    AssignmentSnapshot,
    CategoryCount,
    FairnessDimension,
    LeaveStatus,
    LeaveType,
    PeriodStatus,
    SchedulingPeriod,
    ShiftType,
    WorkType,
)
from clinicroster.errors import ConfigurationError
from clinicroster.scheduling.orchestrator import AssignmentOrchestrator
from clinicroster.storage.json_loader import (
    build_store,
    load_clinic_store,
    outcome_to_dict,
    save_outcome,
)
from clinicroster.storage.memory import InMemoryClinicStore
from clinicroster.storage.snapshots import (
    POST_RUN,
    diff_snapshots,
    restore_snapshot,
    take_snapshot,
)


def clinic_document() -> dict:
    """A small but complete clinic document for the test week."""
    dates = [day(i) for i in range(6)]
    return {
        "clinic_id": CLINIC,
        "settings": {"fairness": {"tolerance": 4}},
        "ratios": {"category_ratios": {"nurse": 100}},
        "staff": [
            {"id": f"s{i}", "name": f"Nurse {i}", "department": "dental",
             "category": "nurse", "work_type": "WEEK_4"}
            for i in range(3)
        ] + [
            {"id": "a1", "name": "Assistant", "department": "dental",
             "category": "assistant", "flexible_for": ["nurse"],
             "flexibility_priority": 2},
        ],
        "leave": [
            {"staff_id": "s0", "date": day(0).isoformat(), "type": "ANNUAL"},
            {"staff_id": "s1", "date": day(1).isoformat(), "type": "OFF",
             "status": "ON_HOLD", "created_at": "2024-01-02T09:00:00"},
        ],
        "holidays": [],
        "rosters": [
            {"date": d.isoformat(), "providers": ["dr_kim"], "night": d == day(2)}
            for d in dates
        ],
        "rules": [
            {"providers": ["dr_kim"], "night": False, "total": 2},
            {"providers": ["dr_kim"], "night": True, "total": 2,
             "departments": {"dental": 2},
             "categories": {"dental": {"nurse": {"count": 2, "min_required": 1}}}},
        ],
        "periods": [
            {"id": "W3", "start": MONDAY.isoformat(), "end": day(6).isoformat()},
        ],
        "prior_actuals": {"W3": {"s2": {"night": 2}}},
    }


class TestInMemoryClinicStore:
    """Tests for InMemoryClinicStore."""

    def test_active_staff_only(self):
        store = InMemoryClinicStore()
        store.add_staff(CLINIC, [make_staff("A"), make_staff("B", active=False)])
        assert [s.id for s in store.active_staff(CLINIC)] == ["A"]

    def test_leave_filtered_by_range_and_status(self):
        store = InMemoryClinicStore()
        store.add_leave(
            CLINIC,
            [
                make_leave("A", day(0)),
                make_leave("A", day(9)),
                make_leave("B", day(1), status=LeaveStatus.CANCELLED),
            ],
        )
        records = store.leave_between(CLINIC, MONDAY, day(6), {LeaveStatus.CONFIRMED})
        assert [(r.staff_id, r.date) for r in records] == [("A", day(0))]
        assert len(store.leave_between(CLINIC, MONDAY, day(6))) == 2

    def test_reads_return_copies(self):
        store = simple_store([make_staff("A")], per_day=1)
        period = store.get_period("P1")
        period.status = PeriodStatus.COMPLETED
        assert store.get_period("P1").status is PeriodStatus.DRAFT

    def test_previous_period(self):
        store = simple_store([make_staff("A")], per_day=1)
        store.add_period(SchedulingPeriod("P0", CLINIC, day(-14), day(-8)))
        store.add_period(SchedulingPeriod("Pm1", CLINIC, day(-7), day(-1)))
        store.add_period(SchedulingPeriod("X", "other", day(-7), day(-1)))

        previous = store.previous_period(store.get_period("P1"))

        assert previous.id == "Pm1"
        assert store.previous_period(store.get_period("P0")) is None

    def test_replace_is_whole_period(self):
        store = InMemoryClinicStore()
        store.replace_period_assignments("P1", [Assignment("A", day(0), ShiftType.OFF)])
        store.replace_period_assignments("P1", [Assignment("B", day(1), ShiftType.OFF)])
        assert [a.staff_id for a in store.assignments("P1")] == ["B"]
        assert store.replace_calls == 2


class TestJsonLoader:
    """Tests for building a store from a clinic document."""

    def test_build_store(self):
        store = build_store(clinic_document())

        staff = {s.id: s for s in store.active_staff(CLINIC)}
        assert staff["s0"].work_type is WorkType.WEEK_4
        assert staff["a1"].flexible_for_categories == frozenset({"nurse"})
        assert staff["a1"].flexibility_priority == 2
        assert store.settings(CLINIC).fairness.tolerance == 4.0
        assert store.get_period("W3").end_date == day(6)

        night_rule = [r for r in store.combination_rules(CLINIC) if r.has_night_shift][0]
        assert night_rule.department_category_required == {
            "dental": {"nurse": CategoryCount(count=2, min_required=1)}
        }

        [annual] = store.leave_between(CLINIC, MONDAY, day(6), {LeaveStatus.CONFIRMED})
        assert annual.leave_type is LeaveType.ANNUAL
        [held] = store.leave_between(CLINIC, MONDAY, day(6), {LeaveStatus.ON_HOLD})
        assert held.created_at == datetime(2024, 1, 2, 9, 0)

        actuals = store.prior_actuals(CLINIC, store.get_period("W3"))
        assert actuals == {"s2": {FairnessDimension.NIGHT: 2.0}}

    def test_missing_clinic_id(self):
        with pytest.raises(ConfigurationError, match="Invalid clinic document"):
            build_store({"staff": []})

    def test_bad_enum_value(self):
        document = clinic_document()
        document["staff"][0]["work_type"] = "WEEK_7"
        with pytest.raises(ConfigurationError):
            build_store(document)

    def test_bad_ratio_sum_kept_as_configuration_error(self):
        document = clinic_document()
        document["ratios"] = {"category_ratios": {"nurse": 80}}
        with pytest.raises(ConfigurationError, match="sum to 100"):
            build_store(document)

    def test_load_run_and_export(self, tmp_path):
        source = tmp_path / "clinic.json"
        source.write_text(json.dumps(clinic_document()), encoding="utf-8")

        store = load_clinic_store(source)
        outcome = AssignmentOrchestrator(store).run("W3")
        target = tmp_path / "outcome.json"
        save_outcome(outcome, target)

        data = json.loads(target.read_text(encoding="utf-8"))
        assert data["period_id"] == "W3"
        assert data["assignment_count"] == outcome.assignment_count
        assert len(data["assignments"]) == 4 * 6
        assert {f["staff_id"] for f in data["fairness"]} == {"s0", "s1", "s2", "a1"}

    def test_outcome_to_dict_is_plain_json(self):
        store = simple_store([make_staff("A")], per_day=1)
        outcome = AssignmentOrchestrator(store).run("P1")

        data = outcome_to_dict(outcome)

        json.dumps(data)
        assert data["state"] == outcome.state.value
        assert all(isinstance(i["severity"], str) for i in data["issues"])


class TestSnapshots:
    """Tests for snapshot diff and restore."""

    def _snapshot(self, rows, label="S"):
        return AssignmentSnapshot("P1", label, datetime(2024, 1, 1), rows)

    def test_diff(self):
        before = self._snapshot(
            [
                Assignment("A", day(0), ShiftType.WORK_DAY, "nurse"),
                Assignment("B", day(0), ShiftType.OFF),
            ]
        )
        after = self._snapshot(
            [
                Assignment("A", day(0), ShiftType.OFF),
                Assignment("C", day(0), ShiftType.OFF),
            ]
        )

        diff = diff_snapshots(before, after)

        assert [a.staff_id for a in diff.added] == ["C"]
        assert [a.staff_id for a in diff.removed] == ["B"]
        assert [(old.shift_type, new.shift_type) for old, new in diff.changed] == [
            (ShiftType.WORK_DAY, ShiftType.OFF)
        ]
        assert diff.summary() == "1 added, 1 removed, 1 changed"
        assert not diff.is_empty

    def test_identical_snapshots(self):
        rows = [Assignment("A", day(0), ShiftType.OFF)]
        assert diff_snapshots(self._snapshot(rows), self._snapshot(list(rows))).is_empty

    def test_restore_previous_run(self):
        store = simple_store([make_staff(sid) for sid in "AB"], per_day=1)
        AssignmentOrchestrator(store).run("P1")
        [good] = [s for s in store.snapshots("P1") if s.label == POST_RUN]

        store.replace_period_assignments("P1", [])
        restore_snapshot(store, good)

        restored = take_snapshot(store, "P1", "CHECK")
        assert diff_snapshots(good, restored).is_empty
        assert len(store.assignments("P1")) == 12

    def test_snapshot_of_empty_period(self):
        store = InMemoryClinicStore()
        store.add_period(SchedulingPeriod("P1", CLINIC, MONDAY, MONDAY + timedelta(days=6)))
        snapshot = take_snapshot(store, "P1", "PRE")
        assert snapshot.assignments == []
        assert store.snapshots("P1")[0].label == "PRE"
