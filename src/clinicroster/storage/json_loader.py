"""Load a clinic from a JSON document and export run results.

Document layout::

    {
      "clinic_id": "clinic-1",
      "settings": {"business_weekdays": [0, 1, 2, 3, 4, 5], "fairness": {...}},
      "ratios": {"category_ratios": {"nurse": 60, "assistant": 40}},
      "staff": [{"id": "s1", "name": "Ana", "department": "dental",
                 "category": "nurse", "work_type": "WEEK_5",
                 "flexible_for": ["assistant"], "flexibility_priority": 1}],
      "leave": [{"staff_id": "s1", "date": "2024-05-06", "type": "ANNUAL",
                 "status": "CONFIRMED"}],
      "holidays": ["2024-05-01"],
      "rosters": [{"date": "2024-05-06", "providers": ["dr_kim"], "night": false}],
      "rules": [{"providers": ["dr_kim"], "night": false, "total": 3,
                 "departments": {"dental": 3},
                 "categories": {"dental": {"nurse": {"count": 2, "min_required": 1}}}}],
      "periods": [{"id": "2024-05", "start": "2024-05-01", "end": "2024-05-31"}],
      "prior_actuals": {"2024-05": {"s1": {"night": 2}}}
    }
"""

import json
from datetime import date, datetime
from pathlib import Path
from typing import Any, Union

from clinicroster.domain.models import (
    CategoryCount,
    CombinationRule,
    FairnessDimension,
    LeaveRecord,
    LeaveStatus,
    LeaveType,
    PeriodStatus,
    ProviderRoster,
    RunOutcome,
    SchedulingPeriod,
    StaffMember,
    WorkType,
)
from clinicroster.domain.settings import RatioConfig, RosterSettings
from clinicroster.errors import ConfigurationError
from clinicroster.logger import get_logger
from clinicroster.storage.memory import InMemoryClinicStore

logger = get_logger("json_loader")


def _date(value: str) -> date:
    return date.fromisoformat(value)


def _staff(item: dict) -> StaffMember:
    return StaffMember(
        id=str(item["id"]),
        name=item.get("name", str(item["id"])),
        department=item["department"],
        category=item["category"],
        work_type=WorkType(item.get("work_type", "WEEK_5")),
        flexible_for_categories=frozenset(item.get("flexible_for", [])),
        flexibility_priority=int(item.get("flexibility_priority", 0)),
        active=bool(item.get("active", True)),
    )


def _leave(item: dict) -> LeaveRecord:
    created = item.get("created_at")
    return LeaveRecord(
        staff_id=str(item["staff_id"]),
        date=_date(item["date"]),
        leave_type=LeaveType(item.get("type", "ANNUAL")),
        status=LeaveStatus(item.get("status", "CONFIRMED")),
        id=item.get("id"),
        created_at=datetime.fromisoformat(created) if created else None,
    )


def _rule(item: dict) -> CombinationRule:
    categories = {
        department: {
            category: CategoryCount(
                count=int(counts["count"]),
                min_required=int(counts.get("min_required", 0)),
            )
            for category, counts in per_dept.items()
        }
        for department, per_dept in item.get("categories", {}).items()
    }
    return CombinationRule(
        providers=tuple(item["providers"]),
        has_night_shift=bool(item.get("night", False)),
        total_required=int(item["total"]),
        department_required={k: int(v) for k, v in item.get("departments", {}).items()},
        department_category_required=categories,
    )


def _actuals(data: dict) -> dict:
    return {
        staff_id: {FairnessDimension(name): float(value) for name, value in dims.items()}
        for staff_id, dims in data.items()
    }


def build_store(data: dict) -> InMemoryClinicStore:
    """Build an in-memory store from a parsed clinic document.

    Raises:
        ConfigurationError: If a required field is missing or malformed.
    """
    try:
        clinic_id = data["clinic_id"]
        store = InMemoryClinicStore()
        store.set_settings(clinic_id, RosterSettings.from_dict(data.get("settings", {})))
        if data.get("ratios"):
            store.set_ratio_config(clinic_id, RatioConfig.from_dict(data["ratios"]))
        store.add_staff(clinic_id, [_staff(item) for item in data.get("staff", [])])
        store.add_leave(clinic_id, [_leave(item) for item in data.get("leave", [])])
        store.add_holidays(clinic_id, [_date(h) for h in data.get("holidays", [])])
        store.add_rosters(
            clinic_id,
            [
                ProviderRoster(
                    date=_date(item["date"]),
                    providers=tuple(item["providers"]),
                    has_night_shift=bool(item.get("night", False)),
                )
                for item in data.get("rosters", [])
            ],
        )
        store.add_rules(clinic_id, [_rule(item) for item in data.get("rules", [])])
        for item in data.get("periods", []):
            store.add_period(
                SchedulingPeriod(
                    id=item["id"],
                    clinic_id=clinic_id,
                    start_date=_date(item["start"]),
                    end_date=_date(item["end"]),
                    status=PeriodStatus(item.get("status", "DRAFT")),
                )
            )
        for period_id, actuals in data.get("prior_actuals", {}).items():
            store.set_prior_actuals(clinic_id, period_id, _actuals(actuals))
        for period_id, baselines in data.get("snapshot_baselines", {}).items():
            store.set_snapshot_baselines(clinic_id, period_id, _actuals(baselines))
    except ConfigurationError:
        raise
    except (KeyError, ValueError, TypeError) as e:
        raise ConfigurationError(f"Invalid clinic document: {e}") from e
    return store


def load_clinic_store(path: Union[str, Path]) -> InMemoryClinicStore:
    """Read a clinic document from disk."""
    path = Path(path)
    with path.open(encoding="utf-8") as f:
        data = json.load(f)
    logger.info("Loaded clinic document %s", path)
    return build_store(data)


def _jsonable(value: Any) -> Any:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if hasattr(value, "value"):
        return value.value
    return value


def outcome_to_dict(outcome: RunOutcome) -> dict:
    """Plain-JSON view of a run outcome."""
    return {
        "period_id": outcome.period_id,
        "state": outcome.state.value,
        "period_status": outcome.period_status.value,
        "assignment_count": outcome.assignment_count,
        "assignments": [
            {
                "staff_id": a.staff_id,
                "date": a.date.isoformat(),
                "shift_type": a.shift_type.value,
                "category": a.category,
                "is_flexible": a.is_flexible,
            }
            for a in outcome.assignments
        ],
        "issues": [
            {
                "type": i.issue_type.value,
                "severity": i.severity.value,
                "status": i.status.value,
                "message": i.message,
                "staff_id": i.staff_id,
                "category": i.category,
                "date": _jsonable(i.date),
                "week_start": _jsonable(i.week_start),
                "justified": i.justified,
                "justification": i.justification,
                "carry_count": i.carry_count,
            }
            for i in outcome.issues
        ],
        "fairness": [
            {
                "staff_id": s.staff_id,
                "overall_score": s.overall_score,
                "can_apply_annual": s.can_apply_annual,
                "can_apply_off": s.can_apply_off,
                "dimensions": {
                    d.value: {"actual": v.actual, "deviation": v.deviation, "score": v.score}
                    for d, v in s.dimensions.items()
                },
            }
            for s in outcome.fairness
        ],
        "warnings": list(outcome.warnings),
    }


def save_outcome(outcome: RunOutcome, path: Union[str, Path]) -> None:
    path = Path(path)
    path.write_text(json.dumps(outcome_to_dict(outcome), indent=2), encoding="utf-8")
