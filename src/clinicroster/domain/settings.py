"""Configuration for the roster engine."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from clinicroster.domain.models import FairnessDimension
from clinicroster.errors import ConfigurationError

RATIO_TOLERANCE = 0.01


def _default_weights() -> dict:
    return {
        FairnessDimension.TOTAL: 2.0,
        FairnessDimension.NIGHT: 3.0,
        FairnessDimension.WEEKEND: 2.0,
        FairnessDimension.HOLIDAY: 4.0,
        FairnessDimension.HOLIDAY_ADJACENT: 1.0,
    }


class BaselineMode(Enum):
    """How fairness baselines are obtained.

    REALIZED recomputes the cohort average from actual assignments.
    SNAPSHOT uses fixed per-staff baselines supplied by the caller.
    """

    REALIZED = "REALIZED"
    SNAPSHOT = "SNAPSHOT"


@dataclass
class FairnessSettings:
    """Which fairness dimensions are tracked and how they are weighted.

    Attributes:
        night: Track night shifts.
        weekend: Track Saturday shifts.
        holiday: Track holiday work.
        holiday_adjacent: Track work on days next to a holiday.
        weights: Relative weight of each dimension in the overall score.
        tolerance: Largest allowed spread of deviations within a
            department/category before an UNFAIR issue is raised.
    """

    night: bool = True
    weekend: bool = True
    holiday: bool = True
    holiday_adjacent: bool = False
    weights: dict = field(default_factory=_default_weights)
    tolerance: float = 3.0

    def is_enabled(self, dimension: FairnessDimension) -> bool:
        if dimension is FairnessDimension.TOTAL:
            return True
        return bool(getattr(self, dimension.value))

    def enabled_dimensions(self) -> frozenset:
        return frozenset(d for d in FairnessDimension if self.is_enabled(d))

    def weight(self, dimension: FairnessDimension) -> float:
        return float(self.weights.get(dimension, 1.0))

    @classmethod
    def from_dict(cls, data: dict) -> "FairnessSettings":
        weights = _default_weights()
        for name, value in data.get("weights", {}).items():
            weights[FairnessDimension(name)] = float(value)
        return cls(
            night=data.get("night", True),
            weekend=data.get("weekend", True),
            holiday=data.get("holiday", True),
            holiday_adjacent=data.get("holiday_adjacent", False),
            weights=weights,
            tolerance=float(data.get("tolerance", 3.0)),
        )


@dataclass
class RatioConfig:
    """Percent splits used to derive counts the requirement table omits.

    Both mappings are ordered; the last entry absorbs rounding remainders.
    """

    category_ratios: dict = field(default_factory=dict)
    department_ratios: dict = field(default_factory=dict)

    def validate(self) -> None:
        _check_ratio_sum("category", self.category_ratios)
        if self.department_ratios:
            _check_ratio_sum("department", self.department_ratios)

    @classmethod
    def from_dict(cls, data: dict) -> "RatioConfig":
        config = cls(
            category_ratios=dict(data.get("category_ratios", {})),
            department_ratios=dict(data.get("department_ratios", {})),
        )
        config.validate()
        return config


def _check_ratio_sum(label: str, ratios: dict) -> None:
    if not ratios:
        raise ConfigurationError(f"No {label} ratios configured")
    total = sum(ratios.values())
    if abs(total - 100) > RATIO_TOLERANCE:
        raise ConfigurationError(
            f"{label.capitalize()} ratios must sum to 100 (got {total:g})"
        )


@dataclass
class RosterSettings:
    """Run-wide settings.

    Attributes:
        business_weekdays: Weekday numbers (Monday=0) on which rows exist.
        fairness: Fairness dimension settings.
        baseline_mode: Realized cohort average or fixed snapshot baselines.
        random_seed: Seed for tie-breaking. None derives it from the period
            id so that re-running a period reproduces its result.
        flexible_fallback: Allow flexible staff to cover must-fill shortfalls.
        annual_leave_threshold: Minimum overall score for annual leave.
        off_leave_threshold: Minimum overall score for an OFF request.
    """

    business_weekdays: tuple = (0, 1, 2, 3, 4, 5)
    fairness: FairnessSettings = field(default_factory=FairnessSettings)
    baseline_mode: BaselineMode = BaselineMode.REALIZED
    random_seed: Optional[int] = None
    flexible_fallback: bool = True
    annual_leave_threshold: float = 60.0
    off_leave_threshold: float = 75.0

    def is_business_day(self, day) -> bool:
        return day.weekday() in self.business_weekdays

    @classmethod
    def from_dict(cls, data: dict) -> "RosterSettings":
        return cls(
            business_weekdays=tuple(data.get("business_weekdays", (0, 1, 2, 3, 4, 5))),
            fairness=FairnessSettings.from_dict(data.get("fairness", {})),
            baseline_mode=BaselineMode(data.get("baseline_mode", "REALIZED")),
            random_seed=data.get("random_seed"),
            flexible_fallback=data.get("flexible_fallback", True),
            annual_leave_threshold=float(data.get("annual_leave_threshold", 60.0)),
            off_leave_threshold=float(data.get("off_leave_threshold", 75.0)),
        )
