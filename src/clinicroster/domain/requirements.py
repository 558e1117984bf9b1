"""Requirement derivation.

Turns the provider roster of each date into per-department, per-category
staffing counts using the combination requirement table. Explicit counts
are used verbatim; anything the table leaves out is derived from the
configured percent ratios.
"""

from datetime import date
from typing import Iterable, Optional

from clinicroster.domain.models import (
    CategoryRequirement,
    CombinationRule,
    DayClassification,
    DayRequirement,
    FillStrategy,
    LeaveRecord,
    LeaveStatus,
    ProviderRoster,
)
from clinicroster.domain.policies import round_half_up
from clinicroster.domain.settings import RatioConfig, RosterSettings
from clinicroster.errors import ConfigurationError
from clinicroster.logger import get_logger

logger = get_logger("requirements")


def split_by_ratio(total: int, ratios: dict) -> dict:
    """Split ``total`` across ordered ratio entries.

    Every entry but the last gets ``round_half_up(total * ratio / 100)``;
    the last absorbs the remainder so the parts always sum to ``total``.

    Example:
        >>> split_by_ratio(5, {"nurse": 50, "assistant": 50})
        {'nurse': 3, 'assistant': 2}
    """
    keys = list(ratios)
    parts = {}
    allocated = 0
    for key in keys[:-1]:
        share = round_half_up(total * ratios[key] / 100)
        parts[key] = share
        allocated += share
    if keys:
        remainder = total - allocated
        if remainder < 0:
            logger.warning(
                "Ratio rounding over-allocated %d of %d; clamping %s to 0",
                allocated,
                total,
                keys[-1],
            )
            remainder = 0
        parts[keys[-1]] = remainder
    return parts


class RequirementCalculator:
    """Derives day requirements from provider rosters.

    Attributes:
        rules: Combination requirement table.
        ratio_config: Percent ratios for derived counts, or None when every
            rule carries explicit counts.
        settings: Run settings.
        warnings: Notes collected while building, e.g. unmatched dates.
    """

    def __init__(
        self,
        rules: Iterable[CombinationRule],
        ratio_config: Optional[RatioConfig] = None,
        settings: Optional[RosterSettings] = None,
    ):
        self.rules = {rule.combination_key: rule for rule in rules}
        self.ratio_config = ratio_config
        self.settings = settings or RosterSettings()
        self.warnings: list[str] = []
        if ratio_config is not None:
            ratio_config.validate()

    @property
    def must_fill_strategy(self) -> FillStrategy:
        if self.settings.flexible_fallback:
            return FillStrategy.NATIVE_THEN_FLEXIBLE
        return FillStrategy.NATIVE_ONLY

    def match(self, roster: ProviderRoster) -> Optional[CombinationRule]:
        """Find the rule for an exact provider combination and night flag."""
        return self.rules.get(roster.combination_key)

    def _require_ratios(self, what: str) -> RatioConfig:
        if self.ratio_config is None or not self.ratio_config.category_ratios:
            raise ConfigurationError(
                f"Ratio configuration required to derive {what} but none is set"
            )
        return self.ratio_config

    def department_totals(self, rule: CombinationRule) -> dict:
        """Per-department totals for a rule.

        Returns a mapping keyed by department, or ``{None: total}`` when the
        requirement is department-agnostic.
        """
        if rule.department_required:
            return dict(rule.department_required)
        if rule.department_category_required:
            return {
                dept: sum(c.count for c in categories.values())
                for dept, categories in rule.department_category_required.items()
            }
        if self.ratio_config is not None and self.ratio_config.department_ratios:
            return split_by_ratio(
                rule.total_required, self.ratio_config.department_ratios
            )
        return {None: rule.total_required}

    def category_requirements(self, rule: CombinationRule) -> list[CategoryRequirement]:
        """Build the category requirements of one rule."""
        strategy = self.must_fill_strategy
        requirements = []
        for department, dept_total in self.department_totals(rule).items():
            explicit = rule.department_category_required.get(department)
            if explicit:
                for category, counts in explicit.items():
                    if counts.count <= 0:
                        continue
                    requirements.append(
                        CategoryRequirement(
                            department=department,
                            category=category,
                            count=counts.count,
                            min_required=min(counts.min_required, counts.count),
                            strategy=strategy,
                            explicit=True,
                        )
                    )
                continue

            ratios = self._require_ratios(
                f"categories for department {department or '(any)'}"
            ).category_ratios
            for category, count in split_by_ratio(dept_total, ratios).items():
                if count <= 0:
                    continue
                requirements.append(
                    CategoryRequirement(
                        department=department,
                        category=category,
                        count=count,
                        min_required=count,
                        strategy=strategy,
                    )
                )
        return requirements

    def build(
        self,
        dates: Iterable[date],
        rosters: dict,
        classifications: dict,
        leave: Iterable[LeaveRecord] = (),
    ) -> dict:
        """Build requirements for a batch of dates.

        Args:
            dates: Business dates to build requirements for.
            rosters: Mapping of date to ProviderRoster.
            classifications: Mapping of date to DayClassification.
            leave: Leave records; CONFIRMED ones exclude staff from the date.

        Returns:
            Mapping of date to DayRequirement.

        Raises:
            ConfigurationError: If a derivation is needed but ratios are
                missing or invalid.
        """
        excluded: dict = {}
        for record in leave:
            if record.status is LeaveStatus.CONFIRMED:
                excluded.setdefault(record.date, set()).add(record.staff_id)

        result = {}
        for day in dates:
            classification: DayClassification = classifications[day]
            roster = rosters.get(day)
            rule = self.match(roster) if roster else None
            day_excluded = frozenset(excluded.get(day, ()))

            if rule is None:
                note = (
                    f"{day.isoformat()}: no requirement rule for providers "
                    f"{list(roster.combination_key[0]) if roster else []}"
                    f"{' (night)' if roster and roster.has_night_shift else ''}"
                )
                logger.warning(note)
                self.warnings.append(note)
                result[day] = DayRequirement(
                    date=day,
                    classification=classification,
                    has_night_shift=bool(roster and roster.has_night_shift),
                    excluded_staff_ids=day_excluded,
                    matched=False,
                )
                continue

            result[day] = DayRequirement(
                date=day,
                classification=classification,
                total_required=rule.total_required,
                department_required={
                    dept: total
                    for dept, total in self.department_totals(rule).items()
                    if dept is not None
                },
                categories=self.category_requirements(rule),
                has_night_shift=rule.has_night_shift,
                excluded_staff_ids=day_excluded,
            )
        logger.debug("Built requirements for %d dates", len(result))
        return result
