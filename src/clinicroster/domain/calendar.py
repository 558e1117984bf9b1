"""Day classification.

Assigns every date its day-type traits and a primary tag under the fixed
order HOLIDAY > HOLIDAY_ADJACENT > WEEKEND > NIGHT > NORMAL.
"""

from datetime import date, timedelta
from typing import Iterable, Optional

from clinicroster.domain.models import DayClassification, DayType

SATURDAY = 5


class DayClassifier:
    """Classifies dates against a holiday set.

    Only Saturday counts as a weekend. Every holiday makes the dates one day
    either side of it holiday-adjacent, including a holiday on a Sunday.

    Example:
        >>> classifier = DayClassifier({date(2024, 5, 1)})
        >>> classifier.classify(date(2024, 5, 2)).tag
        <DayType.HOLIDAY_ADJACENT: 'HOLIDAY_ADJACENT'>
    """

    def __init__(self, holidays: Iterable[date]):
        self.holidays = frozenset(holidays)

    def is_holiday_adjacent(self, day: date) -> bool:
        if day in self.holidays:
            return False
        one_day = timedelta(days=1)
        return day - one_day in self.holidays or day + one_day in self.holidays

    def classify(self, day: date, has_night_shift: bool = False) -> DayClassification:
        """Classify a single date.

        Args:
            day: Date to classify.
            has_night_shift: Whether the provider roster runs a night shift.

        Returns:
            DayClassification with all traits and the primary tag.
        """
        traits = set()
        if day in self.holidays:
            traits.add(DayType.HOLIDAY)
        if self.is_holiday_adjacent(day):
            traits.add(DayType.HOLIDAY_ADJACENT)
        if day.weekday() == SATURDAY:
            traits.add(DayType.WEEKEND)
        if has_night_shift:
            traits.add(DayType.NIGHT)

        tag = max(traits, key=lambda t: t.priority) if traits else DayType.NORMAL
        return DayClassification(date=day, traits=frozenset(traits), tag=tag)

    def classify_period(
        self,
        dates: Iterable[date],
        rosters: Optional[dict] = None,
    ) -> dict:
        """Classify a batch of dates.

        Args:
            dates: Dates to classify.
            rosters: Optional mapping of date to ProviderRoster for night flags.

        Returns:
            Mapping of date to DayClassification.
        """
        rosters = rosters or {}
        result = {}
        for day in dates:
            roster = rosters.get(day)
            result[day] = self.classify(
                day, roster.has_night_shift if roster else False
            )
        return result
