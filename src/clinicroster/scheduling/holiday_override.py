"""Phase 3: clear every WORK row on a holiday."""

from clinicroster.domain.models import RunState, week_start
from clinicroster.logger import get_logger
from clinicroster.scheduling.context import RunContext

logger = get_logger("phase3")


class HolidayOverride:
    """Converts WORK on holidays to OFF regardless of quota consequences.

    Weeks touched by the override are recorded on the context so the quota
    check in validation can skip them.
    """

    def run(self, ctx: RunContext) -> int:
        cleared = 0
        for day in ctx.dates:
            if not ctx.is_holiday(day):
                continue
            ctx.holiday_weeks.add(week_start(day))
            for row in ctx.rows_on(day):
                if row.is_work:
                    ctx.release_work(row.staff_id, day)
                    cleared += 1
        if cleared:
            logger.info("Holiday override cleared %d WORK rows", cleared)
        ctx.advance(RunState.HOLIDAY_OVERRIDDEN)
        return cleared
