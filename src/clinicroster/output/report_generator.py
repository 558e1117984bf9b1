"""Text report output for run analysis.

This module creates a plain-text report of a finished run:
- Daily WORK headcount per category
- Per-staff shift counts and fairness scores
- Unresolved issues grouped by severity
"""

from collections import Counter, defaultdict
from pathlib import Path
from typing import Union

from clinicroster.domain.models import (
    FairnessDimension,
    RunOutcome,
    ShiftType,
    StaffMember,
)


class RunReportGenerator:
    """Generates a human-readable report of a run outcome."""

    def generate(
        self,
        outcome: RunOutcome,
        staff_map: dict[str, StaffMember],
        output_path: Union[str, Path],
    ) -> str:
        """Generate the report and save it to a file.

        Returns:
            The generated text content.
        """
        content = self.generate_to_string(outcome, staff_map)
        Path(output_path).write_text(content, encoding="utf-8")
        return content

    def generate_to_string(
        self,
        outcome: RunOutcome,
        staff_map: dict[str, StaffMember],
    ) -> str:
        lines = []
        lines.append("=" * 80)
        lines.append(f"ROSTER RUN REPORT - {outcome.period_id}")
        lines.append("=" * 80)
        lines.append("")
        lines.append(f"Final state:   {outcome.state.value}")
        lines.append(f"Period status: {outcome.period_status.value}")
        lines.append(f"WORK rows:     {outcome.assignment_count}")
        lines.append("")

        lines.extend(self._daily_section(outcome))
        lines.extend(self._staff_section(outcome, staff_map))
        lines.extend(self._issue_section(outcome))

        if outcome.warnings:
            lines.append("-" * 80)
            lines.append("WARNINGS")
            lines.append("-" * 80)
            lines.extend(f"  {w}" for w in outcome.warnings)
            lines.append("")
        return "\n".join(lines)

    def _daily_section(self, outcome: RunOutcome) -> list[str]:
        per_day = defaultdict(Counter)
        flexible = Counter()
        for a in outcome.assignments:
            if a.is_work:
                per_day[a.date][a.category] += 1
                if a.is_flexible:
                    flexible[a.date] += 1
        categories = sorted({c for counts in per_day.values() for c in counts})

        lines = ["-" * 80, "DAILY HEADCOUNT (WORK rows per category)", "-" * 80]
        header = f"{'Date':<12}" + "".join(f"{c[:10]:>11}" for c in categories) + f"{'Flex':>6}"
        lines.append(header)
        for day in sorted({a.date for a in outcome.assignments}):
            counts = per_day.get(day, Counter())
            lines.append(
                f"{day.strftime('%a %m-%d'):<12}"
                + "".join(f"{counts.get(c, 0):>11}" for c in categories)
                + f"{flexible.get(day, 0):>6}"
            )
        lines.append("")
        return lines

    def _staff_section(
        self, outcome: RunOutcome, staff_map: dict[str, StaffMember]
    ) -> list[str]:
        shifts = defaultdict(Counter)
        for a in outcome.assignments:
            shifts[a.staff_id][a.shift_type] += 1

        lines = ["-" * 80, "STAFF SUMMARY", "-" * 80]
        lines.append(
            f"{'Name':<20} {'Cat':<10} {'Day':>4} {'Night':>6} {'Annual':>7} {'Off':>4} "
            f"{'TotalDev':>9} {'Overall':>8}"
        )
        for score in sorted(outcome.fairness, key=lambda s: (s.department, s.category, s.staff_id)):
            member = staff_map.get(score.staff_id)
            counts = shifts[score.staff_id]
            name = (member.name if member else score.staff_id)[:20]
            lines.append(
                f"{name:<20} {score.category[:10]:<10} "
                f"{counts[ShiftType.WORK_DAY]:>4} {counts[ShiftType.WORK_NIGHT]:>6} "
                f"{counts[ShiftType.ANNUAL]:>7} {counts[ShiftType.OFF]:>4} "
                f"{score.deviation(FairnessDimension.TOTAL):>+9.1f} {score.overall_score:>8.1f}"
            )
        lines.append("")
        return lines

    def _issue_section(self, outcome: RunOutcome) -> list[str]:
        lines = ["-" * 80, "UNRESOLVED ISSUES", "-" * 80]
        if not outcome.issues:
            lines.append("  None")
        for severity, issues in outcome.issues_by_severity().items():
            if not issues:
                continue
            lines.append(f"{severity.value} ({len(issues)})")
            for issue in issues:
                note = f" [{issue.justification}]" if issue.justification else ""
                lines.append(f"  {issue.issue_type.value}: {issue.message}{note}")
        lines.append("")
        return lines
