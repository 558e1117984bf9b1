"""PDF generation for roster output.

This module creates printable PDF rosters showing:
- A staff by date grid colored by shift type
- Flexible cover marked in the grid
- A summary page with fairness scores and unresolved issues
"""

from io import BytesIO
from pathlib import Path
from typing import Union

from clinicroster.domain.models import (
    FairnessDimension,
    IssueSeverity,
    RunOutcome,
    ShiftType,
    StaffMember,
)

# Color definitions (RGB tuples, 0-1 scale)
COLORS = {
    ShiftType.WORK_DAY: (0.4, 0.7, 0.4),  # Green
    ShiftType.WORK_NIGHT: (0.4, 0.4, 0.8),  # Blue
    ShiftType.OFF: (0.95, 0.95, 0.95),  # Light gray
    ShiftType.ANNUAL: (1.0, 0.9, 0.5),  # Yellow
    "flexible": (0.8, 0.6, 0.2),  # Orange
}

SHIFT_LABELS = {
    ShiftType.WORK_DAY: "D",
    ShiftType.WORK_NIGHT: "N",
    ShiftType.OFF: "",
    ShiftType.ANNUAL: "A",
}

SEVERITY_COLORS = {
    IssueSeverity.CRITICAL: (0.8, 0.2, 0.2),
    IssueSeverity.WARNING: (0.8, 0.6, 0.2),
    IssueSeverity.INFO: (0.4, 0.4, 0.4),
}


def _require_canvas():
    try:
        from reportlab.lib.pagesizes import landscape, letter
        from reportlab.pdfgen import canvas
    except ImportError:
        raise ImportError(
            "reportlab is required for PDF generation. "
            "Install with: pip install reportlab"
        )
    return canvas, landscape(letter)


class RosterPDFGenerator:
    """Generates printable PDF rosters.

    Example:
        >>> generator = RosterPDFGenerator()
        >>> generator.generate(outcome, staff_map, "roster.pdf")
    """

    def __init__(
        self,
        page_width: float = 792,  # Letter landscape width (11")
        page_height: float = 612,  # Letter landscape height (8.5")
        margin: float = 36,  # 0.5 inch margins
        days_per_page: int = 24,
    ):
        self.page_width = page_width
        self.page_height = page_height
        self.margin = margin
        self.days_per_page = days_per_page

    def generate(
        self,
        outcome: RunOutcome,
        staff_map: dict[str, StaffMember],
        output_path: Union[str, Path],
        include_summary: bool = True,
    ) -> None:
        """Generate a PDF roster and save it to a file.

        Args:
            outcome: The run outcome to render.
            staff_map: Dict mapping staff IDs to StaffMember objects.
            output_path: Path to save the PDF.
            include_summary: Whether to include the summary page.
        """
        canvas, pagesize = _require_canvas()
        c = canvas.Canvas(str(output_path), pagesize=pagesize)
        self._draw(c, outcome, staff_map, include_summary)
        c.save()

    def generate_to_buffer(
        self,
        outcome: RunOutcome,
        staff_map: dict[str, StaffMember],
        include_summary: bool = True,
    ) -> BytesIO:
        """Generate a PDF roster and return it as a bytes buffer."""
        canvas, pagesize = _require_canvas()
        buffer = BytesIO()
        c = canvas.Canvas(buffer, pagesize=pagesize)
        self._draw(c, outcome, staff_map, include_summary)
        c.save()
        buffer.seek(0)
        return buffer

    def _draw(self, c, outcome, staff_map, include_summary: bool) -> None:
        self._draw_grid_pages(c, outcome, staff_map)
        if include_summary:
            self._draw_summary_page(c, outcome, staff_map)

    def _draw_grid_pages(
        self,
        c,
        outcome: RunOutcome,
        staff_map: dict[str, StaffMember],
    ) -> None:
        """Draw staff by date grid pages."""
        rows = {(a.staff_id, a.date): a for a in outcome.assignments}
        dates = sorted({a.date for a in outcome.assignments})
        staff_ids = sorted(
            {a.staff_id for a in outcome.assignments},
            key=lambda sid: (
                staff_map[sid].department if sid in staff_map else "",
                staff_map[sid].category if sid in staff_map else "",
                staff_map[sid].name if sid in staff_map else sid,
            ),
        )

        row_height = 16
        header_height = 60
        footer_height = 40
        usable_height = self.page_height - 2 * self.margin - header_height - footer_height
        rows_per_page = max(1, int(usable_height / row_height) - 1)

        grid_left = self.margin + 120  # Space for names
        grid_width = self.page_width - self.margin - grid_left

        date_chunks = [
            dates[i : i + self.days_per_page]
            for i in range(0, len(dates), self.days_per_page)
        ] or [[]]
        staff_chunks = [
            staff_ids[i : i + rows_per_page]
            for i in range(0, len(staff_ids), rows_per_page)
        ] or [[]]
        total_pages = len(date_chunks) * len(staff_chunks)

        page_num = 0
        for chunk_dates in date_chunks:
            cell_width = grid_width / max(1, len(chunk_dates))
            for chunk_staff in staff_chunks:
                page_num += 1
                self._draw_header(c, outcome, chunk_dates)

                y = self.page_height - self.margin - header_height
                c.setFont("Helvetica", 7)
                c.setFillColorRGB(0, 0, 0)
                for col, day in enumerate(chunk_dates):
                    x = grid_left + col * cell_width + cell_width / 2
                    c.drawCentredString(x, y + 8, day.strftime("%a"))
                    c.drawCentredString(x, y, day.strftime("%d"))

                for sid in chunk_staff:
                    y -= row_height
                    member = staff_map.get(sid)
                    c.setFillColorRGB(0, 0, 0)
                    c.setFont("Helvetica", 8)
                    label = f"{member.name} ({member.category})" if member else sid
                    c.drawString(self.margin, y + 4, label[:26])
                    for col, day in enumerate(chunk_dates):
                        row = rows.get((sid, day))
                        if row is None:
                            continue
                        self._draw_cell(
                            c, row, grid_left + col * cell_width, y, cell_width, row_height - 2
                        )

                self._draw_legend(c, self.margin, self.margin + 10)
                c.setFont("Helvetica", 9)
                c.setFillColorRGB(0, 0, 0)
                c.drawCentredString(
                    self.page_width / 2,
                    self.margin - 10,
                    f"Page {page_num} of {total_pages}",
                )
                c.showPage()

    def _draw_header(self, c, outcome: RunOutcome, dates: list) -> None:
        c.setFont("Helvetica-Bold", 16)
        c.setFillColorRGB(0, 0, 0)
        c.drawString(
            self.margin,
            self.page_height - self.margin - 20,
            f"Staff Roster - {outcome.period_id}",
        )
        c.setFont("Helvetica", 10)
        span = f"{dates[0].isoformat()} to {dates[-1].isoformat()}" if dates else ""
        c.drawString(
            self.margin,
            self.page_height - self.margin - 35,
            f"{span}   Status: {outcome.period_status.value}   "
            f"WORK rows: {outcome.assignment_count}",
        )

    def _draw_cell(self, c, row, x: float, y: float, width: float, height: float) -> None:
        color = COLORS["flexible"] if row.is_flexible else COLORS[row.shift_type]
        c.setFillColorRGB(*color)
        c.setStrokeColorRGB(0.8, 0.8, 0.8)
        c.setLineWidth(0.3)
        c.rect(x, y, width, height, fill=1, stroke=1)
        label = SHIFT_LABELS[row.shift_type]
        if label:
            c.setFillColorRGB(0, 0, 0)
            c.setFont("Helvetica-Bold", 6)
            c.drawCentredString(x + width / 2, y + height / 2 - 2, label)

    def _draw_legend(self, c, x: float, y: float) -> None:
        """Draw legend for colors."""
        c.setFont("Helvetica-Bold", 8)
        c.setFillColorRGB(0, 0, 0)
        c.drawString(x, y, "Legend:")

        items = [
            (ShiftType.WORK_DAY, "Day"),
            (ShiftType.WORK_NIGHT, "Night"),
            ("flexible", "Flexible cover"),
            (ShiftType.ANNUAL, "Annual leave"),
            (ShiftType.OFF, "Off"),
        ]

        c.setFont("Helvetica", 7)
        current_x = x + 45
        for key, label in items:
            c.setFillColorRGB(*COLORS[key])
            c.rect(current_x, y - 2, 12, 10, fill=1, stroke=1)
            c.setFillColorRGB(0, 0, 0)
            c.drawString(current_x + 15, y, label)
            current_x += 80

    def _draw_summary_page(
        self,
        c,
        outcome: RunOutcome,
        staff_map: dict[str, StaffMember],
    ) -> None:
        """Draw summary page with fairness scores and issues."""
        c.setFont("Helvetica-Bold", 16)
        c.setFillColorRGB(0, 0, 0)
        c.drawString(
            self.margin,
            self.page_height - self.margin - 20,
            f"Roster Summary - {outcome.period_id}",
        )

        y = self.page_height - self.margin - 50
        c.setFont("Helvetica-Bold", 12)
        c.drawString(self.margin, y, "Fairness")
        y -= 16

        dimensions = [
            FairnessDimension.TOTAL,
            FairnessDimension.NIGHT,
            FairnessDimension.WEEKEND,
            FairnessDimension.HOLIDAY,
            FairnessDimension.HOLIDAY_ADJACENT,
        ]
        c.setFont("Helvetica-Bold", 8)
        c.drawString(self.margin + 10, y, "Staff")
        for i, dimension in enumerate(dimensions):
            c.drawString(self.margin + 150 + i * 60, y, dimension.value)
        c.drawString(self.margin + 150 + len(dimensions) * 60, y, "overall")
        y -= 12

        c.setFont("Helvetica", 8)
        for score in outcome.fairness:
            if y < self.page_height / 2:
                break
            member = staff_map.get(score.staff_id)
            c.drawString(self.margin + 10, y, (member.name if member else score.staff_id)[:24])
            for i, dimension in enumerate(dimensions):
                item = score.dimensions.get(dimension)
                text = f"{item.actual:g} ({item.deviation:+.1f})" if item else "-"
                c.drawString(self.margin + 150 + i * 60, y, text)
            c.drawString(
                self.margin + 150 + len(dimensions) * 60, y, f"{score.overall_score:.1f}"
            )
            y -= 11

        y -= 10
        c.setFont("Helvetica-Bold", 12)
        c.drawString(self.margin, y, "Unresolved Issues")
        y -= 16
        c.setFont("Helvetica", 8)
        for severity, issues in outcome.issues_by_severity().items():
            for issue in issues:
                if y < self.margin:
                    break
                c.setFillColorRGB(*SEVERITY_COLORS[severity])
                c.rect(self.margin + 10, y - 1, 8, 8, fill=1, stroke=0)
                c.setFillColorRGB(0, 0, 0)
                c.drawString(self.margin + 24, y, str(issue)[:140])
                y -= 11

        c.showPage()
