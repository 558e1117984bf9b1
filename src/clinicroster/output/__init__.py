"""Output generation for roster runs."""

from clinicroster.output.pdf_generator import RosterPDFGenerator
from clinicroster.output.report_generator import RunReportGenerator

__all__ = [
    "RosterPDFGenerator",
    "RunReportGenerator",
]
