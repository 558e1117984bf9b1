"""Command-line interface for the clinic roster engine."""

import argparse
import logging
import sys
from datetime import date, timedelta
from typing import Optional

from clinicroster.domain.models import (
    CategoryCount,
    CombinationRule,
    LeaveRecord,
    LeaveStatus,
    LeaveType,
    ProviderRoster,
    RunOutcome,
    SchedulingPeriod,
    StaffMember,
    WorkType,
)
from clinicroster.domain.settings import RatioConfig, RosterSettings
from clinicroster.errors import RosterError
from clinicroster.logger import setup_logging
from clinicroster.output.pdf_generator import RosterPDFGenerator
from clinicroster.output.report_generator import RunReportGenerator
from clinicroster.scheduling.on_hold import OnHoldReviewer
from clinicroster.scheduling.orchestrator import AssignmentOrchestrator
from clinicroster.storage.json_loader import load_clinic_store, save_outcome
from clinicroster.storage.memory import InMemoryClinicStore
from clinicroster.storage.snapshots import POST_RUN, PRE_RUN, diff_snapshots

DEMO_CLINIC = "demo-clinic"


def next_monday(today: Optional[date] = None) -> date:
    today = today or date.today()
    return today + timedelta(days=(7 - today.weekday()) % 7 or 7)


def create_sample_clinic(
    staff_count: int = 12,
    start: Optional[date] = None,
    weeks: int = 2,
) -> tuple:
    """Create a sample clinic in memory.

    Args:
        staff_count: Number of staff to create.
        start: First Monday of the period. Defaults to next Monday.
        weeks: Period length in weeks.

    Returns:
        Tuple of (InMemoryClinicStore, period_id).
    """
    start = start or next_monday()
    end = start + timedelta(days=7 * weeks - 1)
    store = InMemoryClinicStore()

    names = [
        "Alice", "Bob", "Carol", "David", "Eve", "Frank", "Grace", "Henry",
        "Ivy", "Jack", "Kate", "Leo", "Mia", "Noah", "Olivia", "Paul",
    ]
    staff = []
    for i in range(staff_count):
        name = names[i % len(names)]
        if i >= len(names):
            name = f"{name}{i // len(names) + 1}"
        if i % 4 == 3:
            category = "hygienist"
        elif i % 6 == 5:
            category = "assistant"
        else:
            category = "nurse"
        staff.append(
            StaffMember(
                id=f"S{i + 1:03d}",
                name=name,
                department="dental",
                category=category,
                work_type=WorkType.WEEK_4 if i % 3 == 0 else WorkType.WEEK_5,
                flexible_for_categories=(
                    frozenset({"hygienist"}) if category == "assistant" else frozenset()
                ),
                flexibility_priority=1 if category == "assistant" else 0,
            )
        )
    store.add_staff(DEMO_CLINIC, staff)

    rosters = []
    current = start
    while current <= end:
        if current.weekday() == 5:
            rosters.append(ProviderRoster(current, ("dr_kim",)))
        elif current.weekday() < 5:
            rosters.append(
                ProviderRoster(current, ("dr_kim", "dr_lee"), has_night_shift=current.weekday() == 2)
            )
        current += timedelta(days=1)
    store.add_rosters(DEMO_CLINIC, rosters)

    weekday_total = max(2, staff_count * 2 // 3)
    store.add_rules(
        DEMO_CLINIC,
        [
            CombinationRule(("dr_kim", "dr_lee"), False, weekday_total),
            CombinationRule(("dr_kim", "dr_lee"), True, weekday_total + 1),
            CombinationRule(
                ("dr_kim",),
                False,
                3,
                department_required={"dental": 3},
                department_category_required={
                    "dental": {
                        "nurse": CategoryCount(count=2, min_required=1),
                        "hygienist": CategoryCount(count=1, min_required=1),
                    }
                },
            ),
        ],
    )
    store.set_ratio_config(
        DEMO_CLINIC, RatioConfig(category_ratios={"nurse": 70, "hygienist": 30})
    )
    store.set_settings(DEMO_CLINIC, RosterSettings())

    # A Thursday holiday in the last week and some leave
    store.add_holidays(DEMO_CLINIC, [end - timedelta(days=3)])
    store.add_leave(
        DEMO_CLINIC,
        [
            LeaveRecord(staff[0].id, start + timedelta(days=1), LeaveType.ANNUAL),
            LeaveRecord(staff[1].id, start + timedelta(days=2), LeaveType.OFF),
            LeaveRecord(
                staff[2].id, start + timedelta(days=8), LeaveType.ANNUAL, LeaveStatus.ON_HOLD
            ),
        ],
    )

    period_id = start.isoformat()
    store.add_period(SchedulingPeriod(period_id, DEMO_CLINIC, start, end))
    return store, period_id


def print_outcome(outcome: RunOutcome) -> None:
    print(f"\nPeriod {outcome.period_id}: {outcome.period_status.value}")
    print(f"  Final state: {outcome.state.value}")
    print(f"  WORK rows: {outcome.assignment_count}")
    for severity, issues in outcome.issues_by_severity().items():
        print(f"  {severity.value}: {len(issues)}")
        for issue in issues[:5]:
            print(f"    - {issue.message}")
        if len(issues) > 5:
            print(f"    ... and {len(issues) - 5} more")
    for warning in outcome.warnings[:5]:
        print(f"  warning: {warning}")


def run_period(
    store: InMemoryClinicStore,
    period_id: str,
    pdf_path: Optional[str] = None,
    report_path: Optional[str] = None,
    json_path: Optional[str] = None,
    review_on_hold: bool = False,
) -> RunOutcome:
    """Run one period against a store and write the requested outputs."""
    outcome = AssignmentOrchestrator(store).run(period_id)
    print_outcome(outcome)

    snapshots = {s.label: s for s in store.snapshots(period_id)}
    if PRE_RUN in snapshots and POST_RUN in snapshots:
        diff = diff_snapshots(snapshots[PRE_RUN], snapshots[POST_RUN])
        print(f"  Changes since previous run: {diff.summary()}")

    period = store.get_period(period_id)
    staff_map = {s.id: s for s in store.active_staff(period.clinic_id)}

    if review_on_hold:
        result = OnHoldReviewer(store).review(period, outcome)
        print(
            f"  On-hold leave: {len(result.approved)} approved, "
            f"{len(result.still_on_hold)} still on hold"
        )

    if report_path:
        RunReportGenerator().generate(outcome, staff_map, report_path)
        print(f"  Report written to {report_path}")
    if json_path:
        save_outcome(outcome, json_path)
        print(f"  JSON written to {json_path}")
    if pdf_path:
        RosterPDFGenerator().generate(outcome, staff_map, pdf_path)
        print(f"  PDF written to {pdf_path}")
    return outcome


def main(argv: Optional[list] = None) -> int:
    """Main entry point for CLI."""
    parser = argparse.ArgumentParser(
        description="Clinic roster - staff shift auto-assignment",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s demo                          Run the sample clinic
  %(prog)s demo --staff 16 --pdf r.pdf   Larger clinic with PDF output
  %(prog)s run --input clinic.json --period 2024-05 --report report.txt
        """,
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    parser.add_argument("--log-dir", type=str, help="Also write logs to this directory")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    demo_parser = subparsers.add_parser("demo", help="Run the sample clinic")
    demo_parser.add_argument(
        "--staff", "-s",
        type=int,
        default=12,
        help="Number of staff to generate (default: 12)",
    )
    demo_parser.add_argument(
        "--weeks", "-w",
        type=int,
        default=2,
        help="Period length in weeks (default: 2)",
    )

    run_parser = subparsers.add_parser("run", help="Run a period from a clinic JSON file")
    run_parser.add_argument("--input", "-i", required=True, help="Clinic JSON document")
    run_parser.add_argument("--period", "-p", required=True, help="Period id to assign")
    run_parser.add_argument(
        "--review-on-hold",
        action="store_true",
        help="Approve on-hold leave the finished roster can absorb",
    )
    run_parser.add_argument("--json", type=str, help="Write the outcome as JSON")

    for sub in (demo_parser, run_parser):
        sub.add_argument("--pdf", type=str, help="Output PDF file path")
        sub.add_argument("--report", type=str, help="Output text report path")

    args = parser.parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.WARNING, args.log_dir)

    try:
        if args.command == "demo":
            store, period_id = create_sample_clinic(args.staff, weeks=args.weeks)
            run_period(
                store, period_id, args.pdf, args.report, review_on_hold=True
            )
            return 0
        elif args.command == "run":
            store = load_clinic_store(args.input)
            run_period(
                store,
                args.period,
                args.pdf,
                args.report,
                args.json,
                args.review_on_hold,
            )
            return 0
        else:
            parser.print_help()
            return 1
    except (RosterError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
