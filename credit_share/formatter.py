"""Output helpers for the credit sharing engine.

This module provides simple functions to render credit schedules and
calendar views in a tabular text format. We rely only on built‑in printing
and string formatting; the CLI decides where the output goes.
"""

from __future__ import annotations

from typing import Dict, Iterable

from .config import YEAR_MONTH_FORMAT
from .data_models import Installment, LoanSchedule, TimelineView


def summary_dict(schedule: LoanSchedule) -> Dict[str, object]:
    """Return the headline figures of a schedule as JSON‑friendly values."""
    terms = schedule.terms
    return {
        "principal": float(terms.principal),
        "rate": float(terms.rate),
        "term_months": terms.term,
        "fees": float(terms.fees),
        "start_month": terms.start_month.strftime(YEAR_MONTH_FORMAT),
        "end_month": schedule.end_month.strftime(YEAR_MONTH_FORMAT),
        "participants": len(terms.participant_ids),
        "monthly_payment": float(schedule.monthly_payment),
        "total_due": float(schedule.total_due),
        "total_interest": float(schedule.total_interest),
        "payment_per_participant": float(schedule.payment_per_participant),
        "installments": len(schedule.installments),
    }


def installment_dict(entry: Installment) -> Dict[str, object]:
    return {
        "id": entry.id,
        "credit_id": entry.credit_id,
        "participant_id": entry.participant_id,
        "amount": float(entry.amount),
        "due_month": entry.due_month.strftime(YEAR_MONTH_FORMAT),
        "status": entry.status,
    }


def timeline_dict(timeline: TimelineView) -> Dict[str, object]:
    """Convert a calendar view into JSON‑serialisable data for the front end."""
    return {
        "reference_date": timeline.view.reference_date.isoformat(),
        "granularity": timeline.view.granularity,
        "interval_start": timeline.interval_start.isoformat(),
        "interval_end": timeline.interval_end.isoformat(),
        "title": timeline.title,
        "labels": list(timeline.labels),
        "entities": [
            {
                "id": layout.entity.id,
                "label": layout.entity.label,
                "start_date": layout.entity.start_date.isoformat(),
                "end_date": layout.entity.end_date.isoformat(),
                "offset_percent": layout.placement.offset_percent,
                "width_percent": layout.placement.width_percent,
                "color": layout.color,
                "text_color": layout.text_color,
            }
            for layout in timeline.layouts
        ],
    }


def print_summary(schedule: LoanSchedule) -> None:
    """Print a summary of a credit in a human‑readable format."""
    summary = summary_dict(schedule)
    print("Summary")
    print("-" * 72)
    print(f"Principal          : {summary['principal']:.2f}")
    print(f"Interest rate      : {summary['rate']:.2f}%")
    print(f"Duration           : {summary['term_months']} months")
    print(f"Fees               : {summary['fees']:.2f}")
    print(f"Period             : {summary['start_month']} to {summary['end_month']}")
    print(f"Monthly payment    : {summary['monthly_payment']:.2f}")
    print(f"Total interest     : {summary['total_interest']:.2f}")
    print(f"Total due          : {summary['total_due']:.2f}")
    print(f"Participants       : {summary['participants']}")
    print(f"Per participant    : {summary['payment_per_participant']:.2f}")
    print("-" * 72)


def print_installments(installments: Iterable[Installment]) -> None:
    """Print installments as a simple table, one row per participant and month."""
    headers = ["Due", "Participant", "Amount", "Status"]
    print("\t".join(headers))
    for entry in installments:
        row = [
            entry.due_month.strftime(YEAR_MONTH_FORMAT),
            str(entry.participant_id),
            f"{entry.amount:.2f}",
            "Paid" if entry.is_paid else "Unpaid",
        ]
        print("\t".join(row))


def render_bar(offset_percent: float, width_percent: float, columns: int) -> str:
    """Draw a bar of ``#`` inside ``columns`` characters.

    A visible entity always gets at least one character, even when its span
    rounds to nothing.
    """
    start = min(int(round(offset_percent / 100 * columns)), columns - 1)
    length = max(1, int(round(width_percent / 100 * columns)))
    length = min(length, columns - start)
    return " " * start + "#" * length + " " * (columns - start - length)


def print_timeline(timeline: TimelineView, columns: int = 60) -> None:
    """Print a text Gantt chart of a calendar view."""
    print(timeline.title)
    print("=" * 72)
    print("Columns: " + " ".join(timeline.labels))
    if not timeline.layouts:
        print("(nothing scheduled in this period)")
    label_width = max((len(layout.entity.label) for layout in timeline.layouts), default=0)
    for layout in timeline.layouts:
        placement = layout.placement
        bar = render_bar(placement.offset_percent, placement.width_percent, columns)
        print(
            f"{layout.entity.label:{label_width}s} |{bar}| "
            f"{placement.offset_percent:6.2f}% +{placement.width_percent:6.2f}%"
        )
    print("=" * 72)
