"""Command‑line interface for the credit sharing engine.

This module uses the ``click`` library to implement a multi‑command
interface. Users can compute the full installment schedule of a shared
credit, view only its summary, or print a text Gantt chart of time‑ranged
entities for a year, month or week. Schedules can be printed to the terminal
or exported to JSON/CSV files.
"""

from __future__ import annotations

import csv
import json
import logging
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

import click

from .config import (
    DEFAULT_GRANULARITY,
    GRANULARITIES,
    GRANULARITY_MONTH,
    YEAR_MONTH_FORMAT,
)
from .data_models import LoanSchedule, LoanTerms, TimeRangedEntity, ViewState
from .engine import compute_schedule
from .exceptions import InvalidLoanTerms
from .formatter import (
    installment_dict,
    print_installments,
    print_summary,
    print_timeline,
    summary_dict,
)
from .timeline import (
    build_timeline,
    label_step_for_width,
    next_period,
    previous_period,
)
from .utils import decimal_from_str, parse_date, parse_year_month


def parse_amount(value: str) -> Decimal:
    """Parse a numeric string with optional suffixes.

    Accepts plain numbers ("12000") and shorthand with ``k``/``m`` suffixes
    (e.g., "12k" meaning 12_000). Returns a ``Decimal``.
    """
    value = str(value).strip().lower().replace(",", "")
    factor = Decimal(1)
    if value.endswith("k"):
        factor = Decimal(1_000)
        value = value[:-1]
    elif value.endswith("m"):
        factor = Decimal(1_000_000)
        value = value[:-1]
    try:
        return decimal_from_str(value) * factor
    except ValueError:
        raise click.BadParameter(f"Invalid amount: {value}")


def parse_term(value) -> int:
    """Parse a duration in months from an int, a whole float or a string.

    Anything else (``None``, lists, fractional numbers, booleans) raises
    ``click.BadParameter``; the range check is left to the engine.
    """
    if isinstance(value, bool):
        raise click.BadParameter(f"Invalid term: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise click.BadParameter(f"Term must be a whole number of months; got {value!r}")


def parse_entity_string(item: str) -> TimeRangedEntity:
    """Parse ``LABEL:YYYY-MM-DD:YYYY-MM-DD`` into an entity."""
    parts = item.rsplit(":", 2)
    if len(parts) != 3 or not parts[0]:
        raise click.BadParameter(
            f"Entity must be in LABEL:YYYY-MM-DD:YYYY-MM-DD format; got {item}"
        )
    label, start_str, end_str = parts
    try:
        start, end = parse_date(start_str), parse_date(end_str)
    except ValueError as exc:
        raise click.BadParameter(str(exc))
    return TimeRangedEntity(id=label, label=label, start_date=start, end_date=end)


def build_terms_from_options(
    principal: str,
    rate,
    term: int,
    fees: Optional[str],
    start_date: str,
    participants: Iterable,
) -> LoanTerms:
    """Build ``LoanTerms`` from raw option values.

    Malformed numbers or months raise ``click.BadParameter``; range checks
    are left to the engine, which raises ``InvalidLoanTerms``.
    """
    principal_value = parse_amount(principal)
    fees_value = parse_amount(fees) if fees else Decimal("0")
    try:
        rate_value = decimal_from_str(rate)
        start_month = parse_year_month(start_date)
    except ValueError as exc:
        raise click.BadParameter(str(exc))
    return LoanTerms(
        principal=principal_value,
        rate=rate_value,
        term=term,
        fees=fees_value,
        start_month=start_month,
        participant_ids=tuple(participants),
    )


def export_to_json(path: Path, schedule: LoanSchedule) -> None:
    """Export summary and installments to a JSON file."""
    data = {
        "summary": summary_dict(schedule),
        "installments": [installment_dict(i) for i in schedule.installments],
    }
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def export_to_csv(path: Path, schedule: LoanSchedule) -> None:
    """Export installments to a CSV file."""
    header = ["Due_Month", "Participant", "Amount", "Status"]
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for e in schedule.installments:
            writer.writerow(
                [
                    e.due_month.strftime(YEAR_MONTH_FORMAT),
                    e.participant_id,
                    f"{e.amount:.2f}",
                    e.status,
                ]
            )


def _compute(terms: LoanTerms) -> LoanSchedule:
    try:
        return compute_schedule(terms)
    except InvalidLoanTerms as exc:
        raise click.UsageError(str(exc))


def credit_options(func):
    """Options shared by the ``schedule`` and ``summary`` commands."""
    options = [
        click.option("--principal", "-p", "principal", required=True, help="Borrowed amount"),
        click.option("--rate", "-r", "rate", required=True, help="Annual interest rate (percent)"),
        click.option("--term", "-t", "term", required=True, type=int, help="Duration in months"),
        click.option("--fees", "-f", "fees", help="File fees added to the total due"),
        click.option("--start-date", "-s", "start_date", required=True, help="First due month (YYYY-MM)"),
        click.option(
            "--participant",
            "participants",
            multiple=True,
            required=True,
            help="Participant sharing the credit; repeat for each participant",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log engine debug messages")
def cli(verbose: bool) -> None:
    """Shared credit schedules and project timelines."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@credit_options
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def schedule(
    principal: str,
    rate: str,
    term: int,
    fees: Optional[str],
    start_date: str,
    participants: Tuple[str, ...],
    output: Optional[str],
) -> None:
    """Compute and print every installment of a shared credit."""
    terms = build_terms_from_options(principal, rate, term, fees, start_date, participants)
    result = _compute(terms)
    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_to_json(path, result)
        elif path.suffix.lower() == ".csv":
            export_to_csv(path, result)
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv")
        click.echo(f"Schedule exported to {path}")
    else:
        print_summary(result)
        print_installments(result.installments)


@cli.command()
@credit_options
@click.option("--output", "output", type=str, help="Output file path (.json)")
def summary(
    principal: str,
    rate: str,
    term: int,
    fees: Optional[str],
    start_date: str,
    participants: Tuple[str, ...],
    output: Optional[str],
) -> None:
    """Compute and print only the summary figures of a shared credit."""
    terms = build_terms_from_options(principal, rate, term, fees, start_date, participants)
    result = _compute(terms)
    if output:
        path = Path(output)
        if path.suffix.lower() != ".json":
            raise click.BadParameter("Summary export must use .json extension")
        with path.open("w", encoding="utf-8") as f:
            json.dump({"summary": summary_dict(result)}, f, indent=2)
        click.echo(f"Summary exported to {path}")
    else:
        print_summary(result)


@cli.command()
@click.option("--date", "-d", "reference", help="Reference date (YYYY-MM-DD); defaults to today")
@click.option("--view", "granularity", type=click.Choice(GRANULARITIES), default=DEFAULT_GRANULARITY, help="Zoom level")
@click.option("--shift", "shift", type=int, default=0, help="Periods to move from the reference date (negative goes back)")
@click.option("--entity", "-e", "entities", multiple=True, help="Entity in LABEL:YYYY-MM-DD:YYYY-MM-DD format")
@click.option("--width", "width", type=click.IntRange(min=10), default=60, help="Bar width in characters")
def timeline(
    reference: Optional[str],
    granularity: str,
    shift: int,
    entities: Tuple[str, ...],
    width: int,
) -> None:
    """Print a text Gantt chart of entities for one year, month or week."""
    try:
        reference_date = parse_date(reference) if reference else date.today()
    except ValueError as exc:
        raise click.BadParameter(str(exc))
    view = ViewState(reference_date=reference_date, granularity=granularity)
    for _ in range(abs(shift)):
        view = next_period(view) if shift > 0 else previous_period(view)
    parsed: List[TimeRangedEntity] = [parse_entity_string(item) for item in entities]
    # Day numbers need roughly 8 px per character on screen
    step = label_step_for_width(width * 8) if granularity == GRANULARITY_MONTH else 1
    print_timeline(build_timeline(view, parsed, label_step=step), columns=width)


if __name__ == "__main__":
    cli()
