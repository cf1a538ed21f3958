"""Utility functions for the credit sharing engine.

This module provides helpers for parsing user input into Python data types,
for rounding money, and for date arithmetic. Month arithmetic is done on
(year, month) pairs so that stepping from January 31 never rolls over into
March.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, getcontext

from .config import DATE_FORMAT, MONEY_QUANTUM, MONEY_ROUNDING

getcontext().prec = 28  # increase decimal precision to avoid rounding errors


def parse_year_month(ym: str) -> date:
    """Parse a YYYY-MM string into a ``date`` object (first day of month).

    Parameters
    ----------
    ym: str
        A string in the form ``"YYYY-MM"``. The day component, if present,
        will be ignored.

    Returns
    -------
    date
        A date object representing the first day of the specified month.

    Raises
    ------
    ValueError
        If the string is not a valid year-month.
    """
    try:
        parts = ym.strip().split("-")
        if len(parts) < 2:
            raise ValueError
        return date(int(parts[0]), int(parts[1]), 1)
    except (AttributeError, TypeError, ValueError) as exc:
        raise ValueError(f"Invalid year-month string: {ym}") from exc


def parse_date(value: str) -> date:
    """Parse a YYYY-MM-DD string into a ``date``."""
    try:
        return datetime.strptime(value.strip(), DATE_FORMAT).date()
    except (AttributeError, TypeError, ValueError) as exc:
        raise ValueError(f"Invalid date string: {value}") from exc


def first_of_month(dt: date) -> date:
    return date(dt.year, dt.month, 1)


def add_months(dt: date, months: int) -> date:
    """Return the first day of the month ``months`` after ``dt``'s month.

    The day of ``dt`` is dropped before stepping, which keeps due months
    aligned on the 1st whatever day the credit was entered with.
    """
    index = dt.year * 12 + (dt.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def shift_months(dt: date, months: int) -> date:
    """Return a date a number of months after ``dt``, keeping the day.

    The day of the month is clamped to the last valid day if needed (e.g.,
    adding one month to Jan 31 yields Feb 28 or 29).
    """
    target = add_months(dt, months)
    day = min(dt.day, calendar.monthrange(target.year, target.month)[1])
    return target.replace(day=day)


def months_between(start: date, end: date) -> int:
    """Whole calendar months from ``start``'s month to ``end``'s month."""
    return (end.year - start.year) * 12 + (end.month - start.month)


def decimal_from_str(value) -> Decimal:
    """Convert a numeric string into a ``Decimal``.

    The function strips any commas and handles both integer and float-like
    strings. It raises ``ValueError`` if conversion fails.
    """
    try:
        cleaned = str(value).strip().replace(",", "")
        result = Decimal(cleaned)
    except InvalidOperation as exc:
        raise ValueError(f"Invalid numeric value: {value}") from exc
    if not result.is_finite():
        raise ValueError(f"Invalid numeric value: {value}")
    return result


def round_money(amount: Decimal) -> Decimal:
    """Round an amount to cents, half up."""
    return amount.quantize(MONEY_QUANTUM, rounding=MONEY_ROUNDING)
