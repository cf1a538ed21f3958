"""Data models for the credit sharing engine.

This module defines dataclasses for the two halves of the engine: the loan
side (terms, the derived schedule and its per-participant installments) and
the calendar side (time-ranged entities, the navigable view state and the
placements computed for a rendered view). Terms, installments and view
states are frozen; every change produces a new value.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, List, Optional, Tuple

from .config import DEFAULT_GRANULARITY

UNPAID = "unpaid"
PAID = "paid"


@dataclass(frozen=True)
class LoanTerms:
    """Inputs of a shared credit.

    Attributes
    ----------
    principal: Decimal
        Borrowed amount, strictly positive.
    rate: Decimal
        Annual nominal interest rate in percent (``5`` means 5 %).
    term: int
        Duration in months.
    fees: Decimal
        One-off file fees added to the total due, never amortized.
    start_month: date
        First due month. Only year and month are meaningful; the parsing
        helpers normalize the day to the 1st.
    participant_ids: tuple
        Participants sharing the credit, in the order their installments are
        emitted each month.
    """

    principal: Decimal
    rate: Decimal
    term: int
    fees: Decimal
    start_month: date
    participant_ids: Tuple[Any, ...]


@dataclass(frozen=True)
class Installment:
    """One participant's share of one month's payment."""

    participant_id: Any
    amount: Decimal
    due_month: date
    status: str = UNPAID  # "unpaid" or "paid"
    credit_id: Optional[Any] = None
    id: Optional[Any] = None

    @property
    def is_paid(self) -> bool:
        return self.status == PAID


@dataclass
class LoanSchedule:
    """Amounts and installments derived from a ``LoanTerms``.

    The schedule is recomputed from its terms whenever it is needed and is
    never stored on its own.
    """

    terms: LoanTerms
    monthly_payment: Decimal
    total_due: Decimal
    payment_per_participant: Decimal
    installments: List[Installment] = field(default_factory=list)

    @property
    def total_interest(self) -> Decimal:
        return self.monthly_payment * self.terms.term - self.terms.principal

    @property
    def end_month(self) -> date:
        return max(i.due_month for i in self.installments)


@dataclass
class MonthProgress:
    """Collection status of one due month of a credit."""

    due_month: date
    participant_count: int
    paid_count: int
    installment_amount: Decimal
    paid_amount: Decimal

    @property
    def paid_percent(self) -> float:
        if self.participant_count == 0:
            return 0.0
        return self.paid_count / self.participant_count * 100


@dataclass(frozen=True)
class TimeRangedEntity:
    """Anything with a start and end date that can be drawn as a bar.

    ``start_date <= end_date`` is not enforced; the layout functions treat a
    reversed range as having no visible span.
    """

    id: Any
    label: str
    start_date: date
    end_date: date


@dataclass(frozen=True)
class ViewState:
    """Reference date and zoom level of a calendar view."""

    reference_date: date
    granularity: str = DEFAULT_GRANULARITY  # "year", "month" or "week"


@dataclass(frozen=True)
class Placement:
    """Position of a bar as percentages of the view's width."""

    offset_percent: float
    width_percent: float


@dataclass
class EntityLayout:
    entity: TimeRangedEntity
    placement: Placement
    color: str
    text_color: str


@dataclass
class TimelineView:
    """Everything needed to render one period of the calendar."""

    view: ViewState
    interval_start: date
    interval_end: date
    title: str
    labels: List[str]
    layouts: List[EntityLayout]
