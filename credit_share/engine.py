"""Core calculation engine for shared credits.

This module turns ``LoanTerms`` into a fixed monthly payment and a full
payment schedule split evenly between the participants, and implements the
small state transition that settles an installment. It also offers the
per-month queries used to show how far along a credit is.

All amounts are ``Decimal``. Intermediate values keep full precision and are
rounded half up to cents only where an amount is persisted: the monthly
payment, the total due and the per-participant share. Because the share is
rounded on its own, the shares of one month may not add up exactly to the
monthly payment; that residue is accepted and not redistributed.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, List, Optional

from .data_models import (
    PAID,
    UNPAID,
    Installment,
    LoanSchedule,
    LoanTerms,
    MonthProgress,
)
from .exceptions import AlreadyPaid, InvalidLoanTerms
from .utils import add_months, first_of_month, months_between, round_money

logger = logging.getLogger(__name__)


def _calculate_annuity_payment(principal: Decimal, rate_per_month: Decimal, term: int) -> Decimal:
    """Return the annuity (equal installment) monthly payment for a loan.

    The formula is:

        payment = P * (i * (1 + i)^n) / ((1 + i)^n - 1)

    where ``P`` is the principal, ``i`` is the monthly interest rate and
    ``n`` is the number of payments. When the interest rate is zero, the
    payment simplifies to ``P / n``.
    """
    if rate_per_month == 0:
        return principal / Decimal(term)
    factor = (1 + rate_per_month) ** term
    return principal * (rate_per_month * factor) / (factor - 1)


def validate_terms(terms: LoanTerms) -> None:
    """Raise ``InvalidLoanTerms`` for the first violated precondition."""
    if terms.principal <= 0:
        raise InvalidLoanTerms("Principal must be positive", "principal", terms.principal)
    if isinstance(terms.term, bool) or not isinstance(terms.term, int) or terms.term < 1:
        raise InvalidLoanTerms("Duration must be at least one month", "term", terms.term)
    if terms.rate < 0:
        raise InvalidLoanTerms("Interest rate cannot be negative", "rate", terms.rate)
    if terms.fees < 0:
        raise InvalidLoanTerms("Fees cannot be negative", "fees", terms.fees)
    if not terms.participant_ids:
        raise InvalidLoanTerms("At least one participant is required", "participant_ids", [])
    if len(set(terms.participant_ids)) != len(terms.participant_ids):
        raise InvalidLoanTerms(
            "Participants must be unique", "participant_ids", list(terms.participant_ids)
        )


def due_months(terms: LoanTerms) -> List[date]:
    """Return the due months of a credit, first of month, in order."""
    start = first_of_month(terms.start_month)
    return [add_months(start, m) for m in range(terms.term)]


def compute_schedule(terms: LoanTerms, credit_id: Optional[Any] = None) -> LoanSchedule:
    """Compute the payment amounts and installments of a shared credit.

    Parameters
    ----------
    terms: LoanTerms
        The credit's inputs.
    credit_id:
        Identifier stamped on every installment, when the credit is already
        known to the caller.

    Returns
    -------
    LoanSchedule
        Monthly payment, total due, per-participant share and one unpaid
        installment per participant per month, ordered by month then by
        participant order.

    Raises
    ------
    InvalidLoanTerms
        If any amount is out of range, the duration is shorter than a month
        or the participant list is empty.
    """
    validate_terms(terms)

    # Convert annual rate from percent to monthly decimal
    rate_per_month = (terms.rate / Decimal(100)) / Decimal(12)
    monthly_payment = round_money(
        _calculate_annuity_payment(terms.principal, rate_per_month, terms.term)
    )
    total_due = round_money(monthly_payment * terms.term + terms.fees)
    share = round_money(monthly_payment / Decimal(len(terms.participant_ids)))

    installments: List[Installment] = []
    for due_month in due_months(terms):
        for participant_id in terms.participant_ids:
            installments.append(
                Installment(
                    participant_id=participant_id,
                    amount=share,
                    due_month=due_month,
                    status=UNPAID,
                    credit_id=credit_id,
                )
            )

    logger.debug(
        "Computed schedule: payment=%s total=%s share=%s installments=%d",
        monthly_payment,
        total_due,
        share,
        len(installments),
    )
    return LoanSchedule(
        terms=terms,
        monthly_payment=monthly_payment,
        total_due=total_due,
        payment_per_participant=share,
        installments=installments,
    )


def mark_paid(installment: Installment) -> Installment:
    """Return a copy of ``installment`` with status ``paid``.

    Raises
    ------
    AlreadyPaid
        If the installment is already settled. Repeated confirmations are
        rejected rather than ignored so that double submissions are visible.
    """
    if installment.status == PAID:
        raise AlreadyPaid(installment.id, installment.participant_id, installment.due_month)
    return replace(installment, status=PAID)


def installments_for_month(
    installments: Iterable[Installment],
    due_month: date,
    participant_id: Optional[Any] = None,
) -> List[Installment]:
    """Installments due in ``due_month``, optionally for one participant only."""
    month = first_of_month(due_month)
    return [
        i
        for i in installments
        if first_of_month(i.due_month) == month
        and (participant_id is None or i.participant_id == participant_id)
    ]


def month_progress(installments: Iterable[Installment], due_month: date) -> MonthProgress:
    """Summarize how many participants settled ``due_month``."""
    month_items = installments_for_month(installments, due_month)
    paid_count = sum(1 for i in month_items if i.status == PAID)
    amount = month_items[0].amount if month_items else Decimal("0.00")
    return MonthProgress(
        due_month=first_of_month(due_month),
        participant_count=len(month_items),
        paid_count=paid_count,
        installment_amount=amount,
        paid_amount=amount * paid_count,
    )


def months_elapsed(terms: LoanTerms, today: date) -> int:
    """Whole months since the credit started, between 0 and its duration."""
    elapsed = months_between(terms.start_month, today)
    return max(0, min(elapsed, terms.term))


def default_due_month(terms: LoanTerms, today: date) -> date:
    """The month to show first: today's month if it is due, else the first one."""
    months = due_months(terms)
    current = first_of_month(today)
    if current in months:
        return current
    return months[0]
