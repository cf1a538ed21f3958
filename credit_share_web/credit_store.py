"""Persistence layer for shared credits and their installments.

This module keeps credits in an external database so that the web app can
list them and record payments. It defaults to SQLite for local development,
but accepts any SQLAlchemy-compatible URL (e.g. PostgreSQL/MySQL).

Only the credit's terms and the installments' state are stored; payment
amounts are recomputed from the terms by the engine whenever a credit is
read. Principal, rate and fees are kept as exact decimal text so that the
recomputed amounts match the ones the credit was created with. A credit is
written in one transaction together with all of its installments, and
settling an installment is a single conditional row update.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    create_engine,
    select,
    update,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker

from credit_share.data_models import (
    UNPAID,
    Installment,
    LoanSchedule,
    LoanTerms,
    TimeRangedEntity,
)
from credit_share.engine import compute_schedule, mark_paid
from credit_share.exceptions import AlreadyPaid, CreditNotFound, InstallmentNotFound
from credit_share.utils import add_months

logger = logging.getLogger(__name__)

Base = declarative_base()


class CreditModel(Base):
    __tablename__ = "credits"

    id = Column(Integer, primary_key=True)
    principal = Column(String(40), nullable=False)
    rate = Column(String(40), nullable=False)
    term = Column(Integer, nullable=False)
    fees = Column(String(40), nullable=False)
    start_month = Column(Date, nullable=False)
    participants_json = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    installments = relationship(
        "InstallmentModel",
        back_populates="credit",
        cascade="all, delete-orphan",
        order_by="InstallmentModel.id",
    )


class InstallmentModel(Base):
    __tablename__ = "installments"

    id = Column(Integer, primary_key=True)
    credit_id = Column(Integer, ForeignKey("credits.id", ondelete="CASCADE"), index=True, nullable=False)
    participant_id = Column(String(64), index=True, nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)
    due_month = Column(Date, nullable=False)
    status = Column(String(16), nullable=False)

    credit = relationship("CreditModel", back_populates="installments")


@dataclass
class CreditRecord:
    """A stored credit: its id, its terms and its schedule with stored statuses."""

    id: int
    created_at: datetime
    schedule: LoanSchedule

    @property
    def terms(self) -> LoanTerms:
        return self.schedule.terms


def credit_entity(record: CreditRecord) -> TimeRangedEntity:
    """Timeline entity covering a credit from its first to its last due month."""
    terms = record.terms
    end = add_months(terms.start_month, terms.term) - timedelta(days=1)
    return TimeRangedEntity(
        id=record.id,
        label=f"Credit #{record.id}",
        start_date=terms.start_month,
        end_date=end,
    )


class CreditStore:
    """Database-backed credit store."""

    def __init__(self, url: str) -> None:
        self._engine = create_engine(url, future=True)
        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False, future=True)

    def add_credit(self, terms: LoanTerms) -> CreditRecord:
        """Store a credit and all of its installments in one transaction.

        The schedule is computed first, so invalid terms raise
        ``InvalidLoanTerms`` before anything is written.
        """
        schedule = compute_schedule(terms)
        with self._session_factory() as session:
            row = CreditModel(
                principal=str(terms.principal),
                rate=str(terms.rate),
                term=terms.term,
                fees=str(terms.fees),
                start_month=terms.start_month,
                participants_json=json.dumps([str(p) for p in terms.participant_ids]),
                installments=[
                    InstallmentModel(
                        participant_id=str(i.participant_id),
                        amount=i.amount,
                        due_month=i.due_month,
                        status=i.status,
                    )
                    for i in schedule.installments
                ],
            )
            session.add(row)
            session.commit()
            logger.info(
                "Stored credit %s with %d installments", row.id, len(row.installments)
            )
            return self._to_record(row)

    def list_credits(self) -> List[CreditRecord]:
        with self._session_factory() as session:
            rows = session.execute(
                select(CreditModel).order_by(CreditModel.created_at.asc(), CreditModel.id.asc())
            ).scalars()
            return [self._to_record(row) for row in rows]

    def get_credit(self, credit_id: int) -> CreditRecord:
        with self._session_factory() as session:
            row = session.get(CreditModel, credit_id)
            if row is None:
                raise CreditNotFound(credit_id)
            return self._to_record(row)

    def delete_credit(self, credit_id: int) -> None:
        """Delete a credit; its installments go with it."""
        with self._session_factory() as session:
            row = session.get(CreditModel, credit_id)
            if row is None:
                raise CreditNotFound(credit_id)
            session.delete(row)
            session.commit()
            logger.info("Deleted credit %s", credit_id)

    def mark_installment_paid(self, installment_id: int) -> Installment:
        """Settle one installment.

        Raises ``InstallmentNotFound`` for an unknown id and ``AlreadyPaid``
        when the installment was settled before; nothing is written then.
        The row is only updated while it is still unpaid, so of two
        concurrent confirmations exactly one succeeds.
        """
        with self._session_factory() as session:
            row = session.get(InstallmentModel, installment_id)
            if row is None:
                raise InstallmentNotFound(installment_id)
            current = self._to_installment(row)
            updated = mark_paid(current)
            result = session.execute(
                update(InstallmentModel)
                .where(
                    InstallmentModel.id == installment_id,
                    InstallmentModel.status == UNPAID,
                )
                .values(status=updated.status)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                session.rollback()
                raise AlreadyPaid(current.id, current.participant_id, current.due_month)
            session.commit()
            logger.info("Installment %s marked %s", installment_id, updated.status)
            return updated

    @staticmethod
    def _to_installment(row: InstallmentModel) -> Installment:
        return Installment(
            participant_id=row.participant_id,
            amount=Decimal(row.amount),
            due_month=row.due_month,
            status=row.status,
            credit_id=row.credit_id,
            id=row.id,
        )

    @classmethod
    def _to_record(cls, row: CreditModel) -> CreditRecord:
        terms = LoanTerms(
            principal=Decimal(row.principal),
            rate=Decimal(row.rate),
            term=row.term,
            fees=Decimal(row.fees),
            start_month=row.start_month,
            participant_ids=tuple(json.loads(row.participants_json)),
        )
        schedule = compute_schedule(terms, credit_id=row.id)
        schedule = replace(
            schedule,
            installments=[cls._to_installment(i) for i in row.installments],
        )
        return CreditRecord(id=row.id, created_at=row.created_at, schedule=schedule)


def create_store_from_env(url: str | None) -> CreditStore:
    return CreditStore(url or "sqlite:///credit_share.sqlite3")
