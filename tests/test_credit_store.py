import os
import tempfile
import unittest
from datetime import date
from decimal import Decimal
from unittest import mock

from credit_share.data_models import PAID, UNPAID, LoanTerms
from credit_share.engine import compute_schedule, mark_paid
from credit_share.exceptions import (
    AlreadyPaid,
    CreditNotFound,
    InstallmentNotFound,
    InvalidLoanTerms,
)
from credit_share_web.credit_store import CreditStore, InstallmentModel, credit_entity


def shared_terms(**overrides):
    values = dict(
        principal=Decimal("12000"),
        rate=Decimal("5"),
        term=12,
        fees=Decimal("68.24"),
        start_month=date(2024, 1, 1),
        participant_ids=("alice", "bob"),
    )
    values.update(overrides)
    return LoanTerms(**values)


class TestCreditStore(unittest.TestCase):

    def setUp(self):
        self.store = CreditStore("sqlite://")

    def test_add_credit_stores_every_installment_unpaid(self):
        record = self.store.add_credit(shared_terms())

        installments = record.schedule.installments
        self.assertIsNotNone(record.id)
        self.assertEqual(len(installments), 24)
        self.assertTrue(all(i.status == UNPAID for i in installments))
        self.assertTrue(all(i.credit_id == record.id for i in installments))
        self.assertEqual(len({i.id for i in installments}), 24)
        self.assertEqual(installments[0].amount, Decimal("513.65"))

    def test_amounts_are_recomputed_from_stored_terms(self):
        record_id = self.store.add_credit(shared_terms()).id

        record = self.store.get_credit(record_id)

        self.assertEqual(record.schedule.monthly_payment, Decimal("1027.29"))
        self.assertEqual(record.schedule.total_due, Decimal("12395.72"))
        self.assertEqual(record.terms.participant_ids, ("alice", "bob"))
        self.assertEqual(record.terms.start_month, date(2024, 1, 1))

    def test_fractional_terms_survive_a_round_trip(self):
        terms = shared_terms(
            principal=Decimal("200000.005"),
            rate=Decimal("4.375"),
            term=360,
            fees=Decimal("0.125"),
        )
        created = self.store.add_credit(terms)

        record = self.store.get_credit(created.id)

        expected = compute_schedule(terms)
        self.assertEqual(record.terms, terms)
        self.assertEqual(record.schedule.monthly_payment, expected.monthly_payment)
        self.assertEqual(record.schedule.monthly_payment, created.schedule.monthly_payment)
        self.assertEqual(record.schedule.total_due, expected.total_due)
        self.assertEqual(
            record.schedule.payment_per_participant, expected.payment_per_participant
        )
        self.assertEqual(
            {i.amount for i in record.schedule.installments},
            {record.schedule.payment_per_participant},
        )

    def test_list_credits_in_creation_order(self):
        first = self.store.add_credit(shared_terms())
        second = self.store.add_credit(shared_terms(term=6, participant_ids=("carol",)))

        records = self.store.list_credits()

        self.assertEqual([r.id for r in records], [first.id, second.id])
        self.assertEqual(len(records[1].schedule.installments), 6)

    def test_invalid_terms_write_nothing(self):
        with self.assertRaises(InvalidLoanTerms):
            self.store.add_credit(shared_terms(participant_ids=()))
        self.assertEqual(self.store.list_credits(), [])

    def test_mark_installment_paid_updates_one_row(self):
        record = self.store.add_credit(shared_terms())
        target = record.schedule.installments[3]

        updated = self.store.mark_installment_paid(target.id)

        self.assertEqual(updated.status, PAID)
        stored = self.store.get_credit(record.id).schedule.installments
        self.assertEqual([i.id for i in stored if i.status == PAID], [target.id])

    def test_mark_installment_paid_twice(self):
        record = self.store.add_credit(shared_terms())
        installment_id = record.schedule.installments[0].id
        self.store.mark_installment_paid(installment_id)

        with self.assertRaises(AlreadyPaid):
            self.store.mark_installment_paid(installment_id)
        with self.assertRaises(AlreadyPaid):
            self.store.mark_installment_paid(installment_id)

    def test_concurrent_confirmation_loses(self):
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        store = CreditStore("sqlite:///" + os.path.join(tmp.name, "credits.sqlite3"))
        self.addCleanup(store._engine.dispose)
        record = store.add_credit(shared_terms())
        installment_id = record.schedule.installments[0].id

        def settled_elsewhere(installment):
            with store._session_factory() as other:
                other.get(InstallmentModel, installment_id).status = PAID
                other.commit()
            return mark_paid(installment)

        with mock.patch("credit_share_web.credit_store.mark_paid", side_effect=settled_elsewhere):
            with self.assertRaises(AlreadyPaid):
                store.mark_installment_paid(installment_id)

        stored = store.get_credit(record.id).schedule.installments
        self.assertEqual([i.id for i in stored if i.status == PAID], [installment_id])

    def test_unknown_ids(self):
        with self.assertRaises(CreditNotFound):
            self.store.get_credit(99)
        with self.assertRaises(CreditNotFound):
            self.store.delete_credit(99)
        with self.assertRaises(InstallmentNotFound):
            self.store.mark_installment_paid(99)

    def test_delete_credit_removes_installments(self):
        record = self.store.add_credit(shared_terms())
        installment_id = record.schedule.installments[0].id

        self.store.delete_credit(record.id)

        with self.assertRaises(CreditNotFound):
            self.store.get_credit(record.id)
        with self.assertRaises(InstallmentNotFound):
            self.store.mark_installment_paid(installment_id)

    def test_credit_entity_spans_due_months(self):
        record = self.store.add_credit(shared_terms(start_month=date(2024, 3, 1)))

        entity = credit_entity(record)

        self.assertEqual(entity.id, record.id)
        self.assertEqual(entity.start_date, date(2024, 3, 1))
        self.assertEqual(entity.end_date, date(2025, 2, 28))


if __name__ == "__main__":
    unittest.main()
