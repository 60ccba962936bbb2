# fees/tests/test_balance_statement.py

import uuid
from datetime import date, datetime, timezone as dt_timezone
from decimal import Decimal

from django.test import SimpleTestCase, TestCase

from fees.models import Invoice, Payment
from fees.services.balance_service import compute_balance, replay_balance
from fees.services.fee_ledger_service import (
    get_balance,
    get_statement,
    receive_payment,
    reverse_payment,
)
from fees.services.statement_service import CREDIT, DEBIT, fold_statement
from fees.tests.helpers import make_invoice, make_student, seed_school_chart


class StudentBalanceTests(TestCase):
    def setUp(self):
        seed_school_chart()
        self.student = make_student()

    def test_no_activity_is_unpaid(self):
        balance = get_balance(self.student)
        self.assertEqual(balance.balance, Decimal("0.00"))
        self.assertEqual(balance.status, "unpaid")

    def test_unpaid_then_overdue(self):
        make_invoice(
            self.student, "1000", invoice_date=date(2025, 1, 1), due_date=date(2025, 1, 31)
        )

        self.assertEqual(get_balance(self.student, as_of=date(2025, 1, 15)).status, "unpaid")
        self.assertEqual(get_balance(self.student, as_of=date(2025, 2, 15)).status, "overdue")

    def test_partial_payment(self):
        make_invoice(
            self.student, "1000", invoice_date=date(2025, 1, 1), due_date=date(2025, 1, 31)
        )
        receive_payment(student=self.student, amount="250", payment_mode="CASH")

        balance = get_balance(self.student, as_of=date(2025, 1, 20))
        self.assertEqual(balance.status, "partial")
        self.assertEqual(balance.status_label, "Partially Paid")
        self.assertEqual(balance.balance, Decimal("750.00"))

        # Money received keeps the student partial even once past due.
        self.assertEqual(get_balance(self.student, as_of=date(2025, 3, 1)).status, "partial")

    def test_balance_is_repeatable_and_matches_replay(self):
        make_invoice(self.student, "1000", invoice_date=date(2025, 1, 1))
        make_invoice(self.student, "500", invoice_date=date(2025, 2, 1))
        p = receive_payment(student=self.student, amount="700", payment_mode="CASH").payment
        receive_payment(student=self.student, amount="900", payment_mode="BANK")
        reverse_payment(payment=p, reason="Bounced")

        as_of = date(2025, 3, 1)
        first = compute_balance(self.student, as_of=as_of)
        second = compute_balance(self.student, as_of=as_of)

        self.assertEqual(first, second)
        self.assertEqual(first, replay_balance(self.student, as_of=as_of))
        self.assertEqual(first.total_paid, Decimal("900.00"))
        self.assertEqual(first.balance, Decimal("600.00"))


class StatementTests(TestCase):
    def setUp(self):
        seed_school_chart()
        self.student = make_student()

    def test_statement_runs_chronologically(self):
        make_invoice(self.student, "1000", invoice_date=date(2025, 1, 1))
        make_invoice(self.student, "500", invoice_date=date(2025, 2, 1))
        receive_payment(
            student=self.student,
            amount="700",
            payment_mode="CASH",
            payment_date=date(2025, 1, 15),
        )

        statement = get_statement(self.student)

        self.assertEqual(
            [(l.entry_type, l.running_balance) for l in statement.lines],
            [
                (DEBIT, Decimal("1000.00")),
                (CREDIT, Decimal("300.00")),
                (DEBIT, Decimal("800.00")),
            ],
        )
        self.assertEqual(statement.lines[1].description, "Payment: RCP-000001")
        self.assertEqual(statement.total_debits, Decimal("1500.00"))
        self.assertEqual(statement.total_credits, Decimal("700.00"))
        self.assertEqual(statement.closing_balance, get_balance(self.student).balance)

    def test_reversed_payments_are_excluded(self):
        make_invoice(self.student, "1000")
        p = receive_payment(student=self.student, amount="400", payment_mode="CASH").payment
        reverse_payment(payment=p, reason="Wrong student")

        statement = get_statement(self.student)

        self.assertEqual([l.entry_type for l in statement.lines], [DEBIT])
        self.assertEqual(statement.closing_balance, Decimal("1000.00"))


class StatementOrderingTests(SimpleTestCase):
    def test_same_instant_debits_sort_before_credits(self):
        moment = datetime(2025, 1, 1, 9, 0, tzinfo=dt_timezone.utc)
        day = date(2025, 1, 1)

        payment = Payment(
            id=uuid.UUID(int=1),
            receipt_number="RCP-000001",
            payment_date=day,
            amount=Decimal("300.00"),
        )
        payment.created_at = moment
        invoice = Invoice(
            id=uuid.UUID(int=2),
            invoice_number="INV-000001",
            invoice_date=day,
            total_amount=Decimal("1000.00"),
            balance_due=Decimal("1000.00"),
        )
        invoice.created_at = moment

        statement = fold_statement("s1", [invoice], [payment])

        self.assertEqual([l.entry_type for l in statement.lines], [DEBIT, CREDIT])
        self.assertEqual(statement.lines[0].running_balance, Decimal("1000.00"))
        self.assertEqual(statement.closing_balance, Decimal("700.00"))
        self.assertEqual(fold_statement("s1", [invoice], [payment]), statement)
