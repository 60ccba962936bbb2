# fees/tests/test_concurrency.py

from decimal import Decimal
from unittest import mock

from django.db import OperationalError
from django.test import TestCase

from fees.models import Invoice, Payment
from fees.services.allocation import InvoiceSnapshot, allocate
from fees.services.exceptions import ConcurrencyConflictError, DuplicateReceiptError
from fees.services.fee_ledger_service import apply_plan, receive_payment
from fees.services import locking
from fees.tests.helpers import make_invoice, make_student, seed_school_chart


class ConcurrentPaymentTests(TestCase):
    def setUp(self):
        seed_school_chart()
        self.student = make_student()
        self.invoice = make_invoice(self.student, "1000")

    def test_second_payment_sees_first_settlement(self):
        first = receive_payment(student=self.student, amount="600", payment_mode="CASH")
        second = receive_payment(student=self.student, amount="600", payment_mode="CASH")

        self.assertEqual(first.plan.lines[0].applied_amount, Decimal("600.00"))
        self.assertEqual(second.plan.lines[0].applied_amount, Decimal("400.00"))
        self.assertEqual(second.plan.unallocated_remainder, Decimal("200.00"))

        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.balance_due, Decimal("0.00"))
        self.assertEqual(self.invoice.amount_paid, Decimal("1000.00"))
        self.assertEqual(self.invoice.version, 2)

    def test_stale_version_is_a_conflict(self):
        plan = allocate(
            amount="300", invoices=[InvoiceSnapshot.from_invoice(self.invoice)]
        )
        # Someone else settled the invoice after our snapshot.
        Invoice.objects.filter(pk=self.invoice.pk).update(version=self.invoice.version + 1)

        with self.assertRaises(ConcurrencyConflictError) as ctx:
            apply_plan(plan)

        self.assertTrue(ctx.exception.retryable)
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.balance_due, Decimal("1000.00"))

    def test_lock_timeout_is_retryable_conflict(self):
        with mock.patch(
            "fees.services.locking._try_lock",
            side_effect=OperationalError("could not obtain lock"),
        ):
            with self.assertRaises(ConcurrencyConflictError):
                receive_payment(student=self.student, amount="100", payment_mode="CASH")

        self.assertFalse(Payment.objects.exists())
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.balance_due, Decimal("1000.00"))

    def test_lock_retries_until_available(self):
        calls = {"n": 0}
        real = locking._try_lock

        def flaky(student_id):
            calls["n"] += 1
            if calls["n"] < 3:
                raise OperationalError("could not obtain lock")
            return real(student_id)

        with mock.patch("fees.services.locking._try_lock", side_effect=flaky):
            result = receive_payment(student=self.student, amount="100", payment_mode="CASH")

        self.assertEqual(calls["n"], 3)
        self.assertEqual(result.payment.status, Payment.STATUS_COMPLETED)

    def test_duplicate_receipt_number_is_fatal(self):
        first = receive_payment(student=self.student, amount="100", payment_mode="CASH")

        with mock.patch(
            "fees.services.fee_ledger_service.next_receipt_number",
            return_value=first.payment.receipt_number,
        ):
            with self.assertRaises(DuplicateReceiptError):
                receive_payment(student=self.student, amount="50", payment_mode="CASH")

        self.assertEqual(Payment.objects.count(), 1)
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.balance_due, Decimal("900.00"))
