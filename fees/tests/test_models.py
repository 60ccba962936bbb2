# fees/tests/test_models.py

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import TestCase, override_settings

from fees.models import Invoice, Payment, PaymentAllocation
from fees.services.fee_ledger_service import receive_payment
from fees.services.numbering import next_invoice_number, next_receipt_number
from fees.tests.helpers import make_invoice, make_student, seed_school_chart


class InvoiceModelTests(TestCase):
    def setUp(self):
        self.student = make_student()

    def _invoice(self, **overrides):
        fields = {
            "student": self.student,
            "invoice_number": "INV-X",
            "total_amount": Decimal("100.00"),
            "amount_paid": Decimal("0.00"),
            "balance_due": Decimal("100.00"),
        }
        fields.update(overrides)
        return Invoice(**fields)

    def test_amounts_must_add_up(self):
        with self.assertRaises(ValidationError):
            self._invoice(amount_paid=Decimal("10.00")).save()

    def test_negative_balance_rejected(self):
        with self.assertRaises(ValidationError):
            self._invoice(
                amount_paid=Decimal("110.00"), balance_due=Decimal("-10.00")
            ).save()

    def test_zero_total_rejected(self):
        with self.assertRaises(ValidationError):
            self._invoice(total_amount=Decimal("0.00"), balance_due=Decimal("0.00")).save()

    def test_status_is_derived(self):
        invoice = self._invoice(amount_paid=Decimal("40.00"), balance_due=Decimal("60.00"))
        invoice.status = Invoice.STATUS_PAID
        invoice.save()
        self.assertEqual(invoice.status, Invoice.STATUS_PARTIAL)


class PaymentImmutabilityTests(TestCase):
    def setUp(self):
        seed_school_chart()
        self.student = make_student()
        make_invoice(self.student, "1000")
        self.payment = receive_payment(
            student=self.student, amount="100", payment_mode="CASH"
        ).payment

    def test_amount_cannot_change(self):
        self.payment.amount = Decimal("90.00")
        with self.assertRaises(ValidationError):
            self.payment.save()

    def test_settled_invoice_cannot_be_deleted(self):
        invoice = Invoice.objects.get(student=self.student)
        with self.assertRaises(ValidationError):
            invoice.delete()

    def test_payment_cannot_be_deleted(self):
        with self.assertRaises(ValidationError):
            self.payment.delete()

    def test_allocations_are_write_once(self):
        allocation = PaymentAllocation.objects.get(payment=self.payment)
        with self.assertRaises(ValidationError):
            allocation.save()
        with self.assertRaises(ValidationError):
            allocation.delete()

    def test_allocations_plus_remainder_equal_amount(self):
        payment = receive_payment(
            student=self.student, amount="1500", payment_mode="CASH"
        ).payment
        applied = sum(
            (a.amount_applied for a in payment.allocations.all()), Decimal("0.00")
        )
        self.assertEqual(applied, Decimal("900.00"))
        self.assertEqual(Payment.objects.filter(student=self.student).count(), 2)


class NumberingTests(TestCase):
    def test_receipt_and_invoice_sequences_are_independent(self):
        self.assertEqual(next_receipt_number(), "RCP-000001")
        self.assertEqual(next_receipt_number(), "RCP-000002")
        self.assertEqual(next_invoice_number(), "INV-000001")

    @override_settings(FEES_RECEIPT_PREFIX="RC", FEES_NUMBER_PADDING=4)
    def test_prefix_and_padding_from_settings(self):
        self.assertEqual(next_receipt_number(), "RC-0001")
