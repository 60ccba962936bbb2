# fees/tests/test_allocation.py

from datetime import date
from decimal import Decimal

from django.test import SimpleTestCase

from fees.models.invoice import Invoice
from fees.services.allocation import (
    MODE_EXPLICIT,
    MODE_FIFO,
    InvoiceSnapshot,
    allocate,
)
from fees.services.exceptions import FeeValidationError, LedgerNotFoundError


def _snap(invoice_id, total, balance, invoice_date):
    return InvoiceSnapshot(
        invoice_id=invoice_id,
        invoice_number=f"INV-{invoice_id}",
        invoice_date=invoice_date,
        total_amount=Decimal(total),
        balance_due=Decimal(balance),
        version=3,
    )


class AllocateTests(SimpleTestCase):
    def setUp(self):
        self.jan = _snap("jan", "1000.00", "1000.00", date(2025, 1, 1))
        self.feb = _snap("feb", "500.00", "500.00", date(2025, 2, 1))

    def test_fifo_settles_oldest_first(self):
        plan = allocate(amount="700", invoices=[self.feb, self.jan])

        self.assertEqual(plan.mode, MODE_FIFO)
        self.assertEqual(len(plan.lines), 1)
        line = plan.lines[0]
        self.assertEqual(line.invoice_id, "jan")
        self.assertEqual(line.applied_amount, Decimal("700.00"))
        self.assertEqual(line.new_balance_due, Decimal("300.00"))
        self.assertEqual(line.new_amount_paid, Decimal("700.00"))
        self.assertEqual(line.new_status, Invoice.STATUS_PARTIAL)
        self.assertEqual(line.expected_version, 3)
        self.assertIsNone(plan.line_for("feb"))
        self.assertEqual(plan.unallocated_remainder, Decimal("0.00"))

    def test_fifo_spills_into_next_invoice(self):
        plan = allocate(amount="1200", invoices=[self.jan, self.feb])

        self.assertEqual(plan.line_for("jan").new_status, Invoice.STATUS_PAID)
        self.assertEqual(plan.line_for("feb").applied_amount, Decimal("200.00"))
        self.assertEqual(plan.allocated_total, Decimal("1200.00"))

    def test_overpayment_leaves_remainder(self):
        plan = allocate(amount="1800", invoices=[self.jan, self.feb])

        self.assertEqual(plan.allocated_total, Decimal("1500.00"))
        self.assertEqual(plan.unallocated_remainder, Decimal("300.00"))

    def test_no_open_invoices_is_all_remainder(self):
        paid = _snap("old", "400.00", "0.00", date(2024, 12, 1))
        plan = allocate(amount="250", invoices=[paid])

        self.assertEqual(plan.lines, ())
        self.assertEqual(plan.unallocated_remainder, Decimal("250.00"))

    def test_explicit_touches_only_target(self):
        plan = allocate(amount="700", invoices=[self.jan, self.feb], explicit_invoice_id="feb")

        self.assertEqual(plan.mode, MODE_EXPLICIT)
        self.assertEqual([l.invoice_id for l in plan.lines], ["feb"])
        self.assertEqual(plan.line_for("feb").applied_amount, Decimal("500.00"))
        self.assertEqual(plan.unallocated_remainder, Decimal("200.00"))

    def test_explicit_paid_invoice_is_noop(self):
        paid = _snap("old", "400.00", "0.00", date(2024, 12, 1))
        plan = allocate(amount="100", invoices=[paid, self.jan], explicit_invoice_id="old")

        self.assertEqual(plan.lines, ())
        self.assertEqual(plan.unallocated_remainder, Decimal("100.00"))

    def test_explicit_unknown_invoice_raises(self):
        with self.assertRaises(LedgerNotFoundError):
            allocate(amount="100", invoices=[self.jan], explicit_invoice_id="nope")

    def test_non_positive_amount_raises(self):
        for amount in ("0", "-5", "abc"):
            with self.subTest(amount=amount):
                with self.assertRaises(FeeValidationError):
                    allocate(amount=amount, invoices=[self.jan])

    def test_same_date_ties_break_by_id(self):
        a = _snap("a", "100.00", "100.00", date(2025, 1, 1))
        b = _snap("b", "100.00", "100.00", date(2025, 1, 1))

        first = allocate(amount="150", invoices=[b, a])
        second = allocate(amount="150", invoices=[a, b])

        self.assertEqual(first, second)
        self.assertEqual(first.line_for("a").applied_amount, Decimal("100.00"))
        self.assertEqual(first.line_for("b").applied_amount, Decimal("50.00"))
