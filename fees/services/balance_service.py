# fees/services/balance_service.py

"""
STUDENT BALANCE

balance = total_invoiced - total_paid (completed payments only).
Positive means the student owes; negative means a credit.

compute_balance() uses database aggregates; replay_balance() rebuilds the
figures from the statement fold over every invoice and payment row. Both
must always agree.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable

from django.db.models import Sum
from django.utils import timezone

from fees.models.invoice import Invoice
from fees.models.payment import Payment
from fees.services.money import ZERO, money
from fees.services.statement_service import fold_statement

STATUS_OVERPAID = "overpaid"
STATUS_PAID = "paid"
STATUS_PARTIAL = "partial"
STATUS_OVERDUE = "overdue"
STATUS_UNPAID = "unpaid"

STATUS_LABELS = {
    STATUS_OVERPAID: "Overpaid",
    STATUS_PAID: "Fully Paid",
    STATUS_PARTIAL: "Partially Paid",
    STATUS_OVERDUE: "Overdue",
    STATUS_UNPAID: "Unpaid",
}


@dataclass(frozen=True)
class StudentBalance:
    student_id: str
    total_invoiced: Decimal
    total_paid: Decimal
    balance: Decimal
    status: str
    as_of: date

    @property
    def status_label(self) -> str:
        return STATUS_LABELS[self.status]

    @property
    def credit(self) -> Decimal:
        return -self.balance if self.balance < 0 else ZERO


def classify(
    *, total_invoiced: Decimal, total_paid: Decimal, balance: Decimal, has_overdue: bool
) -> str:
    if balance < 0:
        return STATUS_OVERPAID
    if balance == 0 and total_invoiced > 0:
        return STATUS_PAID
    if balance > 0 and total_paid > 0:
        return STATUS_PARTIAL
    if total_paid == 0 and has_overdue:
        return STATUS_OVERDUE
    return STATUS_UNPAID


def _build(student_id, total_invoiced, total_paid, has_overdue, as_of) -> StudentBalance:
    total_invoiced = money(total_invoiced)
    total_paid = money(total_paid)
    balance = total_invoiced - total_paid
    return StudentBalance(
        student_id=str(student_id),
        total_invoiced=total_invoiced,
        total_paid=total_paid,
        balance=balance,
        status=classify(
            total_invoiced=total_invoiced,
            total_paid=total_paid,
            balance=balance,
            has_overdue=has_overdue,
        ),
        as_of=as_of,
    )


def compute_balance(student, *, as_of: date | None = None) -> StudentBalance:
    as_of = as_of or timezone.localdate()

    invoices = Invoice.objects.filter(student=student)
    total_invoiced = invoices.aggregate(total=Sum("total_amount"))["total"] or ZERO
    total_paid = (
        Payment.objects.filter(student=student, status=Payment.STATUS_COMPLETED)
        .aggregate(total=Sum("amount"))["total"]
        or ZERO
    )
    has_overdue = invoices.filter(due_date__lt=as_of, balance_due__gt=0).exists()

    return _build(student.pk, total_invoiced, total_paid, has_overdue, as_of)


def fold_balance(
    student_id,
    invoices: Iterable[Invoice],
    payments: Iterable[Payment],
    *,
    as_of: date,
) -> StudentBalance:
    invoices = list(invoices)
    statement = fold_statement(student_id, invoices, payments)
    has_overdue = any(invoice.is_overdue(as_of) for invoice in invoices)

    return _build(
        student_id, statement.total_debits, statement.total_credits, has_overdue, as_of
    )


def replay_balance(student, *, as_of: date | None = None) -> StudentBalance:
    """Full replay from source rows. Used to audit compute_balance()."""
    as_of = as_of or timezone.localdate()
    return fold_balance(
        student.pk,
        Invoice.objects.filter(student=student),
        Payment.objects.filter(student=student),
        as_of=as_of,
    )
