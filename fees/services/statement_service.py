# fees/services/statement_service.py

"""
STUDENT STATEMENT

Chronological debits (invoices) and credits (completed payments) with a
running balance. The sort key is total:
    (date, created_at, debits before credits, id)
so the same data always renders the same statement.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable

from fees.models.invoice import Invoice
from fees.models.payment import Payment
from fees.services.money import ZERO, money

DEBIT = "debit"
CREDIT = "credit"

_TYPE_RANK = {DEBIT: 0, CREDIT: 1}


@dataclass(frozen=True)
class StatementLine:
    date: date
    entry_type: str
    reference: str
    description: str
    debit: Decimal
    credit: Decimal
    running_balance: Decimal
    source_id: str
    created_at: datetime | None = None


@dataclass(frozen=True)
class Statement:
    student_id: str
    lines: tuple[StatementLine, ...]
    total_debits: Decimal
    total_credits: Decimal
    closing_balance: Decimal


def _events(invoices: Iterable[Invoice], payments: Iterable[Payment]) -> list[dict]:
    events = []
    for invoice in invoices:
        events.append(
            {
                "date": invoice.invoice_date,
                "created_at": invoice.created_at,
                "entry_type": DEBIT,
                "reference": invoice.invoice_number,
                "description": f"Invoice: {invoice.invoice_number}",
                "amount": money(invoice.total_amount),
                "source_id": str(invoice.pk),
            }
        )
    for payment in payments:
        if payment.status != Payment.STATUS_COMPLETED:
            continue
        events.append(
            {
                "date": payment.payment_date,
                "created_at": payment.created_at,
                "entry_type": CREDIT,
                "reference": payment.receipt_number,
                "description": f"Payment: {payment.receipt_number}",
                "amount": money(payment.amount),
                "source_id": str(payment.pk),
            }
        )
    return events


def _sort_key(event: dict):
    created = event["created_at"].timestamp() if event["created_at"] else 0.0
    return (event["date"], created, _TYPE_RANK[event["entry_type"]], event["source_id"])


def fold_statement(
    student_id, invoices: Iterable[Invoice], payments: Iterable[Payment]
) -> Statement:
    running = ZERO
    total_debits = ZERO
    total_credits = ZERO
    lines = []

    for event in sorted(_events(invoices, payments), key=_sort_key):
        amount = event["amount"]
        if event["entry_type"] == DEBIT:
            debit, credit = amount, ZERO
            total_debits += amount
            running += amount
        else:
            debit, credit = ZERO, amount
            total_credits += amount
            running -= amount

        lines.append(
            StatementLine(
                date=event["date"],
                entry_type=event["entry_type"],
                reference=event["reference"],
                description=event["description"],
                debit=debit,
                credit=credit,
                running_balance=running,
                source_id=event["source_id"],
                created_at=event["created_at"],
            )
        )

    return Statement(
        student_id=str(student_id),
        lines=tuple(lines),
        total_debits=total_debits,
        total_credits=total_credits,
        closing_balance=running,
    )


def build_statement(student) -> Statement:
    return fold_statement(
        student.pk,
        Invoice.objects.filter(student=student),
        Payment.objects.filter(student=student),
    )
