# fees/services/receipt.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from django.conf import settings

from fees.services.vote_heads import attribute_payment


@dataclass(frozen=True)
class PaymentReceipt:
    """Everything a printed or emailed fee receipt needs."""

    receipt_number: str
    payment_date: date
    student_name: str
    student_no: str
    amount: Decimal
    currency: str
    payment_mode: str
    reference_number: str
    notes: str
    received_by: str
    status: str
    vote_heads: list[dict] = field(default_factory=list)


def build_receipt(payment) -> PaymentReceipt:
    vote_heads: dict[str, Decimal] = {}
    for share in attribute_payment(payment):
        vote_heads[share.name] = vote_heads.get(share.name, Decimal("0.00")) + share.amount

    return PaymentReceipt(
        receipt_number=payment.receipt_number,
        payment_date=payment.payment_date,
        student_name=payment.student.full_name,
        student_no=payment.student.student_no,
        amount=payment.amount,
        currency=getattr(settings, "FEES_CURRENCY", "KES"),
        payment_mode=payment.payment_mode.name,
        reference_number=payment.reference_number,
        notes=payment.notes,
        received_by=payment.received_by,
        status=payment.status,
        vote_heads=[{"name": name, "amount": amount} for name, amount in vote_heads.items()],
    )
