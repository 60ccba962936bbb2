# fees/services/allocation.py

"""
PAYMENT ALLOCATOR (PURE DOMAIN LOGIC)

Decides how much of an incoming payment settles each open invoice.

DESIGN PRINCIPLES:
- No database reads or writes; works on InvoiceSnapshot values
- Deterministic: same amount + same ordered invoices -> same plan
- Never touches ledger accounts

Modes:
1) EXPLICIT: apply min(amount, balance_due) to the targeted invoice only;
   the rest is an unallocated remainder (credit on the student's account).
2) FIFO: walk invoices oldest first, applying min(remaining, balance_due)
   until the money or the invoices run out.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable

from fees.models.invoice import Invoice
from fees.services.exceptions import FeeValidationError, LedgerNotFoundError
from fees.services.money import ZERO, money

MODE_EXPLICIT = "explicit"
MODE_FIFO = "fifo"


@dataclass(frozen=True)
class InvoiceSnapshot:
    invoice_id: str
    invoice_number: str
    invoice_date: date
    total_amount: Decimal
    balance_due: Decimal
    version: int = 0
    created_at: datetime | None = None

    @classmethod
    def from_invoice(cls, invoice: Invoice) -> "InvoiceSnapshot":
        return cls(
            invoice_id=str(invoice.pk),
            invoice_number=invoice.invoice_number,
            invoice_date=invoice.invoice_date,
            total_amount=money(invoice.total_amount),
            balance_due=money(invoice.balance_due),
            version=invoice.version,
            created_at=invoice.created_at,
        )

    @property
    def amount_paid(self) -> Decimal:
        return self.total_amount - self.balance_due


@dataclass(frozen=True)
class AllocationLine:
    invoice_id: str
    invoice_number: str
    applied_amount: Decimal
    new_balance_due: Decimal
    new_amount_paid: Decimal
    new_status: str
    expected_version: int


@dataclass(frozen=True)
class AllocationPlan:
    amount: Decimal
    mode: str
    lines: tuple[AllocationLine, ...]
    unallocated_remainder: Decimal

    @property
    def allocated_total(self) -> Decimal:
        return sum((line.applied_amount for line in self.lines), ZERO)

    def line_for(self, invoice_id) -> AllocationLine | None:
        for line in self.lines:
            if line.invoice_id == str(invoice_id):
                return line
        return None


def _ordering_key(snapshot: InvoiceSnapshot):
    created = snapshot.created_at.timestamp() if snapshot.created_at else 0.0
    return (snapshot.invoice_date, created, snapshot.invoice_id)


def order_invoices(invoices: Iterable[InvoiceSnapshot]) -> list[InvoiceSnapshot]:
    """Oldest first: invoice_date, then creation time, then id."""
    return sorted(invoices, key=_ordering_key)


def _settle(snapshot: InvoiceSnapshot, applied: Decimal) -> AllocationLine:
    new_balance = snapshot.balance_due - applied
    new_paid = snapshot.total_amount - new_balance
    new_status = Invoice.STATUS_PAID if new_balance <= 0 else Invoice.STATUS_PARTIAL
    return AllocationLine(
        invoice_id=snapshot.invoice_id,
        invoice_number=snapshot.invoice_number,
        applied_amount=applied,
        new_balance_due=new_balance,
        new_amount_paid=new_paid,
        new_status=new_status,
        expected_version=snapshot.version,
    )


def allocate(
    amount,
    invoices: Iterable[InvoiceSnapshot],
    explicit_invoice_id=None,
) -> AllocationPlan:
    try:
        amount = money(amount)
    except ValueError as exc:
        raise FeeValidationError(str(exc), amount=amount) from exc

    if amount <= ZERO:
        raise FeeValidationError("Payment amount must be greater than zero", amount=amount)

    ordered = order_invoices(invoices)

    if explicit_invoice_id is not None:
        target_id = str(explicit_invoice_id)
        target = next((s for s in ordered if s.invoice_id == target_id), None)
        if target is None:
            raise LedgerNotFoundError(
                "Invoice not found among the student's invoices",
                invoice_id=target_id,
                amount=amount,
            )

        applied = min(amount, target.balance_due)
        lines = (_settle(target, applied),) if applied > ZERO else ()
        return AllocationPlan(
            amount=amount,
            mode=MODE_EXPLICIT,
            lines=lines,
            unallocated_remainder=amount - applied,
        )

    remaining = amount
    lines: list[AllocationLine] = []
    for snapshot in ordered:
        if remaining <= ZERO:
            break
        if snapshot.balance_due <= ZERO:
            continue

        applied = min(remaining, snapshot.balance_due)
        lines.append(_settle(snapshot, applied))
        remaining -= applied

    return AllocationPlan(
        amount=amount,
        mode=MODE_FIFO,
        lines=tuple(lines),
        unallocated_remainder=remaining,
    )
