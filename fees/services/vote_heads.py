# fees/services/vote_heads.py

"""
VOTE HEAD ATTRIBUTION

Splits what a payment settled across the fee categories (vote heads) of
the invoices it touched. Receipts print it; journal posting credits each
vote head's revenue account from it, so both always agree.

Each allocation is split across its invoice's line items pro rata to the
line amounts. Interim shares round down; the last line takes the residue,
so shares always sum to the allocation exactly. Any unallocated remainder
is a single prepayment/credit share.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_DOWN, Decimal

from fees.models.fee_account import FeeAccount
from fees.services.money import TWOPLACES, ZERO, money

PREPAYMENT_VOTE_HEAD = "Prepayment / Credit"


@dataclass(frozen=True)
class VoteHeadShare:
    name: str
    amount: Decimal
    fee_account: FeeAccount | None = None
    is_prepayment: bool = False


def split_amount(amount: Decimal, weights: list[Decimal]) -> list[Decimal]:
    amount = money(amount)
    if not weights:
        return []

    total = sum(weights, ZERO)
    shares = []
    for weight in weights[:-1]:
        share = (amount * weight / total).quantize(TWOPLACES, rounding=ROUND_DOWN)
        shares.append(share)
    shares.append(amount - sum(shares, ZERO))
    return shares


def _merge(shares: list[VoteHeadShare]) -> list[VoteHeadShare]:
    merged: dict[tuple, VoteHeadShare] = {}
    for share in shares:
        key = (
            share.fee_account.pk if share.fee_account else None,
            share.name,
            share.is_prepayment,
        )
        if key in merged:
            prev = merged[key]
            merged[key] = VoteHeadShare(
                name=prev.name,
                amount=prev.amount + share.amount,
                fee_account=prev.fee_account,
                is_prepayment=prev.is_prepayment,
            )
        else:
            merged[key] = share
    return list(merged.values())


def attribute_payment(payment) -> list[VoteHeadShare]:
    shares: list[VoteHeadShare] = []
    allocated = ZERO

    allocations = payment.allocations.select_related("invoice").order_by(
        "invoice__invoice_date", "invoice__created_at", "invoice_id"
    )
    for allocation in allocations:
        applied = money(allocation.amount_applied)
        allocated += applied

        items = list(
            allocation.invoice.line_items.select_related("fee_account").order_by(
                "position", "id"
            )
        )
        if not items:
            shares.append(
                VoteHeadShare(
                    name=f"Invoice {allocation.invoice.invoice_number}",
                    amount=applied,
                )
            )
            continue

        portions = split_amount(applied, [money(item.amount) for item in items])
        for item, portion in zip(items, portions):
            if portion <= ZERO:
                continue
            shares.append(
                VoteHeadShare(
                    name=item.vote_head_name,
                    amount=portion,
                    fee_account=item.fee_account,
                )
            )

    remainder = money(payment.amount) - allocated
    if remainder > ZERO:
        shares.append(
            VoteHeadShare(name=PREPAYMENT_VOTE_HEAD, amount=remainder, is_prepayment=True)
        )

    return _merge(shares)
