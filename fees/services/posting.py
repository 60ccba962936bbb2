# fees/services/posting.py

"""
FEE PAYMENT POSTING (GENERAL LEDGER BRIDGE)

Turns a persisted fee payment into exactly one balanced journal entry:

    DEBIT   payment mode asset account        payment.amount
    CREDIT  vote head revenue account(s)      settled portions
    CREDIT  student prepayments (liability)   unallocated remainder

Idempotent by reference FEE_PAYMENT:<receipt_number>. Every failure is
raised as PostingError; the orchestrator decides what to do with it.
"""

from __future__ import annotations

import logging

from django.conf import settings

from accounting.models.account import Account
from accounting.models.journal import JournalEntry
from accounting.models.ledger import LedgerEntry
from accounting.services.account_resolver import (
    get_fee_income_account,
    get_student_prepayments_account,
)
from accounting.services.exceptions import AccountingServiceError, IdempotencyError
from accounting.services.journal_entry_service import (
    create_journal_entry,
    get_journal_entry_by_reference,
)
from fees.services.exceptions import PostingError
from fees.services.money import ZERO, money
from fees.services.vote_heads import attribute_payment

logger = logging.getLogger(__name__)

FEE_PAYMENT_REF = "FEE_PAYMENT"
FEE_PAYMENT_REVERSAL_REF = "FEE_PAYMENT_REVERSAL"


def _ensure_enabled(payment) -> None:
    if not getattr(settings, "ACCOUNTING_POSTING_ENABLED", True):
        raise PostingError(
            "Accounting posting is disabled",
            receipt_number=payment.receipt_number,
        )


def resolve_asset_account(payment) -> Account:
    mode = payment.payment_mode
    account = mode.asset_account
    if account is None:
        raise PostingError(
            f"Payment mode '{mode.code}' has no asset account configured",
            receipt_number=payment.receipt_number,
        )
    if not account.is_active:
        raise PostingError(
            f"Asset account {account.code} for payment mode '{mode.code}' is inactive",
            receipt_number=payment.receipt_number,
        )
    return account


def _credit_account_for(share) -> Account:
    if share.is_prepayment:
        return get_student_prepayments_account()
    fee_account = share.fee_account
    if fee_account is not None and fee_account.revenue_account_id:
        if fee_account.revenue_account.is_active:
            return fee_account.revenue_account
    return get_fee_income_account()


def build_payment_postings(payment, asset_account: Account) -> list[dict]:
    credits: dict[int, dict] = {}
    for share in attribute_payment(payment):
        account = _credit_account_for(share)
        line = credits.setdefault(account.pk, {"account": account, "credit": ZERO})
        line["credit"] += share.amount

    return [{"account": asset_account, "debit": money(payment.amount)}] + list(
        credits.values()
    )


def post_payment(payment, asset_account: Account | None = None) -> JournalEntry:
    existing = get_journal_entry_by_reference(FEE_PAYMENT_REF, payment.receipt_number)
    if existing is not None:
        return existing

    _ensure_enabled(payment)

    try:
        asset_account = asset_account or resolve_asset_account(payment)
        postings = build_payment_postings(payment, asset_account)
        entry = create_journal_entry(
            description=f"Fee receipt {payment.receipt_number} ({payment.student.student_no})",
            postings=postings,
            reference_type=FEE_PAYMENT_REF,
            reference_id=payment.receipt_number,
            posted_at=payment.payment_date,
        )
    except IdempotencyError:
        return get_journal_entry_by_reference(FEE_PAYMENT_REF, payment.receipt_number)
    except AccountingServiceError as exc:
        raise PostingError(
            f"Ledger posting failed: {exc}",
            receipt_number=payment.receipt_number,
            amount=payment.amount,
        ) from exc

    logger.info("Posted fee receipt %s as journal %s", payment.receipt_number, entry.pk)
    return entry


def post_payment_reversal(payment) -> JournalEntry:
    """Mirror of the original receipt entry (debits and credits swapped)."""
    if payment.journal_entry_id is None:
        raise PostingError(
            "Payment was never posted; there is nothing to reverse in the ledger",
            receipt_number=payment.receipt_number,
        )

    existing = get_journal_entry_by_reference(
        FEE_PAYMENT_REVERSAL_REF, payment.receipt_number
    )
    if existing is not None:
        return existing

    _ensure_enabled(payment)

    postings = []
    for line in payment.journal_entry.ledger_entries.select_related("account"):
        if line.entry_type == LedgerEntry.DEBIT:
            postings.append({"account": line.account, "credit": line.amount})
        else:
            postings.append({"account": line.account, "debit": line.amount})

    try:
        entry = create_journal_entry(
            description=f"Reversal of fee receipt {payment.receipt_number}",
            postings=postings,
            reference_type=FEE_PAYMENT_REVERSAL_REF,
            reference_id=payment.receipt_number,
        )
    except IdempotencyError:
        return get_journal_entry_by_reference(
            FEE_PAYMENT_REVERSAL_REF, payment.receipt_number
        )
    except AccountingServiceError as exc:
        raise PostingError(
            f"Reversal posting failed: {exc}",
            receipt_number=payment.receipt_number,
        ) from exc

    logger.info("Posted reversal of fee receipt %s", payment.receipt_number)
    return entry
