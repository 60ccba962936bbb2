# accounting/services/account_resolver.py

"""
ACCOUNT RESOLVER (AUTHORITATIVE)

This module answers ONE question:
"Which account should be used for this purpose?"

Fee posting asks for semantic accounts (fee income, student prepayments)
and this module maps them to account codes in the single active chart.

Design goals:
- deterministic
- chart-safe
- hard-fail on missing setup (so we never post to the wrong account)
"""

from __future__ import annotations

import logging
from functools import lru_cache

from django.core.exceptions import MultipleObjectsReturned, ObjectDoesNotExist

from accounting.models.account import Account
from accounting.models.chart import ChartOfAccounts
from accounting.services.exceptions import AccountResolutionError

logger = logging.getLogger(__name__)

# ------------------------------------------------------------
# SEMANTIC CODES BY CHART KEY
# ------------------------------------------------------------

DEFAULT_CODES = {
    "CASH": "1000",
    "BANK": "1010",
    "MPESA_CLEARING": "1020",
    "FEES_RECEIVABLE": "1100",
    "STUDENT_PREPAYMENTS": "2200",
    "FEE_INCOME": "4000",
}

# Charts seeded with a different numbering override individual keys here.
CHART_CODE_MAP: dict[str, dict[str, str]] = {
    "school_standard": DEFAULT_CODES,
}


def _codes_for_chart(chart: ChartOfAccounts) -> dict:
    key = (getattr(chart, "code", "") or "").strip().lower()
    return {**DEFAULT_CODES, **CHART_CODE_MAP.get(key, {})}


# ------------------------------------------------------------
# ACTIVE CHART
# ------------------------------------------------------------


@lru_cache(maxsize=1)
def get_active_chart() -> ChartOfAccounts:
    """
    Cached resolver for the single active chart.

    If you toggle active charts outside ChartOfAccounts.save(),
    call clear_active_chart_cache().
    """
    try:
        return ChartOfAccounts.objects.get(is_active=True)
    except ObjectDoesNotExist as exc:
        raise AccountResolutionError(
            "No active Chart of Accounts. Run `python manage.py seed_school_chart`."
        ) from exc
    except MultipleObjectsReturned as exc:
        raise AccountResolutionError(
            "Multiple active Charts of Accounts found. Only one active chart is allowed."
        ) from exc


def clear_active_chart_cache() -> None:
    get_active_chart.cache_clear()


# ------------------------------------------------------------
# INTERNAL RESOLUTION HELPERS
# ------------------------------------------------------------


def _resolve_code(*, semantic_key: str, chart: ChartOfAccounts) -> str:
    semantic_key = (semantic_key or "").strip().upper()
    if not semantic_key:
        raise AccountResolutionError("semantic_key is required")

    code = (_codes_for_chart(chart).get(semantic_key) or "").strip()
    if not code:
        raise AccountResolutionError(
            f"Missing mapping for semantic key '{semantic_key}' in chart '{chart.name}'."
        )
    return code


def get_account_by_code(code: str, *, chart: ChartOfAccounts | None = None) -> Account:
    code = (code or "").strip()
    if not code:
        raise AccountResolutionError("Account code is required")

    chart = chart or get_active_chart()
    try:
        return Account.objects.get(chart=chart, code=code, is_active=True)
    except ObjectDoesNotExist as exc:
        logger.warning("Account code=%s missing in chart=%s", code, chart.code)
        raise AccountResolutionError(
            f"Account with code={code} not found (or inactive) in active chart '{chart.name}'. "
            "Run the chart seed command (or add the account manually)."
        ) from exc


def resolve_account(semantic_key: str) -> Account:
    chart = get_active_chart()
    return get_account_by_code(
        _resolve_code(semantic_key=semantic_key, chart=chart), chart=chart
    )


# ------------------------------------------------------------
# PUBLIC RESOLVERS
# ------------------------------------------------------------


def get_cash_account() -> Account:
    return resolve_account("CASH")


def get_bank_account() -> Account:
    return resolve_account("BANK")


def get_mobile_money_clearing_account() -> Account:
    return resolve_account("MPESA_CLEARING")


def get_fees_receivable_account() -> Account:
    return resolve_account("FEES_RECEIVABLE")


def get_student_prepayments_account() -> Account:
    return resolve_account("STUDENT_PREPAYMENTS")


def get_fee_income_account() -> Account:
    return resolve_account("FEE_INCOME")
