# accounting/services/balance_service.py

"""
ACCOUNT BALANCE SERVICE

Answers "what is the balance of this account?" from immutable ledger lines.

RULES:
- READ-ONLY: no writes, ever
- LedgerEntry is the single source of truth
"""

from decimal import Decimal

from django.db.models import Case, F, Sum, When
from django.db.models.functions import Coalesce

from accounting.models.account import Account
from accounting.models.ledger import LedgerEntry


class BalanceServiceError(Exception):
    """Base error for account balance queries"""


def get_account_balance(account: Account) -> Decimal:
    """
    Signed balance in the account's normal direction.

    Assets & Expenses carry debit balances; Liabilities, Equity & Revenue
    carry credit balances.
    """
    if account is None:
        raise BalanceServiceError("Account is required")

    aggregates = LedgerEntry.objects.filter(account=account).aggregate(
        debit_total=Coalesce(
            Sum(Case(When(entry_type=LedgerEntry.DEBIT, then=F("amount")))),
            Decimal("0.00"),
        ),
        credit_total=Coalesce(
            Sum(Case(When(entry_type=LedgerEntry.CREDIT, then=F("amount")))),
            Decimal("0.00"),
        ),
    )

    debit = aggregates["debit_total"]
    credit = aggregates["credit_total"]

    if account.is_debit_normal:
        return debit - credit
    return credit - debit


def get_trial_balance(chart) -> list[dict]:
    """Active accounts of `chart` with their balances, ordered by code."""
    if chart is None:
        raise BalanceServiceError("Chart of Accounts is required")

    rows = []
    for account in Account.objects.filter(chart=chart, is_active=True).order_by("code"):
        rows.append(
            {
                "account": account,
                "code": account.code,
                "name": account.name,
                "account_type": account.account_type,
                "balance": get_account_balance(account),
            }
        )
    return rows
