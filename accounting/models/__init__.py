# accounting/models/__init__.py

"""
ACCOUNTING MODELS PACKAGE EXPORTS

Keep this file imports-only. Models never import services at module level.
"""

from accounting.models.account import Account
from accounting.models.chart import ChartOfAccounts
from accounting.models.journal import JournalEntry
from accounting.models.ledger import LedgerEntry

__all__ = [
    "ChartOfAccounts",
    "Account",
    "JournalEntry",
    "LedgerEntry",
]
