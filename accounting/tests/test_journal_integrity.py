# accounting/tests/test_journal_integrity.py

from __future__ import annotations

from datetime import date
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import TestCase

from accounting.models.account import Account
from accounting.models.chart import ChartOfAccounts
from accounting.models.journal import JournalEntry
from accounting.models.ledger import LedgerEntry
from accounting.services.account_resolver import (
    clear_active_chart_cache,
    get_active_chart,
    get_fee_income_account,
    get_student_prepayments_account,
)
from accounting.services.balance_service import get_account_balance, get_trial_balance
from accounting.services.exceptions import (
    AccountResolutionError,
    IdempotencyError,
    JournalEntryCreationError,
)
from accounting.services.journal_entry_service import (
    create_journal_entry,
    get_journal_entry_by_reference,
)


def _create_active_chart(code="school_standard", name="Test School Chart"):
    return ChartOfAccounts.objects.create(name=name, code=code, is_active=True)


def _ensure_account(chart, code: str, name: str, account_type=Account.ASSET):
    account, _ = Account.objects.get_or_create(
        chart=chart,
        code=code,
        defaults={"name": name, "account_type": account_type, "is_active": True},
    )
    return account


class JournalEntryServiceTests(TestCase):
    def setUp(self):
        clear_active_chart_cache()
        self.chart = _create_active_chart()

        self.cash = _ensure_account(self.chart, "1000", "Cash")
        self.income = _ensure_account(self.chart, "4000", "Fee Income", Account.REVENUE)

    def tearDown(self):
        clear_active_chart_cache()

    def test_create_journal_entry_balanced_creates_ledger(self):
        je = create_journal_entry(
            description="Test fee receipt",
            postings=[
                {"account": self.cash, "debit": "100.00", "credit": "0.00"},
                {"account": self.income, "debit": "0.00", "credit": "100.00"},
            ],
            reference_type="TEST",
            reference_id="A1",
        )

        self.assertIsInstance(je, JournalEntry)
        self.assertEqual(je.reference, "TEST:A1")

        lines = LedgerEntry.objects.filter(journal_entry=je)
        self.assertEqual(lines.count(), 2)

        debit, credit = je.totals()
        self.assertEqual(debit, Decimal("100.00"))
        self.assertEqual(credit, Decimal("100.00"))

    def test_unbalanced_raises(self):
        with self.assertRaises(JournalEntryCreationError):
            create_journal_entry(
                description="Bad entry",
                postings=[
                    {"account": self.cash, "debit": "100.00"},
                    {"account": self.income, "credit": "90.00"},
                ],
                reference_type="TEST",
                reference_id="BAD1",
            )
        self.assertFalse(JournalEntry.objects.exists())

    def test_line_with_both_sides_raises(self):
        with self.assertRaises(JournalEntryCreationError):
            create_journal_entry(
                description="Bad entry",
                postings=[
                    {"account": self.cash, "debit": "10.00", "credit": "10.00"},
                ],
            )

    def test_duplicate_reference_raises_idempotency_error(self):
        postings = [
            {"account": self.cash, "debit": "50.00"},
            {"account": self.income, "credit": "50.00"},
        ]
        create_journal_entry(
            description="First", postings=postings, reference_type="FEE_PAYMENT", reference_id="R1"
        )

        with self.assertRaises(IdempotencyError):
            create_journal_entry(
                description="Second",
                postings=postings,
                reference_type="FEE_PAYMENT",
                reference_id="R1",
            )

        self.assertEqual(JournalEntry.objects.filter(reference="FEE_PAYMENT:R1").count(), 1)
        self.assertIsNotNone(get_journal_entry_by_reference("FEE_PAYMENT", "R1"))

    def test_cross_chart_postings_rejected(self):
        other = ChartOfAccounts.objects.create(name="Other", code="other", is_active=False)
        foreign = _ensure_account(other, "4000", "Other Income", Account.REVENUE)

        with self.assertRaises(JournalEntryCreationError):
            create_journal_entry(
                description="Cross chart",
                postings=[
                    {"account": self.cash, "debit": "10.00"},
                    {"account": foreign, "credit": "10.00"},
                ],
            )

    def test_inactive_account_rejected(self):
        self.income.is_active = False
        self.income.save(update_fields=["is_active"])

        with self.assertRaises(JournalEntryCreationError):
            create_journal_entry(
                description="Inactive",
                postings=[
                    {"account": self.cash, "debit": "10.00"},
                    {"account": self.income, "credit": "10.00"},
                ],
            )

    def test_business_date_posts_at_noon(self):
        je = create_journal_entry(
            description="Dated",
            postings=[
                {"account": self.cash, "debit": "10.00"},
                {"account": self.income, "credit": "10.00"},
            ],
            posted_at=date(2025, 1, 15),
        )
        self.assertEqual(je.posted_at.date(), date(2025, 1, 15))
        self.assertEqual(je.posted_at.hour, 12)

    def test_journal_and_ledger_are_immutable(self):
        je = create_journal_entry(
            description="Immutable",
            postings=[
                {"account": self.cash, "debit": "10.00"},
                {"account": self.income, "credit": "10.00"},
            ],
        )

        je.description = "Changed"
        with self.assertRaises(ValidationError):
            je.save()
        with self.assertRaises(ValidationError):
            je.delete()

        line = je.ledger_entries.first()
        with self.assertRaises(ValidationError):
            line.delete()


class AccountResolverTests(TestCase):
    def setUp(self):
        clear_active_chart_cache()

    def tearDown(self):
        clear_active_chart_cache()

    def test_no_active_chart_raises(self):
        with self.assertRaises(AccountResolutionError):
            get_active_chart()

    def test_only_one_chart_stays_active(self):
        first = _create_active_chart(code="first", name="First")
        second = _create_active_chart(code="second", name="Second")

        first.refresh_from_db()
        self.assertFalse(first.is_active)
        self.assertEqual(get_active_chart().pk, second.pk)

    def test_semantic_accounts_resolve_by_code(self):
        chart = _create_active_chart()
        income = _ensure_account(chart, "4000", "Fee Income", Account.REVENUE)
        prepayments = _ensure_account(chart, "2200", "Student Prepayments", Account.LIABILITY)

        self.assertEqual(get_fee_income_account().pk, income.pk)
        self.assertEqual(get_student_prepayments_account().pk, prepayments.pk)

    def test_missing_account_raises(self):
        _create_active_chart()
        with self.assertRaises(AccountResolutionError):
            get_fee_income_account()


class BalanceServiceTests(TestCase):
    def setUp(self):
        clear_active_chart_cache()
        self.chart = _create_active_chart()
        self.cash = _ensure_account(self.chart, "1000", "Cash")
        self.income = _ensure_account(self.chart, "4000", "Fee Income", Account.REVENUE)
        self.prepayments = _ensure_account(
            self.chart, "2200", "Student Prepayments", Account.LIABILITY
        )

    def tearDown(self):
        clear_active_chart_cache()

    def test_balances_follow_normal_side(self):
        create_journal_entry(
            description="Receipt",
            postings=[
                {"account": self.cash, "debit": "1500.00"},
                {"account": self.income, "credit": "1000.00"},
                {"account": self.prepayments, "credit": "500.00"},
            ],
        )

        self.assertEqual(get_account_balance(self.cash), Decimal("1500.00"))
        self.assertEqual(get_account_balance(self.income), Decimal("1000.00"))
        self.assertEqual(get_account_balance(self.prepayments), Decimal("500.00"))

        rows = {r["code"]: r["balance"] for r in get_trial_balance(self.chart)}
        self.assertEqual(rows["1000"], Decimal("1500.00"))
        self.assertEqual(rows["2200"], Decimal("500.00"))
