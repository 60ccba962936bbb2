# fees/tests/helpers.py

from __future__ import annotations

from datetime import date
from decimal import Decimal
from io import StringIO

from django.core.management import call_command

from accounting.models.account import Account
from accounting.services.account_resolver import clear_active_chart_cache
from fees.services.fee_ledger_service import record_invoice
from students.models import Student


def seed_school_chart():
    clear_active_chart_cache()
    call_command("seed_school_chart", stdout=StringIO())


def account(code: str) -> Account:
    return Account.objects.get(chart__is_active=True, code=code)


def make_student(student_no="S1", full_name="Amina Otieno") -> Student:
    return Student.objects.create(student_no=student_no, full_name=full_name)


def make_invoice(student, amount, *, invoice_date=date(2025, 1, 1), due_date=None, fee_account="tuition"):
    return record_invoice(
        student=student,
        line_items=[{"fee_account": fee_account, "amount": Decimal(str(amount))}],
        invoice_date=invoice_date,
        due_date=due_date,
    )
