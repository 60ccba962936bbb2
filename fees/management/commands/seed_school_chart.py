# fees/management/commands/seed_school_chart.py

from django.core.management.base import BaseCommand
from django.db import transaction

from accounting.models.account import Account
from accounting.models.chart import ChartOfAccounts
from fees.models import FeeAccount, PaymentMode

SCHOOL_CODE = "school_standard"
SCHOOL_NAME = "School Standard Chart"

ACCOUNTS = [
    # ASSETS
    ("1000", "Cash on Hand", Account.ASSET),
    ("1010", "Bank Account", Account.ASSET),
    ("1020", "M-Pesa Clearing", Account.ASSET),
    ("1100", "Fees Receivable", Account.ASSET),
    # LIABILITIES
    ("2200", "Student Prepayments", Account.LIABILITY),
    # EQUITY
    ("3000", "Accumulated Fund", Account.EQUITY),
    # REVENUE
    ("4000", "Fee Income", Account.REVENUE),
    ("4010", "Tuition Income", Account.REVENUE),
    ("4020", "Boarding Income", Account.REVENUE),
    ("4030", "Transport Income", Account.REVENUE),
    # EXPENSES
    ("6000", "Operating Expenses", Account.EXPENSE),
]

FEE_ACCOUNTS = [
    ("tuition", "Tuition", "4010"),
    ("boarding", "Boarding", "4020"),
    ("transport", "Transport", "4030"),
    ("activity", "Activity Fee", None),
]

PAYMENT_MODES = [
    ("CASH", "Cash", "1000"),
    ("BANK", "Bank", "1010"),
    ("MPESA", "M-Pesa", "1020"),
    ("CHEQUE", "Cheque", None),
]


def _activate_only_this_chart(chart: ChartOfAccounts) -> None:
    ChartOfAccounts.objects.exclude(id=chart.id).filter(is_active=True).update(
        is_active=False
    )
    if not chart.is_active:
        chart.is_active = True
        chart.save(update_fields=["is_active"])


class Command(BaseCommand):
    help = "Seed the school Chart of Accounts, default vote heads and payment modes"

    def add_arguments(self, parser):
        parser.add_argument("--institution", default="", help="School name shown on the chart")

    @transaction.atomic
    def handle(self, *args, **options):
        self.stdout.write("Seeding school Chart of Accounts...")

        chart = ChartOfAccounts.objects.filter(code=SCHOOL_CODE).first()
        if chart is None:
            chart = ChartOfAccounts.objects.create(
                name=SCHOOL_NAME,
                code=SCHOOL_CODE,
                institution=options["institution"],
                is_active=True,
            )
            self.stdout.write("Created school chart")
        elif options["institution"] and chart.institution != options["institution"]:
            chart.institution = options["institution"]
            chart.save()

        _activate_only_this_chart(chart)

        created_count = 0
        updated_count = 0
        by_code = {}

        for code, name, account_type in ACCOUNTS:
            acc, acc_created = Account.objects.get_or_create(
                chart=chart,
                code=code,
                defaults={"name": name, "account_type": account_type, "is_active": True},
            )
            by_code[code] = acc

            if acc_created:
                created_count += 1
                continue

            if acc.name != name or acc.account_type != account_type or not acc.is_active:
                acc.name = name
                acc.account_type = account_type
                acc.is_active = True
                acc.save(update_fields=["name", "account_type", "is_active"])
                updated_count += 1

        for code, name, revenue_code in FEE_ACCOUNTS:
            FeeAccount.objects.update_or_create(
                code=code,
                defaults={
                    "name": name,
                    "revenue_account": by_code.get(revenue_code),
                    "is_active": True,
                },
            )

        for code, name, asset_code in PAYMENT_MODES:
            mode, mode_created = PaymentMode.objects.get_or_create(
                code=code,
                defaults={"name": name, "asset_account": by_code.get(asset_code)},
            )
            # Never overwrite an asset account configured by the bursar.
            if not mode_created and mode.asset_account_id is None and asset_code:
                mode.asset_account = by_code[asset_code]
                mode.save(update_fields=["asset_account"])

        self.stdout.write(
            self.style.SUCCESS(
                f"School chart seeded ({created_count} new accounts, {updated_count} updated)."
            )
        )
