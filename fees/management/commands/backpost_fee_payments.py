# fees/management/commands/backpost_fee_payments.py

from django.core.management.base import BaseCommand

from fees.services.fee_ledger_service import (
    backpost_unposted_payments,
    list_unposted_payments,
)


class Command(BaseCommand):
    help = "Post fee receipts that are recorded but still missing their journal entry"

    def add_arguments(self, parser):
        parser.add_argument("--limit", type=int, default=None)
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="List unposted receipts without posting them",
        )

    def handle(self, *args, **options):
        if options["dry_run"]:
            payments = list_unposted_payments()
            for payment in payments:
                self.stdout.write(
                    f"{payment.receipt_number}  {payment.amount}  {payment.posting_error or '-'}"
                )
            self.stdout.write(f"{payments.count()} unposted receipt(s)")
            return

        report = backpost_unposted_payments(limit=options["limit"])

        for payment, error in report.failed:
            self.stderr.write(f"{payment.receipt_number}: {error}")

        self.stdout.write(
            self.style.SUCCESS(
                f"Posted {len(report.posted)} receipt(s), {len(report.failed)} still unposted."
            )
        )
