# accounting/models/journal.py

"""
JOURNAL ENTRY MODEL

One accounting transaction (journal header).

Guarantees:
- Immutable once created (no updates, no deletes)
- Idempotency via reference uniqueness when a reference is provided
  (fee receipts post as FEE_PAYMENT:<receipt_number>)
- posted_at is the accounting effective date
"""

from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q
from django.utils import timezone


class JournalEntry(models.Model):
    reference = models.CharField(
        max_length=100,
        blank=True,
        null=True,
        help_text="Business reference (fee receipt, reversal, etc.)",
    )

    description = models.TextField(help_text="Narration of the journal entry")

    posted_at = models.DateTimeField(
        default=timezone.now,
        help_text="Accounting effective date",
    )

    created_at = models.DateTimeField(auto_now_add=True)

    is_posted = models.BooleanField(default=True)

    class Meta:
        ordering = ["-posted_at", "-created_at"]
        indexes = [
            models.Index(fields=["posted_at"]),
            models.Index(fields=["reference"]),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["reference"],
                condition=Q(reference__isnull=False) & ~Q(reference=""),
                name="uniq_journal_reference_not_blank",
            )
        ]
        verbose_name = "Journal Entry"
        verbose_name_plural = "Journal Entries"

    def __str__(self):
        return f"JournalEntry #{self.id} – {self.reference or self.posted_at.date()}"

    def totals(self) -> tuple[Decimal, Decimal]:
        """(total_debits, total_credits) over this entry's ledger lines."""
        from accounting.models.ledger import LedgerEntry

        debit = Decimal("0.00")
        credit = Decimal("0.00")
        for line in self.ledger_entries.all():
            if line.entry_type == LedgerEntry.DEBIT:
                debit += line.amount
            else:
                credit += line.amount
        return debit, credit

    def clean(self):
        if self.reference is not None:
            self.reference = str(self.reference).strip() or None

        self.description = (self.description or "").strip()
        if not self.description:
            raise ValidationError("Journal entry description is required")

        if self.posted_at and timezone.is_naive(self.posted_at):
            self.posted_at = timezone.make_aware(
                self.posted_at, timezone.get_current_timezone()
            )

    def save(self, *args, **kwargs):
        if self.pk:
            raise ValidationError("JournalEntry records are immutable once created")

        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("JournalEntry records are immutable and cannot be deleted")
