# fees/models/invoice.py

"""
INVOICE MODELS

Invoice is the debit side of a student's fee relationship.

GUARANTEES:
- amount_paid + balance_due == total_amount (validated on every save)
- balance_due >= 0 and amount_paid >= 0 (DB check constraints)
- status is derived from the amounts, never hand-set
- settlement writes go through fees.services (compare-and-swap on version)
- line items are write-once
"""

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q
from django.utils import timezone


class Invoice(models.Model):
    STATUS_DRAFT = "draft"
    STATUS_PARTIAL = "partial"
    STATUS_PAID = "paid"

    STATUS_CHOICES = [
        (STATUS_DRAFT, "Draft"),
        (STATUS_PARTIAL, "Partial"),
        (STATUS_PAID, "Paid"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    student = models.ForeignKey(
        "students.Student",
        on_delete=models.PROTECT,
        related_name="invoices",
    )

    invoice_number = models.CharField(max_length=32, unique=True)
    invoice_date = models.DateField(default=timezone.localdate)
    due_date = models.DateField(null=True, blank=True)

    total_amount = models.DecimalField(max_digits=12, decimal_places=2)
    amount_paid = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    balance_due = models.DecimalField(max_digits=12, decimal_places=2)

    status = models.CharField(
        max_length=16, choices=STATUS_CHOICES, default=STATUS_DRAFT
    )

    # Bumped by every settlement write (optimistic concurrency guard).
    version = models.PositiveIntegerField(default=0)

    created_by = models.CharField(max_length=64, blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["invoice_date", "created_at", "id"]
        indexes = [
            models.Index(fields=["student", "invoice_date"]),
            models.Index(fields=["student", "status"]),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(balance_due__gte=0),
                name="chk_invoice_balance_due_non_negative",
            ),
            models.CheckConstraint(
                condition=Q(amount_paid__gte=0),
                name="chk_invoice_amount_paid_non_negative",
            ),
            models.CheckConstraint(
                condition=Q(total_amount__gt=0),
                name="chk_invoice_total_positive",
            ),
        ]

    def __str__(self):
        return f"{self.invoice_number} | {self.total_amount}"

    @staticmethod
    def derive_status(*, amount_paid: Decimal, balance_due: Decimal) -> str:
        if balance_due <= 0:
            return Invoice.STATUS_PAID
        if amount_paid > 0:
            return Invoice.STATUS_PARTIAL
        return Invoice.STATUS_DRAFT

    def is_overdue(self, as_of) -> bool:
        return bool(self.due_date and self.due_date < as_of and self.balance_due > 0)

    def clean(self):
        if self.total_amount is None or self.total_amount <= 0:
            raise ValidationError({"total_amount": "Invoice total must be > 0"})
        if self.balance_due < 0:
            raise ValidationError({"balance_due": "balance_due cannot be negative"})
        if self.amount_paid < 0:
            raise ValidationError({"amount_paid": "amount_paid cannot be negative"})
        if self.amount_paid + self.balance_due != self.total_amount:
            raise ValidationError(
                f"Invoice {self.invoice_number}: amount_paid ({self.amount_paid}) + "
                f"balance_due ({self.balance_due}) != total_amount ({self.total_amount})"
            )

        self.status = self.derive_status(
            amount_paid=self.amount_paid, balance_due=self.balance_due
        )

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        if self.allocations.exists():
            raise ValidationError(
                f"Invoice {self.invoice_number} has payments allocated and cannot be deleted"
            )
        return super().delete(*args, **kwargs)


class InvoiceLineItem(models.Model):
    """
    One vote-head charge on an invoice. Write-once.
    """

    invoice = models.ForeignKey(
        Invoice,
        on_delete=models.CASCADE,
        related_name="line_items",
    )

    fee_account = models.ForeignKey(
        "fees.FeeAccount",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="line_items",
    )

    description = models.CharField(max_length=200)
    amount = models.DecimalField(max_digits=12, decimal_places=2)

    # Order in which payments settle the invoice's vote heads.
    position = models.PositiveSmallIntegerField(default=0)

    class Meta:
        ordering = ["invoice", "position", "id"]
        constraints = [
            models.CheckConstraint(
                condition=Q(amount__gt=0),
                name="chk_invoice_line_amount_positive",
            ),
        ]

    def __str__(self):
        return f"{self.description} | {self.amount}"

    @property
    def vote_head_name(self) -> str:
        if self.fee_account_id:
            return self.fee_account.name
        return self.description

    def save(self, *args, **kwargs):
        if self.pk and not self._state.adding:
            raise ValidationError("Invoice line items are read-only once created")
        return super().save(*args, **kwargs)
