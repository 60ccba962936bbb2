# fees/models/payment.py

"""
PAYMENT MODEL

Money received from/for a student (credit side).

GUARANTEES:
- amount > 0
- receipt_number is unique (legal document number)
- Financial fields are immutable once saved; reversal is the only
  correction path (COMPLETED -> REVERSED, one way)
- posting fields track the ledger side separately, so a payment can be
  COMPLETED while its journal entry is still outstanding (UNPOSTED)
"""

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q
from django.utils import timezone


class Payment(models.Model):
    STATUS_COMPLETED = "completed"
    STATUS_REVERSED = "reversed"

    STATUS_CHOICES = [
        (STATUS_COMPLETED, "Completed"),
        (STATUS_REVERSED, "Reversed"),
    ]

    POSTING_PENDING = "pending"
    POSTING_POSTED = "posted"
    POSTING_UNPOSTED = "unposted"
    POSTING_REVERSED = "reversed"

    POSTING_CHOICES = [
        (POSTING_PENDING, "Pending"),
        (POSTING_POSTED, "Posted"),
        (POSTING_UNPOSTED, "Unposted"),
        (POSTING_REVERSED, "Reversed"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    receipt_number = models.CharField(max_length=32, unique=True)

    student = models.ForeignKey(
        "students.Student",
        on_delete=models.PROTECT,
        related_name="payments",
    )

    # Set only when the cashier targeted one invoice explicitly;
    # the full settlement always lives in PaymentAllocation.
    invoice = models.ForeignKey(
        "fees.Invoice",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="targeted_payments",
    )

    payment_date = models.DateField(default=timezone.localdate)
    amount = models.DecimalField(max_digits=12, decimal_places=2)

    payment_mode = models.ForeignKey(
        "fees.PaymentMode",
        on_delete=models.PROTECT,
        related_name="payments",
    )

    reference_number = models.CharField(max_length=64, blank=True, default="")
    notes = models.CharField(max_length=255, blank=True, default="")

    status = models.CharField(
        max_length=16, choices=STATUS_CHOICES, default=STATUS_COMPLETED
    )

    # Acting user id supplied by the auth layer (trusted, not a FK).
    received_by = models.CharField(max_length=64, blank=True, default="")

    posting_status = models.CharField(
        max_length=16, choices=POSTING_CHOICES, default=POSTING_PENDING
    )
    posting_error = models.TextField(blank=True, default="")

    journal_entry = models.OneToOneField(
        "accounting.JournalEntry",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="fee_payment",
    )

    reversal_journal_entry = models.OneToOneField(
        "accounting.JournalEntry",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="reversed_fee_payment",
    )

    reversed_at = models.DateTimeField(null=True, blank=True)
    reversed_by = models.CharField(max_length=64, blank=True, default="")
    reversal_reason = models.CharField(max_length=255, blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["payment_date", "created_at", "id"]
        indexes = [
            models.Index(fields=["student", "payment_date"]),
            models.Index(fields=["status"]),
            models.Index(fields=["posting_status"]),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(amount__gt=0),
                name="chk_payment_amount_positive",
            ),
        ]

    _IMMUTABLE_FIELDS = (
        "receipt_number",
        "student_id",
        "invoice_id",
        "payment_date",
        "amount",
        "payment_mode_id",
        "reference_number",
        "received_by",
        "created_at",
    )

    def __str__(self):
        return f"{self.receipt_number} | {self.amount}"

    @property
    def is_completed(self) -> bool:
        return self.status == self.STATUS_COMPLETED

    def _validate_immutable(self, previous: "Payment"):
        if previous.status == self.STATUS_REVERSED and self.status != self.STATUS_REVERSED:
            raise ValidationError(f"Payment {previous.receipt_number} is reversed and final.")

        for field in self._IMMUTABLE_FIELDS:
            if getattr(self, field) != getattr(previous, field):
                raise ValidationError(
                    f"Payment {previous.receipt_number} is immutable. "
                    f"Field '{field}' cannot be changed; reverse it instead."
                )

    def clean(self):
        if self.amount is None or Decimal(self.amount) <= 0:
            raise ValidationError({"amount": "Payment amount must be > 0"})
        self.receipt_number = (self.receipt_number or "").strip()
        if not self.receipt_number:
            raise ValidationError({"receipt_number": "receipt_number is required"})

    def save(self, *args, **kwargs):
        if self._state.adding:
            self.clean()
        else:
            previous = Payment.objects.filter(pk=self.pk).first()
            if previous is not None:
                self._validate_immutable(previous)
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Payments cannot be deleted; reverse them instead.")
