# fees/models/payment_allocation.py

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q


class PaymentAllocation(models.Model):
    """
    How much of a payment settled one invoice.

    RULES:
    - Write-once: created in the same transaction as the payment.
    - Sum(amount_applied) + unallocated remainder == payment.amount.
    - Reversal undoes exactly these rows; nothing is re-derived from timing.
    """

    payment = models.ForeignKey(
        "fees.Payment",
        on_delete=models.PROTECT,
        related_name="allocations",
    )
    invoice = models.ForeignKey(
        "fees.Invoice",
        on_delete=models.PROTECT,
        related_name="allocations",
    )

    amount_applied = models.DecimalField(max_digits=12, decimal_places=2)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["payment", "invoice"],
                name="uniq_allocation_payment_invoice",
            ),
            models.CheckConstraint(
                condition=Q(amount_applied__gt=0),
                name="chk_allocation_amount_positive",
            ),
        ]

    def __str__(self):
        return f"{self.payment_id} -> {self.invoice_id} | {self.amount_applied}"

    def save(self, *args, **kwargs):
        if self.pk and not self._state.adding:
            raise ValidationError("Payment allocations are immutable")
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Payment allocations are immutable and cannot be deleted")
