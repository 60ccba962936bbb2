# fees/models/fee_account.py

from django.db import models


class FeeAccount(models.Model):
    """
    A vote head: the fee category an invoice line charges for
    (Tuition, Boarding, Transport, ...).

    revenue_account is the GL account credited when money received for
    this vote head is posted. When unset, posting falls back to the
    chart's default fee income account.
    """

    code = models.SlugField(max_length=32, unique=True)
    name = models.CharField(max_length=120)

    revenue_account = models.ForeignKey(
        "accounting.Account",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="fee_accounts",
    )

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name
