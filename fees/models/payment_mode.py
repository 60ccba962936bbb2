# fees/models/payment_mode.py

from django.db import models


class PaymentMode(models.Model):
    """
    How money was received (Cash, Bank, M-Pesa, Cheque...).

    asset_account is the GL account debited when a receipt in this mode is
    posted. It is optional: a mode without one still records payments, but
    they stay UNPOSTED until the account is configured and back-posted.
    """

    code = models.SlugField(max_length=32, unique=True)
    name = models.CharField(max_length=80)

    asset_account = models.ForeignKey(
        "accounting.Account",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="payment_modes",
    )

    can_receive = models.BooleanField(default=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name
