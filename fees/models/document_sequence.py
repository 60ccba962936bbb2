# fees/models/document_sequence.py

from django.db import models


class DocumentSequence(models.Model):
    """
    Monotonic counter behind receipt and invoice numbers.

    Only fees.services.numbering touches last_value, and only through an
    atomic UPDATE ... SET last_value = last_value + 1.
    """

    key = models.SlugField(max_length=32, unique=True)
    prefix = models.CharField(max_length=16)
    padding = models.PositiveSmallIntegerField(default=6)
    last_value = models.BigIntegerField(default=0)

    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["key"]

    def __str__(self):
        return f"{self.key}: {self.prefix}-{self.last_value}"

    def format(self, value: int) -> str:
        return f"{self.prefix}-{value:0{self.padding}d}"
