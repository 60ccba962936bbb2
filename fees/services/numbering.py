# fees/services/numbering.py

"""
DOCUMENT NUMBERING

Receipt and invoice numbers come from a DocumentSequence row bumped with a
single atomic UPDATE. Concurrent callers serialize on the row lock, so two
receipts can never share a number, even across processes.
"""

from __future__ import annotations

import logging

from django.conf import settings
from django.db import transaction
from django.db.models import F

from fees.models.document_sequence import DocumentSequence

logger = logging.getLogger(__name__)

RECEIPT_SEQUENCE = "receipt"
INVOICE_SEQUENCE = "invoice"


def _sequence_defaults(key: str) -> dict:
    prefix = {
        RECEIPT_SEQUENCE: getattr(settings, "FEES_RECEIPT_PREFIX", "RCP"),
        INVOICE_SEQUENCE: getattr(settings, "FEES_INVOICE_PREFIX", "INV"),
    }[key]
    return {
        "prefix": prefix,
        "padding": getattr(settings, "FEES_NUMBER_PADDING", 6),
    }


@transaction.atomic
def next_number(key: str) -> str:
    sequence, _ = DocumentSequence.objects.get_or_create(
        key=key, defaults=_sequence_defaults(key)
    )

    DocumentSequence.objects.filter(pk=sequence.pk).update(
        last_value=F("last_value") + 1
    )
    value = (
        DocumentSequence.objects.filter(pk=sequence.pk)
        .values_list("last_value", flat=True)
        .get()
    )

    number = sequence.format(value)
    logger.debug("Issued %s number %s", key, number)
    return number


def next_receipt_number() -> str:
    return next_number(RECEIPT_SEQUENCE)


def next_invoice_number() -> str:
    return next_number(INVOICE_SEQUENCE)
