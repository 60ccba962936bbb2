# fees/models/__init__.py

from fees.models.document_sequence import DocumentSequence
from fees.models.fee_account import FeeAccount
from fees.models.invoice import Invoice, InvoiceLineItem
from fees.models.payment import Payment
from fees.models.payment_allocation import PaymentAllocation
from fees.models.payment_mode import PaymentMode

__all__ = [
    "DocumentSequence",
    "FeeAccount",
    "Invoice",
    "InvoiceLineItem",
    "Payment",
    "PaymentAllocation",
    "PaymentMode",
]
