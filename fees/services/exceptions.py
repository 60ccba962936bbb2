# fees/services/exceptions.py

"""
FEE LEDGER ERRORS

Every error carries the context a support desk needs (student, amount,
invoice, payment) and renders it into str(). Nothing here is swallowed:
callers either re-raise, record it on the payment, or surface it.
"""


class FeeLedgerError(Exception):
    """Base exception for fee ledger failures."""

    retryable = False

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = {k: v for k, v in context.items() if v is not None}

    def __str__(self):
        if not self.context:
            return self.message
        details = ", ".join(f"{k}={v}" for k, v in self.context.items())
        return f"{self.message} ({details})"


class FeeValidationError(FeeLedgerError):
    """Bad input, rejected before any write."""


class LedgerNotFoundError(FeeLedgerError):
    """Unknown student, invoice, payment or payment mode."""


class ConcurrencyConflictError(FeeLedgerError):
    """Lock or version contention; the whole call is safe to retry."""

    retryable = True


class PostingError(FeeLedgerError):
    """The payment could not be posted to the general ledger."""


class DuplicateReceiptError(FeeLedgerError):
    """A receipt number was issued twice. Integrity bug, never retried."""
