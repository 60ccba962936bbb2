# fees/services/fee_ledger_service.py

"""
FEE LEDGER SERVICE (ORCHESTRATOR)

Single entry point for everything that changes a student's fee position.

Payment lifecycle:
    Validated -> Allocated -> Persisted -> Posted -> ReceiptIssued

RULES:
- Validation failures raise before any write
- Lock, allocation, numbering, payment row, allocation rows and invoice
  updates commit together or not at all
- Ledger posting runs after that unit; a PostingError leaves the payment
  COMPLETED + UNPOSTED and comes back as a warning, never as a failure
- Reversal is the only correction path and undoes exactly the recorded
  allocations
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from fees.models.fee_account import FeeAccount
from fees.models.invoice import Invoice, InvoiceLineItem
from fees.models.payment import Payment
from fees.models.payment_allocation import PaymentAllocation
from fees.models.payment_mode import PaymentMode
from fees.services.allocation import AllocationPlan, InvoiceSnapshot, allocate
from fees.services.balance_service import StudentBalance, compute_balance
from fees.services.exceptions import (
    ConcurrencyConflictError,
    DuplicateReceiptError,
    FeeValidationError,
    LedgerNotFoundError,
    PostingError,
)
from fees.services.locking import lock_student
from fees.services.money import ZERO, money
from fees.services.numbering import next_invoice_number, next_receipt_number
from fees.services.posting import post_payment, post_payment_reversal
from fees.services.receipt import PaymentReceipt, build_receipt
from fees.services.statement_service import Statement, build_statement
from students.models import Student

logger = logging.getLogger(__name__)


@dataclass
class ReceivePaymentResult:
    payment: Payment
    receipt: PaymentReceipt
    plan: AllocationPlan | None
    warnings: list[str] = field(default_factory=list)


@dataclass
class BackpostReport:
    posted: list[Payment] = field(default_factory=list)
    failed: list[tuple[Payment, str]] = field(default_factory=list)


# ------------------------------------------------------------
# LOOKUPS
# ------------------------------------------------------------


def _get_student(student) -> Student:
    if isinstance(student, Student):
        return student
    try:
        return Student.objects.get(pk=student)
    except (Student.DoesNotExist, ValueError, ValidationError) as exc:
        raise LedgerNotFoundError("Student not found", student_id=student) from exc


def _get_payment_mode(payment_mode) -> PaymentMode:
    if payment_mode is None or payment_mode == "":
        raise FeeValidationError("payment_mode is required")

    if isinstance(payment_mode, PaymentMode):
        mode = payment_mode
    else:
        mode = PaymentMode.objects.filter(code=str(payment_mode)).first()
        if mode is None and str(payment_mode).isdigit():
            mode = PaymentMode.objects.filter(pk=int(payment_mode)).first()
        if mode is None:
            raise LedgerNotFoundError("Payment mode not found", payment_mode=payment_mode)

    if not mode.is_active or not mode.can_receive:
        raise FeeValidationError(
            f"Payment mode '{mode.code}' cannot receive payments",
            payment_mode=mode.code,
        )
    return mode


def _get_fee_account(value) -> FeeAccount | None:
    if value is None or value == "":
        return None
    if isinstance(value, FeeAccount):
        return value
    account = FeeAccount.objects.filter(code=str(value)).first()
    if account is None:
        raise LedgerNotFoundError("Fee account not found", fee_account=value)
    return account


def _validated_amount(amount, **context):
    try:
        value = money(amount)
    except ValueError as exc:
        raise FeeValidationError(str(exc), amount=amount, **context) from exc
    if value <= ZERO:
        raise FeeValidationError("Amount must be greater than zero", amount=value, **context)
    return value


# ------------------------------------------------------------
# INVOICES
# ------------------------------------------------------------


def record_invoice(
    *,
    student,
    line_items: list[dict],
    due_date: date | None = None,
    invoice_date: date | None = None,
    created_by: str = "",
) -> Invoice:
    student = _get_student(student)

    if not line_items:
        raise FeeValidationError("Invoice must have at least one line item", student_id=student.pk)

    prepared = []
    for position, item in enumerate(line_items):
        fee_account = _get_fee_account(item.get("fee_account"))
        description = (item.get("description") or "").strip()
        if not description:
            if fee_account is None:
                raise FeeValidationError(
                    "Line item needs a fee account or a description",
                    student_id=student.pk,
                )
            description = fee_account.name
        amount = _validated_amount(item.get("amount"), student_id=student.pk)
        prepared.append(
            InvoiceLineItem(
                fee_account=fee_account,
                description=description,
                amount=amount,
                position=position,
            )
        )

    total = sum((item.amount for item in prepared), ZERO)
    invoice_date = invoice_date or timezone.localdate()
    if due_date is not None and due_date < invoice_date:
        raise FeeValidationError(
            "due_date cannot be before invoice_date",
            student_id=student.pk,
            due_date=due_date,
        )

    with transaction.atomic():
        invoice = Invoice.objects.create(
            student=student,
            invoice_number=next_invoice_number(),
            invoice_date=invoice_date,
            due_date=due_date,
            total_amount=total,
            amount_paid=ZERO,
            balance_due=total,
            created_by=created_by or "",
        )
        for item in prepared:
            item.invoice = invoice
        InvoiceLineItem.objects.bulk_create(prepared)

    logger.info(
        "Invoice %s recorded student=%s total=%s",
        invoice.invoice_number,
        student.student_no,
        total,
    )
    return invoice


def _apply_settlement(invoice_id, *, expected_version: int, amount_paid, balance_due) -> None:
    status = Invoice.derive_status(amount_paid=amount_paid, balance_due=balance_due)
    updated = Invoice.objects.filter(pk=invoice_id, version=expected_version).update(
        amount_paid=amount_paid,
        balance_due=balance_due,
        status=status,
        version=F("version") + 1,
        updated_at=timezone.now(),
    )
    if updated != 1:
        raise ConcurrencyConflictError(
            "Invoice changed while the payment was being applied; retry",
            invoice_id=invoice_id,
            expected_version=expected_version,
        )


def apply_plan(plan: AllocationPlan) -> None:
    for line in plan.lines:
        _apply_settlement(
            line.invoice_id,
            expected_version=line.expected_version,
            amount_paid=line.new_amount_paid,
            balance_due=line.new_balance_due,
        )


# ------------------------------------------------------------
# PAYMENTS
# ------------------------------------------------------------


def _insert_payment(**fields) -> Payment:
    try:
        with transaction.atomic():
            return Payment.objects.create(**fields)
    except IntegrityError as exc:
        receipt_number = fields.get("receipt_number")
        if Payment.objects.filter(receipt_number=receipt_number).exists():
            logger.error("Duplicate receipt number issued: %s", receipt_number)
            raise DuplicateReceiptError(
                "Receipt number already exists",
                receipt_number=receipt_number,
            ) from exc
        raise


def _post(payment: Payment, warnings: list[str]) -> Payment:
    try:
        with transaction.atomic():
            entry = post_payment(payment)
            payment.journal_entry = entry
            payment.posting_status = Payment.POSTING_POSTED
            payment.posting_error = ""
            payment.save(update_fields=["journal_entry", "posting_status", "posting_error"])
    except PostingError as exc:
        logger.warning("Fee receipt %s left unposted: %s", payment.receipt_number, exc)
        payment.journal_entry = None
        payment.posting_status = Payment.POSTING_UNPOSTED
        payment.posting_error = str(exc)
        payment.save(update_fields=["posting_status", "posting_error"])
        warnings.append(str(exc))
    return payment


def receive_payment(
    *,
    student,
    amount,
    payment_mode,
    payment_date: date | None = None,
    reference_number: str | None = None,
    notes: str | None = None,
    explicit_invoice=None,
    received_by: str | None = None,
) -> ReceivePaymentResult:
    # Validated
    student = _get_student(student)
    amount = _validated_amount(amount, student_id=student.pk)
    mode = _get_payment_mode(payment_mode)
    payment_date = payment_date or timezone.localdate()
    explicit_id = None
    if explicit_invoice is not None and explicit_invoice != "":
        explicit_id = str(getattr(explicit_invoice, "pk", explicit_invoice))

    with transaction.atomic():
        lock_student(student.pk)

        # Read after the lock so earlier settlements are always visible.
        invoices = list(Invoice.objects.filter(student=student))
        target = None
        if explicit_id is not None:
            target = next((inv for inv in invoices if str(inv.pk) == explicit_id), None)
            if target is None:
                raise LedgerNotFoundError(
                    "Invoice not found for this student",
                    student_id=student.pk,
                    invoice_id=explicit_id,
                )

        # Allocated
        plan = allocate(
            amount=amount,
            invoices=[InvoiceSnapshot.from_invoice(inv) for inv in invoices],
            explicit_invoice_id=explicit_id,
        )

        # Persisted
        payment = _insert_payment(
            receipt_number=next_receipt_number(),
            student=student,
            invoice=target,
            payment_date=payment_date,
            amount=amount,
            payment_mode=mode,
            reference_number=(reference_number or "").strip(),
            notes=(notes or "").strip(),
            received_by=received_by or "",
        )
        PaymentAllocation.objects.bulk_create(
            [
                PaymentAllocation(
                    payment=payment,
                    invoice_id=line.invoice_id,
                    amount_applied=line.applied_amount,
                )
                for line in plan.lines
            ]
        )
        apply_plan(plan)

    logger.info(
        "Fee receipt %s student=%s amount=%s allocated=%s remainder=%s",
        payment.receipt_number,
        student.student_no,
        amount,
        plan.allocated_total,
        plan.unallocated_remainder,
    )

    # Posted
    warnings: list[str] = []
    _post(payment, warnings)

    # ReceiptIssued
    return ReceivePaymentResult(
        payment=payment,
        receipt=build_receipt(payment),
        plan=plan,
        warnings=warnings,
    )


def record_mobile_money_settlement(
    *,
    student,
    amount,
    transaction_ref: str,
    invoice=None,
    payment_date: date | None = None,
) -> ReceivePaymentResult:
    """
    Entry point for finalized mobile-money callbacks.

    Idempotent per transaction_ref: a redelivered callback returns the
    original receipt instead of crediting the student twice.
    """
    transaction_ref = (transaction_ref or "").strip()
    if not transaction_ref:
        raise FeeValidationError("transaction_ref is required for mobile money settlements")

    mode_code = getattr(settings, "FEES_MOBILE_MONEY_MODE_CODE", "MPESA")
    existing = (
        Payment.objects.select_related("student", "payment_mode")
        .filter(payment_mode__code=mode_code, reference_number=transaction_ref)
        .first()
    )
    if existing is not None:
        logger.info("Mobile money %s already receipted as %s", transaction_ref, existing.receipt_number)
        return ReceivePaymentResult(
            payment=existing,
            receipt=build_receipt(existing),
            plan=None,
            warnings=[],
        )

    return receive_payment(
        student=student,
        amount=amount,
        payment_mode=mode_code,
        payment_date=payment_date,
        reference_number=transaction_ref,
        explicit_invoice=invoice,
        received_by="mobile-money",
    )


def reverse_payment(*, payment, reason: str, reversed_by: str | None = None) -> Payment:
    reason = (reason or "").strip()
    if not reason:
        raise FeeValidationError("A reversal reason is required")

    payment_id = getattr(payment, "pk", payment)
    student_id = (
        Payment.objects.filter(pk=payment_id).values_list("student_id", flat=True).first()
    )
    if student_id is None:
        raise LedgerNotFoundError("Payment not found", payment_id=payment_id)

    with transaction.atomic():
        lock_student(student_id)
        payment = Payment.objects.select_for_update().get(pk=payment_id)

        if payment.status == Payment.STATUS_REVERSED:
            raise FeeValidationError(
                "Payment is already reversed",
                receipt_number=payment.receipt_number,
            )

        for allocation in payment.allocations.select_related("invoice"):
            invoice = allocation.invoice
            amount_paid = invoice.amount_paid - allocation.amount_applied
            balance_due = invoice.balance_due + allocation.amount_applied
            if amount_paid < 0 or balance_due > invoice.total_amount:
                raise FeeValidationError(
                    "Reversal would push the invoice outside its total",
                    invoice_id=invoice.pk,
                    receipt_number=payment.receipt_number,
                )
            _apply_settlement(
                invoice.pk,
                expected_version=invoice.version,
                amount_paid=amount_paid,
                balance_due=balance_due,
            )

        payment.status = Payment.STATUS_REVERSED
        payment.reversed_at = timezone.now()
        payment.reversed_by = reversed_by or ""
        payment.reversal_reason = reason
        payment.save(
            update_fields=["status", "reversed_at", "reversed_by", "reversal_reason"]
        )

    logger.info(
        "Fee receipt %s reversed by=%s reason=%s",
        payment.receipt_number,
        payment.reversed_by or "-",
        reason,
    )

    if payment.journal_entry_id:
        try:
            with transaction.atomic():
                entry = post_payment_reversal(payment)
                payment.reversal_journal_entry = entry
                payment.posting_status = Payment.POSTING_REVERSED
                payment.save(update_fields=["reversal_journal_entry", "posting_status"])
        except PostingError as exc:
            logger.warning(
                "Reversal of fee receipt %s not posted: %s", payment.receipt_number, exc
            )
            payment.posting_error = str(exc)
            payment.save(update_fields=["posting_error"])

    return payment


# ------------------------------------------------------------
# READ PROJECTIONS
# ------------------------------------------------------------


def get_balance(student, *, as_of: date | None = None) -> StudentBalance:
    return compute_balance(_get_student(student), as_of=as_of)


def get_statement(student) -> Statement:
    return build_statement(_get_student(student))


def get_receipt(payment) -> PaymentReceipt:
    if not isinstance(payment, Payment):
        payment = (
            Payment.objects.select_related("student", "payment_mode")
            .filter(pk=payment)
            .first()
        )
        if payment is None:
            raise LedgerNotFoundError("Payment not found")
    return build_receipt(payment)


# ------------------------------------------------------------
# POSTING RECONCILIATION
# ------------------------------------------------------------


def list_unposted_payments():
    return (
        Payment.objects.select_related("student", "payment_mode")
        .filter(
            status=Payment.STATUS_COMPLETED,
            posting_status__in=[Payment.POSTING_UNPOSTED, Payment.POSTING_PENDING],
        )
        .order_by("payment_date", "created_at", "id")
    )


def backpost_unposted_payments(*, limit: int | None = None) -> BackpostReport:
    report = BackpostReport()
    payments = list_unposted_payments()
    if limit:
        payments = payments[:limit]

    for payment in payments:
        warnings: list[str] = []
        _post(payment, warnings)
        if payment.posting_status == Payment.POSTING_POSTED:
            report.posted.append(payment)
        else:
            report.failed.append((payment, warnings[0] if warnings else payment.posting_error))

    logger.info(
        "Back-posting finished posted=%s failed=%s",
        len(report.posted),
        len(report.failed),
    )
    return report
