# fees/api/views.py

"""
FEES API VIEWSETS

Thin HTTP layer over fees.services.fee_ledger_service.

Error mapping:
- FeeValidationError        -> 400
- LedgerNotFoundError       -> 404
- ConcurrencyConflictError  -> 409 (retryable: true)
- DuplicateReceiptError     -> 500
- PostingError on receipt   -> 201 with "warnings"
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import extend_schema
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter
from rest_framework.permissions import IsAdminUser, IsAuthenticated
from rest_framework.response import Response

from fees.api.serializers import (
    BackpostInputSerializer,
    InvoiceCreateSerializer,
    InvoiceSerializer,
    PaymentCreateSerializer,
    PaymentReceiptSerializer,
    PaymentSerializer,
    ReversalInputSerializer,
    StatementSerializer,
    StudentBalanceSerializer,
)
from fees.models import Invoice, Payment
from fees.services import fee_ledger_service
from fees.services.exceptions import (
    ConcurrencyConflictError,
    DuplicateReceiptError,
    FeeLedgerError,
    FeeValidationError,
    LedgerNotFoundError,
    PostingError,
)
from students.models import Student

_ERROR_STATUS = (
    (FeeValidationError, status.HTTP_400_BAD_REQUEST),
    (LedgerNotFoundError, status.HTTP_404_NOT_FOUND),
    (ConcurrencyConflictError, status.HTTP_409_CONFLICT),
    (PostingError, status.HTTP_502_BAD_GATEWAY),
    (DuplicateReceiptError, status.HTTP_500_INTERNAL_SERVER_ERROR),
)


def error_response(exc: FeeLedgerError) -> Response:
    code = status.HTTP_500_INTERNAL_SERVER_ERROR
    for cls, http_status in _ERROR_STATUS:
        if isinstance(exc, cls):
            code = http_status
            break
    return Response(
        {
            "detail": str(exc),
            "error": type(exc).__name__,
            "retryable": exc.retryable,
        },
        status=code,
    )


def _actor(request) -> str:
    user = getattr(request, "user", None)
    if user is None or not user.is_authenticated:
        return ""
    return str(user.pk)


# ==========================================================
# INVOICES
# ==========================================================


@extend_schema(tags=["fees"])
class InvoiceViewSet(mixins.CreateModelMixin, viewsets.ReadOnlyModelViewSet):
    permission_classes = [IsAuthenticated]
    serializer_class = InvoiceSerializer
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    filterset_fields = ["student", "status", "invoice_date", "due_date"]
    ordering_fields = ["invoice_date", "created_at", "total_amount", "balance_due"]

    queryset = (
        Invoice.objects.select_related("student")
        .prefetch_related("line_items__fee_account")
        .order_by("-invoice_date", "-created_at")
    )

    @extend_schema(request=InvoiceCreateSerializer, responses={201: InvoiceSerializer})
    def create(self, request, *args, **kwargs):
        ser = InvoiceCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        try:
            invoice = fee_ledger_service.record_invoice(
                student=data["student"],
                line_items=data["line_items"],
                due_date=data.get("due_date"),
                invoice_date=data.get("invoice_date"),
                created_by=_actor(request),
            )
        except FeeLedgerError as exc:
            return error_response(exc)

        return Response(InvoiceSerializer(invoice).data, status=status.HTTP_201_CREATED)


# ==========================================================
# PAYMENTS
# ==========================================================


@extend_schema(tags=["fees"])
class PaymentViewSet(mixins.CreateModelMixin, viewsets.ReadOnlyModelViewSet):
    permission_classes = [IsAuthenticated]
    serializer_class = PaymentSerializer
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    filterset_fields = ["student", "status", "posting_status", "payment_date", "receipt_number"]
    ordering_fields = ["payment_date", "created_at", "amount"]

    queryset = (
        Payment.objects.select_related("student", "payment_mode", "journal_entry")
        .prefetch_related("allocations__invoice")
        .order_by("-payment_date", "-created_at")
    )

    @extend_schema(request=PaymentCreateSerializer, responses={201: dict})
    def create(self, request, *args, **kwargs):
        ser = PaymentCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        try:
            result = fee_ledger_service.receive_payment(
                student=data["student"],
                amount=data["amount"],
                payment_mode=data["payment_mode"],
                payment_date=data.get("payment_date"),
                reference_number=data.get("reference_number"),
                notes=data.get("notes"),
                explicit_invoice=data.get("invoice"),
                received_by=_actor(request),
            )
        except FeeLedgerError as exc:
            return error_response(exc)

        return Response(
            {
                "payment": PaymentSerializer(result.payment).data,
                "receipt": PaymentReceiptSerializer(result.receipt).data,
                "unallocated_remainder": str(result.plan.unallocated_remainder),
                "warnings": result.warnings,
            },
            status=status.HTTP_201_CREATED,
        )

    @extend_schema(request=ReversalInputSerializer, responses={200: PaymentSerializer})
    @action(detail=True, methods=["post"], url_path="reverse")
    def reverse(self, request, pk=None):
        payment = self.get_object()
        ser = ReversalInputSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        try:
            payment = fee_ledger_service.reverse_payment(
                payment=payment,
                reason=ser.validated_data["reason"],
                reversed_by=_actor(request),
            )
        except FeeLedgerError as exc:
            return error_response(exc)

        payment = self.get_queryset().get(pk=payment.pk)
        return Response(PaymentSerializer(payment).data, status=status.HTTP_200_OK)

    @extend_schema(responses={200: PaymentReceiptSerializer})
    @action(detail=True, methods=["get"], url_path="receipt")
    def receipt(self, request, pk=None):
        receipt = fee_ledger_service.get_receipt(self.get_object())
        return Response(PaymentReceiptSerializer(receipt).data)

    @extend_schema(responses={200: PaymentSerializer(many=True)})
    @action(detail=False, methods=["get"], url_path="unposted")
    def unposted(self, request):
        payments = fee_ledger_service.list_unposted_payments()
        page = self.paginate_queryset(payments)
        if page is not None:
            return self.get_paginated_response(PaymentSerializer(page, many=True).data)
        return Response(PaymentSerializer(payments, many=True).data)

    @extend_schema(request=BackpostInputSerializer, responses={200: dict})
    @action(
        detail=False,
        methods=["post"],
        url_path="backpost",
        permission_classes=[IsAuthenticated, IsAdminUser],
    )
    def backpost(self, request):
        ser = BackpostInputSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        report = fee_ledger_service.backpost_unposted_payments(
            limit=ser.validated_data.get("limit")
        )
        return Response(
            {
                "posted": [p.receipt_number for p in report.posted],
                "failed": [
                    {"receipt_number": p.receipt_number, "error": error}
                    for p, error in report.failed
                ],
            }
        )


# ==========================================================
# STUDENT PROJECTIONS
# ==========================================================


@extend_schema(tags=["fees"])
class StudentLedgerViewSet(viewsets.GenericViewSet):
    permission_classes = [IsAuthenticated]
    queryset = Student.objects.all()

    @extend_schema(responses={200: StudentBalanceSerializer})
    @action(detail=True, methods=["get"], url_path="balance")
    def balance(self, request, pk=None):
        balance = fee_ledger_service.get_balance(self.get_object())
        return Response(StudentBalanceSerializer(balance).data)

    @extend_schema(responses={200: StatementSerializer})
    @action(detail=True, methods=["get"], url_path="statement")
    def statement(self, request, pk=None):
        statement = fee_ledger_service.get_statement(self.get_object())
        return Response(StatementSerializer(statement).data)
