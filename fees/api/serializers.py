# fees/api/serializers.py

"""
FEES API SERIALIZERS

Read serializers render models and service value objects; input
serializers only shape requests. Business validation stays in
fees.services.
"""

from rest_framework import serializers

from fees.models import Invoice, InvoiceLineItem, Payment, PaymentAllocation


# ==========================================================
# INVOICES
# ==========================================================


class InvoiceLineItemSerializer(serializers.ModelSerializer):
    fee_account = serializers.SlugRelatedField(slug_field="code", read_only=True)
    vote_head = serializers.CharField(source="vote_head_name", read_only=True)

    class Meta:
        model = InvoiceLineItem
        fields = ["id", "fee_account", "vote_head", "description", "amount", "position"]
        read_only_fields = fields


class InvoiceSerializer(serializers.ModelSerializer):
    student_no = serializers.CharField(source="student.student_no", read_only=True)
    line_items = InvoiceLineItemSerializer(many=True, read_only=True)

    class Meta:
        model = Invoice
        fields = [
            "id",
            "invoice_number",
            "student",
            "student_no",
            "invoice_date",
            "due_date",
            "total_amount",
            "amount_paid",
            "balance_due",
            "status",
            "version",
            "created_by",
            "created_at",
            "line_items",
        ]
        read_only_fields = fields


class LineItemInputSerializer(serializers.Serializer):
    fee_account = serializers.CharField(required=False, allow_blank=True, default="")
    description = serializers.CharField(required=False, allow_blank=True, default="")
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)


class InvoiceCreateSerializer(serializers.Serializer):
    student = serializers.UUIDField()
    invoice_date = serializers.DateField(required=False, allow_null=True, default=None)
    due_date = serializers.DateField(required=False, allow_null=True, default=None)
    line_items = LineItemInputSerializer(many=True, allow_empty=False)


# ==========================================================
# PAYMENTS
# ==========================================================


class PaymentAllocationSerializer(serializers.ModelSerializer):
    invoice_number = serializers.CharField(source="invoice.invoice_number", read_only=True)

    class Meta:
        model = PaymentAllocation
        fields = ["invoice", "invoice_number", "amount_applied"]
        read_only_fields = fields


class PaymentSerializer(serializers.ModelSerializer):
    student_no = serializers.CharField(source="student.student_no", read_only=True)
    payment_mode = serializers.SlugRelatedField(slug_field="code", read_only=True)
    allocations = PaymentAllocationSerializer(many=True, read_only=True)
    journal_reference = serializers.SerializerMethodField()

    class Meta:
        model = Payment
        fields = [
            "id",
            "receipt_number",
            "student",
            "student_no",
            "invoice",
            "payment_date",
            "amount",
            "payment_mode",
            "reference_number",
            "notes",
            "status",
            "received_by",
            "posting_status",
            "posting_error",
            "journal_reference",
            "reversed_at",
            "reversed_by",
            "reversal_reason",
            "created_at",
            "allocations",
        ]
        read_only_fields = fields

    def get_journal_reference(self, obj) -> str | None:
        entry = obj.journal_entry
        return entry.reference if entry else None


class PaymentCreateSerializer(serializers.Serializer):
    student = serializers.UUIDField()
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    payment_mode = serializers.CharField()
    payment_date = serializers.DateField(required=False, allow_null=True, default=None)
    reference_number = serializers.CharField(required=False, allow_blank=True, default="")
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    invoice = serializers.UUIDField(required=False, allow_null=True, default=None)


class ReversalInputSerializer(serializers.Serializer):
    reason = serializers.CharField()


class BackpostInputSerializer(serializers.Serializer):
    limit = serializers.IntegerField(required=False, min_value=1, allow_null=True, default=None)


# ==========================================================
# PROJECTIONS (service value objects)
# ==========================================================


class VoteHeadSerializer(serializers.Serializer):
    name = serializers.CharField()
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)


class PaymentReceiptSerializer(serializers.Serializer):
    receipt_number = serializers.CharField()
    payment_date = serializers.DateField()
    student_name = serializers.CharField()
    student_no = serializers.CharField()
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    currency = serializers.CharField()
    payment_mode = serializers.CharField()
    reference_number = serializers.CharField()
    notes = serializers.CharField()
    received_by = serializers.CharField()
    status = serializers.CharField()
    vote_heads = VoteHeadSerializer(many=True)


class StudentBalanceSerializer(serializers.Serializer):
    student_id = serializers.CharField()
    total_invoiced = serializers.DecimalField(max_digits=14, decimal_places=2)
    total_paid = serializers.DecimalField(max_digits=14, decimal_places=2)
    balance = serializers.DecimalField(max_digits=14, decimal_places=2)
    status = serializers.CharField()
    status_label = serializers.CharField()
    as_of = serializers.DateField()


class StatementLineSerializer(serializers.Serializer):
    date = serializers.DateField()
    entry_type = serializers.CharField()
    reference = serializers.CharField()
    description = serializers.CharField()
    debit = serializers.DecimalField(max_digits=14, decimal_places=2)
    credit = serializers.DecimalField(max_digits=14, decimal_places=2)
    running_balance = serializers.DecimalField(max_digits=14, decimal_places=2)


class StatementSerializer(serializers.Serializer):
    student_id = serializers.CharField()
    lines = StatementLineSerializer(many=True)
    total_debits = serializers.DecimalField(max_digits=14, decimal_places=2)
    total_credits = serializers.DecimalField(max_digits=14, decimal_places=2)
    closing_balance = serializers.DecimalField(max_digits=14, decimal_places=2)
