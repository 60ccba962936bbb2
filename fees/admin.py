# fees/admin.py

from django.contrib import admin

from fees.models import (
    DocumentSequence,
    FeeAccount,
    Invoice,
    InvoiceLineItem,
    Payment,
    PaymentAllocation,
    PaymentMode,
)

# ============================================================
# CONFIGURATION
# ============================================================


@admin.register(FeeAccount)
class FeeAccountAdmin(admin.ModelAdmin):
    list_display = ("code", "name", "revenue_account", "is_active")
    list_filter = ("is_active",)
    search_fields = ("code", "name")


@admin.register(PaymentMode)
class PaymentModeAdmin(admin.ModelAdmin):
    list_display = ("code", "name", "asset_account", "can_receive", "is_active")
    list_filter = ("can_receive", "is_active")
    search_fields = ("code", "name")


@admin.register(DocumentSequence)
class DocumentSequenceAdmin(admin.ModelAdmin):
    list_display = ("key", "prefix", "padding", "last_value", "updated_at")
    readonly_fields = ("last_value", "updated_at")


# ============================================================
# INVOICES (READ-ONLY; written through the fee ledger service)
# ============================================================


class InvoiceLineItemInline(admin.TabularInline):
    model = InvoiceLineItem
    extra = 0
    can_delete = False
    readonly_fields = ("position", "fee_account", "description", "amount")

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = (
        "invoice_number",
        "student",
        "invoice_date",
        "due_date",
        "total_amount",
        "balance_due",
        "status",
    )
    list_filter = ("status", "invoice_date")
    search_fields = ("invoice_number", "student__student_no", "student__full_name")
    inlines = [InvoiceLineItemInline]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# ============================================================
# PAYMENTS (STRICTLY IMMUTABLE)
# ============================================================


class PaymentAllocationInline(admin.TabularInline):
    model = PaymentAllocation
    extra = 0
    can_delete = False
    readonly_fields = ("invoice", "amount_applied", "created_at")

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = (
        "receipt_number",
        "student",
        "payment_date",
        "amount",
        "payment_mode",
        "status",
        "posting_status",
    )
    list_filter = ("status", "posting_status", "payment_mode")
    search_fields = ("receipt_number", "reference_number", "student__student_no")
    inlines = [PaymentAllocationInline]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
