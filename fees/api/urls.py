# fees/api/urls.py

"""
FEES API URLS

    /api/fees/invoices/                      list, create, retrieve
    /api/fees/payments/                      list, create (receive), retrieve
    /api/fees/payments/<id>/reverse/         POST
    /api/fees/payments/<id>/receipt/         GET
    /api/fees/payments/unposted/             GET
    /api/fees/payments/backpost/             POST (admin)
    /api/fees/students/<id>/balance/         GET
    /api/fees/students/<id>/statement/       GET
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from fees.api.views import InvoiceViewSet, PaymentViewSet, StudentLedgerViewSet

router = DefaultRouter()
router.register("invoices", InvoiceViewSet, basename="fee-invoice")
router.register("payments", PaymentViewSet, basename="fee-payment")
router.register("students", StudentLedgerViewSet, basename="fee-student")

urlpatterns = [
    path("", include(router.urls)),
]
