# accounting/api/view.py

"""
ACCOUNTING API VIEWSETS (READ-ONLY / AUDIT SAFE)

- Journal entries and ledger lines are strictly read-only here;
  the only writer is the posting engine.
- Filtering via django-filter:
    /api/accounting/ledger-entries/?journal_entry=30
    /api/accounting/ledger-entries/?account=28
    /api/accounting/journal-entries/?reference=FEE_PAYMENT:RCP-000001
"""

from drf_spectacular.utils import extend_schema
from rest_framework.filters import OrderingFilter
from rest_framework.generics import GenericAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.viewsets import ReadOnlyModelViewSet
from django_filters.rest_framework import DjangoFilterBackend

from accounting.api.serializers import JournalEntrySerializer, LedgerEntrySerializer
from accounting.models.journal import JournalEntry
from accounting.models.ledger import LedgerEntry
from accounting.services.account_resolver import get_active_chart
from accounting.services.balance_service import get_trial_balance
from accounting.services.exceptions import AccountResolutionError


@extend_schema(tags=["accounting"])
class JournalEntryViewSet(ReadOnlyModelViewSet):
    permission_classes = [IsAuthenticated]
    serializer_class = JournalEntrySerializer
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    filterset_fields = ["reference", "is_posted"]
    ordering_fields = ["posted_at", "created_at"]

    queryset = JournalEntry.objects.prefetch_related(
        "ledger_entries__account"
    ).order_by("-posted_at", "-id")


@extend_schema(tags=["accounting"])
class LedgerEntryViewSet(ReadOnlyModelViewSet):
    permission_classes = [IsAuthenticated]
    serializer_class = LedgerEntrySerializer
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    filterset_fields = ["journal_entry", "account", "entry_type"]
    ordering_fields = ["created_at"]

    queryset = LedgerEntry.objects.select_related("journal_entry", "account").order_by(
        "-created_at", "-id"
    )


class TrialBalanceView(GenericAPIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["accounting"], responses={200: dict, 400: dict})
    def get(self, request, *args, **kwargs):
        try:
            chart = get_active_chart()
        except AccountResolutionError as exc:
            return Response({"detail": str(exc)}, status=400)

        rows = get_trial_balance(chart)
        return Response(
            {
                "chart": chart.code,
                "accounts": [
                    {
                        "code": r["code"],
                        "name": r["name"],
                        "account_type": r["account_type"],
                        "balance": str(r["balance"]),
                    }
                    for r in rows
                ],
            }
        )
