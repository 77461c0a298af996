"""
API Views for the Loyalty application.
"""

from datetime import datetime, time, timedelta

from django.utils import timezone
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.pagination import LimitOffsetPagination
from rest_framework.response import Response
from rest_framework.views import APIView

from core.context import TenantContext
from core.permissions import IsTenantMember
from loyalty.models import LoyaltyTransaction
from loyalty.serializers import (
    AdjustPointsSerializer,
    CustomerLoyaltySerializer,
    EnrollSerializer,
    LoyaltySettingsSerializer,
    LoyaltyTransactionSerializer,
    ProgramStatsSerializer,
    TransactionFilterSerializer,
)
from loyalty.services import LoyaltyService, get_loyalty_settings
from loyalty.tiers import progress_to_next_tier
from salon.models import Customer


class TenantScopedMixin:
    """
    Gives views the TenantContext of the current request.
    """

    permission_classes = [IsTenantMember]

    def get_tenant_context(self) -> TenantContext:
        return TenantContext.from_request(self.request)


class LedgerPagination(LimitOffsetPagination):
    default_limit = 50
    max_limit = 200


class CustomerLoyaltyViewSet(TenantScopedMixin, viewsets.GenericViewSet):
    """
    GET  /api/loyalty/customers/{id}/
    POST /api/loyalty/customers/{id}/enroll/
    POST /api/loyalty/customers/{id}/unenroll/
    POST /api/loyalty/customers/{id}/adjust/
    GET  /api/loyalty/customers/{id}/invoice-data/
    """

    serializer_class = CustomerLoyaltySerializer

    def get_queryset(self):
        if getattr(self, "swagger_fake_view", False):
            return Customer.objects.none()
        return Customer.objects.for_organization(self.get_tenant_context().organization)

    def retrieve(self, request, pk=None):
        ctx = self.get_tenant_context()
        customer = self.get_object()
        service = LoyaltyService()

        loyalty = service.get_customer_loyalty(ctx, customer)
        loyalty_settings = get_loyalty_settings(ctx.organization)

        return Response(
            {
                "customer": {"id": customer.id, "name": customer.name},
                "enrolled": customer.loyalty_enrolled,
                "loyalty": CustomerLoyaltySerializer(loyalty).data,
                "settings": LoyaltySettingsSerializer(loyalty_settings).data,
                "expiring_soon": service.expiring_soon(ctx, customer),
                "tier_progress": progress_to_next_tier(loyalty.tier, loyalty.lifetime_spending),
            }
        )

    @action(detail=True, methods=["post"], serializer_class=EnrollSerializer)
    def enroll(self, request, pk=None):
        customer = self.get_object()
        serializer = EnrollSerializer(
            data=request.data, context={"ctx": self.get_tenant_context(), "customer": customer}
        )
        serializer.is_valid(raise_exception=True)
        loyalty = serializer.save()
        return Response(CustomerLoyaltySerializer(loyalty).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"])
    def unenroll(self, request, pk=None):
        customer = self.get_object()
        LoyaltyService().unenroll(self.get_tenant_context(), customer)
        return Response({"enrolled": False})

    @action(detail=True, methods=["post"], serializer_class=AdjustPointsSerializer)
    def adjust(self, request, pk=None):
        customer = self.get_object()
        serializer = AdjustPointsSerializer(
            data=request.data, context={"ctx": self.get_tenant_context(), "customer": customer}
        )
        serializer.is_valid(raise_exception=True)
        ledger_row = serializer.save()
        return Response(LoyaltyTransactionSerializer(ledger_row).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["get"], url_path="invoice-data")
    def invoice_data(self, request, pk=None):
        customer = self.get_object()
        return Response(LoyaltyService().customer_invoice_data(self.get_tenant_context(), customer))


class TransactionHistoryViewSet(TenantScopedMixin, viewsets.ReadOnlyModelViewSet):
    """
    GET /api/loyalty/transactions/
    Ledger of the salon, newest first. Filters: customer_id, type, date_from, date_to.
    """

    serializer_class = LoyaltyTransactionSerializer
    pagination_class = LedgerPagination

    def get_queryset(self):
        if getattr(self, "swagger_fake_view", False):
            return LoyaltyTransaction.objects.none()

        filters = TransactionFilterSerializer(data=self.request.query_params)
        filters.is_valid(raise_exception=True)
        params = filters.validated_data

        return LoyaltyService().transactions(
            self.get_tenant_context(),
            customer_id=params.get("customer_id"),
            transaction_type=params.get("type"),
            date_from=_start_of_day(params["date_from"]) if "date_from" in params else None,
            date_to=_start_of_day(params["date_to"] + timedelta(days=1)) if "date_to" in params else None,
        )


class LoyaltySettingsView(TenantScopedMixin, APIView):
    """
    GET   /api/loyalty/settings/
    PATCH /api/loyalty/settings/
    """

    def get(self, request):
        loyalty_settings = get_loyalty_settings(self.get_tenant_context().organization)
        return Response(LoyaltySettingsSerializer(loyalty_settings).data)

    def patch(self, request):
        ctx = self.get_tenant_context()
        serializer = LoyaltySettingsSerializer(
            get_loyalty_settings(ctx.organization), data=request.data, partial=True, context={"ctx": ctx}
        )
        serializer.is_valid(raise_exception=True)
        loyalty_settings = serializer.save()
        return Response(LoyaltySettingsSerializer(loyalty_settings).data)


class LoyaltyStatsView(TenantScopedMixin, APIView):
    """
    GET /api/loyalty/stats/
    """

    def get(self, request):
        stats = LoyaltyService().program_stats(self.get_tenant_context())
        return Response(ProgramStatsSerializer(stats).data)


def _start_of_day(day):
    return timezone.make_aware(datetime.combine(day, time.min))
