"""
API views for the Checkout application.
"""

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from checkout.serializers import (
    CheckoutTotalsSerializer,
    FinalizeCheckoutSerializer,
    InvoiceSerializer,
    first_error_message,
)
from checkout.services import CheckoutInput, CheckoutService
from core.context import TenantContext
from core.permissions import IsTenantMember


class FinalizeCheckoutView(APIView):
    """
    POST /api/checkout/finalize/
    Records a POS checkout: booking, memberships, invoice and loyalty points.
    """

    permission_classes = [IsTenantMember]

    def post(self, request):
        serializer = FinalizeCheckoutSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(
                {"success": False, "message": first_error_message(serializer.errors)},
                status=status.HTTP_400_BAD_REQUEST,
            )

        ctx = TenantContext.from_request(request)
        result = CheckoutService().finalize(ctx, CheckoutInput.from_payload(serializer.validated_data))

        if not result.success:
            return Response(
                {"success": False, "message": result.message, "code": result.code},
                status=status.HTTP_400_BAD_REQUEST,
            )

        return Response(
            {
                "success": True,
                "invoice": InvoiceSerializer(result.invoice).data,
                "totals": CheckoutTotalsSerializer(result.totals).data,
            },
            status=status.HTTP_200_OK,
        )
