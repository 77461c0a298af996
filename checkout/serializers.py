"""
Serializers for the Checkout application.
"""

from rest_framework import serializers

from checkout.models import Invoice
from checkout.services import LINE_TYPES


class CartItemSerializer(serializers.Serializer):
    id = serializers.IntegerField(min_value=1)
    name = serializers.CharField(allow_blank=True, required=False, default="")
    price = serializers.DecimalField(max_digits=18, decimal_places=2, min_value=0)
    quantity = serializers.IntegerField(min_value=1, default=1)
    type = serializers.ChoiceField(choices=LINE_TYPES)
    staff_id = serializers.IntegerField(required=False, allow_null=True)
    staff_name = serializers.CharField(required=False, allow_null=True, allow_blank=True)


class GiftCardSerializer(serializers.Serializer):
    code = serializers.CharField()
    amount = serializers.DecimalField(max_digits=18, decimal_places=2, min_value=0)


class FinalizeCheckoutSerializer(serializers.Serializer):
    """
    Shape check of the POS payload. Business rules live in CheckoutService.
    """

    customer_id = serializers.IntegerField(min_value=1)
    items = CartItemSerializer(many=True, allow_empty=False)
    payment_method = serializers.CharField()
    notes = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    coupon_code = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    coupon_discount = serializers.DecimalField(max_digits=18, decimal_places=2, required=False, allow_null=True)
    redeem_points = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    points_earned_client = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    gift_cards = GiftCardSerializer(many=True, required=False)
    booking_date = serializers.DateField(required=False, allow_null=True)
    booking_time = serializers.TimeField(required=False, allow_null=True)
    invoice_date = serializers.DateField(required=False, allow_null=True)
    due_date = serializers.DateField(required=False, allow_null=True)
    idempotency_key = serializers.CharField(max_length=100, required=False, allow_null=True, allow_blank=True)


class CheckoutTotalsSerializer(serializers.Serializer):
    subtotal = serializers.DecimalField(max_digits=18, decimal_places=2)
    coupon_discount = serializers.DecimalField(max_digits=18, decimal_places=2)
    gst_amount = serializers.DecimalField(max_digits=18, decimal_places=2)
    gift_card_discount = serializers.DecimalField(max_digits=18, decimal_places=2)
    loyalty_discount = serializers.DecimalField(max_digits=18, decimal_places=2)
    total = serializers.DecimalField(max_digits=18, decimal_places=2)
    points_redeemed = serializers.IntegerField()
    points_earned = serializers.IntegerField()


class InvoiceSerializer(serializers.ModelSerializer):
    class Meta:
        model = Invoice
        fields = [
            "id",
            "invoice_number",
            "customer",
            "booking",
            "amount",
            "subtotal",
            "discount_amount",
            "gst_amount",
            "payment_method",
            "service_details",
            "product_details",
            "invoice_date",
            "due_date",
            "notes",
            "created_at",
        ]
        read_only_fields = fields


def first_error_message(errors, path=()) -> str:
    """
    Flattens DRF serializer errors into one line, e.g. "items.0.price: Ensure this value is greater than or equal to 0."
    """
    if isinstance(errors, dict):
        for key, value in errors.items():
            sub_path = path if key == "non_field_errors" else path + (str(key),)
            message = first_error_message(value, sub_path)
            if message:
                return message
        return ""
    if isinstance(errors, list):
        for index, value in enumerate(errors):
            sub_path = path + (str(index),) if isinstance(value, (dict, list)) else path
            message = first_error_message(value, sub_path)
            if message:
                return message
        return ""

    label = ".".join(path)
    return f"{label}: {errors}" if label else str(errors)
