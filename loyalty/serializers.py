"""
Serializers for the Loyalty application.
"""

from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import serializers

from loyalty.models import CustomerLoyalty, LoyaltySettings, LoyaltyTransaction
from loyalty.services import SETTINGS_FIELDS, LoyaltyService, update_loyalty_settings


def _as_drf_error(exc: DjangoValidationError) -> serializers.ValidationError:
    return serializers.ValidationError({"detail": exc.messages if hasattr(exc, "messages") else str(exc)})


class CustomerLoyaltySerializer(serializers.ModelSerializer):
    """
    Read-only view of the ledger rollup of one customer.
    """

    class Meta:
        model = CustomerLoyalty
        fields = [
            "customer",
            "points",
            "tier",
            "lifetime_spending",
            "total_earned",
            "total_redeemed",
            "join_date",
            "last_activity",
        ]
        read_only_fields = fields


class LoyaltyTransactionSerializer(serializers.ModelSerializer):
    customer_name = serializers.CharField(source="customer.name", read_only=True)
    invoice_number = serializers.SerializerMethodField()

    class Meta:
        model = LoyaltyTransaction
        fields = [
            "id",
            "customer",
            "customer_name",
            "invoice",
            "invoice_number",
            "points",
            "amount",
            "transaction_type",
            "description",
            "expires_at",
            "created_at",
        ]
        read_only_fields = fields

    def get_invoice_number(self, obj):
        return obj.invoice.invoice_number if obj.invoice_id else None


class TransactionFilterSerializer(serializers.Serializer):
    """
    Query parameters of the ledger listing. ``date_to`` is inclusive.
    """

    customer_id = serializers.IntegerField(min_value=1, required=False)
    type = serializers.ChoiceField(choices=LoyaltyTransaction.TRANSACTION_TYPES, required=False)
    date_from = serializers.DateField(required=False)
    date_to = serializers.DateField(required=False)

    def validate(self, data):
        if data.get("date_from") and data.get("date_to") and data["date_from"] > data["date_to"]:
            raise serializers.ValidationError("date_from must not be after date_to.")
        return data


class LoyaltySettingsSerializer(serializers.ModelSerializer):
    class Meta:
        model = LoyaltySettings
        fields = list(SETTINGS_FIELDS) + ["updated_at"]
        read_only_fields = ["updated_at"]

    def update(self, instance, validated_data):
        try:
            return update_loyalty_settings(self.context["ctx"], **validated_data)
        except DjangoValidationError as e:
            raise _as_drf_error(e) from e


class EnrollSerializer(serializers.Serializer):
    """
    Enrolls the customer given in context. Omit ``welcome_bonus`` to use the salon default.
    """

    welcome_bonus = serializers.IntegerField(min_value=0, required=False, allow_null=True)

    def create(self, validated_data):
        service = LoyaltyService()
        try:
            return service.enroll(
                self.context["ctx"], self.context["customer"], welcome_bonus=validated_data.get("welcome_bonus")
            )
        except DjangoValidationError as e:
            raise _as_drf_error(e) from e


class AdjustPointsSerializer(serializers.Serializer):
    """
    Manual points correction from the back office.
    """

    points = serializers.IntegerField(min_value=1)
    transaction_type = serializers.ChoiceField(choices=LoyaltyTransaction.TRANSACTION_TYPES)
    description = serializers.CharField(required=False, allow_blank=True, default="")

    def create(self, validated_data):
        service = LoyaltyService()
        try:
            return service.adjust_points(
                self.context["ctx"],
                self.context["customer"],
                points=validated_data["points"],
                transaction_type=validated_data["transaction_type"],
                description=validated_data["description"] or "Manual adjustment",
            )
        except DjangoValidationError as e:
            raise _as_drf_error(e) from e


class ProgramStatsSerializer(serializers.Serializer):
    total_members = serializers.IntegerField()
    total_points_issued = serializers.IntegerField()
    total_cashback_given = serializers.DecimalField(max_digits=18, decimal_places=2)
    active_members = serializers.IntegerField()
