"""
Integration tests for /api/loyalty/settings/ and /api/loyalty/stats/.
"""

from decimal import Decimal

from django.urls import reverse
from rest_framework import status

from loyalty.models import LoyaltySettings
from tests.factories.loyalty import LoyaltyTransactionFactory
from tests.factories.salon import CustomerFactory


class TestLoyaltySettingsView:
    def test_get_returns_defaults(self, pos_client):
        response = pos_client.get(reverse("loyalty-settings"))

        assert response.status_code == status.HTTP_200_OK
        assert response.data["welcome_bonus"] == 100
        assert response.data["points_validity_days"] == 45
        assert response.data["is_active"] is True

    def test_patch_updates_and_invalidates_cache(self, pos_client, organization):
        pos_client.get(reverse("loyalty-settings"))

        response = pos_client.patch(
            reverse("loyalty-settings"), {"welcome_bonus": 500, "cashback_percentage": "1.50"}, format="json"
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data["welcome_bonus"] == 500
        assert LoyaltySettings.objects.get(organization=organization).cashback_percentage == Decimal("1.50")
        assert pos_client.get(reverse("loyalty-settings")).data["welcome_bonus"] == 500

    def test_patch_rejects_invalid_values(self, pos_client):
        response = pos_client.patch(reverse("loyalty-settings"), {"welcome_bonus": -1}, format="json")

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_requires_credentials(self, api_client):
        response = api_client.get(reverse("loyalty-settings"))

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


class TestLoyaltyStatsView:
    def test_stats(self, pos_client, organization):
        customer = CustomerFactory(organization=organization)
        LoyaltyTransactionFactory(organization=organization, customer=customer, points=120)
        LoyaltyTransactionFactory(organization=organization, customer=customer, redemption=True, points=20)

        response = pos_client.get(reverse("loyalty-stats"))

        assert response.status_code == status.HTTP_200_OK
        assert response.data == {
            "total_members": 1,
            "total_points_issued": 120,
            "total_cashback_given": Decimal("20.00"),
            "active_members": 1,
        }
