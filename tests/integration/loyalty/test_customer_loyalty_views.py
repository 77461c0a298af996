"""
Integration tests for /api/loyalty/customers/{id}/ and its actions.
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.urls import reverse
from django.utils import timezone
from rest_framework import status

from loyalty.models import LoyaltyTransaction
from tests.factories.checkout import CustomerMembershipFactory
from tests.factories.loyalty import LoyaltyTransactionFactory
from tests.factories.salon import CustomerFactory
from tests.factories.users import OrganizationFactory


@pytest.fixture
def customer(organization):
    return CustomerFactory(organization=organization, name="Meera Nair")


class TestCustomerLoyaltyDetail:
    def test_detail_combines_summary_settings_and_progress(self, pos_client, organization, customer):
        LoyaltyTransactionFactory(
            organization=organization,
            customer=customer,
            points=260,
            amount=Decimal("26000"),
            expires_at=timezone.now() + timedelta(days=2),
        )

        response = pos_client.get(reverse("loyalty-customers-detail", args=[customer.id]))

        assert response.status_code == status.HTTP_200_OK
        assert response.data["customer"] == {"id": customer.id, "name": "Meera Nair"}
        assert response.data["enrolled"] is True
        assert response.data["loyalty"]["points"] == 260
        assert response.data["loyalty"]["tier"] == "silver"
        assert response.data["settings"]["welcome_bonus"] == 100
        assert response.data["expiring_soon"] == 260
        assert response.data["tier_progress"]["next_tier"] == "Gold"

    def test_customer_of_another_salon_is_404(self, pos_client):
        stranger = CustomerFactory(organization=OrganizationFactory())

        response = pos_client.get(reverse("loyalty-customers-detail", args=[stranger.id]))

        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestEnrollment:
    def test_enroll_with_default_bonus(self, pos_client, customer):
        response = pos_client.post(reverse("loyalty-customers-enroll", args=[customer.id]), {}, format="json")

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["points"] == 100

    def test_enroll_with_custom_bonus(self, pos_client, customer):
        url = reverse("loyalty-customers-enroll", args=[customer.id])

        response = pos_client.post(url, {"welcome_bonus": 250}, format="json")

        assert response.data["points"] == 250

    def test_unenroll(self, pos_client, customer):
        response = pos_client.post(reverse("loyalty-customers-unenroll", args=[customer.id]))

        assert response.status_code == status.HTTP_200_OK
        customer.refresh_from_db()
        assert customer.loyalty_enrolled is False


class TestAdjustPoints:
    def test_manual_grant(self, pos_client, customer):
        url = reverse("loyalty-customers-adjust", args=[customer.id])

        response = pos_client.post(
            url, {"points": 40, "transaction_type": "earned", "description": "Birthday gift"}, format="json"
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["points"] == 40
        assert response.data["description"] == "Birthday gift"
        assert response.data["invoice_number"] is None

    def test_blank_description_gets_default(self, pos_client, customer):
        url = reverse("loyalty-customers-adjust", args=[customer.id])

        response = pos_client.post(url, {"points": 5, "transaction_type": "redeemed"}, format="json")

        assert response.data["description"] == "Manual adjustment"
        assert response.data["amount"] == Decimal("5.00")

    @pytest.mark.parametrize(
        "body",
        [
            {"points": 0, "transaction_type": "earned"},
            {"points": 10, "transaction_type": "expired"},
            {"transaction_type": "earned"},
        ],
    )
    def test_invalid_adjustments(self, pos_client, customer, body):
        url = reverse("loyalty-customers-adjust", args=[customer.id])

        response = pos_client.post(url, body, format="json")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert LoyaltyTransaction.objects.count() == 0


class TestInvoiceData:
    def test_returns_loyalty_and_memberships(self, pos_client, organization, customer):
        CustomerMembershipFactory(organization=organization, customer=customer)

        response = pos_client.get(reverse("loyalty-customers-invoice-data", args=[customer.id]))

        assert response.status_code == status.HTTP_200_OK
        assert response.data["loyalty"]["current_points"] == 0
        assert len(response.data["memberships"]) == 1
        assert response.data["memberships"][0]["display_status"] == "active"
