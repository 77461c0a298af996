"""
Unit tests for Celery tasks in the Loyalty application.
"""

from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

from django.utils import timezone

from loyalty.models import CustomerLoyalty, LoyaltyTransaction
from loyalty.services import LoyaltyService
from loyalty.tasks import reconcile_loyalty_summaries
from tests.factories.loyalty import LoyaltyTransactionFactory
from tests.factories.salon import CustomerFactory
from tests.factories.users import OrganizationFactory


class TestReconcileLoyaltySummaries:
    """
    These tests call the task synchronously (without the broker).
    """

    def test_rebuilds_every_customer_summary(self, organization):
        alice = CustomerFactory(organization=organization)
        bob = CustomerFactory(organization=OrganizationFactory())
        LoyaltyTransactionFactory(organization=organization, customer=alice, points=120, amount=Decimal("1200"))
        LoyaltyTransactionFactory(organization=bob.organization, customer=bob, points=30, amount=Decimal("300"))

        result = reconcile_loyalty_summaries()

        assert "Processed 2 customers" in result
        assert CustomerLoyalty.objects.get(customer=alice).points == 120
        assert CustomerLoyalty.objects.get(customer=bob).points == 30

    def test_can_be_limited_to_one_organization(self, organization):
        alice = CustomerFactory(organization=organization)
        CustomerFactory(organization=OrganizationFactory())

        result = reconcile_loyalty_summaries(organization_id=organization.id)

        assert "Processed 1 customers" in result
        assert list(CustomerLoyalty.objects.values_list("customer_id", flat=True)) == [alice.id]

    def test_runs_through_celery_eagerly(self, organization):
        CustomerFactory(organization=organization)

        async_result = reconcile_loyalty_summaries.delay(str(organization.id))

        assert "Processed 1 customers" in async_result.get()

    def test_task_handles_exceptions_gracefully(self, organization):
        """
        Scenario: Rebuilding one customer fails.
        Expected: The task logs it, keeps going, and reports the failure count.
        """
        broken = CustomerFactory(organization=organization)
        CustomerFactory(organization=organization)

        original = LoyaltyService.recompute_summary

        def side_effect(self, ctx, customer):
            if customer.id == broken.id:
                raise RuntimeError("Database Error")
            return original(self, ctx, customer)

        with patch("loyalty.tasks.LoyaltyService.recompute_summary", autospec=True, side_effect=side_effect):
            result = reconcile_loyalty_summaries()

        assert "Processed 1 customers" in result
        assert "Failed: 1" in result

    def test_keeps_last_activity_at_latest_ledger_row(self, ctx):
        """
        Scenario: A customer last earned points 90 days ago.
        Expected: The nightly rebuild leaves last_activity at that ledger row.
        """
        alice = CustomerFactory(organization=ctx.organization)
        row = LoyaltyTransactionFactory(organization=ctx.organization, customer=alice, points=40, amount=Decimal("400"))
        ninety_days_ago = timezone.now() - timedelta(days=90)
        LoyaltyTransaction.objects.filter(pk=row.pk).update(created_at=ninety_days_ago)
        LoyaltyService().recompute_summary(ctx, alice)

        reconcile_loyalty_summaries()

        loyalty = CustomerLoyalty.objects.get(customer=alice)
        assert loyalty.last_activity == ninety_days_ago
        assert loyalty.points == 40

    def test_customer_without_ledger_has_no_last_activity(self, organization):
        quiet = CustomerFactory(organization=organization)

        reconcile_loyalty_summaries()

        assert CustomerLoyalty.objects.get(customer=quiet).last_activity is None
