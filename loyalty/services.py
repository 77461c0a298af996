"""
Service layer for Loyalty business logic.

The ledger (LoyaltyTransaction) is the source of truth. CustomerLoyalty is a
cache rebuilt in full from the ledger after every write, so it can never drift
even if an earlier recompute was skipped.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from typing import Iterable, Optional

from django.core.cache import cache
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Max, Q, Sum
from django.utils import timezone

from checkout.models import CustomerMembership
from loyalty.models import CustomerLoyalty, LoyaltySettings, LoyaltyTransaction
from loyalty.tiers import progress_to_next_tier, tier_for_spending
from salon.models import Customer

logger = logging.getLogger(__name__)

SETTINGS_CACHE_TIMEOUT = 60 * 15
ACTIVE_MEMBER_WINDOW_DAYS = 30
MEMBERSHIP_EXPIRING_WINDOW_DAYS = 7

SETTINGS_FIELDS = (
    "is_active",
    "earn_on_purchase_enabled",
    "points_per_rupee",
    "max_redemption_percent",
    "minimum_order_amount",
    "cashback_percentage",
    "welcome_bonus",
    "referral_bonus",
    "points_validity_days",
)


@dataclass(frozen=True)
class LoyaltySummary:
    """
    Point balance, spend and tier of one customer, computed from the ledger.
    """

    points: int
    tier: str
    lifetime_spending: Decimal
    total_earned: int
    total_redeemed: int

    @classmethod
    def from_totals(cls, total_earned, total_redeemed, lifetime_spending) -> "LoyaltySummary":
        total_earned = int(total_earned or 0)
        total_redeemed = int(total_redeemed or 0)
        lifetime_spending = Decimal(str(lifetime_spending or 0))

        return cls(
            # Redemptions beyond earnings never push the balance below zero
            points=max(0, total_earned - total_redeemed),
            tier=tier_for_spending(lifetime_spending),
            lifetime_spending=lifetime_spending,
            total_earned=total_earned,
            total_redeemed=total_redeemed,
        )


def summarize_ledger(rows: Iterable) -> LoyaltySummary:
    """
    Pure fold over ledger rows.

    Each row needs ``transaction_type``, ``points`` and ``amount``, either as
    attributes (model instances) or as mapping keys.
    """
    total_earned = 0
    total_redeemed = 0
    lifetime_spending = Decimal("0")

    for row in rows:
        if isinstance(row, dict):
            tx_type, points, amount = row["transaction_type"], row["points"], row.get("amount", 0)
        else:
            tx_type, points, amount = row.transaction_type, row.points, row.amount

        if tx_type == LoyaltyTransaction.EARNED:
            total_earned += int(points)
            lifetime_spending += Decimal(str(amount or 0))
        elif tx_type == LoyaltyTransaction.REDEEMED:
            total_redeemed += int(points)

    return LoyaltySummary.from_totals(total_earned, total_redeemed, lifetime_spending)


def settings_cache_key(organization_id) -> str:
    return f"loyalty_settings:{organization_id}"


def get_loyalty_settings(organization) -> LoyaltySettings:
    """
    Returns the organization's settings, creating the default row on first access.
    Cached per organization; signals drop the entry whenever the row changes.
    """
    cache_key = settings_cache_key(organization.id)
    loyalty_settings = cache.get(cache_key)
    if loyalty_settings is not None:
        return loyalty_settings

    loyalty_settings, created = LoyaltySettings.objects.get_or_create(organization=organization)
    if created:
        logger.info("Created default loyalty settings for organization %s", organization.id)

    cache.set(cache_key, loyalty_settings, SETTINGS_CACHE_TIMEOUT)
    return loyalty_settings


def update_loyalty_settings(ctx, **changes) -> LoyaltySettings:
    unknown = set(changes) - set(SETTINGS_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown loyalty settings: {', '.join(sorted(unknown))}")

    loyalty_settings, _ = LoyaltySettings.objects.get_or_create(organization=ctx.organization)
    for field, value in changes.items():
        setattr(loyalty_settings, field, value)
    loyalty_settings.save()
    return loyalty_settings


class LoyaltyService:
    """
    Ledger writes, the summary aggregator, and read models built on top of them.
    Every method takes the TenantContext first and only touches rows of that tenant.
    """

    def _ensure_customer_in_tenant(self, ctx, customer):
        if customer.organization_id != ctx.organization.id:
            raise ValidationError("Customer does not belong to this organization.")

    def _ledger(self, ctx):
        return LoyaltyTransaction.objects.filter(organization=ctx.organization)

    # ------------------------------------------------------------------
    # Aggregator
    # ------------------------------------------------------------------

    def recompute_summary(self, ctx, customer) -> CustomerLoyalty:
        """
        Rebuilds the customer's CustomerLoyalty row from the full ledger.

        Every field is overwritten with freshly aggregated values, including
        ``last_activity``, which is the time of the newest ledger row. Errors are
        not caught here; the caller decides whether they are fatal.
        """
        self._ensure_customer_in_tenant(ctx, customer)

        totals = self._ledger(ctx).filter(customer=customer).aggregate(
            total_earned=Sum("points", filter=Q(transaction_type=LoyaltyTransaction.EARNED)),
            total_redeemed=Sum("points", filter=Q(transaction_type=LoyaltyTransaction.REDEEMED)),
            lifetime_spending=Sum("amount", filter=Q(transaction_type=LoyaltyTransaction.EARNED)),
            last_activity=Max("created_at"),
        )
        summary = LoyaltySummary.from_totals(
            totals["total_earned"] or 0,
            totals["total_redeemed"] or 0,
            totals["lifetime_spending"] or 0,
        )

        loyalty, _ = CustomerLoyalty.objects.update_or_create(
            organization=ctx.organization,
            customer=customer,
            defaults={
                "points": summary.points,
                "tier": summary.tier,
                "lifetime_spending": summary.lifetime_spending,
                "total_earned": summary.total_earned,
                "total_redeemed": summary.total_redeemed,
                "last_activity": totals["last_activity"],
            },
        )

        logger.debug(
            "Recomputed loyalty for customer %s: %s pts, tier %s", customer.id, summary.points, summary.tier
        )
        return loyalty

    # ------------------------------------------------------------------
    # Ledger writes
    # ------------------------------------------------------------------

    @transaction.atomic
    def record_transaction(
        self,
        ctx,
        customer,
        points: int,
        transaction_type: str,
        amount=Decimal("0"),
        description: str = "",
        invoice=None,
        expires_at=None,
    ) -> LoyaltyTransaction:
        """
        Appends one ledger row and refreshes the customer's summary.
        """
        self._ensure_customer_in_tenant(ctx, customer)

        if transaction_type not in (LoyaltyTransaction.EARNED, LoyaltyTransaction.REDEEMED):
            raise ValidationError(f"Unknown loyalty transaction type: {transaction_type}")
        if points <= 0:
            raise ValidationError("Points must be a positive number.")

        ledger_row = LoyaltyTransaction.objects.create(
            organization=ctx.organization,
            customer=customer,
            invoice=invoice,
            points=points,
            amount=amount,
            transaction_type=transaction_type,
            description=description,
            expires_at=expires_at,
        )

        self.recompute_summary(ctx, customer)
        return ledger_row

    @transaction.atomic
    def enroll(self, ctx, customer, welcome_bonus: Optional[int] = None) -> CustomerLoyalty:
        """
        Enrolls the customer; grants the welcome bonus (settings default) as an earned row.
        """
        self._ensure_customer_in_tenant(ctx, customer)

        if welcome_bonus is None:
            welcome_bonus = get_loyalty_settings(ctx.organization).welcome_bonus

        customer.loyalty_enrolled = True
        if customer.loyalty_enrolled_at is None:
            customer.loyalty_enrolled_at = timezone.now()
        customer.save(update_fields=["loyalty_enrolled", "loyalty_enrolled_at"])

        if welcome_bonus > 0:
            self.record_transaction(
                ctx,
                customer,
                points=welcome_bonus,
                transaction_type=LoyaltyTransaction.EARNED,
                amount=Decimal("0"),
                description="Welcome bonus",
            )
            return CustomerLoyalty.objects.get(organization=ctx.organization, customer=customer)

        return self.get_customer_loyalty(ctx, customer)

    def unenroll(self, ctx, customer):
        self._ensure_customer_in_tenant(ctx, customer)
        customer.loyalty_enrolled = False
        customer.save(update_fields=["loyalty_enrolled"])

    def adjust_points(self, ctx, customer, points: int, transaction_type: str, description: str = ""):
        """
        Manual ledger entry from the back office.
        A redemption carries its point count as amount; a manual grant carries no spend.
        """
        amount = Decimal(points) if transaction_type == LoyaltyTransaction.REDEEMED else Decimal("0")
        return self.record_transaction(
            ctx,
            customer,
            points=points,
            transaction_type=transaction_type,
            amount=amount,
            description=description,
        )

    # ------------------------------------------------------------------
    # Read models
    # ------------------------------------------------------------------

    def get_customer_loyalty(self, ctx, customer) -> CustomerLoyalty:
        """
        Returns the cached summary, building it from the ledger if it does not exist yet.
        """
        self._ensure_customer_in_tenant(ctx, customer)
        loyalty = CustomerLoyalty.objects.filter(organization=ctx.organization, customer=customer).first()
        if loyalty is None:
            loyalty = self.recompute_summary(ctx, customer)
        return loyalty

    def expiring_soon(self, ctx, customer, days: int = 7) -> int:
        """
        Earned points whose expiry falls within the next ``days`` days.
        """
        now = timezone.now()
        result = (
            self._ledger(ctx)
            .filter(
                customer=customer,
                transaction_type=LoyaltyTransaction.EARNED,
                expires_at__gt=now,
                expires_at__lte=now + timedelta(days=days),
            )
            .aggregate(total=Sum("points"))["total"]
        )
        return result or 0

    def transactions(self, ctx, customer_id=None, transaction_type=None, date_from=None, date_to=None):
        """
        Tenant ledger, newest first, optionally filtered. ``date_to`` is exclusive.
        """
        queryset = self._ledger(ctx).select_related("customer", "invoice")
        if customer_id is not None:
            queryset = queryset.filter(customer_id=customer_id)
        if transaction_type:
            queryset = queryset.filter(transaction_type=transaction_type)
        if date_from is not None:
            queryset = queryset.filter(created_at__gte=date_from)
        if date_to is not None:
            queryset = queryset.filter(created_at__lt=date_to)
        return queryset.order_by("-created_at", "-id")

    def program_stats(self, ctx) -> dict:
        ledger = self._ledger(ctx)
        since = timezone.now() - timedelta(days=ACTIVE_MEMBER_WINDOW_DAYS)

        totals = ledger.aggregate(
            issued=Sum("points", filter=Q(transaction_type=LoyaltyTransaction.EARNED)),
            cashback=Sum("amount", filter=Q(transaction_type=LoyaltyTransaction.REDEEMED)),
        )

        return {
            "total_members": Customer.objects.filter(organization=ctx.organization, loyalty_enrolled=True).count(),
            "total_points_issued": totals["issued"] or 0,
            "total_cashback_given": totals["cashback"] or Decimal("0"),
            "active_members": ledger.filter(created_at__gte=since).values("customer").distinct().count(),
        }

    def customer_invoice_data(self, ctx, customer) -> dict:
        """
        Loyalty snapshot plus membership overview printed on the customer's invoice.
        """
        loyalty = self.get_customer_loyalty(ctx, customer)
        today = timezone.localdate()
        expiring_cutoff = today + timedelta(days=MEMBERSHIP_EXPIRING_WINDOW_DAYS)

        memberships = CustomerMembership.objects.filter(
            organization=ctx.organization,
            customer=customer,
            status__in=[CustomerMembership.STATUS_ACTIVE, CustomerMembership.STATUS_EXPIRED],
        ).select_related("membership_plan")

        rows = []
        for membership in memberships:
            if membership.end_date < today:
                display_status = "expired"
            elif membership.end_date <= expiring_cutoff:
                display_status = "expiring_soon"
            else:
                display_status = "active"

            plan = membership.membership_plan
            rows.append(
                {
                    "id": membership.id,
                    "name": plan.name,
                    "status": membership.status,
                    "display_status": display_status,
                    "end_date": membership.end_date,
                    "days_until_expiry": (membership.end_date - today).days,
                    "bookings_used": membership.bookings_used,
                    "discount": plan.discount_percentage,
                    "benefits": plan.benefits or [],
                    "is_active": membership.status == CustomerMembership.STATUS_ACTIVE and display_status != "expired",
                    "is_expiring": display_status == "expiring_soon",
                }
            )

        # Active first, then latest end date first
        rows.sort(key=lambda row: row["end_date"], reverse=True)
        rows.sort(key=lambda row: 0 if row["status"] == CustomerMembership.STATUS_ACTIVE else 1)

        return {
            "loyalty": {
                "current_points": loyalty.points,
                "tier": loyalty.tier,
                "total_earned": loyalty.total_earned,
                "total_redeemed": loyalty.total_redeemed,
                "tier_progress": progress_to_next_tier(loyalty.tier, loyalty.lifetime_spending),
            },
            "memberships": rows,
        }
