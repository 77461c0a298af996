"""
Models for the Loyalty application.
"""

from decimal import Decimal

from django.db import models

from core.models import TenantAwareModel


class LoyaltySettings(TenantAwareModel):
    """
    Per-salon loyalty program settings. One row per organization.
    """

    is_active = models.BooleanField(default=True)
    earn_on_purchase_enabled = models.BooleanField(default=True)
    points_per_rupee = models.DecimalField(max_digits=8, decimal_places=2, default=Decimal("1"))
    max_redemption_percent = models.PositiveIntegerField(default=50)
    minimum_order_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("100"))
    cashback_percentage = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("0"))
    welcome_bonus = models.PositiveIntegerField(default=100)
    referral_bonus = models.PositiveIntegerField(default=50)
    points_validity_days = models.PositiveIntegerField(default=45)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = "loyalty settings"
        constraints = [models.UniqueConstraint(fields=["organization"], name="unique_loyalty_settings_per_org")]

    def __str__(self):
        return f"Loyalty settings ({self.organization_id})"


class LoyaltyTransaction(TenantAwareModel):
    """
    The Ledger (Journal). Append-only.
    Points are always stored as a positive number; the direction lives in
    ``transaction_type``.
    """

    EARNED = "earned"
    REDEEMED = "redeemed"

    TRANSACTION_TYPES = [
        (EARNED, "Points earned"),
        (REDEEMED, "Points redeemed"),
    ]

    customer = models.ForeignKey(
        "salon.Customer",
        on_delete=models.CASCADE,
        related_name="loyalty_transactions",
    )
    invoice = models.ForeignKey(
        "checkout.Invoice",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="loyalty_transactions",
    )

    points = models.IntegerField()
    # Redemption: the rupee value of the points. Earning: the invoice total.
    amount = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0"))
    transaction_type = models.CharField(max_length=20, choices=TRANSACTION_TYPES)
    # Legacy mirror of transaction_type kept for older report queries
    type = models.CharField(max_length=20, choices=TRANSACTION_TYPES, editable=False)
    description = models.TextField(blank=True)
    expires_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=["organization", "customer"]),
            models.Index(fields=["organization", "created_at"]),
        ]

    def __str__(self):
        return f"{self.customer_id} - {self.points} ({self.get_transaction_type_display()})"

    def save(self, *args, **kwargs):
        self.type = self.transaction_type
        super().save(*args, **kwargs)


class CustomerLoyalty(TenantAwareModel):
    """
    Denormalized per-customer rollup of the ledger.
    Always rebuilt from LoyaltyTransaction rows, never patched in place.
    """

    TIER_BRONZE = "bronze"
    TIER_SILVER = "silver"
    TIER_GOLD = "gold"
    TIER_PLATINUM = "platinum"

    TIER_CHOICES = [
        (TIER_BRONZE, "Bronze"),
        (TIER_SILVER, "Silver"),
        (TIER_GOLD, "Gold"),
        (TIER_PLATINUM, "Platinum"),
    ]

    customer = models.ForeignKey(
        "salon.Customer",
        on_delete=models.CASCADE,
        related_name="loyalty_summaries",
    )
    points = models.IntegerField(default=0)
    tier = models.CharField(max_length=20, choices=TIER_CHOICES, default=TIER_BRONZE)
    lifetime_spending = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0"))
    total_earned = models.IntegerField(default=0)
    total_redeemed = models.IntegerField(default=0)
    join_date = models.DateTimeField(auto_now_add=True)
    last_activity = models.DateTimeField(null=True, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = "customer loyalty"
        constraints = [
            models.UniqueConstraint(fields=["organization", "customer"], name="unique_loyalty_summary_per_customer")
        ]
        indexes = [models.Index(fields=["organization", "points"])]

    def __str__(self):
        return f"{self.customer_id}: {self.points} pts ({self.tier})"
