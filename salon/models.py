"""
Reference data of a salon: customers, staff, and the sellable catalog.

Checkout and loyalty only read these; they are maintained by the
surrounding back-office screens.
"""

from django.db import models

from core.models import TenantAwareModel


class Customer(TenantAwareModel):
    """
    A client of a specific salon (Tenant). NOT a system user.
    """

    name = models.CharField(max_length=255)
    phone = models.CharField(max_length=32, blank=True)
    email = models.EmailField(blank=True, null=True)

    loyalty_enrolled = models.BooleanField(default=True)
    loyalty_enrolled_at = models.DateTimeField(null=True, blank=True)

    joined_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.name} ({self.organization.name})"


class Staff(TenantAwareModel):
    name = models.CharField(max_length=255)
    is_active = models.BooleanField(default=True)

    class Meta:
        verbose_name_plural = "staff"

    def __str__(self):
        return self.name


class Service(TenantAwareModel):
    """
    A bookable treatment, e.g. "Haircut" or "Facial".
    """

    name = models.CharField(max_length=255)
    price = models.DecimalField(max_digits=12, decimal_places=2)
    duration_minutes = models.PositiveIntegerField(default=30)
    is_active = models.BooleanField(default=True)

    def __str__(self):
        return self.name


class Product(TenantAwareModel):
    name = models.CharField(max_length=255)
    price = models.DecimalField(max_digits=12, decimal_places=2)
    is_active = models.BooleanField(default=True)

    def __str__(self):
        return self.name


class ServicePackage(TenantAwareModel):
    """
    A bundle of services sold at a single price.
    """

    name = models.CharField(max_length=255)
    price = models.DecimalField(max_digits=12, decimal_places=2)
    is_active = models.BooleanField(default=True)

    def __str__(self):
        return self.name


class MembershipPlan(TenantAwareModel):
    name = models.CharField(max_length=255)
    price = models.DecimalField(max_digits=12, decimal_places=2)
    duration_months = models.PositiveIntegerField(default=12)
    discount_percentage = models.DecimalField(max_digits=5, decimal_places=2, default=0)

    # EXAMPLE: ["10% off all services", "Priority booking"]
    benefits = models.JSONField(default=list, blank=True)

    def __str__(self):
        return self.name
