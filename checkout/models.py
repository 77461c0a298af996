"""
Records written by the checkout flow: bookings, membership activations and invoices.
All of them are created once at checkout and never updated by it.
"""

from django.core.serializers.json import DjangoJSONEncoder
from django.db import models
from django.db.models import Q

from core.models import TenantAwareModel


class Booking(TenantAwareModel):
    """
    A service appointment. Checkout creates it already completed.
    """

    STATUS_PENDING = "pending"
    STATUS_CONFIRMED = "confirmed"
    STATUS_COMPLETED = "completed"
    STATUS_CANCELLED = "cancelled"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_CONFIRMED, "Confirmed"),
        (STATUS_COMPLETED, "Completed"),
        (STATUS_CANCELLED, "Cancelled"),
    ]

    # Not unique in the database; the time-based number makes clashes unlikely.
    booking_number = models.CharField(max_length=32, db_index=True)
    customer = models.ForeignKey("salon.Customer", on_delete=models.PROTECT, related_name="bookings")
    staff = models.ForeignKey(
        "salon.Staff", on_delete=models.SET_NULL, null=True, blank=True, related_name="bookings"
    )
    booking_date = models.DateField()
    booking_time = models.TimeField()
    total_amount = models.DecimalField(max_digits=18, decimal_places=2)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    notes = models.TextField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.booking_number


class BookingService(TenantAwareModel):
    """
    One service line of a booking.
    """

    booking = models.ForeignKey(Booking, on_delete=models.CASCADE, related_name="services")
    service = models.ForeignKey("salon.Service", on_delete=models.PROTECT, related_name="booking_lines")
    quantity = models.PositiveIntegerField(default=1)
    price = models.DecimalField(max_digits=18, decimal_places=2)

    def __str__(self):
        return f"{self.booking} - {self.service_id} x{self.quantity}"


class CustomerMembership(TenantAwareModel):
    STATUS_ACTIVE = "active"
    STATUS_EXPIRED = "expired"
    STATUS_CANCELLED = "cancelled"

    STATUS_CHOICES = [
        (STATUS_ACTIVE, "Active"),
        (STATUS_EXPIRED, "Expired"),
        (STATUS_CANCELLED, "Cancelled"),
    ]

    customer = models.ForeignKey("salon.Customer", on_delete=models.CASCADE, related_name="memberships")
    membership_plan = models.ForeignKey(
        "salon.MembershipPlan", on_delete=models.PROTECT, related_name="customer_memberships"
    )
    start_date = models.DateField()
    end_date = models.DateField()
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_ACTIVE)
    bookings_used = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.customer_id} - {self.membership_plan_id} ({self.start_date} → {self.end_date})"


class Invoice(TenantAwareModel):
    """
    Financial record of a completed checkout. Exactly one per checkout.
    """

    invoice_number = models.CharField(max_length=40, db_index=True)
    customer = models.ForeignKey("salon.Customer", on_delete=models.PROTECT, related_name="invoices")
    booking = models.ForeignKey(
        Booking, on_delete=models.SET_NULL, null=True, blank=True, related_name="invoices"
    )

    # Grand total after GST and every discount
    amount = models.DecimalField(max_digits=18, decimal_places=2)
    subtotal = models.DecimalField(max_digits=18, decimal_places=2)
    # Coupon + gift cards + loyalty points
    discount_amount = models.DecimalField(max_digits=18, decimal_places=2, default=0)
    gst_amount = models.DecimalField(max_digits=18, decimal_places=2, default=0)
    payment_method = models.CharField(max_length=50)

    # {"service_items": [...], "package_items": [...], "membership_items": [...],
    #  "coupon_code": ..., "coupon_discount": ..., "loyalty_points_used": ..., "gift_cards": [...]}
    service_details = models.JSONField(default=dict, blank=True, encoder=DjangoJSONEncoder)
    product_details = models.JSONField(default=list, blank=True, encoder=DjangoJSONEncoder)

    invoice_date = models.DateField()
    due_date = models.DateField()
    notes = models.TextField(null=True, blank=True)

    # Sent by the POS so a retried submit cannot bill twice
    idempotency_key = models.CharField(max_length=100, null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["organization", "idempotency_key"],
                condition=Q(idempotency_key__isnull=False),
                name="unique_invoice_idempotency_key",
            )
        ]

    def __str__(self):
        return self.invoice_number
