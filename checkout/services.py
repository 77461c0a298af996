"""
Checkout finalization.

Turns a POS cart into a completed booking (when services were sold),
membership activations, one invoice, and loyalty ledger entries. All writes
happen in a single database transaction: either the whole checkout is
recorded or nothing is.
"""

import logging
import random
from dataclasses import dataclass, field
from datetime import date, time, timedelta
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import List, Optional

from django.db import IntegrityError, transaction
from django.utils import timezone

from checkout.exceptions import (
    CheckoutError,
    CustomerNotFound,
    DuplicateTransaction,
    InvalidInput,
    InvalidReference,
    InvalidServiceReference,
    MembershipPlanNotFound,
    UnknownFailure,
)
from checkout.models import Booking, BookingService, CustomerMembership, Invoice
from loyalty.models import LoyaltyTransaction
from loyalty.services import LoyaltyService
from salon.models import Customer, MembershipPlan, Service, Staff

logger = logging.getLogger(__name__)

GST_RATE = Decimal("0.18")
EARNED_POINTS_VALIDITY_DAYS = 45
MEMBERSHIP_TERM_DAYS = 365
DEFAULT_BOOKING_TIME = time(10, 0)
MAX_SAFE_INTEGER = 2**53 - 1
# Largest cart or discount total that fits the DecimalField(max_digits=18) money columns.
MAX_AMOUNT = Decimal(MAX_SAFE_INTEGER)

CENTS = Decimal("0.01")

SERVICE = "service"
PRODUCT = "product"
PACKAGE = "package"
MEMBERSHIP = "membership"
LINE_TYPES = (SERVICE, PRODUCT, PACKAGE, MEMBERSHIP)


def money(value) -> Decimal:
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def clamp(value, lower, upper):
    return max(lower, min(upper, value))


def _optional_int(value):
    return int(value) if value is not None else None


def generate_booking_number() -> str:
    millis = int(timezone.now().timestamp() * 1000)
    return f"BK{millis}{random.randint(0, 999):03d}"


def generate_invoice_number() -> str:
    millis = int(timezone.now().timestamp() * 1000)
    return f"INV-{millis}-{random.randint(1000, 9999)}"


@dataclass
class CartItem:
    id: int
    name: str
    price: Decimal
    quantity: int
    type: str
    staff_id: Optional[int] = None
    staff_name: Optional[str] = None

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity

    def as_json(self) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "price": str(self.price),
            "quantity": self.quantity,
            "type": self.type,
        }
        if self.staff_id is not None:
            data["staff_id"] = self.staff_id
        if self.staff_name:
            data["staff_name"] = self.staff_name
        return data


@dataclass
class GiftCard:
    code: str
    amount: Decimal


@dataclass
class CheckoutInput:
    """
    Cart and payment data submitted by the POS.

    Preconditions owned by the caller: ``coupon_discount`` was validated
    against the coupon rules and ``points_earned_client`` was computed from
    the tenant's earning rules before calling. Neither is re-derived here.
    """

    customer_id: int
    items: List[CartItem]
    payment_method: str
    notes: Optional[str] = None
    coupon_code: Optional[str] = None
    coupon_discount: Optional[Decimal] = None
    redeem_points: Optional[int] = None
    points_earned_client: Optional[int] = None
    gift_cards: List[GiftCard] = field(default_factory=list)
    booking_date: Optional[date] = None
    booking_time: Optional[time] = None
    invoice_date: Optional[date] = None
    due_date: Optional[date] = None
    idempotency_key: Optional[str] = None

    @classmethod
    def from_payload(cls, data: dict) -> "CheckoutInput":
        """
        Builds the input from serializer output or a plain dict.
        Raises InvalidInput when a value cannot be converted.
        """
        try:
            items = [
                CartItem(
                    id=int(item["id"]),
                    name=str(item.get("name", "")),
                    price=Decimal(str(item["price"])),
                    quantity=int(item.get("quantity", 1)),
                    type=item["type"],
                    staff_id=int(item["staff_id"]) if item.get("staff_id") is not None else None,
                    staff_name=item.get("staff_name"),
                )
                for item in data.get("items") or []
            ]
            gift_cards = [
                GiftCard(code=str(card["code"]), amount=Decimal(str(card["amount"])))
                for card in data.get("gift_cards") or []
            ]
            coupon_discount = data.get("coupon_discount")
            return cls(
                customer_id=_optional_int(data.get("customer_id")),
                items=items,
                payment_method=data.get("payment_method") or "",
                notes=data.get("notes"),
                coupon_code=data.get("coupon_code"),
                coupon_discount=Decimal(str(coupon_discount)) if coupon_discount is not None else None,
                redeem_points=_optional_int(data.get("redeem_points")),
                points_earned_client=_optional_int(data.get("points_earned_client")),
                gift_cards=gift_cards,
                booking_date=data.get("booking_date"),
                booking_time=data.get("booking_time"),
                invoice_date=data.get("invoice_date"),
                due_date=data.get("due_date"),
                idempotency_key=data.get("idempotency_key") or None,
            )
        except (KeyError, TypeError, ValueError, InvalidOperation) as exc:
            raise InvalidInput(f"Invalid checkout input: {exc}") from exc

    def items_of(self, line_type: str) -> List[CartItem]:
        return [item for item in self.items if item.type == line_type]


@dataclass
class CheckoutTotals:
    subtotal: Decimal
    coupon_discount: Decimal
    gst_amount: Decimal
    gift_card_discount: Decimal
    loyalty_discount: Decimal
    total: Decimal
    points_redeemed: int
    points_earned: int

    @property
    def discount_amount(self) -> Decimal:
        return self.coupon_discount + self.gift_card_discount + self.loyalty_discount


@dataclass
class CheckoutResult:
    success: bool
    message: Optional[str] = None
    code: Optional[str] = None
    invoice: Optional[Invoice] = None
    totals: Optional[CheckoutTotals] = None

    @classmethod
    def failure(cls, error: CheckoutError) -> "CheckoutResult":
        return cls(success=False, message=error.message, code=error.code)


def calculate_totals(
    items, coupon_discount=None, gift_cards=(), redeem_points=None, points_earned=None
) -> CheckoutTotals:
    """
    Authoritative money math of a checkout.

    GST is charged on the subtotal after the coupon; gift cards and loyalty
    points come off the taxed amount. One point is worth one rupee. The total
    never drops below zero.
    """
    subtotal = money(sum((item.price * item.quantity for item in items), Decimal("0")))
    coupon = money(max(Decimal("0"), coupon_discount or Decimal("0")))
    gst_amount = money(max(Decimal("0"), (subtotal - coupon) * GST_RATE))
    gift_card_discount = money(sum((card.amount for card in gift_cards), Decimal("0")))
    points_redeemed = clamp(int(redeem_points or 0), 0, MAX_SAFE_INTEGER)
    loyalty_discount = money(points_redeemed)

    total = clamp(
        subtotal + gst_amount - coupon - gift_card_discount - loyalty_discount,
        Decimal("0"),
        Decimal(MAX_SAFE_INTEGER),
    )

    return CheckoutTotals(
        subtotal=subtotal,
        coupon_discount=coupon,
        gst_amount=gst_amount,
        gift_card_discount=gift_card_discount,
        loyalty_discount=loyalty_discount,
        total=money(total),
        points_redeemed=points_redeemed,
        points_earned=clamp(int(points_earned or 0), 0, MAX_SAFE_INTEGER),
    )


def classify_integrity_error(exc: IntegrityError) -> CheckoutError:
    message = str(exc)
    lowered = message.lower()
    if "foreign key" in lowered:
        return InvalidReference()
    if "unique" in lowered or "duplicate key" in lowered:
        return DuplicateTransaction()
    return UnknownFailure(message)


class CheckoutService:
    """
    Finalizes POS checkouts for one tenant at a time.
    """

    def __init__(self, loyalty_service=None):
        self.loyalty = loyalty_service or LoyaltyService()

    def finalize(self, ctx, checkout_input: CheckoutInput) -> CheckoutResult:
        """
        Records the checkout and returns a result instead of raising.
        Every failure, including database errors, becomes ``success=False``.
        """
        try:
            self._validate(checkout_input)
            customer = self._resolve_customer(ctx, checkout_input.customer_id)
            totals = calculate_totals(
                checkout_input.items,
                coupon_discount=checkout_input.coupon_discount,
                gift_cards=checkout_input.gift_cards,
                redeem_points=checkout_input.redeem_points,
                points_earned=checkout_input.points_earned_client,
            )
            with transaction.atomic():
                invoice = self._record(ctx, customer, checkout_input, totals)
        except CheckoutError as exc:
            logger.warning("Checkout rejected for organization %s: %s", ctx.tenant_id, exc.message)
            return CheckoutResult.failure(exc)
        except IntegrityError as exc:
            logger.warning("Checkout integrity error for organization %s: %s", ctx.tenant_id, exc)
            return CheckoutResult.failure(classify_integrity_error(exc))
        except Exception as exc:
            logger.exception("Checkout failed for organization %s", ctx.tenant_id)
            return CheckoutResult.failure(UnknownFailure(str(exc) or None))

        logger.info(
            "Checkout finalized: invoice %s, total %s, points -%s/+%s",
            invoice.invoice_number,
            totals.total,
            totals.points_redeemed,
            totals.points_earned,
        )
        return CheckoutResult(success=True, invoice=invoice, totals=totals)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _validate(self, checkout_input: CheckoutInput):
        customer_id = checkout_input.customer_id
        if isinstance(customer_id, bool) or not isinstance(customer_id, int) or customer_id <= 0:
            raise InvalidInput("Invalid customer id")

        if not checkout_input.items:
            raise InvalidInput("Cart is empty")

        if not checkout_input.payment_method:
            raise InvalidInput("Payment method is required")

        for item in checkout_input.items:
            if item.type not in LINE_TYPES:
                raise InvalidInput(f"Unknown line item type: {item.type}")
            if item.price < 0:
                raise InvalidInput(f"Price of '{item.name}' cannot be negative")
            if item.quantity < 1:
                raise InvalidInput(f"Quantity of '{item.name}' must be at least 1")

        if sum((item.line_total for item in checkout_input.items), Decimal("0")) > MAX_AMOUNT:
            raise InvalidInput("Cart total is too large")

        for label, value in (
            ("redeem_points", checkout_input.redeem_points),
            ("points_earned_client", checkout_input.points_earned_client),
        ):
            if value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidInput(f"{label} must be a whole number")
            if value < 0:
                raise InvalidInput(f"{label} cannot be negative")

        for card in checkout_input.gift_cards:
            if card.amount < 0:
                raise InvalidInput(f"Gift card {card.code} amount cannot be negative")

        discounts = (checkout_input.coupon_discount or Decimal("0")) + sum(
            (card.amount for card in checkout_input.gift_cards), Decimal("0")
        )
        if discounts > MAX_AMOUNT:
            raise InvalidInput("Discount total is too large")

    def _resolve_customer(self, ctx, customer_id) -> Customer:
        customer = Customer.objects.filter(organization=ctx.organization, id=customer_id).first()
        if customer is None:
            raise CustomerNotFound()
        return customer

    def _check_services(self, ctx, service_items):
        requested = list(dict.fromkeys(item.id for item in service_items))
        found = set(
            Service.objects.filter(organization=ctx.organization, is_active=True, id__in=requested).values_list(
                "id", flat=True
            )
        )
        invalid = [service_id for service_id in requested if service_id not in found]
        if invalid:
            raise InvalidServiceReference(invalid)

    def _resolve_staff(self, ctx, staff_id) -> Optional[Staff]:
        if staff_id is None:
            return None
        staff = Staff.objects.filter(organization=ctx.organization, id=staff_id).first()
        if staff is None:
            raise InvalidReference()
        return staff

    def _check_idempotency(self, ctx, idempotency_key):
        if idempotency_key and Invoice.objects.filter(
            organization=ctx.organization, idempotency_key=idempotency_key
        ).exists():
            raise DuplicateTransaction()

    # ------------------------------------------------------------------
    # Writes (run inside transaction.atomic)
    # ------------------------------------------------------------------

    def _record(self, ctx, customer, checkout_input: CheckoutInput, totals: CheckoutTotals) -> Invoice:
        organization = ctx.organization
        today = timezone.localdate()

        service_items = checkout_input.items_of(SERVICE)
        product_items = checkout_input.items_of(PRODUCT)
        package_items = checkout_input.items_of(PACKAGE)
        membership_items = checkout_input.items_of(MEMBERSHIP)

        self._check_idempotency(ctx, checkout_input.idempotency_key)

        booking = None
        if service_items:
            self._check_services(ctx, service_items)
            staff = self._resolve_staff(ctx, service_items[0].staff_id)

            booking = Booking.objects.create(
                organization=organization,
                booking_number=generate_booking_number(),
                customer=customer,
                staff=staff,
                booking_date=checkout_input.booking_date or today,
                booking_time=checkout_input.booking_time or DEFAULT_BOOKING_TIME,
                # Grand total of the whole checkout, not just the services
                total_amount=totals.total,
                status=Booking.STATUS_COMPLETED,
                notes=checkout_input.notes or None,
            )
            BookingService.objects.bulk_create(
                [
                    BookingService(
                        organization=organization,
                        booking=booking,
                        service_id=item.id,
                        quantity=item.quantity,
                        price=item.price,
                    )
                    for item in service_items
                ]
            )

        for item in membership_items:
            plan = MembershipPlan.objects.filter(organization=organization, id=item.id).first()
            if plan is None:
                raise MembershipPlanNotFound(item.id)

            CustomerMembership.objects.create(
                organization=organization,
                customer=customer,
                membership_plan=plan,
                start_date=today,
                end_date=today + timedelta(days=MEMBERSHIP_TERM_DAYS),
            )

        invoice_date = checkout_input.invoice_date or today
        invoice = Invoice.objects.create(
            organization=organization,
            invoice_number=generate_invoice_number(),
            customer=customer,
            booking=booking,
            amount=totals.total,
            subtotal=totals.subtotal,
            discount_amount=totals.discount_amount,
            gst_amount=totals.gst_amount,
            payment_method=checkout_input.payment_method,
            service_details={
                "service_items": [item.as_json() for item in service_items],
                "package_items": [item.as_json() for item in package_items],
                "membership_items": [item.as_json() for item in membership_items],
                "coupon_code": checkout_input.coupon_code,
                "coupon_discount": str(totals.coupon_discount),
                "loyalty_points_used": totals.points_redeemed,
                "gift_cards": [{"code": card.code, "amount": str(card.amount)} for card in checkout_input.gift_cards],
            },
            product_details=[item.as_json() for item in product_items],
            invoice_date=invoice_date,
            due_date=checkout_input.due_date or invoice_date,
            notes=checkout_input.notes or None,
            idempotency_key=checkout_input.idempotency_key,
        )

        if totals.points_redeemed > 0:
            self.loyalty.record_transaction(
                ctx,
                customer,
                points=totals.points_redeemed,
                transaction_type=LoyaltyTransaction.REDEEMED,
                amount=Decimal(totals.points_redeemed),
                description=f"Points redeemed for invoice {invoice.invoice_number}",
                invoice=invoice,
            )

        if totals.points_earned > 0:
            self.loyalty.record_transaction(
                ctx,
                customer,
                points=totals.points_earned,
                transaction_type=LoyaltyTransaction.EARNED,
                amount=totals.total,
                description=f"Points earned from invoice {invoice.invoice_number}",
                invoice=invoice,
                expires_at=timezone.now() + timedelta(days=EARNED_POINTS_VALIDITY_DAYS),
            )

        return invoice
