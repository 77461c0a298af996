"""
Salon accounts: the tenant, the keys its POS terminals use, and its staff logins.
"""

import secrets
import uuid

from django.contrib.auth.models import AbstractUser
from django.db import models

from users.managers import CustomUserManager

# Headers a POS terminal may send its key in, checked in this order.
API_KEY_HEADERS = ("X-API-KEY", "X-Tenant-API-Key")


def generate_api_key() -> str:
    return secrets.token_hex(32)


def api_key_from_request(request):
    for header in API_KEY_HEADERS:
        value = request.headers.get(header)
        if value:
            return value
    return None


class Organization(models.Model):
    """
    One salon business. Every customer, booking, invoice and ledger row belongs to exactly one.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.name


class OrganizationApiKeyQuerySet(models.QuerySet):
    def usable(self):
        """Keys that are switched on and whose salon is still open."""
        return self.filter(is_active=True, organization__is_active=True)

    def resolve(self, key):
        """Returns the usable key object for a raw key string, or None."""
        if not key:
            return None
        return self.usable().select_related("organization").filter(key=key).first()


class OrganizationApiKey(models.Model):
    """
    Credential of one POS terminal or front-desk integration.
    A salon can hold several and rotate them independently.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name="api_keys")
    key = models.CharField(max_length=64, unique=True, db_index=True, default=generate_api_key)
    name = models.CharField(max_length=50, help_text="Terminal label shown in the back office, e.g. 'Reception POS'")
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = OrganizationApiKeyQuerySet.as_manager()

    def __str__(self):
        return f"{self.organization.name} - {self.name}"


class User(AbstractUser):
    """
    Back-office login of salon staff. Email replaces the username.
    """

    OWNER = "owner"
    MANAGER = "manager"
    FRONT_DESK = "front_desk"

    ROLE_CHOICES = [
        (OWNER, "Owner"),
        (MANAGER, "Manager"),
        (FRONT_DESK, "Front desk"),
    ]

    username = None
    email = models.EmailField("email address", unique=True)
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=FRONT_DESK)

    organization = models.ForeignKey(
        "users.Organization", on_delete=models.SET_NULL, null=True, blank=True, related_name="users"
    )

    objects = CustomUserManager()

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    @property
    def is_salon_member(self) -> bool:
        return bool(self.is_active and self.organization_id and self.organization.is_active)

    def __str__(self):
        return self.email
