"""
Unit tests for tenants, API keys, staff accounts and their manager.
"""

import pytest
from django.contrib.auth import get_user_model
from django.db.utils import IntegrityError
from rest_framework import exceptions
from rest_framework.test import APIRequestFactory

from tests.factories.users import OrganizationApiKeyFactory, OrganizationFactory, UserFactory
from users.authentication import ApiKeyAuthentication
from users.models import OrganizationApiKey, api_key_from_request, generate_api_key

User = get_user_model()


class TestCustomUserManager:
    def test_create_user_without_email_raises_error(self):
        with pytest.raises(ValueError) as exc:
            User.objects.create_user(email=None, password="password123")

        assert "The Email must be set" in str(exc.value)

    def test_create_user_normalizes_email(self):
        user = User.objects.create_user(email="Frontdesk@GLOW.example", password="password123")

        assert user.email == "Frontdesk@glow.example"
        assert user.check_password("password123")

    def test_create_superuser_success(self):
        admin_user = User.objects.create_superuser(email="owner@glow.example", password="password123")

        assert admin_user.is_staff is True
        assert admin_user.is_superuser is True
        assert admin_user.is_active is True

    @pytest.mark.parametrize("flag", ["is_staff", "is_superuser"])
    def test_create_superuser_requires_flags(self, flag):
        with pytest.raises(ValueError):
            User.objects.create_superuser(email="owner2@glow.example", password="password123", **{flag: False})


class TestTenantModels:
    def test_string_representations(self):
        org = OrganizationFactory(name="Glow Salon")
        api_key = OrganizationApiKeyFactory(organization=org, name="Front Desk POS")
        user = UserFactory(email="stylist@glow.example", organization=org)

        assert str(org) == "Glow Salon"
        assert str(api_key) == "Glow Salon - Front Desk POS"
        assert str(user) == "stylist@glow.example"

    def test_generated_keys_are_random_hex(self):
        first, second = generate_api_key(), generate_api_key()

        assert len(first) == 64
        assert first != second
        int(first, 16)

    def test_api_key_uniqueness(self):
        OrganizationApiKeyFactory(key="unique-key-123")

        with pytest.raises(IntegrityError):
            OrganizationApiKeyFactory(key="unique-key-123")

    def test_staff_default_to_front_desk(self):
        user = UserFactory()

        assert user.role == User.FRONT_DESK
        assert user.is_salon_member is True

    def test_staff_of_closed_salon_is_not_a_member(self):
        user = UserFactory(organization=OrganizationFactory(is_active=False))

        assert user.is_salon_member is False


class TestApiKeyLookup:
    def test_resolve_returns_usable_key(self):
        key = OrganizationApiKeyFactory(key="reception-pos")

        assert OrganizationApiKey.objects.resolve("reception-pos") == key

    @pytest.mark.parametrize("raw_key", ["", None, "no-such-key", "switched-off"])
    def test_resolve_rejects_unusable_keys(self, raw_key):
        OrganizationApiKeyFactory(key="switched-off", is_active=False)

        assert OrganizationApiKey.objects.resolve(raw_key) is None

    def test_key_is_read_from_either_header(self):
        factory = APIRequestFactory()

        assert api_key_from_request(factory.get("/", HTTP_X_API_KEY="a")) == "a"
        assert api_key_from_request(factory.get("/", HTTP_X_TENANT_API_KEY="b")) == "b"
        assert api_key_from_request(factory.get("/")) is None


class TestApiKeyAuthentication:
    def test_no_header_means_not_attempted(self):
        request = APIRequestFactory().get("/api/loyalty/stats/")

        assert ApiKeyAuthentication().authenticate(request) is None

    def test_valid_key_returns_key_as_auth(self):
        key = OrganizationApiKeyFactory(key="pos-terminal-1")
        request = APIRequestFactory().get("/api/loyalty/stats/", HTTP_X_API_KEY="pos-terminal-1")

        user, auth = ApiKeyAuthentication().authenticate(request)

        assert user.is_authenticated is False
        assert auth == key
        assert auth.organization == key.organization

    def test_inactive_organization_is_rejected(self):
        OrganizationApiKeyFactory(key="closed-salon", organization=OrganizationFactory(is_active=False))
        request = APIRequestFactory().get("/api/loyalty/stats/", HTTP_X_API_KEY="closed-salon")

        with pytest.raises(exceptions.AuthenticationFailed):
            ApiKeyAuthentication().authenticate(request)
