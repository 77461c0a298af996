import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from core.context import TenantContext, reset_current_organization_id
from tests.factories.users import OrganizationApiKeyFactory, OrganizationFactory


@pytest.fixture
def api_client():
    """
    Fixture to provide an instance of DRF APIClient.
    """
    return APIClient()


@pytest.fixture(autouse=True)
def enable_db_access_for_all_tests(db):
    """
    Automatically enables database access for all tests.
    """
    pass


@pytest.fixture(autouse=True)
def clean_tenant_state():
    """
    Tests set the organization context by hand; never let it leak into the next test.
    """
    yield
    reset_current_organization_id()
    cache.clear()


@pytest.fixture
def organization():
    return OrganizationFactory(name="Glow Salon")


@pytest.fixture
def ctx(organization):
    return TenantContext(organization=organization)


@pytest.fixture
def api_key(organization):
    """Creates an API key for the organization and returns the raw key string."""
    key_value = "glow-salon-pos-key"
    OrganizationApiKeyFactory(organization=organization, key=key_value)
    return key_value


@pytest.fixture
def pos_client(api_client, api_key):
    """APIClient authenticated as a POS terminal of the organization."""
    api_client.credentials(HTTP_X_API_KEY=api_key)
    return api_client
