"""
Factories for the users application (tenants and users)
"""

import factory
from factory.django import DjangoModelFactory

from users.models import Organization, OrganizationApiKey, User


class OrganizationFactory(DjangoModelFactory):
    """
    Factory for creating Organization (salon) instances in tests.
    """

    class Meta:
        model = Organization

    name = factory.Faker("company")
    is_active = True


class UserFactory(DjangoModelFactory):
    """
    Factory for creating User instances in tests.
    """

    class Meta:
        model = User

    email = factory.Sequence(lambda n: f"user{n}@example.com")
    first_name = factory.Faker("first_name")
    last_name = factory.Faker("last_name")
    organization = factory.SubFactory(OrganizationFactory)


class OrganizationApiKeyFactory(DjangoModelFactory):
    class Meta:
        model = OrganizationApiKey

    organization = factory.SubFactory(OrganizationFactory)
    name = "Front Desk POS"
    key = factory.Faker("sha256")
    is_active = True
