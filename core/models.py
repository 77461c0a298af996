"""
Abstract base models providing multi-tenancy capabilities.
"""

from django.db import models

from core.context import get_current_organization_id
from core.managers import TenantAwareManager


class TenantAwareModel(models.Model):
    """
    Abstract base class for every salon record isolated by tenant.

    1. Data Isolation: Uses TenantAwareManager to restrict read access.
    2. Auto-Assignment: Links new records to the active tenant on save when
       the caller did not set one.
    """

    organization = models.ForeignKey(
        "users.Organization",
        on_delete=models.CASCADE,
        related_name="%(class)s_set",
        db_index=True,
    )

    objects = TenantAwareManager()

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        if not self.organization_id:
            org_id = get_current_organization_id()
            if org_id:
                self.organization_id = org_id

        super().save(*args, **kwargs)
