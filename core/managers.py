"""
Custom Django managers for multi-tenancy.
"""

from django.db import models

from core.context import get_current_organization_id


class TenantAwareManager(models.Manager):
    """
    Filters querysets by the organization active in the request context.

    Services pass an explicit organization filter anyway; this manager keeps
    HTTP handlers from leaking rows if a filter is forgotten.
    """

    def get_queryset(self):
        queryset = super().get_queryset()

        org_id = get_current_organization_id()
        if org_id:
            return queryset.filter(organization_id=org_id)

        # No context (celery tasks, management commands): unfiltered.
        return queryset

    def for_organization(self, organization):
        return self.get_queryset().filter(organization=organization)
