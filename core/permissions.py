"""
DRF permissions shared by tenant-scoped endpoints.
"""

from rest_framework.permissions import BasePermission

from users.models import OrganizationApiKey


class IsTenantMember(BasePermission):
    """
    Allows dashboard users that belong to an organization and POS clients
    authenticated with an organization API key.
    """

    message = "Organization context required."

    def has_permission(self, request, view):
        if isinstance(request.auth, OrganizationApiKey):
            return True

        user = request.user
        return bool(user and user.is_authenticated and getattr(user, "is_salon_member", False))
