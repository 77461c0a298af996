"""
Middleware for handling tenant authentication and context management.
Supports both API Key (POS terminals, integrations) and JWT/Session (Dashboard) authentication.
"""

import logging

from django.http import JsonResponse
from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.authentication import JWTAuthentication

from core.context import reset_current_organization_id, set_current_organization_id
from users.models import OrganizationApiKey, api_key_from_request

logger = logging.getLogger(__name__)

PROTECTED_PREFIXES = ("/api/loyalty/", "/api/checkout/")
PUBLIC_PREFIXES = ("/admin/", "/static/", "/api/auth/", "/api/docs/", "/api/schema/")


class TenantContextMiddleware:
    """
    Acts as a "Gatekeeper". It determines the current Organization context using two strategies:
    1. 'X-API-KEY' header (POS terminals, external integrations).
    2. Authenticated User's Organization (Admin Dashboard, Frontend).
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        # Always start clean so a previous request on this worker cannot leak its tenant
        reset_current_organization_id()

        path = request.path
        if path.startswith(PUBLIC_PREFIXES) or "/favicon.ico" in path:
            return self.get_response(request)

        organization = None

        # STRATEGY A: API Key (Machine-to-Machine)
        api_key = api_key_from_request(request)

        if api_key:
            key_obj = OrganizationApiKey.objects.resolve(api_key)
            if key_obj is None:
                return JsonResponse({"detail": "Invalid or inactive Tenant API Key."}, status=403)
            organization = key_obj.organization

        # STRATEGY B: User Authentication (Human-to-Machine)
        else:
            user = getattr(request, "user", None)
            if not (user and user.is_authenticated):
                # Middleware runs before DRF views, so JWT has to be checked by hand here
                try:
                    auth_result = JWTAuthentication().authenticate(request)
                except AuthenticationFailed as exc:
                    # The view answers 401 on its own if it needs a user
                    logger.debug("Ignoring invalid JWT in tenant middleware: %s", exc)
                    auth_result = None
                if auth_result:
                    request.user, _ = auth_result

            user = getattr(request, "user", None)
            if user and user.is_authenticated:
                organization = user.organization

        if path.startswith(PROTECTED_PREFIXES) and not organization:
            return JsonResponse(
                {
                    "detail": "Organization context required. "
                    "Provide X-API-KEY header OR login as a user belonging to an organization."
                },
                status=401,
            )

        if organization:
            set_current_organization_id(organization.id)
            request.tenant = organization

        try:
            response = self.get_response(request)
        finally:
            reset_current_organization_id()

        return response
