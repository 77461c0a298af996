from django.contrib.auth.models import AnonymousUser
from rest_framework import authentication, exceptions

from users.models import API_KEY_HEADERS, OrganizationApiKey, api_key_from_request


class ApiKeyAuthentication(authentication.BaseAuthentication):
    """
    Authenticates POS requests based on the 'X-API-KEY' header.
    The key object becomes ``request.auth``; the user stays anonymous.
    """

    def authenticate(self, request):
        api_key_header = api_key_from_request(request)

        if not api_key_header:
            return None  # Authentication not attempted

        api_key_obj = OrganizationApiKey.objects.resolve(api_key_header)
        if api_key_obj is None:
            raise exceptions.AuthenticationFailed("Invalid or inactive API Key.")

        return (AnonymousUser(), api_key_obj)

    def authenticate_header(self, request):
        return API_KEY_HEADERS[0]
