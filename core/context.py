"""
Tenant context handling.

Two flavours live here:
1. A request-scoped ContextVar set by TenantContextMiddleware, used by the
   TenantAwareManager as a last line of isolation for HTTP handlers.
2. An explicit TenantContext object that every core service receives as its
   first argument. Services filter by ``ctx.organization`` themselves and never
   read the ContextVar.
"""

from contextvars import ContextVar
from dataclasses import dataclass
from typing import Any, Optional
from uuid import UUID

_current_organization_id: ContextVar[Optional[UUID]] = ContextVar("current_organization_id", default=None)


def set_current_organization_id(organization_id: UUID):
    """
    Sets the organization UUID for the current execution context.
    """
    _current_organization_id.set(organization_id)


def get_current_organization_id() -> Optional[UUID]:
    """
    Retrieves the organization UUID from the current execution context.
    Returns None if no context is active.
    """
    return _current_organization_id.get()


def reset_current_organization_id():
    """
    Resets the context variable to None.
    """
    _current_organization_id.set(None)


@dataclass(frozen=True)
class TenantContext:
    """
    Resolved tenant plus the caller acting inside it.
    """

    organization: Any
    user: Any = None

    @property
    def tenant_id(self):
        return self.organization.id

    @classmethod
    def from_request(cls, request) -> "TenantContext":
        """
        Builds the context from a request that already passed TenantContextMiddleware.
        """
        organization = getattr(request, "tenant", None)
        if organization is None:
            organization = getattr(getattr(request, "auth", None), "organization", None)
        if organization is None:
            user = getattr(request, "user", None)
            organization = getattr(user, "organization", None)
        if organization is None:
            raise LookupError("Request has no organization context.")

        user = getattr(request, "user", None)
        if user is not None and not user.is_authenticated:
            user = None
        return cls(organization=organization, user=user)
