"""
CarbonV2 — Authenticated principal + tenant gate

The auth layer verifies the bearer token once and hands the engine a
Principal by value.  Every tenant-scoped operation calls
authorize_tenant() before touching the store.
"""

from __future__ import annotations

from dataclasses import dataclass

from .errors import AuthzError


VALID_ROLES = {"admin", "manager", "member", "viewer"}


@dataclass(frozen=True)
class Principal:
    """Verified caller identity."""
    tenant_id: int
    user_id: int
    role: str = "member"


def authorize_tenant(principal: Principal, tenant_id: int) -> int:
    """
    Reject the call unless the token's tenant is the tenant in the path.
    Returns the tenant id to use for every store filter.
    """
    if principal.tenant_id != tenant_id:
        raise AuthzError("access to this tenant is forbidden")
    return principal.tenant_id
