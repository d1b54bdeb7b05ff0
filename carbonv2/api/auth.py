"""
CarbonV2 API — Bearer Token Verification
=========================================
Verifies the HS256 JWT on each request and turns its claims into a typed
Principal, once.  Login, signup and credential storage live elsewhere.

Expected claims:
    tenant_id  int
    user_id    int
    role       one of VALID_ROLES
    type       "access"
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from fastapi import HTTPException, Request, status

from ..config import Settings
from ..engine.principal import VALID_ROLES, Principal

log = logging.getLogger("carbonv2.api")


# =============================================================================
# JWT UTILITIES
# =============================================================================

def create_access_token(payload: dict[str, Any], settings: Settings) -> str:
    """Create a short-lived access token (operators and tests)."""
    now = datetime.now(timezone.utc)
    token_data = {
        **payload,
        "iat": now,
        "exp": now + timedelta(minutes=settings.JWT_EXPIRY_MINUTES),
        "type": "access",
    }
    return jwt.encode(token_data, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_token(token: str, settings: Settings) -> dict[str, Any]:
    """
    Decode and validate a JWT token.
    Raises HTTPException on invalid/expired tokens.
    """
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token has expired")
    except jwt.InvalidTokenError as e:
        raise _unauthorized(f"Invalid token: {e}")

    if payload.get("type") != "access":
        raise _unauthorized(f"Expected access token, got {payload.get('type')}")
    return payload


def principal_from_claims(claims: dict[str, Any]) -> Principal:
    try:
        tenant_id = int(claims["tenant_id"])
        user_id = int(claims["user_id"])
    except (KeyError, TypeError, ValueError):
        raise _unauthorized("Token is missing tenant_id/user_id claims")

    role = str(claims.get("role") or "member")
    if role not in VALID_ROLES:
        raise _unauthorized(f"Unknown role: {role}")
    return Principal(tenant_id=tenant_id, user_id=user_id, role=role)


# =============================================================================
# DEPENDENCY
# =============================================================================

async def get_principal(request: Request) -> Principal:
    """Resolve the authenticated caller from the Authorization header."""
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise _unauthorized("Missing bearer token")

    principal = principal_from_claims(decode_token(token.strip(), request.app.state.settings))
    log.debug("Authenticated user %d tenant %d role=%s",
              principal.user_id, principal.tenant_id, principal.role)
    return principal
