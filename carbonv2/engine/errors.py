"""
CarbonV2 — Error taxonomy

Every failure the engine surfaces is one of these.  The API layer maps
each class to a single HTTP status (see api/app.py).
"""

from typing import Optional


class CarbonError(Exception):
    """Base class for all engine errors."""

    status_code = 500

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message


class ValidationError(CarbonError):
    """Malformed input, rejected before any store access."""

    status_code = 400


class AuthzError(CarbonError):
    """Authenticated tenant does not match the tenant named in the path."""

    status_code = 403


class NotFoundError(CarbonError):
    """Record absent for this tenant (cross-tenant absence looks identical)."""

    status_code = 404


class StoreError(CarbonError):
    """Connection, query, timeout or commit failure in the relational store."""

    status_code = 500


class UpstreamError(CarbonError):
    """
    Narrative-generation service unavailable or answered non-2xx.
    `partial` carries the structured results computed before the call.
    """

    status_code = 503

    def __init__(self, message: str = "", partial: Optional[dict] = None) -> None:
        super().__init__(message)
        self.partial = partial


class NarrativeUnavailableError(UpstreamError):
    """Narrative generation is not configured on this deployment."""
