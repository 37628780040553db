"""
Exceptions raised by the portal services.

Each error carries the HTTP status the API answers with; the app factory
registers a single handler that renders ``{"detail": message}``.
"""

from __future__ import annotations


class PortalError(Exception):
    """Base class for business-rule failures."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(PortalError):
    """Raised when input fails a business validation rule."""

    status_code = 400


class PricingError(PortalError):
    """Raised when a quote references an unknown category or catalog item."""

    status_code = 400


class AuthenticationError(PortalError):
    """Raised when credentials or a session token are missing or invalid."""

    status_code = 401


class PermissionDeniedError(PortalError):
    """Raised when the acting user lacks the required role or ownership."""

    status_code = 403


class NotFoundError(PortalError):
    """Raised when a requested entity does not exist."""

    status_code = 404


class ConflictError(PortalError):
    status_code = 409


class InvalidTransitionError(ConflictError):
    """Raised when an order status change is not allowed."""
