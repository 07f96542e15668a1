from __future__ import annotations

from typing import Optional


class PortalError(Exception):
    """Base class for every failure surfaced to the portal user."""

    def __init__(self, message: str, *, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class TransportError(PortalError):
    """Connectivity problem or timeout talking to the backend."""


class AuthorizationError(PortalError):
    """Invalid credentials or an expired/revoked session."""


class ValidationError(PortalError):
    """Client-side form check failed; nothing was sent over the network."""


class RemoteRejection(PortalError):
    """The backend answered with an error (constraint, RLS denial, missing object)."""
