"""
Custom exceptions for the application.
"""

from typing import Iterable

from fastapi import HTTPException, status


class TeekoobException(Exception):
    """Base exception for the Teekoob messaging service."""

    def __init__(self, message: str = "An error occurred"):
        self.message = message
        super().__init__(self.message)


# ═══════════════════════════════════════════════════════════════════════════
# AUTHENTICATION EXCEPTIONS
# ═══════════════════════════════════════════════════════════════════════════


class InvalidTokenError(TeekoobException):
    """Raised when a JWT token is invalid or expired."""
    pass


class UserNotFoundError(TeekoobException):
    """Raised when user is not found."""
    pass


# ═══════════════════════════════════════════════════════════════════════════
# REQUEST EXCEPTIONS
# ═══════════════════════════════════════════════════════════════════════════


class ValidationError(TeekoobException):
    """Raised when a request is malformed (missing token, bad interval, unknown ids)."""
    pass


class UnknownRecipientsError(ValidationError):
    """Raised when a targeted send names user ids that do not exist."""

    def __init__(self, user_ids: Iterable[str]):
        self.user_ids = list(user_ids)
        super().__init__(f"Unknown recipients: {', '.join(self.user_ids)}")


class NotFoundError(TeekoobException):
    """Raised when the target resource does not exist or is not owned by the caller."""
    pass


# ═══════════════════════════════════════════════════════════════════════════
# DELIVERY & STORE EXCEPTIONS
# ═══════════════════════════════════════════════════════════════════════════


class UpstreamDeliveryError(TeekoobException):
    """
    Raised when a single push send fails.

    `unregistered` is set when the provider reports the device token as
    no longer valid, so the caller can disable it.
    """

    def __init__(self, message: str = "Push delivery failed", unregistered: bool = False):
        self.unregistered = unregistered
        super().__init__(message)


class StoreUnavailableError(TeekoobException):
    """Raised when the backing store cannot be reached."""
    pass


# ═══════════════════════════════════════════════════════════════════════════
# HTTP EXCEPTION HELPERS
# ═══════════════════════════════════════════════════════════════════════════


def unauthorized(detail: str = "Not authenticated") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def forbidden(detail: str = "Access denied") -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)
