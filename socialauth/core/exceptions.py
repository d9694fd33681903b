"""Exception hierarchy for the social login service.

Every error the service raises on purpose derives from ``SocialAuthException``
so the API layer can turn it into a response without leaking a traceback.

Error codes follow pattern: [CATEGORY][NUMBER]
- AUTH: OAuth flow errors (100-199)
- USR: Local user errors (200-299)
- SYS: Configuration / infrastructure errors (400-499)
"""

from __future__ import annotations

from typing import Any


class SocialAuthException(Exception):
    """Base exception for all application errors."""

    def __init__(
        self,
        message: str,
        code: str,
        status_code: int = 400,
        details: dict[str, Any] | None = None,
    ):
        """Initialize exception with a user-facing message and metadata.

        Args:
            message: Message safe to show to the end user
            code: Unique error code (e.g., "AUTH101")
            status_code: HTTP status code (default: 400 Bad Request)
            details: Optional additional context
        """
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to API response format."""
        return {
            "error": {
                "message": self.message,
                "code": self.code,
                "details": self.details,
            }
        }


# ============================================================================
# USER ERRORS (USR200-299)
# ============================================================================

class UserError(SocialAuthException):
    """Base class for local user errors."""
    pass


class UserNotFoundError(UserError):
    """User does not exist."""

    def __init__(self, identifier: str | None = None):
        message = "User not found" if not identifier else f"User '{identifier}' not found"
        super().__init__(
            message=message,
            code="USR200",
            status_code=404,
            details={"identifier": identifier} if identifier else {},
        )


class UserProvisioningError(UserError):
    """User could be neither created nor updated."""

    def __init__(self, provider: str, reason: str | None = None):
        message = f"Could not create or update the user signing in with {provider}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(
            message=message,
            code="USR201",
            status_code=500,
            details={"provider": provider},
        )


# ============================================================================
# SYSTEM ERRORS (SYS400-499)
# ============================================================================

class SystemError(SocialAuthException):
    """Base class for system/infrastructure errors."""
    pass


class InvalidConfigurationError(SystemError):
    """A provider (or the app) is missing a required setting or has a bad one."""

    def __init__(self, parameter: str, provider: str | None = None, reason: str | None = None):
        subject = f"{provider}.{parameter}" if provider else parameter
        message = f"Configuration error: {subject} is not configured properly"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(
            message=message,
            code="SYS401",
            status_code=500,
            details={"parameter": parameter, "provider": provider},
        )
        self.provider = provider
