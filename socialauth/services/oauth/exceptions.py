"""OAuth flow exceptions."""

from __future__ import annotations

from socialauth.core.exceptions import SocialAuthException


class OAuthError(SocialAuthException):
    """Base class for failures of the OAuth 2.0 flow."""

    def __init__(
        self,
        message: str,
        code: str,
        provider: str | None = None,
        status_code: int = 400,
        details: dict | None = None,
    ):
        super().__init__(
            message=message,
            code=code,
            status_code=status_code,
            details={"provider": provider, **(details or {})},
        )
        self.provider = provider


class MissingAuthorizationCodeError(OAuthError):
    """Raised when a callback carries no authorization code."""

    def __init__(self, provider: str | None = None, reason: str | None = None):
        message = "Authorization code not provided"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, code="AUTH100", provider=provider, details={"reason": reason} if reason else None)


class TokenExchangeError(OAuthError):
    """Raised when exchanging the authorization code for a token fails."""

    def __init__(self, provider: str, reason: str, status: int | None = None):
        super().__init__(
            f"Failed to get access token from {provider}: {reason}",
            code="AUTH101",
            provider=provider,
            status_code=502,
            details={"upstream_status": status} if status is not None else None,
        )
        self.upstream_status = status


class ProfileFetchError(OAuthError):
    """Raised when fetching the provider profile fails."""

    def __init__(self, provider: str, reason: str, status: int | None = None):
        super().__init__(
            f"Failed to fetch {provider} profile: {reason}",
            code="AUTH102",
            provider=provider,
            status_code=502,
            details={"upstream_status": status} if status is not None else None,
        )
        self.upstream_status = status


class UnknownProviderError(OAuthError):
    """Raised when a request names a provider that is not registered."""

    def __init__(self, provider: str):
        super().__init__(
            f"OAuth provider '{provider}' not registered",
            code="AUTH103",
            provider=provider,
            status_code=404,
        )


class StrategyNotFoundError(OAuthError):
    """Raised by the workflow when no strategy resolves for a provider."""

    def __init__(self, provider: str):
        super().__init__(
            f"Strategy for provider {provider} not found",
            code="AUTH104",
            provider=provider,
            status_code=404,
        )


class InvalidStateError(OAuthError):
    """Raised when the callback ``state`` does not match an issued one."""

    def __init__(self, provider: str | None = None, reason: str = "unknown or expired state"):
        super().__init__(
            f"Invalid state token: {reason}",
            code="AUTH105",
            provider=provider,
        )


class AuthenticationFailedError(OAuthError):
    """Raised for unexpected failures inside the login flow."""

    def __init__(self, provider: str | None = None):
        super().__init__(
            "Authentication failed",
            code="AUTH106",
            provider=provider,
            status_code=500,
        )
