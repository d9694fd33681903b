"""Inbound request variants of the authorization-code flow.

Whether a request starts a login or completes one is decided once, here,
from the query parameters; strategies never have to guess.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Union


@dataclass(frozen=True)
class InitiationRequest:
    """User asked to log in with ``provider``."""

    provider: str


@dataclass(frozen=True)
class CallbackRequest:
    """Provider redirected the user back to us."""

    provider: str
    code: str | None = None
    state: str | None = None
    provider_error: str | None = None

    @classmethod
    def from_query(cls, provider: str, params: Mapping[str, Any]) -> CallbackRequest:
        error = params.get("error")
        description = params.get("error_description")
        if error and description:
            error = f"{error}: {description}"
        return cls(
            provider=provider.lower(),
            code=params.get("code") or None,
            state=params.get("state") or None,
            provider_error=error or None,
        )


AuthRequest = Union[InitiationRequest, CallbackRequest]


@dataclass(frozen=True)
class AuthorizationRedirect:
    """Where to send the browser to start the login."""

    provider: str
    url: str
    state: str


def parse_auth_request(provider: str, params: Mapping[str, Any]) -> AuthRequest:
    """A callback carries ``code`` (or the provider's ``error``); anything else initiates."""
    if params.get("code") or params.get("error"):
        return CallbackRequest.from_query(provider, params)
    return InitiationRequest(provider=provider.lower())
