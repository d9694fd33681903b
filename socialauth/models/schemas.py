"""Pydantic schemas shared by the OAuth strategies, the workflow and the API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class ProviderCredentials(BaseModel):
    """OAuth 2.0 client registration for one provider. Immutable once loaded."""

    model_config = ConfigDict(frozen=True)

    client_id: str = Field(min_length=1)
    client_secret: str = Field(min_length=1)
    callback_url: str = Field(min_length=1)
    scope: tuple[str, ...] = ()
    options: dict[str, Any] = Field(default_factory=dict)

    @field_validator("scope", mode="before")
    @classmethod
    def split_scope(cls, v):
        if v is None:
            return ()
        if isinstance(v, str):
            return tuple(part for part in v.replace(",", " ").split() if part)
        return tuple(v)


class CanonicalProfile(BaseModel):
    """Provider-agnostic user identity.

    Attributes are snake_case; serialising with ``by_alias=True`` yields the
    camelCase shape (``firstName``, ``displayName``...) kept in the session.
    Optional text fields are always strings, empty when the provider had
    nothing to say.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    email: str = ""
    first_name: str = ""
    last_name: str = ""
    display_name: str = ""
    provider: str
    picture: str = ""
    locale: str = ""
    verified: bool = False
    metadata: dict[str, Any] = Field(default_factory=dict)

    def to_persistence(self) -> dict[str, Any]:
        """Snake_case dict stored on users and auth records."""
        return self.model_dump(by_alias=False, mode="json")

    def to_session(self) -> dict[str, Any]:
        """camelCase dict without the raw provider payload (cookie sized)."""
        return self.model_dump(by_alias=True, mode="json", exclude={"metadata"})


class AuthResult(BaseModel):
    """Outcome of a completed strategy ``authenticate`` call."""

    provider: str
    access_token: str
    profile: CanonicalProfile


class OAuthProviderInfo(BaseModel):
    """Information about an enabled OAuth provider."""
    name: str
    display_name: str
    login_url: str
    uses_pkce: bool = False


class OAuthProvidersOut(BaseModel):
    """List of enabled OAuth providers."""
    providers: list[OAuthProviderInfo]


class OAuthCallbackOut(BaseModel):
    """JSON answer of the callback for clients that ask for JSON."""
    success: bool
    provider: str
    access_token: str | None = None
    token_type: str = "bearer"
    user_id: int | None = None
    profile: dict[str, Any] | None = None
    error: str | None = None
