from __future__ import annotations

import os
from functools import lru_cache
from typing import Any

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

SUPPORTED_PROVIDERS: tuple[str, ...] = (
    "google",
    "facebook",
    "github",
    "linkedin",
    "microsoft",
    "twitter",
)


class BaseAppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_NAME: str = "SocialAuth"
    ENV: str = "dev"
    DATABASE_URL: str | None = None
    DB_CREATE_ALL: bool = True
    BACKEND_URL: str = "http://localhost:8000"
    REDIS_URL: str = "redis://localhost:6379/0"

    CORS_ALLOW_ORIGINS: list[str] = ["*"]
    CORS_ALLOW_METHODS: list[str] = ["*"]
    CORS_ALLOW_HEADERS: list[str] = ["*"]
    CORS_ALLOW_CREDENTIALS: bool = True
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "plain"

    # Session cookie (profile of the last successful login)
    SESSION_SECRET: str = "change_me_session"
    SESSION_COOKIE_NAME: str = "socialauth_session"
    SESSION_TTL: int = 24 * 60 * 60  # seconds

    # JWT issued after a successful login
    JWT_SECRET: str = "change_me"
    JWT_TTL_MINUTES: int = 60 * 24

    # Where the browser lands after the callback
    AUTH_SUCCESS_REDIRECT: str = "/auth/success"
    AUTH_FAILURE_REDIRECT: str = "/auth/error"

    # Anti-CSRF state handling
    OAUTH_STATE_BACKEND: str = "memory"  # "memory" or "redis"
    OAUTH_STATE_TTL: int = 600
    OAUTH_STATE_VALIDATION: bool = True
    OAUTH_HTTP_TIMEOUT: float = 10.0
    OAUTH_RATE_LIMIT: str = "30/minute"

    # OAuth 2.0 providers. A provider without client id/secret stays disabled.
    GOOGLE_CLIENT_ID: str | None = None
    GOOGLE_CLIENT_SECRET: str | None = None
    GOOGLE_CALLBACK_URL: str | None = None
    GOOGLE_SCOPE: list[str] | None = None

    FACEBOOK_CLIENT_ID: str | None = None
    FACEBOOK_CLIENT_SECRET: str | None = None
    FACEBOOK_CALLBACK_URL: str | None = None
    FACEBOOK_SCOPE: list[str] | None = None
    FACEBOOK_GRAPH_API_VERSION: str = "v12.0"

    GITHUB_CLIENT_ID: str | None = None
    GITHUB_CLIENT_SECRET: str | None = None
    GITHUB_CALLBACK_URL: str | None = None
    GITHUB_SCOPE: list[str] | None = None

    LINKEDIN_CLIENT_ID: str | None = None
    LINKEDIN_CLIENT_SECRET: str | None = None
    LINKEDIN_CALLBACK_URL: str | None = None
    LINKEDIN_SCOPE: list[str] | None = None

    MICROSOFT_CLIENT_ID: str | None = None
    MICROSOFT_CLIENT_SECRET: str | None = None
    MICROSOFT_CALLBACK_URL: str | None = None
    MICROSOFT_SCOPE: list[str] | None = None
    MICROSOFT_TENANT: str = "common"

    TWITTER_CLIENT_ID: str | None = None
    TWITTER_CLIENT_SECRET: str | None = None
    TWITTER_CALLBACK_URL: str | None = None
    TWITTER_SCOPE: list[str] | None = None
    TWITTER_CONSUMER_KEY: str | None = None
    TWITTER_CONSUMER_SECRET: str | None = None

    @field_validator("OAUTH_STATE_BACKEND", mode="before")
    @classmethod
    def normalize_state_backend(cls, v):
        if v is None:
            return "memory"
        return str(v).strip().lower()

    @model_validator(mode="after")
    def _validate_required_fields(self) -> BaseAppSettings:
        if self.DATABASE_URL and self.DATABASE_URL.startswith("postgres://"):
            self.DATABASE_URL = self.DATABASE_URL.replace("postgres://", "postgresql://", 1)

        if self.ENV.lower() == "prod":
            default_violations: list[str] = []
            if self.JWT_SECRET == "change_me":
                default_violations.append("JWT_SECRET uses default placeholder")
            if self.SESSION_SECRET == "change_me_session":
                default_violations.append("SESSION_SECRET uses default placeholder")
            if default_violations:
                raise ValueError("Insecure default secrets in production: " + ", ".join(default_violations))
        return self

    def provider_options(self, provider: str) -> dict[str, Any]:
        """Collect the raw settings for one provider.

        The callback URL defaults to ``{BACKEND_URL}/auth/{provider}/callback``.
        Provider-specific extras (tenant, graph version, consumer key) are
        returned alongside the common OAuth 2.0 fields.
        """
        name = provider.lower()
        prefix = name.upper()
        options: dict[str, Any] = {
            "client_id": getattr(self, f"{prefix}_CLIENT_ID", None),
            "client_secret": getattr(self, f"{prefix}_CLIENT_SECRET", None),
            "callback_url": getattr(self, f"{prefix}_CALLBACK_URL", None)
            or f"{self.BACKEND_URL.rstrip('/')}/auth/{name}/callback",
            "scope": getattr(self, f"{prefix}_SCOPE", None),
        }
        if name == "facebook":
            options["graph_api_version"] = self.FACEBOOK_GRAPH_API_VERSION
        elif name == "microsoft":
            options["tenant"] = self.MICROSOFT_TENANT
        elif name == "twitter":
            # Legacy consumer key/secret double as OAuth 2.0 client credentials
            options["client_id"] = options["client_id"] or self.TWITTER_CONSUMER_KEY
            options["client_secret"] = options["client_secret"] or self.TWITTER_CONSUMER_SECRET
        return options


class DevSettings(BaseAppSettings):
    ENV: str = "dev"
    DATABASE_URL: str = "sqlite:///./socialauth.db"


class TestSettings(BaseAppSettings):
    ENV: str = "test"
    DATABASE_URL: str = "sqlite:///:memory:"
    OAUTH_RATE_LIMIT: str = "1000/minute"


class ProdSettings(BaseAppSettings):
    ENV: str = "prod"
    OAUTH_STATE_BACKEND: str = "redis"
    DB_CREATE_ALL: bool = False
    LOG_FORMAT: str = "json"


_ENV_TO_SETTINGS: dict[str, type[BaseAppSettings]] = {
    "dev": DevSettings,
    "development": DevSettings,
    "test": TestSettings,
    "testing": TestSettings,
    "prod": ProdSettings,
    "production": ProdSettings,
}


@lru_cache
def get_settings() -> BaseAppSettings:
    env_name = os.getenv("APP_ENV") or os.getenv("ENV") or "dev"
    env = env_name.lower()
    settings_cls = _ENV_TO_SETTINGS.get(env, DevSettings)
    return settings_cls()


settings = get_settings()
