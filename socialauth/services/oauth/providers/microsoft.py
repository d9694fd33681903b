"""Microsoft identity platform (Entra ID) strategy."""
import re

import httpx

from socialauth.core.exceptions import InvalidConfigurationError
from socialauth.models.schemas import ProviderCredentials

from ..normalizer import first_of
from .base import DEFAULT_TIMEOUT, OAuthStrategy

LOGIN_BASE = "https://login.microsoftonline.com"
_TENANT_RE = re.compile(r"^[A-Za-z0-9.\-]+$")


class MicrosoftOAuthStrategy(OAuthStrategy):
    name = "microsoft"
    display_name = "Microsoft"
    default_scopes = ("openid", "profile", "email", "User.Read")
    profile_mapping = {
        "id": "id",
        "email": first_of("mail", "userPrincipalName"),
        "first_name": "givenName",
        "last_name": "surname",
        "display_name": "displayName",
        "locale": "preferredLanguage",
    }

    def __init__(
        self,
        credentials: ProviderCredentials,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        super().__init__(credentials, http_client, timeout)
        tenant = credentials.options.get("tenant", "common")
        if not isinstance(tenant, str) or not _TENANT_RE.match(tenant):
            raise InvalidConfigurationError("tenant", provider=self.name, reason="must be a tenant id, domain or 'common'")
        self.tenant = tenant

    @property
    def authorization_url(self) -> str:
        return f"{LOGIN_BASE}/{self.tenant}/oauth2/v2.0/authorize"

    @property
    def token_url(self) -> str:
        return f"{LOGIN_BASE}/{self.tenant}/oauth2/v2.0/token"

    @property
    def user_info_url(self) -> str:
        return "https://graph.microsoft.com/v1.0/me"

    def extra_authorization_params(self) -> dict[str, str]:
        return {"response_mode": "query"}
