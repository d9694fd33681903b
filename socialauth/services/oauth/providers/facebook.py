"""Facebook Login (Graph API) strategy."""
import re

import httpx

from socialauth.core.exceptions import InvalidConfigurationError
from socialauth.models.schemas import ProviderCredentials

from ..exceptions import ProfileFetchError
from .base import DEFAULT_TIMEOUT, OAuthStrategy

DEFAULT_GRAPH_API_VERSION = "v12.0"
PROFILE_FIELDS = ("id", "email", "first_name", "last_name", "name", "picture", "locale")
_VERSION_RE = re.compile(r"^v\d+\.\d+$")


class FacebookOAuthStrategy(OAuthStrategy):
    name = "facebook"
    display_name = "Facebook"
    default_scopes = ("email", "public_profile")
    scope_separator = ","
    profile_mapping = {
        "id": "id",
        "email": "email",
        "first_name": "first_name",
        "last_name": "last_name",
        "display_name": "name",
        "picture": "picture.data.url",
        "locale": "locale",
    }

    def __init__(
        self,
        credentials: ProviderCredentials,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        super().__init__(credentials, http_client, timeout)
        version = credentials.options.get("graph_api_version") or DEFAULT_GRAPH_API_VERSION
        if not _VERSION_RE.match(version):
            raise InvalidConfigurationError(
                "graph_api_version", provider=self.name, reason=f"expected e.g. 'v12.0', got {version!r}"
            )
        self.graph_api_version = version

    @property
    def authorization_url(self) -> str:
        return f"https://www.facebook.com/{self.graph_api_version}/dialog/oauth"

    @property
    def token_url(self) -> str:
        return f"https://graph.facebook.com/{self.graph_api_version}/oauth/access_token"

    @property
    def user_info_url(self) -> str:
        return f"https://graph.facebook.com/{self.graph_api_version}/me"

    async def fetch_profile(self, access_token: str) -> dict:
        async with self._client() as client:
            data = await self._get_json(
                client, self.user_info_url, access_token, params={"fields": ",".join(PROFILE_FIELDS)}
            )
        if not isinstance(data, dict):
            raise ProfileFetchError(self.name, "unexpected profile payload")
        return data
