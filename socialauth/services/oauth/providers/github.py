"""GitHub OAuth App strategy."""
import logging
from typing import Any

from ..exceptions import ProfileFetchError
from ..normalizer import first_of, name_part
from .base import OAuthStrategy

logger = logging.getLogger(__name__)

GITHUB_API = "https://api.github.com"


class GitHubOAuthStrategy(OAuthStrategy):
    name = "github"
    display_name = "GitHub"
    default_scopes = ("user:email",)
    profile_mapping = {
        "id": "id",
        "email": "email",
        "first_name": name_part("name", "first"),
        "last_name": name_part("name", "rest"),
        "display_name": first_of("name", "login"),
        "picture": "avatar_url",
    }

    @property
    def authorization_url(self) -> str:
        return "https://github.com/login/oauth/authorize"

    @property
    def token_url(self) -> str:
        return "https://github.com/login/oauth/access_token"

    @property
    def user_info_url(self) -> str:
        return f"{GITHUB_API}/user"

    def profile_headers(self, access_token: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/vnd.github+json",
            "User-Agent": "socialauth",
        }

    async def fetch_profile(self, access_token: str) -> dict[str, Any]:
        async with self._client() as client:
            data = await self._get_json(client, self.user_info_url, access_token)
            if not isinstance(data, dict):
                raise ProfileFetchError(self.name, "unexpected profile payload")
            # /user only exposes a public email; the primary one needs /user/emails
            if not data.get("email"):
                data["email"] = await self._primary_email(client, access_token)
        return data

    async def _primary_email(self, client, access_token: str) -> str | None:
        try:
            emails = await self._get_json(client, f"{GITHUB_API}/user/emails", access_token)
        except ProfileFetchError as e:
            logger.warning("GitHub email lookup failed, continuing without email: %s", e.message)
            return None
        if not isinstance(emails, list):
            return None
        verified = [e for e in emails if isinstance(e, dict) and e.get("verified", True)]
        for entry in verified:
            if entry.get("primary"):
                return entry.get("email")
        return verified[0].get("email") if verified else None
