"""Twitter / X OAuth 2.0 strategy (authorization code with PKCE)."""
from typing import Any

from ..normalizer import first_of, name_part
from .base import OAuthStrategy


class TwitterOAuthStrategy(OAuthStrategy):
    """
    Twitter requires PKCE for every authorization request.

    The code verifier is generated with the state on initiation and handed
    back to ``exchange_code_for_token`` on callback. Confidential clients
    authenticate the token request with HTTP Basic.
    """

    name = "twitter"
    display_name = "Twitter"
    default_scopes = ("tweet.read", "users.read")
    uses_pkce = True
    profile_mapping = {
        "id": "data.id",
        "email": "data.email",
        "first_name": name_part("data.name", "first"),
        "last_name": name_part("data.name", "rest"),
        "display_name": first_of("data.name", "data.username"),
        "picture": "data.profile_image_url",
        "verified": "data.verified",
    }

    @property
    def authorization_url(self) -> str:
        return "https://twitter.com/i/oauth2/authorize"

    @property
    def token_url(self) -> str:
        return "https://api.twitter.com/2/oauth2/token"

    @property
    def user_info_url(self) -> str:
        return "https://api.twitter.com/2/users/me?user.fields=profile_image_url,verified"

    def token_request(self, code: str, code_verifier: str | None = None) -> dict[str, Any]:
        data = {
            "code": code,
            "grant_type": "authorization_code",
            "redirect_uri": self.redirect_uri,
            "client_id": self.client_id,
        }
        if code_verifier:
            data["code_verifier"] = code_verifier
        return {
            "data": data,
            "headers": {"Accept": "application/json"},
            "auth": (self.client_id, self.client_secret),
        }
