"""Google OAuth 2.0 / OpenID Connect strategy."""
from .base import OAuthStrategy


class GoogleOAuthStrategy(OAuthStrategy):
    """Google OAuth 2.0 / OpenID Connect implementation."""

    name = "google"
    display_name = "Google"
    default_scopes = ("profile", "email")
    profile_mapping = {
        "id": "sub",
        "email": "email",
        "first_name": "given_name",
        "last_name": "family_name",
        "display_name": "name",
        "picture": "picture",
        "locale": "locale",
        "verified": "email_verified",
    }

    @property
    def authorization_url(self) -> str:
        return "https://accounts.google.com/o/oauth2/v2/auth"

    @property
    def token_url(self) -> str:
        return "https://oauth2.googleapis.com/token"

    @property
    def user_info_url(self) -> str:
        return "https://www.googleapis.com/oauth2/v3/userinfo"

    def extra_authorization_params(self) -> dict[str, str]:
        return {
            "access_type": "offline",  # Request refresh token
            "prompt": "consent",
        }
