"""LinkedIn (v2 API) strategy.

The lite profile and the email address live behind two endpoints; both are
fetched, one after the other, and the email is merged into the raw profile
under ``email_address`` before normalization.
"""
import logging
from typing import Any, Mapping

from ..exceptions import ProfileFetchError
from ..normalizer import lookup
from .base import OAuthStrategy

logger = logging.getLogger(__name__)

PROFILE_URL = (
    "https://api.linkedin.com/v2/me"
    "?projection=(id,firstName,lastName,profilePicture(displayImage~:playableStreams))"
)
EMAIL_URL = "https://api.linkedin.com/v2/emailAddress?q=members&projection=(elements*(handle~))"


def _preferred_locale(raw: Mapping[str, Any], field: str) -> str | None:
    locale = lookup(raw, f"{field}.preferredLocale")
    if not isinstance(locale, Mapping) or not locale.get("language"):
        return None
    if locale.get("country"):
        return f"{locale['language']}_{locale['country']}"
    return locale["language"]


def localized(field: str):
    """Resolve a LinkedIn ``MultiLocaleString`` in its preferred locale."""

    def resolve(raw: Mapping[str, Any]) -> str | None:
        values = lookup(raw, f"{field}.localized")
        if not isinstance(values, Mapping) or not values:
            return None
        key = _preferred_locale(raw, field)
        if key and key in values:
            return values[key]
        return next(iter(values.values()))

    return resolve


def _display_name(raw: Mapping[str, Any]) -> str:
    parts = [localized("firstName")(raw), localized("lastName")(raw)]
    return " ".join(p for p in parts if isinstance(p, str) and p)


def _locale_tag(raw: Mapping[str, Any]) -> str | None:
    return _preferred_locale(raw, "firstName")


def _largest_picture(raw: Mapping[str, Any]) -> str | None:
    elements = lookup(raw, "profilePicture.displayImage~.elements")
    if not isinstance(elements, list) or not elements:
        return None
    # Streams are ordered smallest first
    return lookup(elements[-1], "identifiers.0.identifier")


class LinkedInOAuthStrategy(OAuthStrategy):
    name = "linkedin"
    display_name = "LinkedIn"
    default_scopes = ("r_liteprofile", "r_emailaddress")
    profile_mapping = {
        "id": "id",
        "email": "email_address",
        "first_name": localized("firstName"),
        "last_name": localized("lastName"),
        "display_name": _display_name,
        "picture": _largest_picture,
        "locale": _locale_tag,
    }

    @property
    def authorization_url(self) -> str:
        return "https://www.linkedin.com/oauth/v2/authorization"

    @property
    def token_url(self) -> str:
        return "https://www.linkedin.com/oauth/v2/accessToken"

    @property
    def user_info_url(self) -> str:
        return PROFILE_URL

    async def fetch_profile(self, access_token: str) -> dict[str, Any]:
        async with self._client() as client:
            profile = await self._get_json(client, PROFILE_URL, access_token)
            if not isinstance(profile, dict):
                raise ProfileFetchError(self.name, "unexpected profile payload")
            emails = await self._get_json(client, EMAIL_URL, access_token)

        email = lookup(emails, "elements.0.handle~.emailAddress")
        if not email:
            logger.warning("LinkedIn returned no email address for member %s", profile.get("id"))
        profile["email_address"] = email
        return profile
