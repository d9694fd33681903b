"""Abstract base class for OAuth 2.0 strategies.

Implements the authorization code grant once. Subclasses describe a
provider with data: endpoints, default scopes, extra authorization
parameters and a profile mapping table. Only providers whose profile needs
more than one call override ``fetch_profile``.
"""
import hashlib
import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Mapping
from urllib.parse import urlencode

import httpx

from socialauth.models.schemas import AuthResult, CanonicalProfile, ProviderCredentials

from ..exceptions import MissingAuthorizationCodeError, ProfileFetchError, TokenExchangeError
from ..normalizer import ProfileMapping, normalize_profile
from ..requests import CallbackRequest

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


def _code_hash(code: str) -> str:
    return hashlib.sha256(code.encode()).hexdigest()[:12]


class OAuthStrategy(ABC):
    """
    Base class for OAuth 2.0 provider strategies.

    Implements the OAuth 2.0 authorization code flow.
    Subclasses must provide the provider endpoints and mapping table.
    """

    name: str = "oauth2"
    display_name: str = "OAuth 2.0"
    default_scopes: tuple[str, ...] = ()
    scope_separator: str = " "
    profile_mapping: ProfileMapping = {}
    uses_pkce: bool = False

    def __init__(
        self,
        credentials: ProviderCredentials,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        """
        Initialize OAuth strategy.

        Args:
            credentials: Client registration for this provider
            http_client: Shared client; when omitted one is opened per call
            timeout: Seconds allowed for each outbound call
        """
        self.credentials = credentials
        self.http_client = http_client
        self.timeout = timeout

    @property
    def client_id(self) -> str:
        return self.credentials.client_id

    @property
    def client_secret(self) -> str:
        return self.credentials.client_secret

    @property
    def redirect_uri(self) -> str:
        return self.credentials.callback_url

    @property
    def scopes(self) -> list[str]:
        """Configured scopes, or the provider defaults."""
        return list(self.credentials.scope or self.default_scopes)

    @property
    @abstractmethod
    def authorization_url(self) -> str:
        """Provider's authorization endpoint."""
        pass

    @property
    @abstractmethod
    def token_url(self) -> str:
        """Provider's token exchange endpoint."""
        pass

    @property
    @abstractmethod
    def user_info_url(self) -> str:
        """Provider's user info endpoint."""
        pass

    def extra_authorization_params(self) -> dict[str, str]:
        """Provider specific query parameters for the authorization URL."""
        return {}

    def build_authorization_url(self, state: str, code_challenge: str | None = None) -> str:
        """
        Generate authorization URL for OAuth flow.

        Args:
            state: CSRF protection token
            code_challenge: PKCE S256 challenge, for providers that use PKCE

        Returns:
            Full authorization URL with query parameters
        """
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": self.scope_separator.join(self.scopes),
            "state": state,
            **self.extra_authorization_params(),
        }
        if code_challenge:
            params["code_challenge"] = code_challenge
            params["code_challenge_method"] = "S256"

        return f"{self.authorization_url}?{urlencode(params)}"

    @asynccontextmanager
    async def _client(self) -> AsyncIterator[httpx.AsyncClient]:
        if self.http_client is not None:
            yield self.http_client
            return
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            yield client

    def token_request(self, code: str, code_verifier: str | None = None) -> dict[str, Any]:
        """Keyword arguments for the token POST (``data``, ``headers``, ``auth``)."""
        data = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "code": code,
            "grant_type": "authorization_code",
            "redirect_uri": self.redirect_uri,
        }
        if code_verifier:
            data["code_verifier"] = code_verifier
        return {"data": data, "headers": {"Accept": "application/json"}}

    async def exchange_code_for_token(self, code: str, code_verifier: str | None = None) -> str:
        """
        Exchange authorization code for access token.

        Single attempt; failures surface immediately.

        Args:
            code: Authorization code from OAuth callback
            code_verifier: PKCE verifier issued with the state

        Returns:
            The access token

        Raises:
            TokenExchangeError: non-2xx answer, transport failure or no token
        """
        code_hash = _code_hash(code)
        logger.info(
            "Token exchange attempt | provider=%s code_hash=%s client_id=%s redirect_uri=%s",
            self.name, code_hash, self.client_id, self.redirect_uri,
        )

        async with self._client() as client:
            try:
                response = await client.post(
                    self.token_url, timeout=self.timeout, **self.token_request(code, code_verifier)
                )
                response.raise_for_status()
                payload = response.json()
            except httpx.HTTPStatusError as e:
                logger.error(
                    "Token exchange failed | provider=%s code_hash=%s status=%s response=%s",
                    self.name, code_hash, e.response.status_code, e.response.text[:500],
                )
                raise TokenExchangeError(self.name, f"HTTP {e.response.status_code}", e.response.status_code) from e
            except httpx.TimeoutException as e:
                logger.error("Token exchange timed out | provider=%s code_hash=%s", self.name, code_hash)
                raise TokenExchangeError(self.name, "request timed out") from e
            except httpx.RequestError as e:
                logger.error("Token exchange request failed | provider=%s error=%s", self.name, e)
                raise TokenExchangeError(self.name, "failed to connect to OAuth provider") from e
            except ValueError as e:
                raise TokenExchangeError(self.name, "token response is not JSON") from e

        access_token = payload.get("access_token") if isinstance(payload, Mapping) else None
        if not access_token:
            # GitHub answers 200 with {"error": "bad_verification_code"}
            error = payload.get("error") if isinstance(payload, Mapping) else None
            logger.error("Token exchange returned no access token | provider=%s error=%s", self.name, error)
            raise TokenExchangeError(self.name, f"no access token received ({error})" if error else "no access token received")

        logger.info("Token exchange SUCCESS | provider=%s code_hash=%s", self.name, code_hash)
        return access_token

    def profile_headers(self, access_token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {access_token}", "Accept": "application/json"}

    async def _get_json(
        self,
        client: httpx.AsyncClient,
        url: str,
        access_token: str,
        params: dict[str, str] | None = None,
    ) -> Any:
        try:
            response = await client.get(
                url, headers=self.profile_headers(access_token), params=params, timeout=self.timeout
            )
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                "User info fetch failed | provider=%s url=%s status=%s response=%s",
                self.name, url, e.response.status_code, e.response.text[:500],
            )
            raise ProfileFetchError(self.name, f"HTTP {e.response.status_code}", e.response.status_code) from e
        except httpx.TimeoutException as e:
            logger.error("User info request timed out | provider=%s url=%s", self.name, url)
            raise ProfileFetchError(self.name, "request timed out") from e
        except httpx.RequestError as e:
            logger.error("User info request failed | provider=%s error=%s", self.name, e)
            raise ProfileFetchError(self.name, "failed to connect to OAuth provider") from e
        except ValueError as e:
            raise ProfileFetchError(self.name, "profile response is not JSON") from e

    async def fetch_profile(self, access_token: str) -> dict[str, Any]:
        """
        Fetch the raw provider profile using the access token.

        Raises:
            ProfileFetchError: If fetching user info fails
        """
        async with self._client() as client:
            data = await self._get_json(client, self.user_info_url, access_token)
        if not isinstance(data, dict):
            raise ProfileFetchError(self.name, "unexpected profile payload")
        return data

    def normalize_profile(self, raw: Mapping[str, Any]) -> CanonicalProfile:
        return normalize_profile(self.name, raw, self.profile_mapping)

    @staticmethod
    def extract_code(source: Any) -> str | None:
        """Find an authorization code on a callback request, a mapping or a web request."""
        if isinstance(source, CallbackRequest):
            return source.code
        if isinstance(source, Mapping):
            code = source.get("code")
        else:
            query = getattr(source, "query_params", None)
            code = query.get("code") if query is not None else None
        return code if isinstance(code, str) and code else None

    async def authenticate(self, source: Any, code_verifier: str | None = None) -> AuthResult:
        """
        Complete the flow for a callback: code -> token -> profile -> canonical profile.

        Args:
            source: CallbackRequest, mapping with ``code`` or a request with ``query_params``
            code_verifier: PKCE verifier recorded with the state

        Raises:
            MissingAuthorizationCodeError: No code available (no network call is made)
            TokenExchangeError: Token endpoint failure
            ProfileFetchError: Profile endpoint failure or a profile without an account id
        """
        code = self.extract_code(source)
        if not code:
            reason = source.provider_error if isinstance(source, CallbackRequest) else None
            raise MissingAuthorizationCodeError(self.name, reason)

        access_token = await self.exchange_code_for_token(code, code_verifier)
        raw = await self.fetch_profile(access_token)
        profile = self.normalize_profile(raw)
        if not profile.id:
            raise ProfileFetchError(self.name, "profile has no account id")

        logger.info("Authenticated via %s: provider_id=%s", self.name, profile.id)
        return AuthResult(provider=self.name, access_token=access_token, profile=profile)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} provider={self.name}>"
