"""Registry of configured provider strategies.

Maps lower-case provider names to ``OAuthStrategy`` instances and routes an
auth request either to the initiation branch (issue state, build the
provider URL) or to the callback branch (consume state, run the strategy).
"""
import logging
from typing import Any, Mapping

from socialauth.models.schemas import AuthResult

from .exceptions import UnknownProviderError
from .providers.base import OAuthStrategy
from .requests import (
    AuthorizationRedirect,
    AuthRequest,
    CallbackRequest,
    InitiationRequest,
    parse_auth_request,
)
from .state import OAuthStateManager

logger = logging.getLogger(__name__)


class StrategyRegistry:
    """Named collection of strategies sharing one state manager."""

    def __init__(self, state_manager: OAuthStateManager):
        self.state_manager = state_manager
        self._strategies: dict[str, OAuthStrategy] = {}

    def register(self, strategy: OAuthStrategy, name: str | None = None) -> None:
        key = (name or strategy.name).lower()
        self._strategies[key] = strategy
        logger.info(f"Registered OAuth provider: {key}")

    def get(self, name: str) -> OAuthStrategy:
        """
        Get a registered strategy.

        Raises:
            UnknownProviderError: If provider not registered
        """
        strategy = self.find(name)
        if strategy is None:
            raise UnknownProviderError(name)
        return strategy

    def find(self, name: str | None) -> OAuthStrategy | None:
        if not name:
            return None
        return self._strategies.get(name.lower())

    def providers(self) -> list[str]:
        return list(self._strategies)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._strategies

    def __len__(self) -> int:
        return len(self._strategies)

    def begin(self, provider: str) -> AuthorizationRedirect:
        """Issue a state for ``provider`` and build its authorization URL."""
        strategy = self.get(provider)
        pending = self.state_manager.issue(strategy.name, with_pkce=strategy.uses_pkce)
        url = strategy.build_authorization_url(pending.state, pending.code_challenge)
        logger.info("Starting %s login", strategy.name)
        return AuthorizationRedirect(provider=strategy.name, url=url, state=pending.state)

    async def complete(self, request: CallbackRequest) -> AuthResult:
        """Validate the callback state, then let the strategy finish the flow."""
        strategy = self.get(request.provider)
        pending = self.state_manager.consume(request.state, strategy.name)
        code_verifier = pending.code_verifier if pending else None
        return await strategy.authenticate(request, code_verifier=code_verifier)

    async def authenticate(
        self,
        provider: str,
        request: AuthRequest | Mapping[str, Any],
    ) -> AuthorizationRedirect | AuthResult:
        """
        Initiate or complete a login for ``provider``.

        Args:
            provider: Provider name, case-insensitive
            request: Parsed request variant, or the raw query parameters

        Returns:
            ``AuthorizationRedirect`` for an initiation, ``AuthResult`` for a callback

        Raises:
            UnknownProviderError: provider not registered
            InvalidStateError: callback state rejected
            OAuthError: any strategy failure
        """
        strategy = self.get(provider)
        if not isinstance(request, (InitiationRequest, CallbackRequest)):
            request = parse_auth_request(strategy.name, request)

        if isinstance(request, InitiationRequest):
            return self.begin(strategy.name)
        return await self.complete(request)
