"""OAuth 2.0 social login.

One strategy per provider behind a shared authorization-code implementation,
a registry that dispatches initiation and callback requests by provider
name, and the workflow that turns a callback into a local user and token.

Providers:
- Google (OAuth 2.0 + OpenID Connect)
- Facebook (Graph API)
- GitHub
- LinkedIn (profile + email address)
- Microsoft (identity platform v2.0)
- Twitter (OAuth 2.0 with PKCE)
"""
from .events import AuthEvents, EventEmitter, LoggingEventEmitter
from .exceptions import (
    AuthenticationFailedError,
    InvalidStateError,
    MissingAuthorizationCodeError,
    OAuthError,
    ProfileFetchError,
    StrategyNotFoundError,
    TokenExchangeError,
    UnknownProviderError,
)
from .factory import create_strategy_registry
from .providers import STRATEGY_CLASSES, OAuthStrategy
from .registry import StrategyRegistry
from .requests import AuthorizationRedirect, CallbackRequest, InitiationRequest, parse_auth_request
from .workflow import AuthWorkflow, AuthWorkflowResult, WorkflowStage

__all__ = [
    # Exceptions
    "OAuthError",
    "MissingAuthorizationCodeError",
    "TokenExchangeError",
    "ProfileFetchError",
    "UnknownProviderError",
    "StrategyNotFoundError",
    "InvalidStateError",
    "AuthenticationFailedError",
    # Strategies
    "OAuthStrategy",
    "STRATEGY_CLASSES",
    # Requests
    "InitiationRequest",
    "CallbackRequest",
    "AuthorizationRedirect",
    "parse_auth_request",
    # Registry and workflow
    "StrategyRegistry",
    "create_strategy_registry",
    "AuthWorkflow",
    "AuthWorkflowResult",
    "WorkflowStage",
    # Events
    "AuthEvents",
    "EventEmitter",
    "LoggingEventEmitter",
]
