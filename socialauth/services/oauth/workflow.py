"""Post-authentication workflow.

Runs a provider callback through a fixed sequence of stages::

    INIT -> AUTHENTICATED -> PROFILE_TRANSFORMED -> USER_RESOLVED -> FINALIZED

A failing stage records the error and moves the state to ERROR; the
remaining stages are skipped but finalize always runs, so every caller gets
the same ``AuthWorkflowResult`` shape back.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Mapping

from socialauth.core.exceptions import SocialAuthException
from socialauth.core.security import create_access_token
from socialauth.models.models import User
from socialauth.models.schemas import AuthResult, CanonicalProfile
from socialauth.services.user_service import UserService

from .events import AuthEvents, EventEmitter, LoggingEventEmitter
from .exceptions import AuthenticationFailedError, StrategyNotFoundError
from .registry import StrategyRegistry
from .requests import CallbackRequest

logger = logging.getLogger(__name__)

TokenIssuer = Callable[[User, str], str]


class WorkflowStage(str, Enum):
    INIT = "init"
    AUTHENTICATED = "authenticated"
    PROFILE_TRANSFORMED = "profile_transformed"
    USER_RESOLVED = "user_resolved"
    FINALIZED = "finalized"
    ERROR = "error"


@dataclass
class AuthWorkflowState:
    provider: str
    request: CallbackRequest
    stage: WorkflowStage = WorkflowStage.INIT
    status: str = "pending"
    auth_result: AuthResult | None = None
    profile: dict[str, Any] | None = None
    user: User | None = None
    user_created: bool = False
    token: str | None = None
    error: SocialAuthException | None = None
    history: list[WorkflowStage] = field(default_factory=lambda: [WorkflowStage.INIT])

    @property
    def failed(self) -> bool:
        return self.error is not None

    def advance(self, stage: WorkflowStage) -> None:
        self.stage = stage
        self.history.append(stage)

    def fail(self, error: SocialAuthException) -> None:
        self.error = error
        self.status = "error"
        self.advance(WorkflowStage.ERROR)


@dataclass
class AuthWorkflowResult:
    """Uniform exit contract: ``{success, user?, token?, error?}``."""

    success: bool
    provider: str
    user: User | None = None
    token: str | None = None
    error: SocialAuthException | None = None
    profile: CanonicalProfile | None = None
    user_created: bool = False
    stages: list[WorkflowStage] = field(default_factory=list)

    @property
    def error_message(self) -> str | None:
        return self.error.message if self.error else None


def issue_access_token(user: User, provider: str) -> str:
    return create_access_token(str(user.id), provider=provider)


class AuthWorkflow:
    """
    Orchestrates a login callback from provider response to local user and token.

    Args:
        registry: Strategies keyed by provider name
        user_service: Resolves and persists the local user
        token_issuer: ``(user, provider) -> token``; JWT by default
        events: Receives lifecycle events; failures there never fail the login
    """

    def __init__(
        self,
        registry: StrategyRegistry,
        user_service: UserService,
        token_issuer: TokenIssuer | None = None,
        events: EventEmitter | None = None,
    ):
        self.registry = registry
        self.user_service = user_service
        self.token_issuer = token_issuer or issue_access_token
        self.events = events or LoggingEventEmitter()

    async def run(
        self,
        provider: str,
        request: CallbackRequest | Mapping[str, Any],
    ) -> AuthWorkflowResult:
        provider = provider.lower()
        if not isinstance(request, CallbackRequest):
            request = CallbackRequest.from_query(provider, request)
        state = AuthWorkflowState(provider=provider, request=request)

        self._emit(AuthEvents.FLOW_STARTED, {"provider": provider})

        for step in (self._authenticate, self._transform_profile, self._resolve_user):
            if state.failed:
                break
            try:
                await step(state)
            except SocialAuthException as e:
                state.fail(e)
            except Exception:
                logger.exception("Unexpected failure during %s login", provider)
                state.fail(AuthenticationFailedError(provider))

        result = self._finalize(state)
        result.stages = list(state.history)

        self._emit(AuthEvents.FLOW_COMPLETED, {"provider": provider, "success": result.success})
        return result

    async def _authenticate(self, state: AuthWorkflowState) -> None:
        if state.provider not in self.registry:
            raise StrategyNotFoundError(state.provider)
        self._emit(AuthEvents.STRATEGY_RESOLVED, {"provider": state.provider})

        state.auth_result = await self.registry.complete(state.request)
        state.advance(WorkflowStage.AUTHENTICATED)
        self._emit(
            AuthEvents.AUTHENTICATED,
            {"provider": state.provider, "provider_id": state.auth_result.profile.id},
        )

    async def _transform_profile(self, state: AuthWorkflowState) -> None:
        if state.auth_result is None:
            return
        state.profile = state.auth_result.profile.to_persistence()
        state.advance(WorkflowStage.PROFILE_TRANSFORMED)
        self._emit(AuthEvents.PROFILE_TRANSFORMED, {"provider": state.provider})

    async def _resolve_user(self, state: AuthWorkflowState) -> None:
        if state.profile is None:
            return
        provisioned = self.user_service.create_or_update(state.profile, state.provider)
        state.user = provisioned.user
        state.user_created = provisioned.created
        state.advance(WorkflowStage.USER_RESOLVED)
        self._emit(
            AuthEvents.USER_CREATED if provisioned.created else AuthEvents.USER_UPDATED,
            {"provider": state.provider, "user_id": provisioned.user.id},
        )

    def _finalize(self, state: AuthWorkflowState) -> AuthWorkflowResult:
        if not state.failed:
            try:
                state.token = self.token_issuer(state.user, state.provider)
            except Exception:
                logger.exception("Could not issue a token for %s login", state.provider)
                self._compensate(state)
                state.fail(AuthenticationFailedError(state.provider))

        state.advance(WorkflowStage.FINALIZED)
        if state.failed:
            error = state.error
            logger.warning("Login via %s failed: [%s] %s", state.provider, error.code, error.message)
            self._emit(
                AuthEvents.ERROR,
                {"provider": state.provider, "code": error.code, "message": error.message},
            )
            return AuthWorkflowResult(success=False, provider=state.provider, error=error)

        state.status = "success"
        self._emit(AuthEvents.SUCCESS, {"provider": state.provider, "user_id": state.user.id})
        return AuthWorkflowResult(
            success=True,
            provider=state.provider,
            user=state.user,
            token=state.token,
            profile=state.auth_result.profile if state.auth_result else None,
            user_created=state.user_created,
        )

    def _compensate(self, state: AuthWorkflowState) -> None:
        """Undo user creation. An updated user is left as is."""
        if not state.user_created or state.user is None:
            return
        user_id = state.user.id
        try:
            self.user_service.delete(state.user)
            logger.info("Rolled back user %s created during failed %s login", user_id, state.provider)
        except Exception:
            logger.exception("Could not roll back user %s", user_id)
        state.user = None
        state.user_created = False

    def _emit(self, name: str, payload: dict[str, Any]) -> None:
        try:
            self.events.emit(name, payload)
        except Exception:
            logger.warning("Event %s could not be delivered", name, exc_info=True)
