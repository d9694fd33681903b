"""Request-scoped dependencies for the OAuth routes."""
from typing import Annotated, TypeAlias

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from socialauth.core.config import BaseAppSettings
from socialauth.core.exceptions import InvalidConfigurationError
from socialauth.db.session import get_db
from socialauth.services.oauth.registry import StrategyRegistry
from socialauth.services.oauth.workflow import AuthWorkflow
from socialauth.services.user_service import UserService

DbDep: TypeAlias = Annotated[Session, Depends(get_db)]


def get_app_settings(request: Request) -> BaseAppSettings:
    return request.app.state.settings


def get_strategy_registry(request: Request) -> StrategyRegistry:
    """The registry built once by ``create_app``; there is no global fallback."""
    registry = getattr(request.app.state, "strategy_registry", None)
    if registry is None:
        raise InvalidConfigurationError("strategy_registry", reason="application started without OAuth providers")
    return registry


SettingsDep: TypeAlias = Annotated[BaseAppSettings, Depends(get_app_settings)]
RegistryDep: TypeAlias = Annotated[StrategyRegistry, Depends(get_strategy_registry)]


def get_auth_workflow(request: Request, registry: RegistryDep, db: DbDep) -> AuthWorkflow:
    return AuthWorkflow(
        registry,
        UserService(db),
        events=getattr(request.app.state, "auth_events", None),
    )


WorkflowDep: TypeAlias = Annotated[AuthWorkflow, Depends(get_auth_workflow)]
