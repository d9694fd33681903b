"""Factory function for creating the configured strategy registry."""
import logging

import httpx
from pydantic import ValidationError

from socialauth.core.config import SUPPORTED_PROVIDERS, BaseAppSettings
from socialauth.core.exceptions import InvalidConfigurationError
from socialauth.models.schemas import ProviderCredentials

from .providers import STRATEGY_CLASSES
from .registry import StrategyRegistry
from .state import OAuthStateManager, create_state_manager

logger = logging.getLogger(__name__)


def build_credentials(settings: BaseAppSettings, provider: str) -> ProviderCredentials | None:
    """Credentials for ``provider``, or ``None`` when it is not configured."""
    options = settings.provider_options(provider)
    if not options.get("client_id") or not options.get("client_secret"):
        return None
    extras = {
        key: value
        for key, value in options.items()
        if key not in ("client_id", "client_secret", "callback_url", "scope")
    }
    return ProviderCredentials(
        client_id=options["client_id"],
        client_secret=options["client_secret"],
        callback_url=options["callback_url"],
        scope=options.get("scope"),
        options=extras,
    )


def create_strategy_registry(
    settings: BaseAppSettings,
    http_client: httpx.AsyncClient | None = None,
    state_manager: OAuthStateManager | None = None,
) -> StrategyRegistry:
    """
    Factory function to create the strategy registry.

    Each supported provider is validated on its own: a provider without
    client id/secret is disabled with a warning, one with invalid options is
    logged and skipped. Neither stops the others from loading.

    Args:
        settings: Application settings
        http_client: Client shared by every strategy (tests inject a mock transport)
        state_manager: State manager; built from settings when omitted

    Returns:
        Configured StrategyRegistry instance
    """
    registry = StrategyRegistry(state_manager or create_state_manager(settings))

    for provider in SUPPORTED_PROVIDERS:
        strategy_cls = STRATEGY_CLASSES[provider]
        try:
            credentials = build_credentials(settings, provider)
            if credentials is None:
                logger.warning(f"{strategy_cls.display_name} OAuth not configured (missing client ID/secret)")
                continue
            strategy = strategy_cls(
                credentials, http_client=http_client, timeout=settings.OAUTH_HTTP_TIMEOUT
            )
        except InvalidConfigurationError as e:
            logger.error(f"{strategy_cls.display_name} OAuth disabled: {e.message}")
            continue
        except ValidationError as e:
            logger.error(
                f"{strategy_cls.display_name} OAuth disabled: invalid credentials ({e.error_count()} errors)"
            )
            continue

        registry.register(strategy)
        logger.info(f"{strategy_cls.display_name} OAuth provider enabled")

    if not len(registry):
        logger.warning("No OAuth providers configured; social login is unavailable")
    return registry
