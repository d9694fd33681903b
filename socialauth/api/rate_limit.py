import logging

from slowapi import Limiter
from slowapi.util import get_remote_address

from socialauth.core.config import settings

logger = logging.getLogger(__name__)


def _create_storage_uri() -> str:
    """Shared Redis counters in production, process memory elsewhere."""
    if settings.ENV.lower() != "prod" or not settings.REDIS_URL:
        logger.info("Rate limiter using in-memory storage (dev/test mode)")
        return "memory://"
    return settings.REDIS_URL


limiter = Limiter(key_func=get_remote_address, storage_uri=_create_storage_uri())

RATE_LIMITS = {
    "oauth_login": settings.OAUTH_RATE_LIMIT,
    "oauth_callback": settings.OAUTH_RATE_LIMIT,
}
