"""Anti-CSRF ``state`` issuing and validation.

On initiation a random state is stored together with the provider it was
issued for (and the PKCE verifier when the provider needs one). The callback
must present the same state for the same provider; entries are single use
and expire after ``OAUTH_STATE_TTL`` seconds.
"""

from __future__ import annotations

import base64
import hashlib
import json
import logging
import secrets
import ssl
import time
from dataclasses import dataclass
from typing import Any, Protocol

import redis

from socialauth.core.config import BaseAppSettings

from .exceptions import InvalidStateError

logger = logging.getLogger(__name__)

STATE_KEY_PREFIX = "oauth:state:"


def generate_state() -> str:
    """Cryptographically secure, URL-safe state token (256 bits)."""
    return secrets.token_urlsafe(32)


def generate_code_verifier() -> str:
    return secrets.token_urlsafe(64)


def code_challenge_for(verifier: str) -> str:
    """PKCE S256 challenge for ``verifier``."""
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


@dataclass
class PendingAuthorization:
    """An authorization request waiting for its callback."""

    state: str
    provider: str
    created_at: float
    code_verifier: str | None = None

    def serialize(self) -> str:
        return json.dumps({
            "state": self.state,
            "provider": self.provider,
            "created_at": self.created_at,
            "code_verifier": self.code_verifier,
        })

    @classmethod
    def deserialize(cls, payload: str) -> PendingAuthorization:
        data = json.loads(payload)
        return cls(
            state=data["state"],
            provider=data["provider"],
            created_at=float(data["created_at"]),
            code_verifier=data.get("code_verifier"),
        )

    @property
    def code_challenge(self) -> str | None:
        return code_challenge_for(self.code_verifier) if self.code_verifier else None


class StateStore(Protocol):
    """Minimal key-value interface used for pending authorizations."""

    def set(self, key: str, value: str, ttl_seconds: int) -> None:  # pragma: no cover - protocol stub
        ...

    def pop(self, key: str) -> str | None:  # pragma: no cover - protocol stub
        ...


class RedisStateStore:
    """Redis-backed store, shared by every worker process."""

    def __init__(self, url: str, client: redis.Redis | None = None) -> None:
        if client is not None:
            self._client = client
            return
        options: dict[str, Any] = {
            "decode_responses": True,
            "socket_connect_timeout": 5,
            "socket_timeout": 5,
        }
        if url.startswith("rediss://"):
            options["ssl_cert_reqs"] = ssl.CERT_REQUIRED
        self._client = redis.Redis.from_url(url, **options)

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._client.setex(key, ttl_seconds, value)

    def pop(self, key: str) -> str | None:
        # GET + DELETE in one round trip so a state cannot be replayed
        pipe = self._client.pipeline()
        pipe.get(key)
        pipe.delete(key)
        value, _ = pipe.execute()
        return value


class InMemoryStateStore:
    """Process-local store used for tests and single-process development."""

    def __init__(self) -> None:
        self._data: dict[str, tuple[str, float]] = {}

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._data[key] = (value, time.time() + ttl_seconds)

    def pop(self, key: str) -> str | None:
        entry = self._data.pop(key, None)
        if entry is None:
            return None
        value, expires_at = entry
        if time.time() > expires_at:
            return None
        return value

    def __len__(self) -> int:
        return len(self._data)


class OAuthStateManager:
    """Issues and consumes ``state`` values for the authorization-code flow."""

    def __init__(self, store: StateStore, ttl_seconds: int = 600, enforce: bool = True) -> None:
        self.store = store
        self.ttl_seconds = ttl_seconds
        self.enforce = enforce

    def issue(self, provider: str, with_pkce: bool = False) -> PendingAuthorization:
        pending = PendingAuthorization(
            state=generate_state(),
            provider=provider,
            created_at=time.time(),
            code_verifier=generate_code_verifier() if with_pkce else None,
        )
        self.store.set(f"{STATE_KEY_PREFIX}{pending.state}", pending.serialize(), self.ttl_seconds)
        logger.debug("Issued OAuth state for %s", provider)
        return pending

    def consume(self, state: str | None, provider: str) -> PendingAuthorization | None:
        """Validate and invalidate ``state`` for ``provider``.

        Returns the pending authorization, or ``None`` when validation is
        disabled and nothing matched.

        Raises:
            InvalidStateError: state missing, unknown, expired or issued
                for another provider (only when enforcing)
        """
        if not state:
            return self._reject(provider, "state parameter missing")

        payload = self.store.pop(f"{STATE_KEY_PREFIX}{state}")
        if payload is None:
            return self._reject(provider, "unknown or expired state")

        pending = PendingAuthorization.deserialize(payload)
        if pending.provider != provider:
            return self._reject(provider, f"state was issued for {pending.provider}")
        return pending

    def _reject(self, provider: str, reason: str) -> None:
        if self.enforce:
            logger.warning("Rejected OAuth callback for %s: %s", provider, reason)
            raise InvalidStateError(provider, reason)
        logger.warning("OAuth state not validated for %s (%s); validation disabled", provider, reason)
        return None


def create_state_store(settings: BaseAppSettings) -> StateStore:
    backend = settings.OAUTH_STATE_BACKEND
    if backend == "redis":
        logger.info("OAuth state stored in Redis")
        return RedisStateStore(settings.REDIS_URL)
    if backend != "memory":
        logger.warning("Unknown OAUTH_STATE_BACKEND %r, using in-memory store", backend)
    return InMemoryStateStore()


def create_state_manager(settings: BaseAppSettings, store: StateStore | None = None) -> OAuthStateManager:
    return OAuthStateManager(
        store or create_state_store(settings),
        ttl_seconds=settings.OAUTH_STATE_TTL,
        enforce=settings.OAUTH_STATE_VALIDATION,
    )
