from __future__ import annotations

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

import jwt
from jwt import ExpiredSignatureError
from jwt import InvalidTokenError as PyJWTInvalidTokenError

from socialauth.core.config import settings


class TokenType(str, Enum):
    ACCESS = "access"


ALGORITHM = "HS256"


class TokenValidationError(Exception):
    """Raised when a token cannot be validated."""


class TokenExpiredError(TokenValidationError):
    """Raised when a token is expired."""


def create_access_token(
    subject: str,
    provider: str | None = None,
    expires_minutes: int | None = None,
    secret: str | None = None,
) -> str:
    minutes = expires_minutes if expires_minutes is not None else settings.JWT_TTL_MINUTES
    extra = {"provider": provider} if provider else {}
    return _create_token(subject, timedelta(minutes=minutes), TokenType.ACCESS, extra, secret)


def decode_token(
    token: str,
    expected_type: TokenType = TokenType.ACCESS,
    secret: str | None = None,
) -> dict[str, Any]:
    try:
        payload = jwt.decode(token, secret or settings.JWT_SECRET, algorithms=[ALGORITHM])
    except ExpiredSignatureError as exc:
        raise TokenExpiredError("Token has expired") from exc
    except PyJWTInvalidTokenError as exc:
        raise TokenValidationError("Token is invalid") from exc
    token_type = payload.get("type", TokenType.ACCESS.value)
    if token_type != expected_type.value:
        raise TokenValidationError("Token type mismatch")
    return payload


def _create_token(
    subject: str,
    delta: timedelta,
    token_type: TokenType,
    extra: dict[str, Any],
    secret: str | None,
) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": subject,
        "iat": now,
        "exp": now + delta,
        "type": token_type.value,
        **extra,
    }
    return jwt.encode(payload, secret or settings.JWT_SECRET, algorithm=ALGORITHM)
