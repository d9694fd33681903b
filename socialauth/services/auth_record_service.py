"""Persistence of provider identities (``AuthRecord``)."""
import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from socialauth.models.models import AuthRecord

logger = logging.getLogger(__name__)


@dataclass
class UpsertResult:
    record: AuthRecord
    created: bool


class AuthRecordService:
    """Create-or-update of the ``(provider, provider_id)`` -> user link."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, provider: str, provider_id: str) -> AuthRecord | None:
        stmt = select(AuthRecord).where(
            AuthRecord.provider == provider,
            AuthRecord.provider_id == provider_id,
        )
        return self.db.scalar(stmt)

    def list_for_user(self, user_id: int) -> list[AuthRecord]:
        stmt = select(AuthRecord).where(AuthRecord.user_id == user_id).order_by(AuthRecord.created_at)
        return list(self.db.scalars(stmt))

    def upsert(
        self,
        provider: str,
        provider_id: str,
        profile: dict[str, Any],
        user_id: int | None = None,
    ) -> UpsertResult:
        """
        Create the record for ``(provider, provider_id)`` or update the existing one.

        Core fields are only written when they changed; ``metadata.provider``
        is refreshed on every call. A create that loses a race against a
        concurrent login (unique constraint) falls back to updating the
        winner's row.
        """
        record = self.get(provider, provider_id)
        if record is not None:
            self._apply(record, provider, profile, user_id)
            self.db.commit()
            return UpsertResult(record=record, created=False)

        record = AuthRecord(
            provider=provider,
            provider_id=provider_id,
            user_id=user_id,
            profile=dict(profile),
            meta={"provider": provider},
        )
        self.db.add(record)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.info("Auth record for %s/%s created concurrently, updating instead", provider, provider_id)
            record = self.get(provider, provider_id)
            if record is None:
                raise
            self._apply(record, provider, profile, user_id)
            self.db.commit()
            return UpsertResult(record=record, created=False)

        self.db.refresh(record)
        logger.info("Linked %s identity %s to user %s", provider, provider_id, user_id)
        return UpsertResult(record=record, created=True)

    def delete_for_user(self, user_id: int) -> int:
        result = self.db.execute(delete(AuthRecord).where(AuthRecord.user_id == user_id))
        self.db.commit()
        return result.rowcount or 0

    @staticmethod
    def _apply(record: AuthRecord, provider: str, profile: dict[str, Any], user_id: int | None) -> None:
        if record.profile != profile:
            record.profile = dict(profile)
        if user_id is not None and record.user_id != user_id:
            record.user_id = user_id
        record.meta["provider"] = provider
