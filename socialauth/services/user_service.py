"""Local user provisioning from canonical profiles."""
import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from socialauth.core.exceptions import UserNotFoundError, UserProvisioningError
from socialauth.models.models import AuthRecord, User

from .auth_record_service import AuthRecordService

logger = logging.getLogger(__name__)


@dataclass
class ProvisionResult:
    user: User
    created: bool
    auth_record: AuthRecord | None = None


def _clean_email(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    email = value.strip().lower()
    return email or None


class UserService:
    """Service for creating and updating users that sign in with a provider."""

    def __init__(self, db: Session):
        self.db = db
        self.auth_records = AuthRecordService(db)

    def get(self, user_id: int) -> User:
        user = self.db.get(User, user_id)
        if user is None:
            raise UserNotFoundError(str(user_id))
        return user

    def get_by_email(self, email: str | None) -> User | None:
        email = _clean_email(email)
        if not email:
            return None
        return self.db.scalar(select(User).where(func.lower(User.email) == email))

    def get_by_identity(self, provider: str, provider_id: str) -> User | None:
        """User already linked to ``(provider, provider_id)``."""
        if not provider_id:
            return None
        record = self.auth_records.get(provider, provider_id)
        return record.user if record is not None else None

    def create(self, profile: dict[str, Any], provider: str) -> User:
        """Insert a user from a snake_case profile, tagged with ``provider``."""
        user = User(
            email=_clean_email(profile.get("email")),
            first_name=profile.get("first_name") or "",
            last_name=profile.get("last_name") or "",
            meta={"provider": provider},
        )
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        logger.info(f"New user created via {provider}: id={user.id}")
        return user

    def update_metadata(self, user: User, profile: dict[str, Any], provider: str) -> User:
        """Merge the login into an existing user.

        Names are only filled in when the user has none; ``metadata.provider``
        always records the provider used last.
        """
        if not user.first_name and profile.get("first_name"):
            user.first_name = profile["first_name"]
        if not user.last_name and profile.get("last_name"):
            user.last_name = profile["last_name"]
        if not user.email and _clean_email(profile.get("email")):
            user.email = _clean_email(profile.get("email"))
        user.meta["provider"] = provider
        self.db.commit()
        logger.info(f"Existing user logged in via {provider}: id={user.id}")
        return user

    def delete(self, user: User) -> None:
        user_id = user.id
        self.db.delete(user)
        self.db.commit()
        logger.info("Deleted user %s", user_id)

    def create_or_update(self, profile: dict[str, Any], provider: str) -> ProvisionResult:
        """
        Resolve the local user for a login and link the provider identity.

        Lookup is by email, then (for providers that share no email) by the
        existing auth record. A create that loses the race on the unique
        email constraint rolls back and updates the winner instead. A user created
        here is removed again if linking the provider identity fails.

        Raises:
            UserProvisioningError: database failure while creating or updating
        """
        provider_id = str(profile.get("id") or "")
        created_user = None
        try:
            user = self.get_by_email(profile.get("email")) or self.get_by_identity(provider, provider_id)
            created = False
            if user is None:
                try:
                    user = self.create(profile, provider)
                    created, created_user = True, user
                except IntegrityError:
                    self.db.rollback()
                    user = self.get_by_email(profile.get("email"))
                    if user is None:
                        raise
                    logger.info("User for %s login created concurrently, updating instead", provider)
            if not created:
                user = self.update_metadata(user, profile, provider)

            record = None
            if provider_id:
                record = self.auth_records.upsert(provider, provider_id, profile, user.id).record
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("User provisioning failed for %s login", provider)
            if created_user is not None:
                self._discard(created_user, provider)
            raise UserProvisioningError(provider, type(e).__name__) from e

        return ProvisionResult(user=user, created=created, auth_record=record)

    def _discard(self, user: User, provider: str) -> None:
        """Remove a user created by a login whose identity link failed."""
        try:
            self.delete(user)
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Could not remove user created during failed %s login", provider)
