from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import JSON, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.ext.mutable import MutableDict
from sqlalchemy.orm import Mapped, mapped_column, relationship

from socialauth.db.base_class import Base, TimestampMixin


def generate_auth_id() -> str:
    return f"auth_{uuid.uuid4().hex}"


class User(TimestampMixin, Base):
    """Local user materialised from a social login.

    ``email`` is unique so two concurrent first logins for the same address
    cannot both insert; the loser falls back to updating the winner's row.
    It is nullable because some providers (Twitter) never disclose one.
    """

    __tablename__ = "user"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    email: Mapped[str | None] = mapped_column(String(255), unique=True, index=True, nullable=True)
    first_name: Mapped[str] = mapped_column(String(120), default="", nullable=False)
    last_name: Mapped[str] = mapped_column(String(120), default="", nullable=False)
    # "metadata" is reserved on declarative classes
    meta: Mapped[dict[str, Any]] = mapped_column(
        "metadata", MutableDict.as_mutable(JSON), default=dict, nullable=False
    )

    auth_records: Mapped[list[AuthRecord]] = relationship(
        "AuthRecord", back_populates="user", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email})>"


class AuthRecord(TimestampMixin, Base):
    """Links a provider identity ``(provider, provider_id)`` to a local user.

    Created on the first successful login for the pair, updated on later
    ones, never deleted implicitly.
    """

    __tablename__ = "auth_record"
    __table_args__ = (
        UniqueConstraint("provider", "provider_id", name="uq_auth_record_provider_identity"),
    )

    id: Mapped[str] = mapped_column(String(40), primary_key=True, default=generate_auth_id)
    provider: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    provider_id: Mapped[str] = mapped_column(String(255), nullable=False)
    user_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("user.id", ondelete="CASCADE"), nullable=True, index=True
    )
    profile: Mapped[dict[str, Any]] = mapped_column(
        MutableDict.as_mutable(JSON), default=dict, nullable=False
    )
    meta: Mapped[dict[str, Any]] = mapped_column(
        "metadata", MutableDict.as_mutable(JSON), default=dict, nullable=False
    )

    user: Mapped[User | None] = relationship("User", back_populates="auth_records")

    def __repr__(self) -> str:
        return (
            f"<AuthRecord(id={self.id}, "
            f"provider={self.provider}, "
            f"provider_id={self.provider_id})>"
        )
