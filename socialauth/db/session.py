"""Database engine setup.

The users and auth records live wherever ``DATABASE_URL`` points. When it is
unset (or the app runs with ENV=test) a shared in-memory SQLite database is
used so the service can boot without a database server.
"""

from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from socialauth.core.config import settings

raw_url = settings.DATABASE_URL

if not raw_url or raw_url.startswith("sqlite:///:memory:"):
    # One connection shared by every session, otherwise each would see an empty database
    engine = create_engine(
        "sqlite://",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
elif raw_url.startswith("postgresql"):
    engine = create_engine(
        raw_url,
        future=True,
        pool_size=5,
        max_overflow=10,
        pool_recycle=3600,
        pool_pre_ping=True,
    )
elif raw_url.startswith("sqlite"):
    engine = create_engine(raw_url, future=True, connect_args={"check_same_thread": False})
else:
    engine = create_engine(raw_url, future=True)
SessionLocal = sessionmaker(bind=engine, class_=Session, expire_on_commit=False, autoflush=False)


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_schema() -> None:
    """Create the users and auth record tables when they do not exist yet."""
    from socialauth.db.base_class import Base
    from socialauth.models import models  # noqa: F401 - registers tables on Base.metadata

    Base.metadata.create_all(bind=engine)
