"""Create-or-update of local users and provider identities."""
import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from socialauth.core.exceptions import UserNotFoundError, UserProvisioningError
from socialauth.models.models import AuthRecord, User
from socialauth.services.auth_record_service import AuthRecordService
from socialauth.services.user_service import UserService

PROFILE = {
    "id": "u1",
    "email": "A@B.com",
    "first_name": "A",
    "last_name": "B",
    "display_name": "A B",
    "provider": "google",
    "picture": "",
    "locale": "",
    "verified": True,
    "metadata": {"raw": {"sub": "u1"}},
}


def _count(db, model) -> int:
    return db.scalar(select(func.count()).select_from(model))


def test_creates_user_with_provider_tag(db_session):
    result = UserService(db_session).create_or_update(dict(PROFILE), "google")

    assert result.created is True
    assert result.user.email == "a@b.com"
    assert result.user.meta == {"provider": "google"}
    assert result.auth_record.provider_id == "u1"


def test_existing_email_is_updated_not_duplicated(db_session):
    service = UserService(db_session)
    service.create_or_update(dict(PROFILE), "google")

    result = service.create_or_update({**PROFILE, "id": "gh-7", "first_name": "Other"}, "github")

    assert result.created is False
    assert result.user.first_name == "A"
    assert result.user.meta["provider"] == "github"
    assert _count(db_session, User) == 1
    assert _count(db_session, AuthRecord) == 2


def test_rerun_with_unchanged_profile_is_idempotent(db_session):
    service = UserService(db_session)
    first = service.create_or_update(dict(PROFILE), "google")
    record_id = first.auth_record.id
    snapshot = dict(first.auth_record.profile)

    second = service.create_or_update(dict(PROFILE), "google")

    assert second.created is False
    assert second.auth_record.id == record_id
    assert second.auth_record.profile == snapshot
    assert second.auth_record.meta == {"provider": "google"}
    assert (second.user.first_name, second.user.last_name, second.user.email) == ("A", "B", "a@b.com")


def test_losing_the_create_race_falls_back_to_update(db_session, monkeypatch):
    winner = User(email="a@b.com", first_name="Winner", last_name="", meta={"provider": "google"})
    db_session.add(winner)
    db_session.commit()

    service = UserService(db_session)
    real_lookup = service.get_by_email
    stale_reads = [None]

    def racing_lookup(email):
        # First read happens before the concurrent request committed
        if stale_reads:
            return stale_reads.pop()
        return real_lookup(email)

    monkeypatch.setattr(service, "get_by_email", racing_lookup)

    result = service.create_or_update(dict(PROFILE), "google")

    assert result.created is False
    assert result.user.id == winner.id
    assert _count(db_session, User) == 1
    assert _count(db_session, AuthRecord) == 1


def test_auth_record_race_falls_back_to_update(db_session, monkeypatch):
    records = AuthRecordService(db_session)
    existing = records.upsert("google", "u1", {"first_name": "Old"}).record

    real_get = records.get
    stale_reads = [None]

    def racing_get(provider, provider_id):
        if stale_reads:
            return stale_reads.pop()
        return real_get(provider, provider_id)

    monkeypatch.setattr(records, "get", racing_get)

    result = records.upsert("google", "u1", {"first_name": "New"})

    assert result.created is False
    assert result.record.id == existing.id
    assert result.record.profile == {"first_name": "New"}
    assert _count(db_session, AuthRecord) == 1


def test_failed_identity_link_removes_only_a_new_user(db_session, monkeypatch):
    existing = User(email="old@b.com", first_name="Old", last_name="", meta={"provider": "github"})
    db_session.add(existing)
    db_session.commit()

    def lost_connection(self, *args, **kwargs):
        raise OperationalError("INSERT INTO authrecord", {}, Exception("server closed the connection"))

    monkeypatch.setattr(AuthRecordService, "upsert", lost_connection)
    service = UserService(db_session)

    with pytest.raises(UserProvisioningError):
        service.create_or_update(dict(PROFILE), "google")
    with pytest.raises(UserProvisioningError):
        service.create_or_update({**PROFILE, "email": "old@b.com"}, "google")

    assert service.get_by_email("a@b.com") is None
    assert service.get_by_email("old@b.com").id == existing.id
    assert _count(db_session, User) == 1


def test_get_missing_user_raises(db_session):
    with pytest.raises(UserNotFoundError):
        UserService(db_session).get(404)


def test_delete_for_user_removes_links(db_session):
    service = UserService(db_session)
    result = service.create_or_update(dict(PROFILE), "google")

    removed = service.auth_records.delete_for_user(result.user.id)

    assert removed == 1
    assert service.auth_records.list_for_user(result.user.id) == []
