"""Anti-CSRF state issuing and validation."""
import pytest

from socialauth.core.config import TestSettings
from socialauth.services.oauth import state as state_module
from socialauth.services.oauth.exceptions import InvalidStateError
from socialauth.services.oauth.state import (
    InMemoryStateStore,
    OAuthStateManager,
    PendingAuthorization,
    RedisStateStore,
    code_challenge_for,
    create_state_manager,
    create_state_store,
    generate_state,
)


class FakePipeline:
    def __init__(self, data):
        self.data = data
        self.ops = []

    def get(self, key):
        self.ops.append(("get", key))

    def delete(self, key):
        self.ops.append(("delete", key))

    def execute(self):
        results = []
        for op, key in self.ops:
            if op == "get":
                results.append(self.data.get(key))
            else:
                results.append(1 if self.data.pop(key, None) is not None else 0)
        return results


class FakeRedis:
    def __init__(self):
        self.data = {}
        self.ttls = {}

    def setex(self, key, ttl, value):
        self.data[key] = value
        self.ttls[key] = ttl

    def pipeline(self):
        return FakePipeline(self.data)


def test_generated_states_are_distinct_and_url_safe():
    states = {generate_state() for _ in range(200)}

    assert len(states) == 200
    assert all(len(s) >= 43 and "/" not in s and "+" not in s for s in states)


def test_code_challenge_matches_rfc7636_example():
    verifier = "dBjftJeZ4CVP-mJ92K9Edm5gsbDNjtmdzMqaPm54cms"

    assert code_challenge_for(verifier) == "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM"


def test_issue_then_consume_is_single_use():
    manager = OAuthStateManager(InMemoryStateStore())
    pending = manager.issue("google")

    consumed = manager.consume(pending.state, "google")

    assert consumed.state == pending.state
    assert consumed.code_verifier is None
    with pytest.raises(InvalidStateError):
        manager.consume(pending.state, "google")


def test_state_issued_for_another_provider_is_rejected():
    manager = OAuthStateManager(InMemoryStateStore())
    pending = manager.issue("google")

    with pytest.raises(InvalidStateError, match="issued for google"):
        manager.consume(pending.state, "github")


@pytest.mark.parametrize("value", [None, "", "never-issued"])
def test_missing_or_unknown_state_is_rejected(value):
    manager = OAuthStateManager(InMemoryStateStore())

    with pytest.raises(InvalidStateError) as exc:
        manager.consume(value, "google")
    assert exc.value.code == "AUTH105"


def test_expired_state_is_rejected(monkeypatch):
    store = InMemoryStateStore()
    manager = OAuthStateManager(store, ttl_seconds=600)
    now = 1_000_000.0
    monkeypatch.setattr(state_module.time, "time", lambda: now)
    pending = manager.issue("google")

    monkeypatch.setattr(state_module.time, "time", lambda: now + 601)

    with pytest.raises(InvalidStateError):
        manager.consume(pending.state, "google")


def test_validation_disabled_lets_callback_through(caplog):
    manager = OAuthStateManager(InMemoryStateStore(), enforce=False)

    assert manager.consume("bogus", "google") is None
    assert "validation disabled" in caplog.text


def test_pkce_verifier_travels_with_state():
    manager = OAuthStateManager(InMemoryStateStore())
    pending = manager.issue("twitter", with_pkce=True)

    consumed = manager.consume(pending.state, "twitter")

    assert consumed.code_verifier == pending.code_verifier
    assert consumed.code_challenge == code_challenge_for(pending.code_verifier)


def test_redis_store_sets_ttl_and_pops_atomically():
    fake = FakeRedis()
    manager = OAuthStateManager(RedisStateStore("redis://unused", client=fake), ttl_seconds=120)
    pending = manager.issue("github")

    key = f"oauth:state:{pending.state}"
    assert fake.ttls[key] == 120
    assert PendingAuthorization.deserialize(fake.data[key]).provider == "github"

    assert manager.consume(pending.state, "github").state == pending.state
    assert key not in fake.data


def test_state_manager_follows_settings():
    cfg = TestSettings(OAUTH_STATE_TTL=30, OAUTH_STATE_VALIDATION=False, OAUTH_STATE_BACKEND="MEMORY")

    manager = create_state_manager(cfg)

    assert isinstance(manager.store, InMemoryStateStore)
    assert manager.ttl_seconds == 30
    assert manager.enforce is False


def test_unknown_backend_falls_back_to_memory(caplog):
    store = create_state_store(TestSettings(OAUTH_STATE_BACKEND="memcached"))

    assert isinstance(store, InMemoryStateStore)
    assert "Unknown OAUTH_STATE_BACKEND" in caplog.text
