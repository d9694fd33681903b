"""Per-provider configuration validation when building the registry."""
import logging

from socialauth.core.config import TestSettings
from socialauth.services.oauth.factory import build_credentials, create_strategy_registry


def _settings(**overrides):
    return TestSettings(BACKEND_URL="https://api.example.com", **overrides)


def test_unconfigured_providers_are_disabled_with_warning(caplog):
    caplog.set_level(logging.INFO)

    registry = create_strategy_registry(_settings(GOOGLE_CLIENT_ID="gid", GOOGLE_CLIENT_SECRET="gsecret"))

    assert registry.providers() == ["google"]
    assert "GitHub OAuth not configured" in caplog.text
    assert "Google OAuth provider enabled" in caplog.text


def test_client_id_without_secret_is_not_enough():
    registry = create_strategy_registry(_settings(GITHUB_CLIENT_ID="only-id"))

    assert "github" not in registry


def test_invalid_provider_options_skip_only_that_provider(caplog):
    registry = create_strategy_registry(
        _settings(
            GOOGLE_CLIENT_ID="gid",
            GOOGLE_CLIENT_SECRET="gsecret",
            MICROSOFT_CLIENT_ID="mid",
            MICROSOFT_CLIENT_SECRET="msecret",
            MICROSOFT_TENANT="",
            FACEBOOK_CLIENT_ID="fid",
            FACEBOOK_CLIENT_SECRET="fsecret",
            FACEBOOK_GRAPH_API_VERSION="twelve",
        )
    )

    assert registry.providers() == ["google"]
    assert "Microsoft OAuth disabled" in caplog.text
    assert "Facebook OAuth disabled" in caplog.text


def test_all_six_providers_load():
    values = {}
    for prefix in ("GOOGLE", "FACEBOOK", "GITHUB", "LINKEDIN", "MICROSOFT", "TWITTER"):
        values[f"{prefix}_CLIENT_ID"] = f"{prefix.lower()}-id"
        values[f"{prefix}_CLIENT_SECRET"] = f"{prefix.lower()}-secret"

    registry = create_strategy_registry(_settings(**values))

    assert sorted(registry.providers()) == ["facebook", "github", "google", "linkedin", "microsoft", "twitter"]


def test_callback_url_defaults_to_backend_url():
    creds = build_credentials(_settings(GITHUB_CLIENT_ID="id", GITHUB_CLIENT_SECRET="secret"), "github")

    assert creds.callback_url == "https://api.example.com/auth/github/callback"
    assert creds.scope == ()


def test_explicit_callback_and_scope_win():
    creds = build_credentials(
        _settings(
            GITHUB_CLIENT_ID="id",
            GITHUB_CLIENT_SECRET="secret",
            GITHUB_CALLBACK_URL="https://login.example.com/cb",
            GITHUB_SCOPE=["read:user", "user:email"],
        ),
        "github",
    )

    assert creds.callback_url == "https://login.example.com/cb"
    assert creds.scope == ("read:user", "user:email")


def test_twitter_consumer_key_is_client_id_fallback():
    creds = build_credentials(_settings(TWITTER_CONSUMER_KEY="ck", TWITTER_CONSUMER_SECRET="cs"), "twitter")

    assert creds.client_id == "ck"
    assert creds.client_secret == "cs"


def test_provider_extras_reach_the_strategy():
    registry = create_strategy_registry(
        _settings(MICROSOFT_CLIENT_ID="mid", MICROSOFT_CLIENT_SECRET="ms", MICROSOFT_TENANT="contoso.com")
    )

    assert registry.get("microsoft").tenant == "contoso.com"
