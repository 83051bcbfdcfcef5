import pytest

from socialdash.infrastructure.platforms import PLATFORM_CONFIGS, Platform, get_platform_config, redirect_uri_for


def test_every_platform_is_configured():
    assert set(PLATFORM_CONFIGS) == set(Platform)
    for platform, cfg in PLATFORM_CONFIGS.items():
        assert cfg.client_id_env == f"{platform.value.upper()}_CLIENT_ID"
        assert cfg.client_secret_env == f"{platform.value.upper()}_CLIENT_SECRET"
        assert cfg.fallback_handle == f"@{platform.value}_user"


def test_unknown_platform_has_no_config():
    assert get_platform_config("tiktok") is None
    assert get_platform_config("YouTube") is None
    assert get_platform_config("youtube").platform is Platform.YOUTUBE


def test_redirect_uri_follows_app_url(monkeypatch):
    assert redirect_uri_for(Platform.LINKEDIN) == "http://localhost:3000/api/oauth/linkedin/callback"
    monkeypatch.setenv("APP_URL", "https://dash.example.com")
    assert redirect_uri_for(Platform.LINKEDIN) == "https://dash.example.com/api/oauth/linkedin/callback"


def test_missing_credentials_lists_only_absent_variables(monkeypatch):
    cfg = PLATFORM_CONFIGS[Platform.FACEBOOK]
    assert cfg.missing_credentials() == []
    monkeypatch.delenv("FACEBOOK_CLIENT_SECRET")
    assert cfg.missing_credentials() == ["FACEBOOK_CLIENT_SECRET"]
    monkeypatch.delenv("FACEBOOK_CLIENT_ID")
    assert cfg.missing_credentials() == ["FACEBOOK_CLIENT_ID", "FACEBOOK_CLIENT_SECRET"]


@pytest.mark.parametrize("payload,expected", [
    ({"items": [{"snippet": {"title": "Acme Channel"}}]}, "Acme Channel"),
    ({"items": []}, None),
    ({"items": [{"snippet": {}}]}, None),
    ({}, None),
])
def test_youtube_handle(payload, expected):
    assert PLATFORM_CONFIGS[Platform.YOUTUBE].extract_handle(payload) == expected


@pytest.mark.parametrize("payload,expected", [
    ({"localizedFirstName": "Ada", "localizedLastName": "Lovelace"}, "Ada Lovelace"),
    ({"localizedFirstName": "Ada"}, "Ada"),
    ({}, None),
])
def test_linkedin_handle(payload, expected):
    assert PLATFORM_CONFIGS[Platform.LINKEDIN].extract_handle(payload) == expected


def test_graph_handle_prefixes_name():
    extract = PLATFORM_CONFIGS[Platform.INSTAGRAM].extract_handle
    assert extract({"id": "1", "name": "acme"}) == "@acme"
    assert extract({"id": "1"}) is None
