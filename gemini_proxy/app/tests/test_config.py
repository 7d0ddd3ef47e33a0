"""
Configuration Tests

Tests Settings loading, validation and the startup configuration report.
"""

import pytest
from pydantic import ValidationError

from gemini_proxy.app.config import Settings, validate_configuration


def test_defaults(settings_factory):
    settings = settings_factory()

    assert settings.GEMINI_MODEL == "gemini-3-flash-preview"
    assert settings.GEMINI_API_BASE_URL == "https://generativelanguage.googleapis.com/v1beta"
    assert settings.UPSTREAM_TIMEOUT_SECONDS == 60.0
    assert settings.REJECT_MALFORMED_JSON is False
    assert settings.FUNCTIONS_BASE_PATH == "/.netlify/functions"
    assert settings.allowed_origins_list == []


def test_upstream_config(settings_factory, api_key):
    """Test the upstream location comes from one place, UpstreamConfig"""
    settings = settings_factory(GEMINI_API_BASE_URL="https://example.test/v1beta/")

    upstream = settings.upstream

    assert upstream.url == "https://example.test/v1beta/models/gemini-3-flash-preview:generateContent"
    assert upstream.resolve_api_key() == api_key
    assert not hasattr(settings, "upstream_url")


def test_api_key_loaded_from_environment(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "env-key-123")

    settings = Settings(_env_file=None)

    assert settings.GEMINI_API_KEY.get_secret_value() == "env-key-123"
    assert settings.has_api_key


def test_api_key_masked_in_repr(settings_factory, api_key):
    settings = settings_factory()

    assert api_key not in repr(settings)
    assert api_key not in str(settings.model_dump())


def test_missing_api_key_is_not_fatal(settings_factory):
    """Test that Settings load without a key; requests fail instead"""
    settings = settings_factory(GEMINI_API_KEY=None)

    assert settings.GEMINI_API_KEY is None
    assert not settings.has_api_key


def test_allowed_origins_list(settings_factory):
    settings = settings_factory(ALLOWED_ORIGINS=" https://a.example.com, ,https://b.example.com ")

    assert settings.allowed_origins_list == ["https://a.example.com", "https://b.example.com"]


def test_log_level_normalized(settings_factory):
    assert settings_factory(LOG_LEVEL="debug").LOG_LEVEL == "DEBUG"


@pytest.mark.parametrize("overrides", [
    {"LOG_LEVEL": "VERBOSE"},
    {"GEMINI_MODEL": "models/gemini-pro"},
    {"GEMINI_MODEL": "gemini-pro:generateContent"},
    {"GEMINI_API_BASE_URL": "generativelanguage.googleapis.com"},
    {"UPSTREAM_TIMEOUT_SECONDS": 0},
    {"PROXY_PORT": 70000},
])
def test_invalid_settings_rejected(settings_factory, overrides):
    with pytest.raises(ValidationError):
        settings_factory(**overrides)


def test_functions_base_path_normalized(settings_factory):
    assert settings_factory(FUNCTIONS_BASE_PATH="api/").FUNCTIONS_BASE_PATH == "/api"


def test_validate_configuration_ok(settings_factory):
    status = validate_configuration(settings_factory())

    assert status["valid"]
    assert status["errors"] == []
    assert status["warnings"] == []


def test_validate_configuration_reports_missing_key(settings_factory):
    status = validate_configuration(settings_factory(GEMINI_API_KEY=None))

    assert not status["valid"]
    assert "GEMINI_API_KEY is not set" in status["errors"]


def test_validate_configuration_warnings(settings_factory):
    status = validate_configuration(settings_factory(
        GEMINI_API_BASE_URL="http://localhost:9000/v1beta",
        ALLOWED_ORIGINS="*",
    ))

    assert status["valid"]
    assert len(status["warnings"]) == 2
