from __future__ import annotations

from d1_adapter.config import Settings, get_settings


def test_settings_read_environment_aliases(monkeypatch) -> None:
    monkeypatch.setenv("D1_ACCOUNT_ID", "acct")
    monkeypatch.setenv("D1_DATABASE_ID", "dbid")
    monkeypatch.setenv("D1_API_TOKEN", "secret")
    monkeypatch.setenv("D1_AUTOCREATE_TABLES", "false")
    monkeypatch.setenv("D1_DEBUG", "1")
    monkeypatch.setenv("D1_HTTP_TIMEOUT_SECONDS", "2.5")

    settings = Settings(_env_file=None)

    assert settings.account_id == "acct"
    assert settings.database_id == "dbid"
    assert settings.api_token.get_secret_value() == "secret"
    assert settings.autocreate_tables is False
    assert settings.debug is True
    assert settings.http_timeout_seconds == 2.5


def test_defaults(monkeypatch) -> None:
    for name in ("D1_API_BASE_URL", "D1_AUTOCREATE_TABLES", "D1_RAW", "D1_DEBUG", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings(_env_file=None)

    assert settings.api_base_url == "https://api.cloudflare.com/client/v4"
    assert settings.autocreate_tables is True
    assert settings.raw is False
    assert settings.debug is False
    assert settings.log_level == "INFO"


def test_database_url(test_settings) -> None:
    assert test_settings.database_url == "https://d1.test/client/v4/accounts/acc-123/d1/database/db-456"


def test_database_url_tolerates_trailing_slash() -> None:
    settings = Settings(
        _env_file=None, account_id="a", database_id="d", api_base_url="https://api.example.com/v4/"
    )

    assert settings.database_url == "https://api.example.com/v4/accounts/a/d1/database/d"


def test_token_is_masked_in_repr(test_settings) -> None:
    assert "test-token" not in repr(test_settings)


def test_get_settings_is_cached() -> None:
    get_settings.cache_clear()
    try:
        assert get_settings() is get_settings()
    finally:
        get_settings.cache_clear()
