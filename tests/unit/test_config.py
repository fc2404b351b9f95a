"""Unit tests for configuration management."""

import os

import pytest

from galleria.config import (
    ConfigError,
    DatabaseConfig,
    Environment,
    GalleriaConfig,
    SessionConfig,
    TokenConfig,
    get_config,
    load_config_from_env,
    normalize_database_url,
    reset_config,
)

FALLBACK_NAMES = [
    "ENVIRONMENT",
    "DATABASE_URL",
    "DATABASE_ECHO",
    "DATABASE_POOL_SIZE",
    "DATABASE_MAX_OVERFLOW",
    "REDIS_URL",
    "KEYCLOAK_URL",
    "KEYCLOAK_REALM",
    "KEYCLOAK_CLIENT_ID",
    "KEYCLOAK_CLIENT_SECRET",
    "PUBLIC_API_URL",
    "LOG_LEVEL",
    "LOG_FORMAT",
    "PORT",
    "CORS_ORIGINS",
    "SENTRY_DSN",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Start every test from an environment without Galleria settings."""
    for name in list(os.environ):
        if name.startswith("GALLERIA_") or name in FALLBACK_NAMES:
            monkeypatch.delenv(name, raising=False)


class TestConfigDataClasses:
    def test_defaults(self):
        config = GalleriaConfig()

        assert config.environment == Environment.DEVELOPMENT
        assert config.redis.url is None
        assert config.session.cookie_name == "galleria_session"
        assert config.tenant.claim_name == "tenant_id"
        assert config.tenant.auto_provision is True
        assert not config.is_production

    def test_oidc_urls(self):
        oidc = GalleriaConfig().oidc

        assert oidc.issuer_url == "http://localhost:8080/realms/galleria"
        assert oidc.redirect_uri == "http://localhost:3000/auth/callback"

    def test_token_verification_enabled(self):
        assert not TokenConfig().verification_enabled
        assert TokenConfig(secret="s").verification_enabled
        assert TokenConfig(jwks_url="https://idp/certs").verification_enabled


class TestNormalizeDatabaseUrl:
    @pytest.mark.parametrize(
        "url,expected",
        [
            ("postgres://u:p@h/db", "postgresql+asyncpg://u:p@h/db"),
            ("postgresql://u:p@h/db", "postgresql+asyncpg://u:p@h/db"),
            ("postgresql+asyncpg://u:p@h/db", "postgresql+asyncpg://u:p@h/db"),
            ("sqlite+aiosqlite://", "sqlite+aiosqlite://"),
        ],
    )
    def test_normalize(self, url, expected):
        assert normalize_database_url(url) == expected


class TestLoadConfigFromEnv:
    def test_defaults(self):
        config = load_config_from_env()

        assert config.database.url == DatabaseConfig.url
        assert config.logging.format == "human"
        assert config.token.allow_unverified_claims is True
        assert config.session.cookie_secure is False

    def test_prefixed_name_wins_over_fallback(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql://fallback/db")
        monkeypatch.setenv("GALLERIA_DATABASE_URL", "postgresql://preferred/db")

        assert load_config_from_env().database.url == "postgresql+asyncpg://preferred/db"

    def test_fallback_names(self, monkeypatch):
        monkeypatch.setenv("REDIS_URL", "redis://cache:6379/0")
        monkeypatch.setenv("KEYCLOAK_REALM", "photos")
        monkeypatch.setenv("CORS_ORIGINS", "https://a.example.com, https://b.example.com")

        config = load_config_from_env()

        assert config.redis.url == "redis://cache:6379/0"
        assert config.oidc.realm == "photos"
        assert config.server.cors_origins == ["https://a.example.com", "https://b.example.com"]

    def test_tenant_settings(self, monkeypatch):
        monkeypatch.setenv("GALLERIA_TENANT_CLAIM", "org_id")
        monkeypatch.setenv("GALLERIA_AUTO_PROVISION", "false")

        config = load_config_from_env()

        assert config.tenant.claim_name == "org_id"
        assert config.tenant.auto_provision is False

    def test_invalid_bool(self, monkeypatch):
        monkeypatch.setenv("GALLERIA_AUTO_PROVISION", "maybe")

        with pytest.raises(ConfigError, match="GALLERIA_AUTO_PROVISION"):
            load_config_from_env()

    def test_invalid_int(self, monkeypatch):
        monkeypatch.setenv("GALLERIA_SESSION_TTL_SECONDS", "a day")

        with pytest.raises(ConfigError):
            load_config_from_env()

    def test_unknown_environment(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "staging-ish")

        with pytest.raises(ConfigError, match="Unknown environment"):
            load_config_from_env()

    def test_production_refuses_unverified_claims(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "production")
        monkeypatch.setenv("GALLERIA_ALLOW_UNVERIFIED_CLAIMS", "true")

        with pytest.raises(ConfigError, match="Unverified bearer tenant claims"):
            load_config_from_env()

    def test_production_defaults(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "production")
        monkeypatch.setenv("GALLERIA_JWT_JWKS_URL", "https://idp/certs")

        config = load_config_from_env()

        assert config.is_production
        assert config.session.cookie_secure is True
        assert config.logging.format == "json"
        assert config.token.allow_unverified_claims is False


class TestValidate:
    def test_invalid_log_level(self):
        config = GalleriaConfig()
        config.logging.level = "LOUD"

        with pytest.raises(ConfigError, match="log level"):
            config.validate()

    def test_non_positive_session_ttl(self):
        with pytest.raises(ConfigError):
            GalleriaConfig(session=SessionConfig(ttl_seconds=0)).validate()


class TestGetConfig:
    def test_cached_until_reset(self, monkeypatch):
        first = get_config()
        assert get_config() is first

        monkeypatch.setenv("GALLERIA_TENANT_CLAIM", "org_id")
        reset_config()

        assert get_config().tenant.claim_name == "org_id"
