import pytest

from app.core.config import Settings


@pytest.mark.unit
class TestSettings:
    """Settings assembly and validation."""

    def test_defaults(self) -> None:
        settings = Settings(_env_file=None)

        assert settings.DATABASE_URL.startswith("sqlite+aiosqlite://")
        assert settings.BACKEND_CORS_ORIGINS == ["*"]
        assert settings.CACHE_SLIDING_EXPIRATION_SECONDS == 300
        assert settings.CACHE_ABSOLUTE_EXPIRATION_SECONDS == 600
        assert settings.DEFAULT_PAGE_SIZE == 10
        assert settings.MAX_PAGE_SIZE == 50
        assert settings.DATABASE_MAX_RETRIES == 5
        assert settings.DATABASE_MAX_RETRY_DELAY == 30.0

    def test_postgres_url_uses_asyncpg(self) -> None:
        settings = Settings(_env_file=None, DATABASE_URL="postgresql://u:p@db/doctors?sslmode=require")
        assert settings.DATABASE_URL == "postgresql+asyncpg://u:p@db/doctors?ssl=require"

    def test_postgres_url_from_parts(self) -> None:
        settings = Settings(
            _env_file=None,
            POSTGRES_SERVER="db",
            POSTGRES_USER="u",
            POSTGRES_PASSWORD="p",
            POSTGRES_DB="doctors",
        )
        assert settings.DATABASE_URL == "postgresql+asyncpg://u:p@db:5432/doctors"

    def test_cors_origins_from_comma_string(self) -> None:
        settings = Settings(_env_file=None, BACKEND_CORS_ORIGINS="http://a.test, http://b.test")
        assert settings.BACKEND_CORS_ORIGINS == ["http://a.test", "http://b.test"]

    @pytest.mark.parametrize("overrides", [
        {"CACHE_BACKEND": "memcached"},
        {"CACHE_SLIDING_EXPIRATION_SECONDS": 700},
        {"DEFAULT_PAGE_SIZE": 60},
        {"DEFAULT_PAGE_SIZE": 0},
        {"DATABASE_MAX_RETRIES": -1},
        {"DATABASE_RETRY_DELAY": -0.5},
    ])
    def test_invalid_settings(self, overrides: dict) -> None:
        with pytest.raises(ValueError):
            Settings(_env_file=None, **overrides)
