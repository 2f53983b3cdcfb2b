"""Environment-driven settings for the tenancy service and its tooling.

Read by ``create_app``, the tenant CLI and the Alembic environment. The
request-time :class:`~multitenancy.configuration.TenantConfiguration` is
built from these values at startup and never reads the environment itself.
"""

import logging
from enum import StrEnum
from functools import lru_cache

from pydantic import SecretStr, computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL


class Environment(StrEnum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class Settings(BaseSettings):
    """Process settings from environment variables and ``.env``.

    PostgreSQL parts use the official Docker image variable names;
    ``DATABASE_URL_OVERRIDE`` replaces the assembled URL entirely.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    environment: Environment = Environment.DEVELOPMENT
    log_level: str = "DEBUG"

    # Tenancy
    tenant_header: str = "X-Tenant-Id"
    manage_tenant_entity: bool = True

    # Database
    postgres_user: str = "multitenancy"
    postgres_password: SecretStr = SecretStr("secret")
    postgres_db: str = "multitenancy"
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    database_url_override: str | None = None
    sqlalchemy_echo: bool = False

    @field_validator("log_level")
    @classmethod
    def _known_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log level: {value}")
        return level

    @field_validator("tenant_header")
    @classmethod
    def _non_blank_header(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Tenant header name cannot be blank")
        return value

    @computed_field(repr=False)  # type: ignore[prop-decorator]
    @property
    def database_url(self) -> str:
        """SQLAlchemy URL for the async engine (psycopg v3 by default)."""
        if self.database_url_override:
            return self.database_url_override
        url = URL.create(
            "postgresql+psycopg",
            username=self.postgres_user,
            password=self.postgres_password.get_secret_value(),
            host=self.postgres_host,
            port=self.postgres_port,
            database=self.postgres_db,
        )
        return url.render_as_string(hide_password=False)

    @property
    def is_dev(self) -> bool:
        return self.environment == Environment.DEVELOPMENT

    @property
    def is_prod(self) -> bool:
        return self.environment == Environment.PRODUCTION

    @property
    def is_testing(self) -> bool:
        return self.environment == Environment.TESTING


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Settings for this process, read once."""
    return Settings()
