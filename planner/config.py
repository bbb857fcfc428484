"""Environment-driven settings for the planner service.

Each concern is its own ``BaseSettings`` with its own env prefix, gathered
under :class:`Settings` and cached by :func:`get_settings`.

Usage:
    from planner.config import get_settings
    settings = get_settings()
    dsn = settings.postgres.get_dsn()
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _parse_bool(v):
    if isinstance(v, str):
        return v.strip().lower() in ("1", "true", "yes")
    return bool(v)


class RedisSettings(BaseSettings):
    """Redis used for the plan event bus."""

    model_config = SettingsConfigDict(env_prefix="REDIS_", extra="ignore")

    host: str = "redis"
    port: int = 6379
    password: str = ""
    max_connections: int = Field(default=50, description="Upper bound of the blocking pool")
    pool_timeout_sec: float = Field(default=5.0, description="Wait for a free pooled connection")
    health_check_interval: int = 30
    retry_on_timeout: bool = True
    socket_timeout: float = 5.0
    socket_connect_timeout: float = 5.0


class PostgresSettings(BaseSettings):
    """Plans and responses storage."""

    model_config = SettingsConfigDict(env_prefix="POSTGRES_", extra="ignore", populate_by_name=True)

    host: str = "postgres"
    port: int = 5432
    user: str = "planner"
    password: str = ""
    database: str = Field(default="planner", validation_alias="POSTGRES_DB")
    pool_min_size: int = 2
    pool_max_size: int = 10
    pool_timeout: int = Field(default=30, description="Seconds to wait for a pooled connection")
    pool_max_lifetime: int = Field(default=1800, description="Seconds before a connection is recycled")
    pool_max_idle: int = Field(default=300, description="Seconds an idle connection is kept")

    def get_dsn(self) -> str:
        return (
            f"host={self.host} port={self.port} user={self.user} "
            f"password={self.password} dbname={self.database} sslmode=disable"
        )


class CorsSettings(BaseSettings):
    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    origins_raw: str = Field(default="http://localhost:3000", validation_alias="CORS_ORIGINS")
    origins_regex: str = Field(default="", validation_alias="CORS_ORIGINS_REGEX")

    @property
    def origins(self) -> list[str]:
        return [o.strip() for o in self.origins_raw.split(",") if o.strip()]

    @property
    def allow_credentials(self) -> bool:
        # Browsers reject credentials combined with a wildcard origin.
        return self.origins != ["*"] and not self.origins_regex


class AuthSettings(BaseSettings):
    """Identity headers set by the upstream auth proxy."""

    model_config = SettingsConfigDict(env_prefix="AUTH_", extra="ignore")

    user_header: str = Field(default="X-User-Id", description="Header carrying the user id")
    name_header: str = Field(default="X-User-Name", description="Header carrying the display name")


class PlanSettings(BaseSettings):
    """Plan creation and sharing."""

    model_config = SettingsConfigDict(env_prefix="PLAN_", extra="ignore")

    slug_length: int = Field(default=10, ge=6, le=32, description="Length of generated share slugs")
    share_base_url: str = Field(default="", description="Public origin used to build share links")

    def share_url(self, slug: str) -> str | None:
        if not self.share_base_url:
            return None
        return f"{self.share_base_url.rstrip('/')}/plan/{slug}"


class _FlagSettings(BaseSettings):
    """Unprefixed boolean flags accepting "1", "true" or "yes"."""

    model_config = SettingsConfigDict(extra="ignore")

    @field_validator("*", mode="before")
    @classmethod
    def parse_bool(cls, v):
        return _parse_bool(v)


class DebugSettings(_FlagSettings):
    request: bool = Field(default=False, alias="request_debug")


class FeatureSettings(_FlagSettings):
    database: bool = Field(default=True, alias="enable_db")
    events: bool = Field(default=True, alias="enable_events")


class Settings:
    """All configuration sections.

    Not a BaseSettings itself; each section reads only its own prefix.
    """

    def __init__(self) -> None:
        self.redis = RedisSettings()
        self.postgres = PostgresSettings()
        self.cors = CorsSettings()
        self.auth = AuthSettings()
        self.plans = PlanSettings()
        self.debug = DebugSettings()
        self.features = FeatureSettings()


@lru_cache
def get_settings() -> Settings:
    return Settings()


def clear_settings_cache() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    get_settings.cache_clear()
