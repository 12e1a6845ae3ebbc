"""
VR Therapy Application Settings

Configuration management using Pydantic Settings.
All sensitive values are loaded from environment variables.

SECURITY: Never log or expose settings containing secrets.
"""

import ipaddress
from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Database configuration (PostgreSQL by default)."""
    
    model_config = SettingsConfigDict(env_prefix="VRT_DB_")
    
    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    name: str = Field(default="vrtherapy_db", description="Database name")
    user: str = Field(default="vrtherapy_user", description="Database user")
    password: SecretStr = Field(default=SecretStr("dev_password"), description="Database password")
    pool_size: int = Field(default=10, ge=1, le=100, description="Connection pool size")
    max_overflow: int = Field(default=20, ge=0, le=100, description="Max overflow connections")
    url: Optional[str] = Field(
        default=None,
        description="Full async URL override, e.g. sqlite+aiosqlite:///./vrtherapy.db",
    )
    auto_create_schema: bool = Field(
        default=False,
        description="Create tables on startup (development only; production uses Alembic)",
    )
    
    @property
    def async_url(self) -> str:
        """Generate async database URL for SQLAlchemy."""
        if self.url:
            return self.url
        password = self.password.get_secret_value()
        return f"postgresql+asyncpg://{self.user}:{password}@{self.host}:{self.port}/{self.name}"


class JWTSettings(BaseSettings):
    """JWT authentication configuration."""
    
    model_config = SettingsConfigDict(env_prefix="VRT_JWT_")
    
    secret_key: SecretStr = Field(default=SecretStr("dev_jwt_secret_key_not_for_production"), description="JWT signing secret")
    algorithm: str = Field(default="HS256", description="JWT algorithm")
    access_token_expire_minutes: int = Field(default=60 * 24, ge=5, le=60 * 24 * 30)


class VRRuntimeSettings(BaseSettings):
    """
    External VR runtime launch configuration.
    
    Executables are resolved by scenario name, falling back to
    default_executable when a scenario has no dedicated build.
    """
    
    model_config = SettingsConfigDict(env_prefix="VRT_VR_")
    
    executables: dict[str, str] = Field(
        default_factory=dict,
        description="Scenario name -> executable path",
    )
    default_executable: Optional[str] = Field(default=None, description="Fallback executable")
    extra_args: list[str] = Field(default_factory=list, description="Arguments appended after the launch parameters")
    working_directory: Optional[str] = Field(default=None, description="Working directory for the VR process")


class SessionSettings(BaseSettings):
    """Therapy session lifecycle configuration."""
    
    model_config = SettingsConfigDict(env_prefix="VRT_SESSION_")
    
    token_issue_attempts: int = Field(default=3, ge=1, le=10, description="Attempts on session token collision")
    abandon_timeout_minutes: Optional[int] = Field(
        default=None,
        ge=1,
        description="Mark In Progress sessions older than this as Interrupted (None disables)",
    )
    sweep_interval_seconds: int = Field(default=300, ge=10, description="Abandoned-session sweep interval")


class RateLimitSettings(BaseSettings):
    """Rate limiting for the public VR handshake endpoints."""
    
    model_config = SettingsConfigDict(env_prefix="VRT_RATE_")
    
    enabled: bool = Field(default=True)
    handshake_requests_per_minute: int = Field(default=60, ge=1, le=10000)
    burst_size: int = Field(default=10, ge=0, le=1000)
    trusted_proxies: list[str] = Field(
        default_factory=list,
        description="Proxy addresses or CIDR networks allowed to set X-Forwarded-For",
    )
    
    @field_validator("trusted_proxies")
    @classmethod
    def validate_trusted_proxies(cls, value: list[str]) -> list[str]:
        for proxy in value:
            try:
                ipaddress.ip_network(proxy, strict=False)
            except ValueError as e:
                raise ValueError(f"Invalid trusted proxy {proxy!r}: {e}") from e
        return value


class SentrySettings(BaseSettings):
    """Sentry error tracking configuration."""
    
    model_config = SettingsConfigDict(env_prefix="VRT_SENTRY_")
    
    dsn: str = Field(default="", description="Sentry DSN (empty disables error tracking)")
    sample_rate: float = Field(default=1.0, ge=0.0, le=1.0)
    traces_sample_rate: float = Field(default=0.1, ge=0.0, le=1.0)


class Settings(BaseSettings):
    """
    Main application settings.
    
    All configuration is loaded from environment variables with VRT_ prefix.
    Sensitive values use SecretStr to prevent accidental logging.
    
    Usage:
        settings = get_settings()
        db_url = settings.database.async_url
    """
    
    model_config = SettingsConfigDict(
        env_prefix="VRT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
    
    # Application
    env: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment"
    )
    debug: bool = Field(default=False, description="Debug mode - NEVER enable in production")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level"
    )
    api_version: str = Field(default="v1", description="API version prefix")
    cors_origins: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        description="Allowed CORS origins"
    )
    
    # Nested settings
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    jwt: JWTSettings = Field(default_factory=JWTSettings)
    vr_runtime: VRRuntimeSettings = Field(default_factory=VRRuntimeSettings)
    sessions: SessionSettings = Field(default_factory=SessionSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    sentry: SentrySettings = Field(default_factory=SentrySettings)
    
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.env == "production"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.
    
    Uses LRU cache to ensure settings are only loaded once.
    For testing, use dependency injection to override.
    
    Returns:
        Settings: Application settings instance
    """
    return Settings()
