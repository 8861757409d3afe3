"""
ConsultAI Backend Configuration

Configuration management with environment variable support.
Covers the Redis connection, the cache-aside layer defaults and
the circuit breaker guarding the cache backend.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from functools import lru_cache
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Settings(BaseSettings):
    """Application settings with validation and secure defaults."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=True, extra="ignore"
    )

    # Environment settings
    ENVIRONMENT: str = Field(
        default="development", description="Application environment"
    )

    # Redis configuration
    REDIS_URL: str = Field(
        default="redis://localhost:6379", description="Redis connection URL"
    )
    REDIS_MAX_CONNECTIONS: int = Field(
        default=10, ge=1, le=50, description="Redis connection pool size"
    )
    REDIS_SOCKET_TIMEOUT: float = Field(
        default=2.0,
        gt=0,
        le=60,
        description="Socket timeout for a single Redis command in seconds",
    )

    # Cache-aside configuration
    CACHE_ENABLED: bool = Field(
        default=True, description="Bind a cache backend to cacheable operations"
    )
    CACHE_BACKEND: str = Field(
        default="redis", description="Cache backend implementation (redis|memory)"
    )
    CACHE_DEFAULT_TTL: int = Field(
        default=3600,
        ge=1,
        le=86400 * 365,
        description="Default cache entry lifetime in seconds",
    )
    CACHE_KEY_NAMESPACE: str = Field(
        default="cache", min_length=1, description="Default cache key namespace"
    )
    CACHE_KEY_MAX_ARG_LENGTH: int = Field(
        default=100,
        ge=1,
        le=1000,
        description="Serialized argument prefix length used in default cache keys",
    )

    # Circuit breaker settings
    CIRCUIT_BREAKER_FAILURE_THRESHOLD: int = Field(
        default=5, ge=1, le=20, description="Circuit breaker failure threshold"
    )
    CIRCUIT_BREAKER_RECOVERY_TIMEOUT: int = Field(
        default=60,
        ge=1,
        le=300,
        description="Circuit breaker recovery timeout in seconds",
    )

    # Development and debugging
    DEBUG: bool = Field(default=False, description="Enable debug mode")
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")

    @field_validator("ENVIRONMENT")
    @classmethod
    def validate_environment(cls, v):
        """Validate environment value."""
        allowed = ["development", "test", "staging", "production"]
        if v not in allowed:
            raise ValueError(f"ENVIRONMENT must be one of: {allowed}")
        return v

    @field_validator("CACHE_BACKEND")
    @classmethod
    def validate_cache_backend(cls, v):
        """Validate cache backend name."""
        allowed = ["redis", "memory"]
        if v.lower() not in allowed:
            raise ValueError(f"CACHE_BACKEND must be one of: {allowed}")
        return v.lower()

    @field_validator("REDIS_URL")
    @classmethod
    def validate_redis_url(cls, v):
        """Validate Redis URL scheme."""
        if not v.startswith(("redis://", "rediss://", "unix://")):
            raise ValueError("REDIS_URL must be a redis://, rediss:// or unix:// URL")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed:
            raise ValueError(f"LOG_LEVEL must be one of: {allowed}")
        return v.upper()

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Create global settings instance
settings = get_settings()
