"""
Configuration management with environment variable support and validation.

Design principles:
- Environment-specific configs (dev, staging, prod)
- Validation at startup (fail fast)
- Type safety with Pydantic
- Public feeds only, so no secrets are required
"""

import os
from functools import lru_cache
from typing import Literal, cast

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

from surveillance.exceptions import ConfigurationError

# Load environment variables from .env file
load_dotenv()

HOUR_SECONDS = 60 * 60


class SourcesConfig(BaseModel):
    """Shared settings for the public health data feeds."""

    base_url: str = Field(
        default="https://data.cdc.gov/resource", description="Socrata resource root"
    )
    timeout_seconds: float = Field(
        default=15.0, gt=0.0, description="Per-request timeout for every feed"
    )
    respiratory_ttl_hours: float = Field(default=7 * 24, gt=0.0)
    wastewater_ttl_hours: float = Field(default=3 * 24, gt=0.0)
    nndss_ttl_hours: float = Field(default=7 * 24, gt=0.0)
    respiratory_schema: Literal["current", "legacy"] = Field(
        default="current", description="Field-name set used to parse the respiratory feed"
    )


class CacheConfig(BaseModel):
    """Surveillance cache configuration."""

    backend: Literal["disk", "memory"] = Field(default="disk", description="Cache backing store")
    directory: str = Field(default="./.surveillance_cache", description="diskcache directory")
    max_key_length: int = Field(default=128, gt=0, description="Sanitized key length cap")


class ContextConfig(BaseModel):
    """Bounded context rendering."""

    max_chars: int = Field(default=2000, gt=0, description="Hard cap on context length")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    format: Literal["json", "console"] = Field(default="json", description="Logging format")


class AppConfig(BaseModel):
    """Main application configuration combining all subsystems."""

    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    sources: SourcesConfig = Field(default_factory=SourcesConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    context: ContextConfig = Field(default_factory=ContextConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def debug_only_in_dev(self) -> "AppConfig":
        """Ensure debug mode is only allowed in development environment."""
        if self.debug and self.environment != "development":
            raise ValueError("debug mode is only allowed in development environment")
        return self


def load_config_from_env() -> AppConfig:
    """Load configuration from environment variables with validation."""

    def _env_to_literal(val: str) -> Literal["development", "staging", "production"]:
        v = val.strip().lower()
        if v in {"dev", "development"}:
            return "development"
        if v in {"stage", "staging"}:
            return "staging"
        return "production"

    def _level_to_literal(val: str) -> Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
        v = val.strip().upper()
        return cast(
            Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            v if v in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"} else "INFO",
        )

    def _float(name: str, default: str) -> float:
        raw = os.getenv(name, default)
        try:
            return float(raw)
        except ValueError as e:
            raise ConfigurationError(f"{name} must be a number, got {raw!r}") from e

    environment = _env_to_literal(os.getenv("ENVIRONMENT", "development"))
    debug = environment == "development"

    sources_config = SourcesConfig(
        base_url=os.getenv("SURVEILLANCE_BASE_URL", "https://data.cdc.gov/resource"),
        timeout_seconds=_float("SURVEILLANCE_TIMEOUT_SECONDS", "15.0"),
        respiratory_ttl_hours=_float("RESPIRATORY_TTL_HOURS", "168"),
        wastewater_ttl_hours=_float("WASTEWATER_TTL_HOURS", "72"),
        nndss_ttl_hours=_float("NNDSS_TTL_HOURS", "168"),
        respiratory_schema=(
            "legacy" if os.getenv("RESPIRATORY_SCHEMA", "current").strip().lower() == "legacy"
            else "current"
        ),
    )

    backend = os.getenv("SURVEILLANCE_CACHE_BACKEND", "disk").strip().lower()
    cache_config = CacheConfig(
        backend="memory" if backend == "memory" else "disk",
        directory=os.getenv("SURVEILLANCE_CACHE_DIR", "./.surveillance_cache"),
    )

    context_config = ContextConfig(
        max_chars=int(_float("SURVEILLANCE_CONTEXT_MAX_CHARS", "2000")),
    )

    logging_config = LoggingConfig(
        level=_level_to_literal(os.getenv("LOG_LEVEL", "INFO")),
        format="console" if debug else "json",
    )

    return AppConfig(
        environment=environment,
        debug=debug,
        sources=sources_config,
        cache=cache_config,
        context=context_config,
        logging=logging_config,
    )


@lru_cache
def get_config() -> AppConfig:
    """Get cached application configuration."""
    return load_config_from_env()


def print_config_summary() -> None:
    """Print configuration summary for debugging."""
    config = get_config()

    print("\nCONFIGURATION SUMMARY")
    print(f"Environment: {config.environment}")
    print(f"Debug Mode: {config.debug}")
    print(f"Log Level: {config.logging.level}")

    print("\nDATA SOURCES")
    print(f"Base URL: {config.sources.base_url}")
    print(f"Timeout: {config.sources.timeout_seconds}s")
    print(f"Respiratory schema: {config.sources.respiratory_schema}")
    print(
        "TTL (h): "
        f"respiratory={config.sources.respiratory_ttl_hours}, "
        f"wastewater={config.sources.wastewater_ttl_hours}, "
        f"nndss={config.sources.nndss_ttl_hours}"
    )

    print("\nCACHE")
    print(f"Backend: {config.cache.backend} ({config.cache.directory})")
    print(f"Context budget: {config.context.max_chars} chars")


if __name__ == "__main__":
    print_config_summary()
