"""
Tests for configuration management in `surveillance/config.py`.

Covers:
- Environment parsing and debug defaults
- Logging level coercion to the expected Literal
- Source TTLs, timeout and respiratory schema selection
- Cache backend selection
- get_config cache behavior
- AppConfig validation (debug only allowed in development)
"""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from surveillance.config import (
    AppConfig,
    CacheConfig,
    SourcesConfig,
    get_config,
    load_config_from_env,
)
from surveillance.exceptions import ConfigurationError

SURVEILLANCE_ENV_VARS = (
    "ENVIRONMENT",
    "LOG_LEVEL",
    "SURVEILLANCE_BASE_URL",
    "SURVEILLANCE_TIMEOUT_SECONDS",
    "RESPIRATORY_TTL_HOURS",
    "WASTEWATER_TTL_HOURS",
    "NNDSS_TTL_HOURS",
    "RESPIRATORY_SCHEMA",
    "SURVEILLANCE_CACHE_BACKEND",
    "SURVEILLANCE_CACHE_DIR",
    "SURVEILLANCE_CONTEXT_MAX_CHARS",
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Clear surveillance env vars and the get_config cache around each test."""
    for name in SURVEILLANCE_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    get_config.cache_clear()
    yield
    get_config.cache_clear()


def test_load_config_dev_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENVIRONMENT", "development")

    config = load_config_from_env()

    assert config.environment == "development"
    assert config.debug is True
    assert config.logging.format == "console"
    assert config.sources.base_url == "https://data.cdc.gov/resource"
    assert config.sources.timeout_seconds == 15.0
    assert config.sources.respiratory_ttl_hours == 168
    assert config.sources.wastewater_ttl_hours == 72
    assert config.sources.nndss_ttl_hours == 168
    assert config.sources.respiratory_schema == "current"
    assert config.cache.backend == "disk"
    assert config.context.max_chars == 2000


def test_production_uses_json_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENVIRONMENT", "prod")

    config = load_config_from_env()

    assert config.environment == "production"
    assert config.debug is False
    assert config.logging.format == "json"


def test_logging_level_literal_coercion(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENVIRONMENT", "staging")

    # Unknown level should coerce to INFO
    monkeypatch.setenv("LOG_LEVEL", "unknown")
    assert load_config_from_env().logging.level == "INFO"

    monkeypatch.setenv("LOG_LEVEL", "error")
    assert load_config_from_env().logging.level == "ERROR"


def test_source_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SURVEILLANCE_BASE_URL", "https://mirror.example.test/resource")
    monkeypatch.setenv("SURVEILLANCE_TIMEOUT_SECONDS", "4.5")
    monkeypatch.setenv("WASTEWATER_TTL_HOURS", "12")
    monkeypatch.setenv("RESPIRATORY_SCHEMA", "Legacy")
    monkeypatch.setenv("SURVEILLANCE_CONTEXT_MAX_CHARS", "1500")

    config = load_config_from_env()

    assert config.sources.base_url == "https://mirror.example.test/resource"
    assert config.sources.timeout_seconds == 4.5
    assert config.sources.wastewater_ttl_hours == 12
    assert config.sources.respiratory_schema == "legacy"
    assert config.context.max_chars == 1500


def test_non_numeric_setting_raises_configuration_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("NNDSS_TTL_HOURS", "a week")

    with pytest.raises(ConfigurationError, match="NNDSS_TTL_HOURS"):
        load_config_from_env()


def test_non_positive_ttl_is_rejected() -> None:
    with pytest.raises(ValueError):
        SourcesConfig(respiratory_ttl_hours=0)


def test_cache_backend_selection(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SURVEILLANCE_CACHE_BACKEND", "MEMORY")
    monkeypatch.setenv("SURVEILLANCE_CACHE_DIR", "/tmp/surveillance")

    config = load_config_from_env()

    assert config.cache.backend == "memory"
    assert config.cache.directory == "/tmp/surveillance"


def test_get_config_cache() -> None:
    c1 = get_config()
    c2 = get_config()
    assert c1 is c2  # same object due to lru_cache


def test_app_config_debug_only_in_dev_validation() -> None:
    AppConfig(environment="development", debug=True)

    with pytest.raises(ValueError, match="debug mode is only allowed"):
        AppConfig(environment="production", debug=True, cache=CacheConfig())
