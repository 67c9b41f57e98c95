"""Shared fixtures for the surveillance test suite."""

from collections.abc import Callable
from typing import Any

import pytest

from surveillance.cache import InMemoryStore, SurveillanceCache
from surveillance.domain.models import (
    GeoLevel,
    ResolvedRegion,
    SurveillanceDataPoint,
    SyndromeCategory,
)

PointFactory = Callable[..., SurveillanceDataPoint]


@pytest.fixture
def texas() -> ResolvedRegion:
    return ResolvedRegion(state="Texas", state_abbrev="TX", hhs_region=6, geo_level=GeoLevel.STATE)


@pytest.fixture
def travis_county() -> ResolvedRegion:
    return ResolvedRegion(
        zip_code="78701",
        county="Travis County",
        fips_code="48453",
        state="Texas",
        state_abbrev="TX",
        hhs_region=6,
        geo_level=GeoLevel.COUNTY,
    )


@pytest.fixture
def memory_cache() -> SurveillanceCache:
    return SurveillanceCache(InMemoryStore())


@pytest.fixture
def make_point() -> PointFactory:
    """Factory for data points with sensible defaults; override any field."""

    def factory(condition: str = "Influenza", **overrides: Any) -> SurveillanceDataPoint:
        fields: dict[str, Any] = {
            "source": "cdc_respiratory",
            "condition": condition,
            "syndromes": [SyndromeCategory.RESPIRATORY_UPPER, SyndromeCategory.RESPIRATORY_LOWER],
            "region": "TX",
            "geo_level": GeoLevel.STATE,
            "period_start": "2026-01-10",
            "period_end": "2026-01-10",
            "value": 5.0,
            "unit": "pct_inpatient_beds",
        }
        fields.update(overrides)
        return SurveillanceDataPoint(**fields)

    return factory
