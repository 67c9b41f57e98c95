"""
Surveillance services.

This package contains the pipeline stages: syndrome mapping, region
resolution, source fan-out, correlation scoring and the bounded context
rendering, plus the service that runs them end to end.
"""

from .adapter_registry import AdapterRegistry, Result
from .context_budgeter import build_surveillance_context
from .correlation_engine import compute_correlations, detect_alerts
from .region_resolver import InMemoryZipDirectory, RegionResolver
from .syndrome_mapper import map_to_syndromes
from .trend_analysis import SurveillanceService, build_trend_analysis, surveillance_session

__all__ = [
    "AdapterRegistry",
    "InMemoryZipDirectory",
    "RegionResolver",
    "Result",
    "SurveillanceService",
    "build_surveillance_context",
    "build_trend_analysis",
    "compute_correlations",
    "detect_alerts",
    "map_to_syndromes",
    "surveillance_session",
]
