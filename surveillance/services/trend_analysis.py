"""
Trend analysis assembly and the end-to-end surveillance pipeline.

The pipeline for one request:
1. Map chief complaint + differential to syndrome categories
2. Resolve the location to a region
3. Fan out to the relevant data sources
4. Score correlations and detect alerts
5. Assemble a TrendAnalysisResult (labels, per-source summaries, summary)

SurveillanceService never raises to its caller: an unresolvable location or
an unexpected failure is logged and reported as None.
"""

import uuid
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from datetime import date

import httpx
import structlog

from surveillance.cache import SurveillanceCache, build_store
from surveillance.config import AppConfig, ContextConfig, get_config
from surveillance.domain.models import (
    AdapterFetchResult,
    ClinicalCorrelation,
    DataSourceError,
    DataSourceSummary,
    ResolvedRegion,
    SurveillanceDataPoint,
    TrendAlert,
    TrendAnalysisRequest,
    TrendAnalysisResult,
)
from surveillance.observability import configure_logging
from surveillance.services.adapter_registry import AdapterRegistry
from surveillance.services.context_budgeter import build_surveillance_context
from surveillance.services.correlation_engine import compute_correlations, detect_alerts
from surveillance.services.region_resolver import RegionResolver, ZipDirectory
from surveillance.services.syndrome_mapper import map_to_syndromes

logger = structlog.get_logger(__name__)

# Source key -> (report label, short label used in the sources footer)
KNOWN_SOURCES: dict[str, tuple[str, str]] = {
    "cdc_respiratory": ("CDC Respiratory Hospital Data", "CDC Respiratory"),
    "cdc_wastewater": ("NWSS Wastewater Surveillance", "NWSS Wastewater"),
    "cdc_nndss": ("CDC NNDSS Notifiable Diseases", "CDC NNDSS"),
}

_TREND_LABELS = {"rising": "Rising", "falling": "Falling", "stable": "Stable"}


def region_label(region: ResolvedRegion) -> str:
    if region.county:
        return f"{region.county}, {region.state_abbrev} area - HHS Region {region.hhs_region}"
    return f"{region.state} - HHS Region {region.hhs_region}"


def _format_value(value: float) -> str:
    return str(int(value)) if value.is_integer() else f"{value:g}"


def format_highlight(point: SurveillanceDataPoint) -> str:
    """One-line, unit-aware description of a data point."""
    trend = _TREND_LABELS.get(point.trend, "Unknown")
    if point.trend_magnitude is not None:
        sign = {"rising": "+", "falling": "-"}.get(point.trend, "")
        trend = f"{trend}, {sign}{point.trend_magnitude:.1f}%"

    if point.unit == "pct_inpatient_beds":
        return f"{point.condition}: {point.value:.2f}% of inpatient beds ({trend})"
    if point.unit == "wastewater_concentration":
        if point.value >= 1_000_000:
            amount = f"{point.value / 1_000_000:.1f}M copies/L"
        elif point.value >= 1_000:
            amount = f"{point.value / 1_000:.1f}K copies/L"
        else:
            amount = f"{point.value:.0f} copies/L"
        return f"{point.condition}: {amount} ({trend})"
    if point.unit == "case_count":
        return f"{point.condition}: {_format_value(point.value)} cases/wk ({trend})"
    return f"{point.condition}: {_format_value(point.value)} {point.unit} ({trend})"


def build_data_source_summaries(
    data_points: Sequence[SurveillanceDataPoint],
    errors: Sequence[DataSourceError],
    queried_sources: Sequence[str],
) -> list[DataSourceSummary]:
    """
    One summary per known source.

    Status precedence is error > not_queried > no_data > data. Highlights use
    the most recent point of each condition.
    """
    failed = {error.source for error in errors}
    queried = set(queried_sources)

    points_by_source: dict[str, list[SurveillanceDataPoint]] = {}
    for point in data_points:
        points_by_source.setdefault(point.source, []).append(point)

    summaries: list[DataSourceSummary] = []
    for source, (label, _) in KNOWN_SOURCES.items():
        if source in failed:
            summaries.append(DataSourceSummary(source=source, label=label, status="error"))
            continue
        if source not in queried:
            summaries.append(DataSourceSummary(source=source, label=label, status="not_queried"))
            continue

        points = points_by_source.get(source, [])
        if not points:
            summaries.append(DataSourceSummary(source=source, label=label, status="no_data"))
            continue

        latest: dict[str, SurveillanceDataPoint] = {}
        for point in points:
            current = latest.get(point.condition)
            if current is None or point.period_end > current.period_end:
                latest[point.condition] = point

        summaries.append(
            DataSourceSummary(
                source=source,
                label=label,
                status="data",
                highlights=[format_highlight(p) for p in latest.values()],
            )
        )
    return summaries


def build_summary(
    correlations: Sequence[ClinicalCorrelation],
    alerts: Sequence[TrendAlert],
    label: str,
) -> str:
    notable = [c for c in correlations if c.tier == "high"] + [
        c for c in correlations if c.tier == "moderate"
    ]
    if not notable:
        return (
            f"No significant regional surveillance signals detected in {label} "
            "for the given clinical presentation."
        )

    names = ", ".join(c.condition for c in notable[:3])
    summary = f"Regional surveillance in {label} shows notable activity for {names}."
    if alerts:
        summary += f" {len(alerts)} alert(s) warrant review."
    return summary


def build_trend_analysis(
    region: ResolvedRegion,
    fetch_result: AdapterFetchResult,
    correlations: list[ClinicalCorrelation],
    alerts: list[TrendAlert],
) -> TrendAnalysisResult:
    label = region_label(region)
    failed = {error.source for error in fetch_result.errors}
    queried_labels = [
        short_label
        for source, (_, short_label) in KNOWN_SOURCES.items()
        if source in fetch_result.queried_sources and source not in failed
    ]

    return TrendAnalysisResult(
        analysis_id=str(uuid.uuid4()),
        region=region,
        region_label=label,
        ranked_findings=correlations,
        alerts=alerts,
        summary=build_summary(correlations, alerts, label),
        data_sources_queried=queried_labels,
        data_source_errors=list(fetch_result.errors),
        data_source_summaries=build_data_source_summaries(
            fetch_result.data_points, fetch_result.errors, fetch_result.queried_sources
        ),
    )


class SurveillanceService:
    """Runs the full surveillance pipeline for one clinical presentation."""

    def __init__(
        self,
        resolver: RegionResolver,
        registry: AdapterRegistry,
        context_config: ContextConfig | None = None,
    ) -> None:
        self.resolver = resolver
        self.registry = registry
        self.context_config = context_config or ContextConfig()
        self.logger = logger.bind(component="surveillance_service")

    async def analyze(
        self, request: TrendAnalysisRequest, today: date | None = None
    ) -> TrendAnalysisResult | None:
        try:
            syndromes = map_to_syndromes(request.chief_complaint, request.differential)

            region = await self.resolver.resolve(
                zip_code=request.location.zip_code, state=request.location.state
            )
            if region is None:
                self.logger.warning("region_unresolved")
                return None

            fetch_result = await self.registry.fetch_all(region, syndromes)
            correlations = compute_correlations(
                request.chief_complaint,
                request.differential,
                fetch_result.data_points,
                today=today,
            )
            alerts = detect_alerts(fetch_result.data_points, correlations)
            analysis = build_trend_analysis(region, fetch_result, correlations, alerts)
        except Exception as e:
            self.logger.error(
                "surveillance_analysis_failed", error_type=type(e).__name__, error=str(e)
            )
            return None

        self.logger.info(
            "surveillance_analysis_completed",
            analysis_id=analysis.analysis_id,
            region=region.state_abbrev,
            syndrome_count=len(syndromes),
            findings=len(correlations),
            alerts=len(alerts),
            source_errors=len(fetch_result.errors),
        )
        return analysis

    async def context_for(self, request: TrendAnalysisRequest, today: date | None = None) -> str:
        """Bounded context block for a request; empty when surveillance is unavailable."""
        analysis = await self.analyze(request, today=today)
        return build_surveillance_context(
            analysis, request.differential, max_chars=self.context_config.max_chars
        )


@asynccontextmanager
async def surveillance_session(
    config: AppConfig | None = None,
    zip_directory: ZipDirectory | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AsyncIterator[SurveillanceService]:
    """
    Owns the shared HTTP client and cache store for the lifetime of a session.

    Usage:
        async with surveillance_session() as service:
            analysis = await service.analyze(request)
    """
    config = config or get_config()
    configure_logging(config.logging)

    store = build_store(config.cache)
    cache = SurveillanceCache(store, max_key_length=config.cache.max_key_length)

    async with httpx.AsyncClient(
        timeout=config.sources.timeout_seconds,
        headers={"Accept": "application/json"},
        transport=transport,
    ) as client:
        registry = AdapterRegistry.default(cache, client, config.sources)
        service = SurveillanceService(
            RegionResolver(zip_directory), registry, context_config=config.context
        )
        logger.info("surveillance_session_started", cache_backend=config.cache.backend)
        try:
            yield service
        finally:
            close = getattr(store, "close", None)
            if close is not None:
                close()
            logger.info("surveillance_session_ended")
