"""
Domain models for regional surveillance correlation.

These models represent the core business concepts and are framework-agnostic.
Observations coming back from data sources are frozen once created; everything
derived from them (correlations, alerts, analyses) is recomputed per request.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

Trend = Literal["rising", "falling", "stable", "unknown"]
Tier = Literal["high", "moderate", "low", "background"]
AlertLevel = Literal["critical", "warning", "info"]
SourceStatus = Literal["data", "no_data", "error", "not_queried"]


class SyndromeCategory(str, Enum):
    """Coarse clinical-presentation buckets used to pick relevant data sources."""

    RESPIRATORY_UPPER = "respiratory_upper"
    RESPIRATORY_LOWER = "respiratory_lower"
    GASTROINTESTINAL = "gastrointestinal"
    NEUROLOGICAL = "neurological"
    FEBRILE_RASH = "febrile_rash"
    HEMORRHAGIC = "hemorrhagic"
    SEPSIS_SHOCK = "sepsis_shock"
    CARDIOVASCULAR = "cardiovascular"
    VECTOR_BORNE = "vector_borne"
    BIOTERRORISM_SENTINEL = "bioterrorism_sentinel"


class GeoLevel(str, Enum):
    """Geographic granularity, finest first."""

    COUNTY = "county"
    STATE = "state"
    HHS_REGION = "hhs_region"
    NATIONAL = "national"


class ResolvedRegion(BaseModel):
    """Region a request resolved to, at every granularity we know about."""

    model_config = ConfigDict(frozen=True)

    zip_code: str | None = None
    county: str | None = None
    fips_code: str | None = None
    state: str
    state_abbrev: str = Field(min_length=2, max_length=2)
    hhs_region: int = Field(ge=1, le=10)
    geo_level: GeoLevel


class SurveillanceDataPoint(BaseModel):
    """Normalized observation from any surveillance feed."""

    model_config = ConfigDict(frozen=True)

    source: str
    condition: str
    syndromes: list[SyndromeCategory]
    region: str
    geo_level: GeoLevel
    period_start: str = Field(description="ISO date or MMWR week (YYYY-Www)")
    period_end: str
    value: float
    unit: str
    trend: Trend = "unknown"
    trend_magnitude: int | None = Field(
        default=None, ge=0, description="Rounded absolute percent change from prior period"
    )
    metadata: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def magnitude_only_for_directional_trends(self) -> "SurveillanceDataPoint":
        if self.trend_magnitude is not None and self.trend not in ("rising", "falling"):
            raise ValueError(f"trend_magnitude is only allowed for rising/falling, got {self.trend}")
        return self


class DataSourceError(BaseModel):
    """One failed adapter invocation."""

    source: str
    error: str
    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())


class AdapterFetchResult(BaseModel):
    """Merged outcome of a registry fan-out."""

    data_points: list[SurveillanceDataPoint] = Field(default_factory=list)
    errors: list[DataSourceError] = Field(default_factory=list)
    queried_sources: list[str] = Field(
        default_factory=list, description="Adapters that were actually invoked"
    )


class ScoreComponents(BaseModel):
    """The five additive relevance components."""

    model_config = ConfigDict(frozen=True)

    symptom_match: int = Field(ge=0, le=40)
    differential_match: int = Field(ge=0, le=20)
    epidemiologic_signal: int = Field(ge=0, le=25)
    seasonal_plausibility: int = Field(ge=0, le=10)
    geographic_relevance: int = Field(ge=0, le=5)

    @property
    def total(self) -> int:
        return (
            self.symptom_match
            + self.differential_match
            + self.epidemiologic_signal
            + self.seasonal_plausibility
            + self.geographic_relevance
        )


class ClinicalCorrelation(BaseModel):
    """Relevance of one observed condition to the clinical presentation."""

    condition: str
    syndromes: list[SyndromeCategory]
    overall_score: int = Field(ge=0, le=100)
    tier: Tier
    components: ScoreComponents
    trend_direction: Trend
    trend_magnitude: int | None = Field(default=None, ge=0)
    data_points: list[SurveillanceDataPoint] = Field(default_factory=list)
    summary: str

    @model_validator(mode="after")
    def score_is_sum_of_components(self) -> "ClinicalCorrelation":
        if self.overall_score != self.components.total:
            raise ValueError(
                f"overall_score {self.overall_score} != component sum {self.components.total}"
            )
        return self


class TrendAlert(BaseModel):
    """Alert for unusual surveillance patterns."""

    level: AlertLevel
    title: str
    description: str
    condition: str | None = None
    source: str | None = None


class DataSourceSummary(BaseModel):
    """What one surveillance feed returned for this request."""

    source: str
    label: str
    status: SourceStatus
    highlights: list[str] = Field(default_factory=list)


class TrendAnalysisResult(BaseModel):
    """Complete regional trend analysis handed to report and prompt consumers."""

    analysis_id: str
    region: ResolvedRegion
    region_label: str
    ranked_findings: list[ClinicalCorrelation] = Field(default_factory=list)
    alerts: list[TrendAlert] = Field(default_factory=list)
    summary: str
    data_sources_queried: list[str] = Field(default_factory=list)
    data_source_errors: list[DataSourceError] = Field(default_factory=list)
    data_source_summaries: list[DataSourceSummary] = Field(default_factory=list)
    analyzed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class Location(BaseModel):
    """Where the patient presented. At least one of zip or state is required."""

    zip_code: str | None = Field(default=None, pattern=r"^\d{5}$")
    state: str | None = Field(default=None, min_length=2, max_length=2)

    @model_validator(mode="after")
    def zip_or_state(self) -> "Location":
        if not self.zip_code and not self.state:
            raise ValueError("Either zip_code or state must be provided")
        return self


class TrendAnalysisRequest(BaseModel):
    """Clinical inputs for one surveillance analysis."""

    chief_complaint: str = Field(min_length=1, max_length=500)
    differential: list[str] = Field(min_length=1, max_length=20)
    location: Location


class CacheEntry(BaseModel):
    """Serialized cache record. Timestamps are epoch seconds."""

    key: str
    data_points: list[SurveillanceDataPoint]
    cached_at: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at
