"""
Deterministic clinical correlation scoring.

Every observed condition gets five additive components (0-100 total):

    symptom_match           0-40  chief complaint vs expected symptoms
    differential_match      0-20  condition named in the differential
    epidemiologic_signal    0-25  rising trend magnitude
    seasonal_plausibility   0-10  current month vs peak season
    geographic_relevance    0-5   finest geo level observed

No model calls; identical inputs (and date) give identical output.
"""

from collections.abc import Mapping, Sequence
from datetime import date

import structlog

from surveillance.domain.models import (
    ClinicalCorrelation,
    GeoLevel,
    ScoreComponents,
    SurveillanceDataPoint,
    SyndromeCategory,
    Tier,
    Trend,
    TrendAlert,
)
from surveillance.domain.tables import (
    CONDITION_FAMILIES,
    PATHOGEN_SYMPTOMS,
    SEASONAL_PEAKS,
    lookup_condition,
)

logger = structlog.get_logger(__name__)

UNKNOWN_CONDITION_SYMPTOM_SCORE = 5
UNKNOWN_SEASONALITY_SCORE = 5
RAPID_RISE_PERCENT = 50
MULTIPLE_TRENDS_COUNT = 3

GEO_SCORES: Mapping[GeoLevel, int] = {
    GeoLevel.COUNTY: 5,
    GeoLevel.STATE: 4,
    GeoLevel.HHS_REGION: 3,
    GeoLevel.NATIONAL: 1,
}


def classify_tier(score: int) -> Tier:
    if score >= 60:
        return "high"
    if score >= 40:
        return "moderate"
    if score >= 20:
        return "low"
    return "background"


def score_symptom_match(
    condition: str,
    chief_complaint: str,
    symptoms_table: Mapping[str, tuple[str, ...]] = PATHOGEN_SYMPTOMS,
) -> int:
    symptoms = lookup_condition(symptoms_table, condition)
    if not symptoms:
        return UNKNOWN_CONDITION_SYMPTOM_SCORE
    complaint = chief_complaint.lower()
    matches = sum(1 for symptom in symptoms if symptom in complaint)
    return round(matches / len(symptoms) * 40)


def score_differential_match(
    condition: str,
    differential: Sequence[str],
    families: Mapping[str, tuple[str, ...]] = CONDITION_FAMILIES,
) -> int:
    condition_lower = condition.lower()
    entries = [dx.strip().lower() for dx in differential if dx.strip()]

    for dx in entries:
        if dx in condition_lower or condition_lower in dx:
            return 20

    family_terms = lookup_condition(families, condition) or ()
    for dx in entries:
        if any(term in dx for term in family_terms):
            return 15
    return 0


def score_epidemiologic_signal(points: Sequence[SurveillanceDataPoint]) -> int:
    rising = [p for p in points if p.trend == "rising"]
    if not rising:
        return 5 if any(p.trend == "stable" for p in points) else 0

    average = sum(p.trend_magnitude or 0 for p in rising) / len(rising)
    if average > 50:
        return 25
    if average > 25:
        return 20
    if average > 10:
        return 15
    return 10


def score_seasonal_plausibility(
    condition: str,
    today: date,
    peaks_table: Mapping[str, tuple[int, ...]] = SEASONAL_PEAKS,
) -> int:
    peaks = lookup_condition(peaks_table, condition)
    if not peaks:
        return UNKNOWN_SEASONALITY_SCORE
    month = today.month
    if month in peaks:
        return 10
    # December and January are adjacent
    if any(abs(peak - month) <= 1 or abs(peak - month) >= 11 for peak in peaks):
        return 7
    return 2


def score_geographic_relevance(points: Sequence[SurveillanceDataPoint]) -> int:
    return max((GEO_SCORES.get(p.geo_level, 1) for p in points), default=0)


def trend_direction(points: Sequence[SurveillanceDataPoint]) -> Trend:
    rising = sum(1 for p in points if p.trend == "rising")
    falling = sum(1 for p in points if p.trend == "falling")
    if rising > falling:
        return "rising"
    if falling > rising:
        return "falling"
    return "stable" if points else "unknown"


def directional_magnitude(points: Sequence[SurveillanceDataPoint], direction: Trend) -> int | None:
    """Rounded mean magnitude of the points moving in ``direction``."""
    if direction not in ("rising", "falling"):
        return None
    magnitudes = [
        p.trend_magnitude for p in points if p.trend == direction and p.trend_magnitude is not None
    ]
    if not magnitudes:
        return None
    return round(sum(magnitudes) / len(magnitudes))


def describe(condition: str, tier: Tier, points: Sequence[SurveillanceDataPoint]) -> str:
    rising = [p for p in points if p.trend == "rising"]
    if rising:
        average = round(sum(p.trend_magnitude or 0 for p in rising) / len(rising))
        return (
            f"{condition} is trending upward (~{average}% increase) in the region. "
            f"Clinical relevance: {tier}."
        )
    if any(p.trend == "stable" for p in points):
        return f"{condition} has stable activity in the region. Clinical relevance: {tier}."
    return f"{condition} has regional surveillance data available. Clinical relevance: {tier}."


def compute_correlations(
    chief_complaint: str,
    differential: Sequence[str],
    data_points: Sequence[SurveillanceDataPoint],
    today: date | None = None,
) -> list[ClinicalCorrelation]:
    """
    Score every condition present in the data points.

    Conditions are grouped in discovery order and the result is sorted by
    score, highest first; equal scores keep discovery order.
    """
    today = today or date.today()

    by_condition: dict[str, list[SurveillanceDataPoint]] = {}
    for point in data_points:
        by_condition.setdefault(point.condition, []).append(point)

    correlations: list[ClinicalCorrelation] = []
    for condition, points in by_condition.items():
        components = ScoreComponents(
            symptom_match=score_symptom_match(condition, chief_complaint),
            differential_match=score_differential_match(condition, differential),
            epidemiologic_signal=score_epidemiologic_signal(points),
            seasonal_plausibility=score_seasonal_plausibility(condition, today),
            geographic_relevance=score_geographic_relevance(points),
        )
        score = components.total
        tier = classify_tier(score)
        direction = trend_direction(points)
        syndromes: list[SyndromeCategory] = list(
            dict.fromkeys(syndrome for p in points for syndrome in p.syndromes)
        )

        correlations.append(
            ClinicalCorrelation(
                condition=condition,
                syndromes=syndromes,
                overall_score=score,
                tier=tier,
                components=components,
                trend_direction=direction,
                trend_magnitude=directional_magnitude(points, direction),
                data_points=points,
                summary=describe(condition, tier, points),
            )
        )

    correlations.sort(key=lambda c: -c.overall_score)
    logger.debug(
        "correlations_computed",
        conditions=len(correlations),
        high=sum(1 for c in correlations if c.tier == "high"),
    )
    return correlations


def detect_alerts(
    data_points: Sequence[SurveillanceDataPoint],
    correlations: Sequence[ClinicalCorrelation],
) -> list[TrendAlert]:
    """Rapid rises, bioterrorism sentinel conditions and clusters of high-tier trends."""
    alerts: list[TrendAlert] = []

    for correlation in correlations:
        magnitude = correlation.trend_magnitude
        if (
            correlation.trend_direction == "rising"
            and magnitude is not None
            and magnitude > RAPID_RISE_PERCENT
        ):
            alerts.append(
                TrendAlert(
                    level="warning",
                    title=f"Rapid increase in {correlation.condition}",
                    description=(
                        f"{correlation.condition} has increased ~{magnitude}% in the region. "
                        "Consider in differential."
                    ),
                    condition=correlation.condition,
                )
            )

    sentinel_conditions = list(
        dict.fromkeys(
            p.condition
            for p in data_points
            if SyndromeCategory.BIOTERRORISM_SENTINEL in p.syndromes
        )
    )
    if sentinel_conditions:
        alerts.append(
            TrendAlert(
                level="critical",
                title="Bioterrorism sentinel condition detected",
                description=(
                    f"Surveillance data includes: {', '.join(sentinel_conditions)}. "
                    "Verify with local public health authorities."
                ),
            )
        )

    high_count = sum(1 for c in correlations if c.tier == "high")
    if high_count >= MULTIPLE_TRENDS_COUNT:
        alerts.append(
            TrendAlert(
                level="info",
                title="Multiple significant regional trends",
                description=(
                    f"{high_count} conditions showing high clinical relevance. "
                    "Consider broadening differential."
                ),
            )
        )

    if alerts:
        logger.info("surveillance_alerts_detected", count=len(alerts))
    return alerts
