"""
Helpers shared by the CDC feed adapters: the Socrata GET, numeric parsing and
trend classification. Plain functions, so each adapter stays a standalone class.
"""

import math
from collections.abc import Mapping, Sequence
from typing import Any

import httpx
import structlog

from adapters.contract import DataSourceConfig
from surveillance.domain.models import SurveillanceDataPoint, SyndromeCategory, Trend
from surveillance.exceptions import DataSourceFetchError

logger = structlog.get_logger(__name__)

ACCEPT_JSON = {"Accept": "application/json"}


def is_relevant(config: DataSourceConfig, syndromes: Sequence[SyndromeCategory]) -> bool:
    return any(syndrome in config.relevant_syndromes for syndrome in syndromes)


async def fetch_rows(
    client: httpx.AsyncClient | None,
    config: DataSourceConfig,
    params: Mapping[str, str],
) -> list[dict[str, Any]]:
    """
    Issue the single GET for a feed and return its JSON rows.

    Raises:
        DataSourceFetchError: non-2xx status, timeout, network error or a body
            that is not a JSON array.
    """
    try:
        if client is None:
            async with httpx.AsyncClient(timeout=config.timeout_seconds) as owned_client:
                response = await owned_client.get(
                    config.resource_url, params=dict(params), headers=ACCEPT_JSON
                )
        else:
            response = await client.get(
                config.resource_url,
                params=dict(params),
                headers=ACCEPT_JSON,
                timeout=config.timeout_seconds,
            )
    except httpx.TimeoutException as e:
        raise DataSourceFetchError(
            f"{config.label} API timeout after {config.timeout_seconds}s", source=config.name
        ) from e
    except httpx.HTTPError as e:
        raise DataSourceFetchError(
            f"{config.label} API request failed: {e}", source=config.name
        ) from e

    if not response.is_success:
        if response.status_code == 429:
            logger.warning("source_rate_limited", source=config.name)
        raise DataSourceFetchError(
            f"{config.label} API error: {response.status_code}",
            source=config.name,
            status_code=response.status_code,
        )

    try:
        payload = response.json()
    except ValueError as e:
        raise DataSourceFetchError(
            f"{config.label} API returned invalid JSON", source=config.name
        ) from e

    if not isinstance(payload, list):
        raise DataSourceFetchError(
            f"{config.label} API returned {type(payload).__name__}, expected a list",
            source=config.name,
        )
    return [row for row in payload if isinstance(row, dict)]


def parse_number(raw: Any) -> float | None:
    """Float value of a feed field, or None when it is missing or not numeric."""
    if raw is None or isinstance(raw, bool):
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


def classify_change(change_percent: float, threshold: float) -> tuple[Trend, int | None]:
    """Trend label and magnitude for a percent change."""
    if change_percent > threshold:
        return "rising", round(abs(change_percent))
    if change_percent < -threshold:
        return "falling", round(abs(change_percent))
    return "stable", None


def apply_trends(
    points: Sequence[SurveillanceDataPoint],
    threshold: float,
    precomputed_changes: Mapping[int, float] | None = None,
) -> list[SurveillanceDataPoint]:
    """
    Set trend on the most recent point of each condition.

    Uses the feed's own percent change for that point when one was reported,
    otherwise compares it with the most recent point of the same condition
    from an earlier period. Points sharing a period are never compared, and
    a prior value of zero leaves the trend unknown.
    """
    result = list(points)
    precomputed_changes = precomputed_changes or {}

    by_condition: dict[str, list[int]] = {}
    for index, point in enumerate(points):
        by_condition.setdefault(point.condition, []).append(index)

    for indices in by_condition.values():
        ordered = sorted(indices, key=lambda i: points[i].period_end, reverse=True)
        recent_index = ordered[0]
        recent = points[recent_index]

        change = precomputed_changes.get(recent_index)
        if change is None:
            earlier = [i for i in ordered if points[i].period_end < recent.period_end]
            if not earlier:
                continue
            prior = points[earlier[0]].value
            if prior == 0:
                continue
            change = (recent.value - prior) / prior * 100

        trend, magnitude = classify_change(change, threshold)
        result[recent_index] = recent.model_copy(
            update={"trend": trend, "trend_magnitude": magnitude}
        )

    return result
