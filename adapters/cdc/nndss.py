"""
CDC NNDSS adapter.

Queries National Notifiable Diseases Surveillance System weekly tables
(data.cdc.gov, x9gk-5huc). Fields used:

    label     disease/condition name
    m2        current week case count
    m2_flag   data flag, "-" means no data reported
    year      MMWR year
    week      MMWR week
    states    reporting area, e.g. "US RESIDENTS" for the national aggregate
    location1 state name, on state-level rows

The table holds one row per reporting area per week. Each condition is
read from a single area: the region's own state when it reports the
condition, otherwise the national aggregate. Rows without a year or week
are skipped.
"""

from collections.abc import Mapping, Sequence

import httpx
import structlog

from adapters.cdc.common import apply_trends, fetch_rows, is_relevant, parse_number
from adapters.contract import DataSourceConfig
from surveillance.cache import SurveillanceCache
from surveillance.domain.models import (
    GeoLevel,
    ResolvedRegion,
    SurveillanceDataPoint,
    SyndromeCategory,
)
from surveillance.exceptions import DataSourceFetchError

logger = structlog.get_logger(__name__)

S = SyndromeCategory

MAX_ROWS = 50
SUPPRESSED_FLAG = "-"
NATIONAL_AREA = "US RESIDENTS"
DEFAULT_SYNDROMES = (S.NEUROLOGICAL,)

CONDITION_SYNDROMES: Mapping[str, tuple[SyndromeCategory, ...]] = {
    "West Nile Virus disease, Neuroinvasive": (S.NEUROLOGICAL, S.VECTOR_BORNE),
    "West Nile Virus disease, Nonneuroinvasive": (S.VECTOR_BORNE,),
    "West Nile Virus": (S.NEUROLOGICAL, S.VECTOR_BORNE),
    "Lyme disease": (S.VECTOR_BORNE,),
    "Dengue": (S.VECTOR_BORNE, S.HEMORRHAGIC),
    "Malaria": (S.VECTOR_BORNE,),
    "Measles": (S.FEBRILE_RASH,),
    "Meningococcal disease": (S.NEUROLOGICAL,),
    "Pertussis": (S.RESPIRATORY_UPPER,),
    "Anthrax": (S.BIOTERRORISM_SENTINEL,),
    "Botulism": (S.BIOTERRORISM_SENTINEL,),
    "Tularemia": (S.BIOTERRORISM_SENTINEL,),
    "Plague": (S.BIOTERRORISM_SENTINEL,),
    "Smallpox": (S.BIOTERRORISM_SENTINEL,),
}

DEFAULT_CONFIG = DataSourceConfig(
    name="cdc_nndss",
    label="CDC NNDSS",
    base_url="https://data.cdc.gov/resource",
    dataset_id="x9gk-5huc",
    feed="nndss",
    cache_ttl_seconds=7 * 24 * 60 * 60,
    relevant_syndromes=frozenset(
        {S.NEUROLOGICAL, S.VECTOR_BORNE, S.BIOTERRORISM_SENTINEL, S.FEBRILE_RASH, S.HEMORRHAGIC}
    ),
    supported_geo_levels=frozenset({GeoLevel.STATE, GeoLevel.NATIONAL}),
    row_limit=100,
    trend_threshold_percent=10.0,
)


def mmwr_period(year: object, week: object) -> str | None:
    """``YYYY-Www`` for an MMWR year/week pair, None if either is missing or malformed."""
    if year in (None, "") or week in (None, ""):
        return None
    try:
        year_number = int(str(year))
        week_number = int(str(week))
    except ValueError:
        return None
    return f"{year_number}-W{week_number:02d}"


def reporting_area(row: Mapping[str, object], region: ResolvedRegion) -> GeoLevel | None:
    """
    Geographic level of a row relative to the region.

    STATE for the region's own state, NATIONAL for the US aggregate (or a row
    with no area fields at all), None for any other reporting area.
    """
    state_name = region.state.strip().upper()
    location = str(row.get("location1") or "").strip().upper()
    area = str(row.get("states") or "").strip().upper()

    if state_name and state_name in (location, area):
        return GeoLevel.STATE
    if area == NATIONAL_AREA or not (area or location):
        return GeoLevel.NATIONAL
    return None


class CdcNndssAdapter:
    """Weekly notifiable disease case counts."""

    def __init__(
        self,
        cache: SurveillanceCache | None = None,
        client: httpx.AsyncClient | None = None,
        config: DataSourceConfig = DEFAULT_CONFIG,
        condition_syndromes: Mapping[str, tuple[SyndromeCategory, ...]] = CONDITION_SYNDROMES,
    ) -> None:
        self.config = config
        self.cache = cache if cache is not None else SurveillanceCache()
        self.client = client
        self.logger = logger.bind(source=config.name)
        self._syndromes_by_label = {
            label.lower(): syndromes for label, syndromes in condition_syndromes.items()
        }

    def is_relevant(self, syndromes: Sequence[SyndromeCategory]) -> bool:
        return is_relevant(self.config, syndromes)

    def syndromes_for(self, condition: str) -> tuple[SyndromeCategory, ...]:
        return self._syndromes_by_label.get(condition.strip().lower(), DEFAULT_SYNDROMES)

    async def fetch(
        self, region: ResolvedRegion, syndromes: Sequence[SyndromeCategory]
    ) -> list[SurveillanceDataPoint]:
        if not self.is_relevant(syndromes):
            return []

        cache_key = self.config.cache_key(region)
        cached = await self.cache.get(cache_key)
        if cached is not None:
            self.logger.debug("cache_hit", region=region.state_abbrev, count=len(cached))
            return cached

        params = {
            "$limit": str(self.config.row_limit),
            "$order": "year DESC, week DESC",
        }
        try:
            rows = await fetch_rows(self.client, self.config, params)
        except DataSourceFetchError as e:
            self.logger.warning("adapter_fetch_failed", region=region.state_abbrev, error=str(e))
            raise

        data_points = self.normalize(rows, region)
        await self.cache.set(cache_key, data_points, self.config.cache_ttl_seconds)

        self.logger.info(
            "adapter_fetch_completed",
            region=region.state_abbrev,
            rows=len(rows),
            data_points=len(data_points),
        )
        return data_points

    def normalize(
        self, rows: Sequence[dict], region: ResolvedRegion
    ) -> list[SurveillanceDataPoint]:
        """
        One point per condition and MMWR week from a single reporting area.

        A condition reported for the region's own state uses those rows;
        otherwise the national aggregate. Rows for other areas are dropped.
        """
        candidates: list[tuple[GeoLevel, SurveillanceDataPoint]] = []

        for row in rows:
            geo_level = reporting_area(row, region)
            if geo_level is None:
                continue

            condition = str(row.get("label") or "").strip()
            if not condition:
                continue

            raw_count = row.get("m2")
            if raw_count is None and row.get("m2_flag") == SUPPRESSED_FLAG:
                continue

            # Unflagged missing count is a reported zero
            value = parse_number("0" if raw_count is None else raw_count)
            if value is None:
                continue

            period = mmwr_period(row.get("year"), row.get("week"))
            if period is None:
                continue

            candidates.append(
                (
                    geo_level,
                    SurveillanceDataPoint(
                        source=self.config.name,
                        condition=condition,
                        syndromes=list(self.syndromes_for(condition)),
                        region=region.state_abbrev,
                        geo_level=geo_level,
                        period_start=period,
                        period_end=period,
                        value=value,
                        unit="case_count",
                        metadata={
                            "source_dataset": self.config.dataset_id,
                            "reporting_area": str(
                                row.get("location1") or row.get("states") or NATIONAL_AREA
                            ),
                        },
                    ),
                )
            )

        state_conditions = {
            point.condition for level, point in candidates if level == GeoLevel.STATE
        }
        data_points = [
            point
            for level, point in candidates
            if (level == GeoLevel.STATE) == (point.condition in state_conditions)
        ][:MAX_ROWS]

        return apply_trends(data_points, self.config.trend_threshold_percent)
