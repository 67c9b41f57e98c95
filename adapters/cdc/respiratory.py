"""
CDC respiratory hospitalization adapter.

Queries the NHSN Weekly Hospital Respiratory Data set (data.cdc.gov, mpgq-jmmr)
for COVID-19, influenza and RSV inpatient bed occupancy by jurisdiction.

Two field-name sets exist for this feed. The current one reports the percent of
inpatient beds occupied by confirmed patients plus a week-over-week percent
change of new admissions. The legacy one reported test percent positivity and
no change field; it is kept so archived extracts can still be parsed.
"""

from collections.abc import Sequence
from dataclasses import dataclass

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

RESPIRATORY = (SyndromeCategory.RESPIRATORY_UPPER, SyndromeCategory.RESPIRATORY_LOWER)

MAX_ROWS = 20


@dataclass(frozen=True)
class ConditionField:
    condition: str
    value_field: str
    change_field: str | None = None


@dataclass(frozen=True)
class RespiratorySchema:
    version: str
    date_field: str
    jurisdiction_field: str
    unit: str
    fields: tuple[ConditionField, ...]


CURRENT_SCHEMA = RespiratorySchema(
    version="current",
    date_field="weekendingdate",
    jurisdiction_field="jurisdiction",
    unit="pct_inpatient_beds",
    fields=(
        ConditionField("COVID-19", "pctconfc19inptbeds", "pctconfc19newadmchg"),
        ConditionField("Influenza", "pctconffluinptbeds", "pctconfflunewadmchg"),
        ConditionField("RSV", "pctconfrsvinptbeds", "pctconfrsvnewadmchg"),
    ),
)

LEGACY_SCHEMA = RespiratorySchema(
    version="legacy",
    date_field="week_ending_date",
    jurisdiction_field="jurisdiction",
    unit="percent_positive",
    fields=(
        ConditionField("Influenza", "percent_positive_influenza"),
        ConditionField("COVID-19", "percent_positive_covid"),
        ConditionField("RSV", "percent_positive_rsv"),
    ),
)

SCHEMAS = {schema.version: schema for schema in (CURRENT_SCHEMA, LEGACY_SCHEMA)}

CONDITION_SYNDROMES: dict[str, tuple[SyndromeCategory, ...]] = {
    "COVID-19": RESPIRATORY,
    "Influenza": RESPIRATORY,
    "RSV": RESPIRATORY,
}

DEFAULT_CONFIG = DataSourceConfig(
    name="cdc_respiratory",
    label="CDC Respiratory",
    base_url="https://data.cdc.gov/resource",
    dataset_id="mpgq-jmmr",
    feed="respiratory",
    cache_ttl_seconds=7 * 24 * 60 * 60,
    relevant_syndromes=frozenset(RESPIRATORY),
    supported_geo_levels=frozenset({GeoLevel.STATE, GeoLevel.HHS_REGION, GeoLevel.NATIONAL}),
    row_limit=50,
    trend_threshold_percent=5.0,
)


class CdcRespiratoryAdapter:
    """Hospital respiratory occupancy by state."""

    def __init__(
        self,
        cache: SurveillanceCache | None = None,
        client: httpx.AsyncClient | None = None,
        config: DataSourceConfig = DEFAULT_CONFIG,
        schema: RespiratorySchema = CURRENT_SCHEMA,
    ) -> None:
        self.config = config
        self.cache = cache if cache is not None else SurveillanceCache()
        self.client = client
        self.schema = schema
        self.logger = logger.bind(source=config.name, schema=schema.version)

    def is_relevant(self, syndromes: Sequence[SyndromeCategory]) -> bool:
        return is_relevant(self.config, syndromes)

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
            "$order": f"{self.schema.date_field} DESC",
            self.schema.jurisdiction_field: region.state_abbrev,
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
        """Turn feed rows into data points, one per condition per row."""
        # Hospital data is reported by jurisdiction, never below state level
        geo_level = GeoLevel.STATE if region.geo_level == GeoLevel.COUNTY else region.geo_level

        data_points: list[SurveillanceDataPoint] = []
        changes: dict[int, float] = {}

        for row in rows[:MAX_ROWS]:
            period = str(row.get(self.schema.date_field) or "")
            for field in self.schema.fields:
                value = parse_number(row.get(field.value_field))
                if value is None:
                    continue

                if field.change_field is not None:
                    change = parse_number(row.get(field.change_field))
                    if change is not None:
                        changes[len(data_points)] = change

                data_points.append(
                    SurveillanceDataPoint(
                        source=self.config.name,
                        condition=field.condition,
                        syndromes=list(CONDITION_SYNDROMES.get(field.condition, RESPIRATORY)),
                        region=region.state_abbrev,
                        geo_level=geo_level,
                        period_start=period,
                        period_end=period,
                        value=value,
                        unit=self.schema.unit,
                        metadata={
                            "source_dataset": self.config.dataset_id,
                            "schema": self.schema.version,
                        },
                    )
                )

        return apply_trends(data_points, self.config.trend_threshold_percent, changes)
