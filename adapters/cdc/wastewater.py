"""
CDC NWSS wastewater adapter.

Queries the National Wastewater Surveillance System concentration data set
(data.cdc.gov, g653-rqe2). Each row is one sampling site on one date; the site
id (key_plot_id) embeds the lowercase state postal code, e.g.
``NWSS_tx_256_Treatment plant_raw wastewater``. Sites are reduced to one value
per pathogen and date: the median PCR concentration across the state's sites.
"""

import re
import statistics
from collections.abc import Sequence

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

DEFAULT_PATHOGEN = "SARS-CoV-2"
MAX_DATES_PER_PATHOGEN = 10

PATHOGEN_SYNDROMES: dict[str, tuple[SyndromeCategory, ...]] = {
    "SARS-CoV-2": (SyndromeCategory.RESPIRATORY_UPPER, SyndromeCategory.RESPIRATORY_LOWER),
    "Influenza A": (SyndromeCategory.RESPIRATORY_UPPER, SyndromeCategory.RESPIRATORY_LOWER),
    "RSV": (SyndromeCategory.RESPIRATORY_UPPER, SyndromeCategory.RESPIRATORY_LOWER),
    "Norovirus": (SyndromeCategory.GASTROINTESTINAL,),
    "Mpox": (SyndromeCategory.FEBRILE_RASH,),
}
DEFAULT_SYNDROMES = (SyndromeCategory.RESPIRATORY_LOWER,)

_SITE_STATE = re.compile(r"(?:^|_)([a-z]{2})(?:_|$)")

DEFAULT_CONFIG = DataSourceConfig(
    name="cdc_wastewater",
    label="NWSS Wastewater",
    base_url="https://data.cdc.gov/resource",
    dataset_id="g653-rqe2",
    feed="wastewater",
    cache_ttl_seconds=3 * 24 * 60 * 60,
    relevant_syndromes=frozenset(
        {
            SyndromeCategory.RESPIRATORY_UPPER,
            SyndromeCategory.RESPIRATORY_LOWER,
            SyndromeCategory.GASTROINTESTINAL,
        }
    ),
    supported_geo_levels=frozenset({GeoLevel.STATE, GeoLevel.NATIONAL}),
    row_limit=500,
    trend_threshold_percent=5.0,
)


def site_state(key_plot_id: str) -> str | None:
    """State postal code embedded in a site id, upper-cased."""
    match = _SITE_STATE.search(key_plot_id)
    return match.group(1).upper() if match else None


class CdcWastewaterAdapter:
    """Median wastewater pathogen concentration by state."""

    def __init__(
        self,
        cache: SurveillanceCache | None = None,
        client: httpx.AsyncClient | None = None,
        config: DataSourceConfig = DEFAULT_CONFIG,
    ) -> None:
        self.config = config
        self.cache = cache if cache is not None else SurveillanceCache()
        self.client = client
        self.logger = logger.bind(source=config.name)

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
            "$order": "date DESC",
            "$where": f"key_plot_id like '%_{region.state_abbrev.lower()}_%'",
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
        """Aggregate the region's site rows into one point per pathogen and date."""
        site_values: dict[str, dict[str, list[float]]] = {}

        for row in rows:
            plot_id = row.get("key_plot_id")
            if plot_id and site_state(str(plot_id)) != region.state_abbrev.upper():
                continue

            value = parse_number(row.get("pcr_conc_lin"))
            if value is None:
                continue

            pathogen = str(row.get("pathogen") or DEFAULT_PATHOGEN)
            date = str(row.get("date") or "")[:10]
            site_values.setdefault(pathogen, {}).setdefault(date, []).append(value)

        data_points: list[SurveillanceDataPoint] = []
        for pathogen, by_date in site_values.items():
            recent_dates = sorted(by_date, reverse=True)[:MAX_DATES_PER_PATHOGEN]
            for date in recent_dates:
                values = by_date[date]
                data_points.append(
                    SurveillanceDataPoint(
                        source=self.config.name,
                        condition=pathogen,
                        syndromes=list(PATHOGEN_SYNDROMES.get(pathogen, DEFAULT_SYNDROMES)),
                        region=region.state_abbrev,
                        geo_level=GeoLevel.STATE,
                        period_start=date,
                        period_end=date,
                        value=statistics.median(values),
                        unit="wastewater_concentration",
                        metadata={
                            "source_dataset": self.config.dataset_id,
                            "site_count": len(values),
                        },
                    )
                )

        return apply_trends(data_points, self.config.trend_threshold_percent)
