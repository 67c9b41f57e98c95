"""
Capability contract shared by all surveillance data source adapters.

Adapters share no state; each one is constructed and tested on its own
with a stubbed HTTP client and cache.
"""

from collections.abc import Sequence
from typing import Protocol

from pydantic import BaseModel, ConfigDict, Field

from surveillance.domain.models import (
    GeoLevel,
    ResolvedRegion,
    SurveillanceDataPoint,
    SyndromeCategory,
)

DEFAULT_TIMEOUT_SECONDS = 15.0


class DataSourceConfig(BaseModel):
    """Static description of one feed."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Unique source key, e.g. cdc_respiratory")
    label: str = Field(description="Human-readable source name")
    base_url: str
    dataset_id: str
    feed: str = Field(description="Cache key suffix")
    cache_ttl_seconds: float = Field(gt=0.0)
    relevant_syndromes: frozenset[SyndromeCategory]
    supported_geo_levels: frozenset[GeoLevel]
    timeout_seconds: float = Field(default=DEFAULT_TIMEOUT_SECONDS, gt=0.0)
    row_limit: int = Field(default=50, gt=0, description="$limit sent upstream")
    trend_threshold_percent: float = Field(
        default=5.0, ge=0.0, description="Change beyond +/- this is rising/falling"
    )

    @property
    def resource_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/{self.dataset_id}.json"

    def cache_key(self, region: ResolvedRegion) -> str:
        return f"{self.name}_{region.state_abbrev}_{self.feed}"


class DataSourceAdapter(Protocol):
    """What the registry needs from a surveillance feed."""

    config: DataSourceConfig

    def is_relevant(self, syndromes: Sequence[SyndromeCategory]) -> bool:
        """True if any syndrome overlaps this source's coverage."""
        ...

    async def fetch(
        self, region: ResolvedRegion, syndromes: Sequence[SyndromeCategory]
    ) -> list[SurveillanceDataPoint]:
        """
        Fetch normalized data points for a region.

        Raises:
            DataSourceFetchError: on HTTP error status, timeout or network failure.
        """
        ...
