"""
Region resolution from a zip code or state abbreviation.

Zip codes go through a ZipDirectory (one lookup per request); states are an
in-memory table lookup. Anything that does not resolve yields None, which the
caller treats as "surveillance unavailable" rather than an error.
"""

import asyncio
import csv
from collections.abc import Mapping
from pathlib import Path
from typing import Protocol

import structlog
from pydantic import BaseModel

from surveillance.domain.models import GeoLevel, ResolvedRegion
from surveillance.domain.tables import STATE_NAMES, STATE_TO_HHS_REGION

logger = structlog.get_logger(__name__)


class ZipRecord(BaseModel):
    """A zip_to_fips row."""

    state: str
    county: str | None = None
    fips: str | None = None


class ZipDirectory(Protocol):
    """Where zip code -> county/FIPS mappings come from."""

    async def lookup(self, zip_code: str) -> ZipRecord | None:
        ...


class InMemoryZipDirectory:
    """Zip directory held in memory, optionally loaded from a CSV file."""

    def __init__(self, records: Mapping[str, ZipRecord]) -> None:
        self._records = dict(records)

    @classmethod
    def from_csv(cls, path: str | Path) -> "InMemoryZipDirectory":
        """Load a ``zip,state,county,fips`` CSV file."""
        records: dict[str, ZipRecord] = {}
        with open(path, newline="", encoding="utf-8") as handle:
            for row in csv.DictReader(handle):
                zip_code = (row.get("zip") or "").strip()
                if not zip_code:
                    continue
                records[zip_code.zfill(5)] = ZipRecord(
                    state=(row.get("state") or "").strip().upper(),
                    county=(row.get("county") or "").strip() or None,
                    fips=(row.get("fips") or "").strip() or None,
                )
        return cls(records)

    async def lookup(self, zip_code: str) -> ZipRecord | None:
        await asyncio.sleep(0)
        return self._records.get(zip_code)


class RegionResolver:
    """Resolves user location input to a ResolvedRegion."""

    def __init__(
        self,
        zip_directory: ZipDirectory | None = None,
        hhs_regions: Mapping[str, int] = STATE_TO_HHS_REGION,
        state_names: Mapping[str, str] = STATE_NAMES,
    ) -> None:
        self.zip_directory = zip_directory
        self.hhs_regions = hhs_regions
        self.state_names = state_names
        self.logger = logger.bind(component="region_resolver")

    async def resolve_from_zip(self, zip_code: str) -> ResolvedRegion | None:
        """Resolve a zip code to a county-level region."""
        if self.zip_directory is None:
            return None

        try:
            record = await self.zip_directory.lookup(zip_code)
        except Exception as e:
            self.logger.warning("zip_lookup_failed", error=str(e))
            return None

        if record is None:
            return None

        state_abbrev = record.state.upper()
        hhs_region = self.hhs_regions.get(state_abbrev)
        if not hhs_region:
            return None

        return ResolvedRegion(
            zip_code=zip_code,
            county=record.county,
            fips_code=record.fips,
            state=self.state_names.get(state_abbrev, state_abbrev),
            state_abbrev=state_abbrev,
            hhs_region=hhs_region,
            geo_level=GeoLevel.COUNTY,
        )

    def resolve_from_state(self, state_abbrev: str) -> ResolvedRegion | None:
        """Resolve a state abbreviation to a state-level region (no I/O)."""
        upper = state_abbrev.strip().upper()
        hhs_region = self.hhs_regions.get(upper)
        if not hhs_region:
            return None

        return ResolvedRegion(
            state=self.state_names.get(upper, upper),
            state_abbrev=upper,
            hhs_region=hhs_region,
            geo_level=GeoLevel.STATE,
        )

    async def resolve(
        self, zip_code: str | None = None, state: str | None = None
    ) -> ResolvedRegion | None:
        """Resolve from either zip code or state, preferring zip."""
        if zip_code:
            from_zip = await self.resolve_from_zip(zip_code)
            if from_zip:
                return from_zip

        if state:
            return self.resolve_from_state(state)

        return None
