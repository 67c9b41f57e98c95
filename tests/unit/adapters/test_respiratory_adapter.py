"""
Tests for the CDC respiratory hospitalization adapter.

HTTP is stubbed with httpx.MockTransport; the cache is in-memory.
"""

from collections.abc import Callable
from typing import Any

import httpx
import pytest

from adapters.cdc.respiratory import (
    CURRENT_SCHEMA,
    DEFAULT_CONFIG,
    LEGACY_SCHEMA,
    CdcRespiratoryAdapter,
)
from surveillance.cache import SurveillanceCache
from surveillance.domain.models import GeoLevel, ResolvedRegion, SyndromeCategory
from surveillance.exceptions import DataSourceFetchError

RESP = [SyndromeCategory.RESPIRATORY_UPPER]

CURRENT_ROWS = [
    {
        "weekendingdate": "2026-01-10T00:00:00.000",
        "jurisdiction": "TX",
        "pctconffluinptbeds": "6.42",
        "pctconfflunewadmchg": "58.3",
        "pctconfc19inptbeds": "1.10",
        "pctconfc19newadmchg": "-3.0",
        "pctconfrsvinptbeds": "0.85",
        "pctconfrsvnewadmchg": "-21.2",
    },
    {
        "weekendingdate": "2026-01-03T00:00:00.000",
        "jurisdiction": "TX",
        "pctconffluinptbeds": "4.05",
        "pctconfc19inptbeds": "not reported",
        "pctconfrsvinptbeds": "1.08",
    },
]


def json_client(
    payload: Any, status: int = 200, seen: list[httpx.Request] | None = None
) -> httpx.AsyncClient:
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return httpx.Response(status, json=payload)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def raising_client(error: Callable[[httpx.Request], Exception]) -> httpx.AsyncClient:
    def handler(request: httpx.Request) -> httpx.Response:
        raise error(request)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestRelevance:
    def test_relevant_to_respiratory_syndromes(self) -> None:
        adapter = CdcRespiratoryAdapter()
        assert adapter.is_relevant([SyndromeCategory.RESPIRATORY_LOWER])
        assert not adapter.is_relevant([SyndromeCategory.GASTROINTESTINAL])
        assert not adapter.is_relevant([])

    async def test_irrelevant_fetch_skips_network(self, texas: ResolvedRegion) -> None:
        seen: list[httpx.Request] = []
        async with json_client([], seen=seen) as client:
            adapter = CdcRespiratoryAdapter(client=client)
            assert await adapter.fetch(texas, [SyndromeCategory.NEUROLOGICAL]) == []
        assert seen == []


class TestFetch:
    async def test_request_shape(self, texas: ResolvedRegion, memory_cache: SurveillanceCache) -> None:
        seen: list[httpx.Request] = []
        async with json_client(CURRENT_ROWS, seen=seen) as client:
            await CdcRespiratoryAdapter(memory_cache, client).fetch(texas, RESP)

        [request] = seen
        assert str(request.url).startswith("https://data.cdc.gov/resource/mpgq-jmmr.json")
        assert request.url.params["$limit"] == "50"
        assert request.url.params["$order"] == "weekendingdate DESC"
        assert request.url.params["jurisdiction"] == "TX"
        assert request.headers["accept"] == "application/json"

    async def test_current_schema_uses_reported_change(
        self, texas: ResolvedRegion, memory_cache: SurveillanceCache
    ) -> None:
        async with json_client(CURRENT_ROWS) as client:
            points = await CdcRespiratoryAdapter(memory_cache, client).fetch(texas, RESP)

        latest = {p.condition: p for p in points if p.period_end.startswith("2026-01-10")}
        assert latest["Influenza"].trend == "rising"
        assert latest["Influenza"].trend_magnitude == 58
        assert latest["Influenza"].value == 6.42
        assert latest["COVID-19"].trend == "stable"
        assert latest["COVID-19"].trend_magnitude is None
        assert latest["RSV"].trend == "falling"
        assert latest["RSV"].trend_magnitude == 21

        # non-numeric COVID value in the older row is dropped
        assert len(points) == 5
        assert all(p.unit == "pct_inpatient_beds" for p in points)
        assert all(p.source == "cdc_respiratory" for p in points)

    async def test_older_points_keep_unknown_trend(
        self, texas: ResolvedRegion, memory_cache: SurveillanceCache
    ) -> None:
        async with json_client(CURRENT_ROWS) as client:
            points = await CdcRespiratoryAdapter(memory_cache, client).fetch(texas, RESP)

        older = [p for p in points if p.period_end.startswith("2026-01-03")]
        assert older
        assert all(p.trend == "unknown" for p in older)

    async def test_legacy_schema_compares_consecutive_weeks(
        self, texas: ResolvedRegion, memory_cache: SurveillanceCache
    ) -> None:
        rows = [
            {"week_ending_date": "2024-01-13", "percent_positive_influenza": "12.0"},
            {"week_ending_date": "2024-01-06", "percent_positive_influenza": "10.0"},
        ]
        async with json_client(rows) as client:
            adapter = CdcRespiratoryAdapter(memory_cache, client, schema=LEGACY_SCHEMA)
            points = await adapter.fetch(texas, RESP)

        assert [p.period_end for p in points] == ["2024-01-13", "2024-01-06"]
        assert points[0].trend == "rising"
        assert points[0].trend_magnitude == 20
        assert points[0].unit == "percent_positive"

    async def test_county_region_reports_state_level(
        self, travis_county: ResolvedRegion, memory_cache: SurveillanceCache
    ) -> None:
        async with json_client(CURRENT_ROWS) as client:
            points = await CdcRespiratoryAdapter(memory_cache, client).fetch(travis_county, RESP)

        assert {p.geo_level for p in points} == {GeoLevel.STATE}

    async def test_only_first_twenty_rows_are_normalized(
        self, texas: ResolvedRegion, memory_cache: SurveillanceCache
    ) -> None:
        rows = [
            {"weekendingdate": f"2025-{week:02d}-01", "pctconffluinptbeds": "1.0"}
            for week in range(1, 13)
        ] * 3
        async with json_client(rows) as client:
            points = await CdcRespiratoryAdapter(memory_cache, client).fetch(texas, RESP)

        assert len(points) == 20


class TestCaching:
    async def test_second_fetch_is_served_from_cache(
        self, texas: ResolvedRegion, memory_cache: SurveillanceCache
    ) -> None:
        seen: list[httpx.Request] = []
        async with json_client(CURRENT_ROWS, seen=seen) as client:
            adapter = CdcRespiratoryAdapter(memory_cache, client)
            first = await adapter.fetch(texas, RESP)
            second = await adapter.fetch(texas, RESP)

        assert first == second
        assert len(seen) == 1

    async def test_empty_result_is_cached(
        self, texas: ResolvedRegion, memory_cache: SurveillanceCache
    ) -> None:
        seen: list[httpx.Request] = []
        async with json_client([], seen=seen) as client:
            adapter = CdcRespiratoryAdapter(memory_cache, client)
            assert await adapter.fetch(texas, RESP) == []
            assert await adapter.fetch(texas, RESP) == []

        assert len(seen) == 1


class TestFailures:
    @pytest.mark.parametrize("status", [404, 429, 500, 503])
    async def test_error_status_raises(
        self, texas: ResolvedRegion, memory_cache: SurveillanceCache, status: int
    ) -> None:
        async with json_client({"message": "no"}, status=status) as client:
            adapter = CdcRespiratoryAdapter(memory_cache, client)
            with pytest.raises(DataSourceFetchError) as excinfo:
                await adapter.fetch(texas, RESP)

        assert str(excinfo.value) == f"CDC Respiratory API error: {status}"
        assert excinfo.value.status_code == status
        assert excinfo.value.source == "cdc_respiratory"

    async def test_failure_is_not_cached(
        self, texas: ResolvedRegion, memory_cache: SurveillanceCache
    ) -> None:
        async with json_client({}, status=500) as client:
            with pytest.raises(DataSourceFetchError):
                await CdcRespiratoryAdapter(memory_cache, client).fetch(texas, RESP)

        assert await memory_cache.get(DEFAULT_CONFIG.cache_key(texas)) is None

    async def test_timeout_raises(self, texas: ResolvedRegion) -> None:
        async with raising_client(lambda r: httpx.ReadTimeout("slow", request=r)) as client:
            with pytest.raises(DataSourceFetchError, match="CDC Respiratory API timeout after 15.0s"):
                await CdcRespiratoryAdapter(client=client).fetch(texas, RESP)

    async def test_network_error_raises(self, texas: ResolvedRegion) -> None:
        async with raising_client(lambda r: httpx.ConnectError("refused", request=r)) as client:
            with pytest.raises(DataSourceFetchError, match="request failed"):
                await CdcRespiratoryAdapter(client=client).fetch(texas, RESP)

    async def test_non_list_payload_raises(self, texas: ResolvedRegion) -> None:
        async with json_client({"rows": []}) as client:
            with pytest.raises(DataSourceFetchError, match="expected a list"):
                await CdcRespiratoryAdapter(client=client).fetch(texas, RESP)


def test_schemas_share_conditions() -> None:
    current = {f.condition for f in CURRENT_SCHEMA.fields}
    legacy = {f.condition for f in LEGACY_SCHEMA.fields}
    assert current == legacy == {"COVID-19", "Influenza", "RSV"}
