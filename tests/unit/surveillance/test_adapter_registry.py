"""
Tests for the concurrent adapter registry.

Testing philosophy:
- Adapters are protocol test doubles, no network
- Partial failure is asserted as data, never as an exception
"""

import asyncio
from collections.abc import Sequence

import httpx
import pytest

from adapters.cdc.nndss import CdcNndssAdapter
from adapters.cdc.respiratory import LEGACY_SCHEMA, CdcRespiratoryAdapter
from adapters.cdc.wastewater import CdcWastewaterAdapter
from adapters.contract import DataSourceConfig
from surveillance.cache import SurveillanceCache
from surveillance.config import SourcesConfig
from surveillance.domain.models import (
    GeoLevel,
    ResolvedRegion,
    SurveillanceDataPoint,
    SyndromeCategory,
)
from surveillance.exceptions import DataSourceFetchError
from surveillance.services.adapter_registry import AdapterRegistry, Result

RESP = SyndromeCategory.RESPIRATORY_UPPER
GI = SyndromeCategory.GASTROINTESTINAL
NEURO = SyndromeCategory.NEUROLOGICAL


def source_config(name: str, syndromes: set[SyndromeCategory]) -> DataSourceConfig:
    return DataSourceConfig(
        name=name,
        label=name.upper(),
        base_url="https://example.test/resource",
        dataset_id=f"{name}-0000",
        feed=name,
        cache_ttl_seconds=60,
        relevant_syndromes=frozenset(syndromes),
        supported_geo_levels=frozenset({GeoLevel.STATE}),
    )


class FakeAdapter:
    """Protocol test double with scripted points, error and delay."""

    def __init__(
        self,
        name: str,
        syndromes: set[SyndromeCategory],
        points: list[SurveillanceDataPoint] | None = None,
        error: Exception | None = None,
        delay: float = 0.0,
    ) -> None:
        self.config = source_config(name, syndromes)
        self.points = points or []
        self.error = error
        self.delay = delay
        self.calls = 0

    def is_relevant(self, syndromes: Sequence[SyndromeCategory]) -> bool:
        return any(s in self.config.relevant_syndromes for s in syndromes)

    async def fetch(
        self, region: ResolvedRegion, syndromes: Sequence[SyndromeCategory]
    ) -> list[SurveillanceDataPoint]:
        self.calls += 1
        await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.points


class TestResult:
    def test_ok_result(self) -> None:
        result: Result[str, Exception] = Result.ok("points")
        assert result.is_ok()
        assert not result.is_err()
        assert result.unwrap() == "points"

    def test_err_result(self) -> None:
        error = ValueError("feed down")
        result: Result[str, ValueError] = Result.err(error)

        assert result.is_err()
        assert result.unwrap_or("fallback") == "fallback"
        assert result.unwrap_err() is error
        with pytest.raises(ValueError, match="feed down"):
            result.unwrap()

    def test_empty_list_is_a_valid_ok_value(self) -> None:
        result: Result[list[int], Exception] = Result.ok([])
        assert result.is_ok()
        assert result.unwrap() == []


class TestFetchAll:
    async def test_no_relevant_adapters_returns_empty_result(self, texas: ResolvedRegion) -> None:
        adapter = FakeAdapter("resp", {RESP})
        registry = AdapterRegistry([adapter])

        result = await registry.fetch_all(texas, [NEURO])

        assert result.data_points == []
        assert result.errors == []
        assert result.queried_sources == []
        assert adapter.calls == 0

    async def test_only_relevant_adapters_are_invoked(self, texas: ResolvedRegion, make_point) -> None:
        resp = FakeAdapter("resp", {RESP}, points=[make_point("Influenza", source="resp")])
        gi = FakeAdapter("gi", {GI}, points=[make_point("Norovirus", source="gi")])

        result = await AdapterRegistry([resp, gi]).fetch_all(texas, [RESP])

        assert result.queried_sources == ["resp"]
        assert [p.condition for p in result.data_points] == ["Influenza"]
        assert gi.calls == 0

    async def test_single_failure_is_isolated(self, texas: ResolvedRegion, make_point) -> None:
        first = FakeAdapter("first", {RESP}, points=[make_point("Influenza", source="first")])
        broken = FakeAdapter(
            "broken", {RESP}, error=DataSourceFetchError("BROKEN API error: 500", source="broken")
        )
        third = FakeAdapter("third", {RESP}, points=[make_point("RSV", source="third")])

        result = await AdapterRegistry([first, broken, third]).fetch_all(texas, [RESP])

        assert [p.condition for p in result.data_points] == ["Influenza", "RSV"]
        assert len(result.errors) == 1
        assert result.errors[0].source == "broken"
        assert result.errors[0].error == "BROKEN API error: 500"
        assert result.queried_sources == ["first", "broken", "third"]

    async def test_failing_relevance_check_skips_only_that_adapter(
        self, texas: ResolvedRegion, make_point
    ) -> None:
        class BrokenRelevance(FakeAdapter):
            def is_relevant(self, syndromes: Sequence[SyndromeCategory]) -> bool:
                raise KeyError("syndrome table missing")

        healthy = FakeAdapter("healthy", {RESP}, points=[make_point("Influenza", source="healthy")])
        broken = BrokenRelevance("broken", {RESP})

        result = await AdapterRegistry([broken, healthy]).fetch_all(texas, [RESP])

        assert result.queried_sources == ["healthy"]
        assert [p.condition for p in result.data_points] == ["Influenza"]
        assert broken.calls == 0

    async def test_all_failures_still_return(self, texas: ResolvedRegion) -> None:
        adapters = [
            FakeAdapter("a", {RESP}, error=RuntimeError("boom")),
            FakeAdapter("b", {RESP}, error=TimeoutError()),
        ]

        result = await AdapterRegistry(adapters).fetch_all(texas, [RESP])

        assert result.data_points == []
        assert [e.source for e in result.errors] == ["a", "b"]
        assert result.errors[1].error == "Unknown error"

    async def test_merge_order_follows_registration_not_completion(
        self, texas: ResolvedRegion, make_point
    ) -> None:
        slow = FakeAdapter("slow", {RESP}, points=[make_point("COVID-19")], delay=0.05)
        fast = FakeAdapter("fast", {RESP}, points=[make_point("RSV")], delay=0.0)

        result = await AdapterRegistry([slow, fast]).fetch_all(texas, [RESP])

        assert [p.condition for p in result.data_points] == ["COVID-19", "RSV"]

    @pytest.mark.performance
    async def test_adapters_run_concurrently(self, texas: ResolvedRegion) -> None:
        adapters = [FakeAdapter(f"s{i}", {RESP}, delay=0.1) for i in range(3)]
        loop = asyncio.get_running_loop()

        start = loop.time()
        await AdapterRegistry(adapters).fetch_all(texas, [RESP])
        elapsed = loop.time() - start

        assert elapsed < 0.25


class TestRegistryConstruction:
    def test_add_adapter_rejects_non_adapters(self) -> None:
        registry = AdapterRegistry([])
        with pytest.raises(TypeError):
            registry.add_adapter(object())  # type: ignore[arg-type]

    def test_add_adapter(self) -> None:
        registry = AdapterRegistry([])
        registry.add_adapter(FakeAdapter("resp", {RESP}))
        assert [a.config.name for a in registry.adapters] == ["resp"]

    async def test_default_registry_applies_sources_config(
        self, memory_cache: SurveillanceCache
    ) -> None:
        sources = SourcesConfig(
            base_url="https://mirror.example.test/resource",
            timeout_seconds=5,
            respiratory_ttl_hours=1,
            wastewater_ttl_hours=2,
            nndss_ttl_hours=3,
            respiratory_schema="legacy",
        )
        async with httpx.AsyncClient() as client:
            registry = AdapterRegistry.default(memory_cache, client, sources)

        respiratory, wastewater, nndss = registry.adapters
        assert isinstance(respiratory, CdcRespiratoryAdapter)
        assert isinstance(wastewater, CdcWastewaterAdapter)
        assert isinstance(nndss, CdcNndssAdapter)

        assert respiratory.schema is LEGACY_SCHEMA
        assert respiratory.config.cache_ttl_seconds == 3600
        assert wastewater.config.cache_ttl_seconds == 7200
        assert nndss.config.cache_ttl_seconds == 10800
        assert all(a.config.timeout_seconds == 5 for a in registry.adapters)
        assert respiratory.config.resource_url == (
            "https://mirror.example.test/resource/mpgq-jmmr.json"
        )
