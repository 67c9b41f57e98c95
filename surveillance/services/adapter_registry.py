"""
Concurrent fan-out across surveillance data sources.

Key patterns:
- Protocol-based adapters, injected at construction
- Generic Result type so each task settles to success or failure
- Structured concurrency with asyncio.TaskGroup
- Partial failure is the normal path, never an exception
"""

import asyncio
import time
from collections.abc import Sequence
from typing import Generic, TypeVar

import httpx
import structlog

from adapters.cdc.nndss import DEFAULT_CONFIG as NNDSS_CONFIG
from adapters.cdc.nndss import CdcNndssAdapter
from adapters.cdc.respiratory import DEFAULT_CONFIG as RESPIRATORY_CONFIG
from adapters.cdc.respiratory import SCHEMAS, CdcRespiratoryAdapter
from adapters.cdc.wastewater import DEFAULT_CONFIG as WASTEWATER_CONFIG
from adapters.cdc.wastewater import CdcWastewaterAdapter
from adapters.contract import DataSourceAdapter
from surveillance.cache import SurveillanceCache
from surveillance.config import HOUR_SECONDS, SourcesConfig
from surveillance.domain.models import (
    AdapterFetchResult,
    DataSourceError,
    ResolvedRegion,
    SurveillanceDataPoint,
    SyndromeCategory,
)

logger = structlog.get_logger(__name__)

ValueT = TypeVar("ValueT")
ErrorT = TypeVar("ErrorT", bound=BaseException)


class Result(Generic[ValueT, ErrorT]):
    """
    Explicit error handling without exceptions for expected failures.

    An adapter call that settles becomes either ok(points) or err(exception);
    the registry merges them after every task has finished.
    """

    def __init__(self, value: ValueT | None = None, error: ErrorT | None = None) -> None:
        if value is not None and error is not None:
            raise ValueError("Result cannot have both value and error")
        if value is None and error is None:
            raise ValueError("Result must have either value or error")
        self._value: ValueT | None = value
        self._error: ErrorT | None = error

    @classmethod
    def ok(cls, value: ValueT) -> "Result[ValueT, ErrorT]":
        return cls(value=value)

    @classmethod
    def err(cls, error: ErrorT) -> "Result[ValueT, ErrorT]":
        return cls(error=error)

    def is_ok(self) -> bool:
        return self._error is None

    def is_err(self) -> bool:
        return self._error is not None

    def unwrap(self) -> ValueT:
        if self._error is not None:
            raise self._error
        return self._value  # type: ignore

    def unwrap_or(self, default: ValueT) -> ValueT:
        return self._value if self._error is None else default  # type: ignore

    def unwrap_err(self) -> ErrorT:
        if self._error is None:
            raise ValueError("Called unwrap_err() on an Ok value")
        return self._error


class AdapterRegistry:
    """
    Orchestrates all data source adapters with graceful degradation.

    Failed adapters contribute one DataSourceError each; successful ones
    contribute their data points. fetch_all never raises on adapter failure.
    """

    def __init__(self, adapters: Sequence[DataSourceAdapter]) -> None:
        self.adapters: list[DataSourceAdapter] = list(adapters)
        self.logger = logger.bind(component="adapter_registry")

    @classmethod
    def default(
        cls,
        cache: SurveillanceCache,
        client: httpx.AsyncClient | None = None,
        sources: SourcesConfig | None = None,
    ) -> "AdapterRegistry":
        """Registry with the three CDC feeds, configured from SourcesConfig."""
        sources = sources or SourcesConfig()
        shared = {"base_url": sources.base_url, "timeout_seconds": sources.timeout_seconds}

        respiratory = RESPIRATORY_CONFIG.model_copy(
            update={**shared, "cache_ttl_seconds": sources.respiratory_ttl_hours * HOUR_SECONDS}
        )
        wastewater = WASTEWATER_CONFIG.model_copy(
            update={**shared, "cache_ttl_seconds": sources.wastewater_ttl_hours * HOUR_SECONDS}
        )
        nndss = NNDSS_CONFIG.model_copy(
            update={**shared, "cache_ttl_seconds": sources.nndss_ttl_hours * HOUR_SECONDS}
        )

        return cls(
            [
                CdcRespiratoryAdapter(
                    cache=cache,
                    client=client,
                    config=respiratory,
                    schema=SCHEMAS[sources.respiratory_schema],
                ),
                CdcWastewaterAdapter(cache=cache, client=client, config=wastewater),
                CdcNndssAdapter(cache=cache, client=client, config=nndss),
            ]
        )

    def add_adapter(self, adapter: DataSourceAdapter) -> None:
        """Add an adapter. Validates it implements the protocol."""
        if not hasattr(adapter, "fetch") or not hasattr(adapter, "is_relevant"):
            raise TypeError(f"Adapter {adapter} must implement DataSourceAdapter protocol")
        self.adapters.append(adapter)
        self.logger.info("adapter_added", source=adapter.config.name)

    def _is_relevant(
        self, adapter: DataSourceAdapter, syndromes: Sequence[SyndromeCategory]
    ) -> bool:
        try:
            return bool(adapter.is_relevant(syndromes))
        except Exception as e:
            self.logger.warning(
                "source_relevance_check_failed",
                source=adapter.config.name,
                error_type=type(e).__name__,
                error=str(e),
            )
            return False

    async def _settle(
        self,
        adapter: DataSourceAdapter,
        region: ResolvedRegion,
        syndromes: Sequence[SyndromeCategory],
    ) -> Result[list[SurveillanceDataPoint], Exception]:
        try:
            return Result.ok(await adapter.fetch(region, syndromes))
        except Exception as e:
            return Result.err(e)

    async def fetch_all(
        self, region: ResolvedRegion, syndromes: Sequence[SyndromeCategory]
    ) -> AdapterFetchResult:
        """
        Fetch from every relevant adapter concurrently.

        Each task settles to a Result, so one failure never cancels its
        siblings. Points are merged in adapter registration order regardless
        of completion order.
        """
        relevant = [adapter for adapter in self.adapters if self._is_relevant(adapter, syndromes)]
        if not relevant:
            self.logger.info("no_relevant_sources", syndrome_count=len(syndromes))
            return AdapterFetchResult()

        start_time = time.perf_counter()

        async with asyncio.TaskGroup() as task_group:
            tasks = [
                task_group.create_task(
                    self._settle(adapter, region, syndromes), name=adapter.config.name
                )
                for adapter in relevant
            ]

        data_points: list[SurveillanceDataPoint] = []
        errors: list[DataSourceError] = []
        for adapter, task in zip(relevant, tasks, strict=True):
            result = task.result()
            if result.is_ok():
                data_points.extend(result.unwrap())
            else:
                error = result.unwrap_err()
                errors.append(
                    DataSourceError(source=adapter.config.name, error=str(error) or "Unknown error")
                )
                self.logger.warning(
                    "source_fetch_failed",
                    source=adapter.config.name,
                    error_type=type(error).__name__,
                    error=str(error),
                )

        self.logger.info(
            "surveillance_fetch_completed",
            region=region.state_abbrev,
            total_points=len(data_points),
            successful_sources=len(relevant) - len(errors),
            total_sources=len(relevant),
            duration_seconds=round(time.perf_counter() - start_time, 3),
        )
        return AdapterFetchResult(
            data_points=data_points,
            errors=errors,
            queried_sources=[adapter.config.name for adapter in relevant],
        )
