"""
End-to-end walkthrough of the regional surveillance pipeline.

This script exercises:
1. Configuration loading
2. Concurrent fetch from the three CDC feeds (canned responses by default)
3. Correlation scoring and alert detection
4. Partial failure when one feed is down
5. The bounded context block

Run with: python demo_surveillance.py          (offline, canned feeds)
          python demo_surveillance.py --live   (queries data.cdc.gov)
"""

import asyncio
import sys
from datetime import date
from functools import partial

import httpx
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from surveillance.config import AppConfig, CacheConfig, get_config, print_config_summary
from surveillance.domain.models import Location, TrendAnalysisRequest, TrendAnalysisResult
from surveillance.services.context_budgeter import build_surveillance_context
from surveillance.services.trend_analysis import surveillance_session

console = Console()

RESPIRATORY_ROWS = [
    {
        "weekendingdate": "2026-01-10T00:00:00.000",
        "jurisdiction": "TX",
        "pctconffluinptbeds": "6.42",
        "pctconfflunewadmchg": "58.3",
        "pctconfc19inptbeds": "1.10",
        "pctconfc19newadmchg": "-3.0",
        "pctconfrsvinptbeds": "0.85",
        "pctconfrsvnewadmchg": "12.5",
    },
    {
        "weekendingdate": "2026-01-03T00:00:00.000",
        "jurisdiction": "TX",
        "pctconffluinptbeds": "4.05",
        "pctconfc19inptbeds": "1.13",
        "pctconfrsvinptbeds": "0.76",
    },
]

WASTEWATER_ROWS = [
    {"key_plot_id": "NWSS_tx_256_Treatment plant_raw wastewater", "date": "2026-01-08",
     "pathogen": "SARS-CoV-2", "pcr_conc_lin": "120000"},
    {"key_plot_id": "NWSS_tx_301_Treatment plant_raw wastewater", "date": "2026-01-08",
     "pathogen": "SARS-CoV-2", "pcr_conc_lin": "98000"},
    {"key_plot_id": "NWSS_tx_256_Treatment plant_raw wastewater", "date": "2026-01-01",
     "pathogen": "SARS-CoV-2", "pcr_conc_lin": "101000"},
]

NNDSS_ROWS = [
    {"label": "Pertussis", "states": "US RESIDENTS", "m2": "41", "year": "2026", "week": "2"},
    {"label": "Pertussis", "states": "US RESIDENTS", "m2": "37", "year": "2026", "week": "1"},
]

CANNED_FEEDS = {
    "mpgq-jmmr": RESPIRATORY_ROWS,
    "g653-rqe2": WASTEWATER_ROWS,
    "x9gk-5huc": NNDSS_ROWS,
}


def canned_transport(failing: set[str] | None = None) -> httpx.MockTransport:
    """Serve canned rows per dataset id; datasets in ``failing`` answer 503."""
    failing = failing or set()

    def handler(request: httpx.Request) -> httpx.Response:
        dataset = request.url.path.rsplit("/", 1)[-1].removesuffix(".json")
        if dataset in failing:
            return httpx.Response(503, json={"message": "unavailable"})
        return httpx.Response(200, json=CANNED_FEEDS.get(dataset, []))

    return httpx.MockTransport(handler)


def demo_config() -> AppConfig:
    # Memory cache so repeated runs always hit the (canned) feeds
    return get_config().model_copy(update={"cache": CacheConfig(backend="memory")})


def show_analysis(analysis: TrendAnalysisResult) -> None:
    console.print(f"Region: {analysis.region_label}", style="cyan")
    console.print(analysis.summary)

    findings = Table(title="Ranked Findings")
    findings.add_column("Condition", style="cyan")
    findings.add_column("Score", style="green")
    findings.add_column("Tier", style="magenta")
    findings.add_column("Trend", style="yellow")
    for finding in analysis.ranked_findings:
        trend = finding.trend_direction
        if finding.trend_magnitude is not None:
            trend += f" ({finding.trend_magnitude}%)"
        findings.add_row(finding.condition, str(finding.overall_score), finding.tier, trend)
    console.print(findings)

    for alert in analysis.alerts:
        style = "red" if alert.level == "critical" else "yellow"
        console.print(
            f"[{alert.level.upper()}] {alert.title}: {alert.description}", style=style, markup=False
        )

    sources = Table(title="Data Sources")
    sources.add_column("Source", style="cyan")
    sources.add_column("Status", style="white")
    sources.add_column("Highlights", style="green")
    for summary in analysis.data_source_summaries:
        sources.add_row(summary.label, summary.status, "\n".join(summary.highlights))
    console.print(sources)


async def demo_configuration() -> bool:
    console.print(Panel("Configuration", style="blue"))
    try:
        print_config_summary()
        return True
    except Exception as e:
        console.print(f"Configuration failed: {e}", style="red")
        return False


async def demo_full_pipeline(live: bool) -> bool:
    console.print(Panel("Full Pipeline", style="blue"))
    request = TrendAnalysisRequest(
        chief_complaint="fever, cough and myalgia for three days",
        differential=["Influenza", "COVID-19", "community acquired pneumonia", "pertussis"],
        location=Location(state="TX"),
    )
    transport = None if live else canned_transport()

    async with surveillance_session(demo_config(), transport=transport) as service:
        analysis = await service.analyze(request, today=date(2026, 1, 15))

    if analysis is None:
        console.print("No analysis produced", style="red")
        return False

    show_analysis(analysis)
    return True


async def demo_partial_failure() -> bool:
    console.print(Panel("Partial Failure (wastewater feed down)", style="blue"))
    request = TrendAnalysisRequest(
        chief_complaint="cough and shortness of breath",
        differential=["COVID-19"],
        location=Location(state="TX"),
    )

    async with surveillance_session(
        demo_config(), transport=canned_transport(failing={"g653-rqe2"})
    ) as service:
        analysis = await service.analyze(request, today=date(2026, 1, 15))

    if analysis is None:
        console.print("No analysis produced", style="red")
        return False

    for error in analysis.data_source_errors:
        console.print(f"{error.source}: {error.error}", style="yellow")
    console.print(f"Sources used: {', '.join(analysis.data_sources_queried)}", style="green")
    return len(analysis.data_source_errors) == 1 and bool(analysis.ranked_findings)


async def demo_context_block() -> bool:
    console.print(Panel("Bounded Context Block", style="blue"))
    request = TrendAnalysisRequest(
        chief_complaint="fever and cough",
        differential=["Influenza", "RSV"],
        location=Location(state="TX"),
    )

    async with surveillance_session(demo_config(), transport=canned_transport()) as service:
        analysis = await service.analyze(request, today=date(2026, 1, 15))

    context = build_surveillance_context(analysis, request.differential)
    console.print(context, markup=False)
    console.print(f"\n{len(context)} characters", style="cyan")
    return 0 < len(context) <= 2000


async def run_demo(live: bool) -> None:
    console.print(Panel("Regional Surveillance - Walkthrough", style="bold blue"))

    steps = [
        ("Configuration", demo_configuration),
        ("Full Pipeline", partial(demo_full_pipeline, live)),
        ("Partial Failure", demo_partial_failure),
        ("Context Block", demo_context_block),
    ]

    results = []
    for name, step in steps:
        console.print(f"\n{'=' * 60}")
        try:
            results.append((name, await step()))
        except Exception as e:
            console.print(f"{name} failed with exception: {e}", style="red")
            results.append((name, False))

    console.print(f"\n{'=' * 60}")
    summary_table = Table(title="Walkthrough Results")
    summary_table.add_column("Step", style="cyan")
    summary_table.add_column("Result", style="white")
    for name, ok in results:
        summary_table.add_row(name, "PASSED" if ok else "FAILED")
    console.print(summary_table)


if __name__ == "__main__":
    try:
        asyncio.run(run_demo(live="--live" in sys.argv))
    except KeyboardInterrupt:
        console.print("\nStopped by user", style="yellow")
