"""
Bounded plain-text rendering of a trend analysis.

The block is meant to be pasted into a downstream prompt, so it has a hard
character cap. When the full rendering does not fit, it is rebuilt from a
shrinking candidate set: high-tier findings only (fewer and fewer), then
alerts and footer, then fewer alerts, then the footer alone. A block with
nothing to report keeps its no-signal sentence through every stage.
"""

from collections.abc import Sequence

import structlog

from surveillance.domain.models import (
    ClinicalCorrelation,
    DataSourceSummary,
    TrendAlert,
    TrendAnalysisResult,
)

logger = structlog.get_logger(__name__)

MAX_CHARS = 2000

NO_SIGNAL_MESSAGE = (
    "No significant regional surveillance signals detected for the given clinical presentation."
)


def format_trend(direction: str, magnitude: int | None) -> str:
    has_magnitude = magnitude is not None and magnitude > 0
    if direction == "rising":
        return f"Rising (~{magnitude}% increase)" if has_magnitude else "Rising"
    if direction == "falling":
        return f"Falling (~{magnitude}% decrease)" if has_magnitude else "Falling"
    if direction == "stable":
        return "Stable activity"
    return "Unknown trend"


def format_finding(finding: ClinicalCorrelation) -> str:
    trend = format_trend(finding.trend_direction, finding.trend_magnitude)
    return f"{finding.condition}: {trend}, {finding.tier.upper()} relevance. {finding.summary}"


def format_absence(finding: ClinicalCorrelation) -> str:
    if finding.tier == "background":
        return (
            f"{finding.condition}: Below background levels - no significant regional activity. "
            "Consider reduced pre-test probability."
        )
    return (
        f"{finding.condition}: Low regional activity ({finding.trend_direction}). "
        "No significant outbreak signals detected."
    )


def format_alert(alert: TrendAlert) -> str:
    return f"[{alert.level.upper()}] {alert.description}"


def format_source(summary: DataSourceSummary) -> str:
    if summary.status == "error":
        detail = "Data unavailable (query error)"
    elif summary.status == "not_queried":
        detail = "Not queried (no relevant syndromes)"
    elif summary.status == "data" and summary.highlights:
        detail = "; ".join(summary.highlights)
    else:
        detail = "No significant activity"
    return f"- {summary.label}: {detail}"


def _matches_differential(condition: str, differential: Sequence[str]) -> bool:
    condition_lower = condition.lower()
    for dx in differential:
        dx_lower = dx.strip().lower()
        if dx_lower and (dx_lower in condition_lower or condition_lower in dx_lower):
            return True
    return False


def _section(title: str, lines: Sequence[str]) -> list[str]:
    if not lines:
        return []
    return [title, *(f"- {line}" for line in lines), ""]


def _render(
    region_label: str,
    findings: Sequence[ClinicalCorrelation],
    alerts: Sequence[TrendAlert],
    sources: Sequence[str],
    quiet: bool = False,
) -> str:
    parts = [f"Regional Surveillance Summary ({region_label}):", ""]
    parts += _section("Active Conditions:", [format_finding(f) for f in findings])
    parts += _section("Alerts:", [format_alert(a) for a in alerts])
    if quiet:
        parts += [NO_SIGNAL_MESSAGE, ""]
    if sources:
        parts.append(f"Data sources: {', '.join(sources)}")
    return "\n".join(parts)


def _shrink(
    analysis: TrendAnalysisResult,
    alerts: Sequence[TrendAlert],
    max_chars: int,
    quiet: bool = False,
) -> str:
    label = analysis.region_label
    sources = analysis.data_sources_queried
    high_only = [f for f in analysis.ranked_findings if f.tier == "high"]

    for limit in range(len(high_only), 0, -1):
        candidate = _render(label, high_only[:limit], alerts, sources)
        if len(candidate) <= max_chars:
            return candidate

    for limit in range(len(alerts), -1, -1):
        candidate = _render(label, [], alerts[:limit], sources, quiet)
        if len(candidate) <= max_chars:
            return candidate

    # Footer alone still too long for the budget
    return _render(label, [], [], sources, quiet)[:max_chars]


def build_surveillance_context(
    analysis: TrendAnalysisResult | None,
    differential: Sequence[str] | None = None,
    max_chars: int = MAX_CHARS,
) -> str:
    """
    Render an analysis as a text block no longer than ``max_chars``.

    Args:
        analysis: Result to render. None means the region was never checked
            and yields an empty string.
        differential: When given, low/background findings that match a
            differential entry are listed as not significantly active.
        max_chars: Hard cap on the returned length.

    Returns:
        The context block. A checked region with nothing to report still gets
        an explicit no-signal sentence.
    """
    if analysis is None:
        return ""

    significant = [f for f in analysis.ranked_findings if f.tier in ("high", "moderate")]
    actionable_alerts = [a for a in analysis.alerts if a.level in ("critical", "warning")]
    absent = [
        f
        for f in analysis.ranked_findings
        if f.tier in ("low", "background")
        and differential
        and _matches_differential(f.condition, differential)
    ]

    parts = [f"Regional Surveillance Summary ({analysis.region_label}):", ""]
    parts += _section("Active Conditions:", [format_finding(f) for f in significant])
    parts += _section(
        "Conditions Not Significantly Active in This Region:", [format_absence(f) for f in absent]
    )
    parts += _section("Alerts:", [format_alert(a) for a in actionable_alerts])

    quiet = not (significant or absent or actionable_alerts)
    if quiet:
        parts += [NO_SIGNAL_MESSAGE, ""]

    if analysis.data_source_summaries:
        parts.append("Data Sources Reviewed:")
        parts += [format_source(s) for s in analysis.data_source_summaries]
        parts.append("")

    if analysis.data_sources_queried:
        parts.append(f"Data sources: {', '.join(analysis.data_sources_queried)}")

    output = "\n".join(parts)
    if len(output) > max_chars:
        logger.info("surveillance_context_truncated", original_length=len(output), limit=max_chars)
        output = _shrink(analysis, actionable_alerts, max_chars, quiet)
    return output
