"""
Issue detector: turns one region's telemetry into typed Issue records.

Each category has its own rule function and the rules are evaluated
independently from an ordered table, so a category can be added by
appending a row. The table order is also the output order.
"""

from typing import Callable, Iterable, Iterator

from .models import ISSUE_TYPES, SEVERITIES, SEVERITY_RANK, CaptureResult, Issue
from .settings import AnalysisConfig, DEFAULT_ANALYSIS_CONFIG

CRITICAL_RESOURCE_TYPES = {"stylesheet", "script"}


def _layout(result: CaptureResult, config: AnalysisConfig) -> Iterator[Issue]:
    for finding in result.layout_findings:
        yield Issue(
            type="layout",
            severity=finding.severity if finding.severity in SEVERITIES else "medium",
            message=finding.message,
            evidence=finding.evidence,
            region=result.region,
        )


def _missing_resources(result: CaptureResult, config: AnalysisConfig) -> Iterator[Issue]:
    for entry in result.network_entries:
        if not entry.is_failed:
            continue
        if entry.status >= 500 or entry.resource_type in CRITICAL_RESOURCE_TYPES:
            severity = "high"
        else:
            severity = "medium"
        yield Issue(
            type="missing_resource",
            severity=severity,
            message=f"Failed to load {entry.resource_type}: {entry.url}",
            evidence=f"{entry.method} {entry.url} -> HTTP {entry.status}",
            region=result.region,
        )


def _rendering(result: CaptureResult, config: AnalysisConfig) -> Iterator[Issue]:
    for entry in result.console_entries:
        if entry.level == "error":
            severity = "high"
        elif entry.level == "warning":
            severity = "low"
        else:
            continue
        yield Issue(
            type="rendering",
            severity=severity,
            message=f"Console {entry.level}: {entry.text}",
            evidence=f"[{entry.timestamp}] {entry.text}" if entry.timestamp else entry.text,
            region=result.region,
        )


def _performance(result: CaptureResult, config: AnalysisConfig) -> Iterator[Issue]:
    timing = result.timing
    threshold = config.slow_load_threshold_ms

    if timing.load_time_ms > threshold:
        yield Issue(
            type="performance",
            severity="critical" if timing.load_time_ms > 2 * threshold else "high",
            message=f"Slow page load: {timing.load_time_ms:.0f}ms (threshold {threshold:.0f}ms)",
            evidence=(
                f"loadTime={timing.load_time_ms:.0f}ms domContentLoaded={timing.dom_content_loaded_ms:.0f}ms "
                f"networkLatency={timing.network_latency_ms:.0f}ms domProcessing={timing.dom_processing_ms:.0f}ms"
            ),
            region=result.region,
        )

    if timing.largest_contentful_paint_ms > config.lcp_threshold_ms:
        yield Issue(
            type="performance",
            severity="medium",
            message=(
                f"Slow largest contentful paint: {timing.largest_contentful_paint_ms:.0f}ms "
                f"(threshold {config.lcp_threshold_ms:.0f}ms)"
            ),
            evidence=f"largestContentfulPaint={timing.largest_contentful_paint_ms:.0f}ms",
            region=result.region,
        )


DetectionRule = Callable[[CaptureResult, AnalysisConfig], Iterable[Issue]]

DETECTION_RULES: tuple[tuple[str, DetectionRule], ...] = (
    ("layout", _layout),
    ("missing_resource", _missing_resources),
    ("rendering", _rendering),
    ("performance", _performance),
)


def detect_issues(
    result: CaptureResult,
    issue_types: Iterable[str] = ISSUE_TYPES,
    min_severity: str = "low",
    config: AnalysisConfig | None = None,
) -> list[Issue]:
    """
    Issues for one succeeded capture, filtered by category and severity.

    Must only be called with succeeded results; detect_all takes care of that.
    """
    cfg = config or DEFAULT_ANALYSIS_CONFIG
    wanted = set(issue_types)
    floor = SEVERITY_RANK[min_severity]

    issues = []
    for category, rule in DETECTION_RULES:
        if category not in wanted:
            continue
        issues.extend(i for i in rule(result, cfg) if SEVERITY_RANK[i.severity] >= floor)
    return issues


def detect_all(
    results: Iterable[CaptureResult],
    issue_types: Iterable[str] = ISSUE_TYPES,
    min_severity: str = "low",
    config: AnalysisConfig | None = None,
) -> list[Issue]:
    """Issues for every succeeded region, grouped by region in input order."""
    issue_types = tuple(issue_types)
    issues = []
    for result in results:
        if result.succeeded:
            issues.extend(detect_issues(result, issue_types, min_severity, config))
    return issues
