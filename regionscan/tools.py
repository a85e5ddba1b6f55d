"""
Entry points exposed to the tool transport.

Each invocation validates its arguments first (no capture is attempted on
invalid input), captures from every requested region, and runs detection,
scoring, comparison and recommendations over the settled results. Nothing
is kept between invocations.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable

import aiohttp

from .comparator import compare_regions
from .detector import detect_all
from .models import AnalysisReport, CaptureError, CaptureRequest, CaptureResult, ComparisonPair, Issue, NetworkSummary, PerformanceScore
from .network import summarize_network
from .orchestrator import CaptureClient, CaptureOrchestrator
from .recommendations import generate_recommendations as synthesize_recommendations
from .regions import RegionRegistry, build_registry
from .renderer_client import RenderingClient
from .report import assemble_report, kv_optimize, utc_timestamp
from .scoring import score_all
from .settings import AnalysisConfig, DEFAULT_ANALYSIS_CONFIG, load_renderer_settings
from .validation import (
    AnalysisInputError,
    validate_issue_types,
    validate_severity,
    validate_timeout,
    validate_url,
    validate_viewport,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IssueAnalysis:
    url: str
    timestamp: str
    issues_by_region: dict[str, tuple[Issue, ...]] = field(default_factory=dict)
    failed_regions: dict[str, CaptureError] = field(default_factory=dict)


@dataclass(frozen=True)
class PerformanceComparison:
    url: str
    timestamp: str
    scores: tuple[PerformanceScore, ...] = ()
    ranking: tuple[str, ...] = ()
    comparisons: tuple[ComparisonPair, ...] = ()
    best_region: str | None = None
    worst_region: str | None = None
    network_summaries: dict[str, NetworkSummary] | None = None
    recommendations: tuple[str, ...] | None = None
    failed_regions: dict[str, CaptureError] = field(default_factory=dict)


def _failed_regions(results: Iterable[CaptureResult]) -> dict[str, CaptureError]:
    return {r.region: r.error for r in results if not r.succeeded}


async def _capture(
    request: CaptureRequest,
    region_names: list[str],
    registry: RegionRegistry,
    client: CaptureClient | None,
    config: AnalysisConfig,
) -> list[CaptureResult]:
    if client is not None:
        return await CaptureOrchestrator(client, registry).capture_all(request, region_names)

    async with aiohttp.ClientSession() as session:
        orchestrator = CaptureOrchestrator(RenderingClient(session, config), registry)
        return await orchestrator.capture_all(request, region_names)


def _prepare(
    url: str,
    regions: Iterable[str] | None,
    width: int | None,
    height: int | None,
    full_page: bool | None,
    timeout: int | None,
    config: AnalysisConfig,
    registry: RegionRegistry | None,
) -> tuple[CaptureRequest, list[str], RegionRegistry]:
    """Everything that can reject an invocation happens here, before capture."""
    url = validate_url(url)
    width, height = validate_viewport(
        config.viewport_width if width is None else width,
        config.viewport_height if height is None else height,
    )
    timeout_ms = validate_timeout(config.default_timeout_ms if timeout is None else timeout)
    full_page = config.full_page if full_page is None else full_page
    if not isinstance(full_page, bool):
        raise AnalysisInputError(f"fullPage must be a boolean, got {full_page!r}")
    if isinstance(regions, str):
        regions = [regions]

    if registry is None:
        registry = build_registry(load_renderer_settings(), config)
    region_names = [r.name for r in registry.resolve(regions)]

    request = CaptureRequest(url=url, width=width, height=height, full_page=full_page, timeout_ms=timeout_ms)
    return request, region_names, registry


async def multi_region_screenshots(
    url: str,
    regions: Iterable[str] | None = None,
    enable_visual_comparison: bool = True,
    enable_issue_detection: bool = True,
    kv_optimized: bool = False,
    width: int | None = None,
    height: int | None = None,
    full_page: bool | None = None,
    timeout: int | None = None,
    *,
    client: CaptureClient | None = None,
    config: AnalysisConfig | None = None,
    registry: RegionRegistry | None = None,
) -> AnalysisReport | dict[str, Any]:
    """
    Capture url from every requested region and build the full report.

    Returns the AnalysisReport, or its reduced dict form when kv_optimized.
    """
    cfg = config or DEFAULT_ANALYSIS_CONFIG
    request, region_names, registry = _prepare(url, regions, width, height, full_page, timeout, cfg, registry)

    results = await _capture(request, region_names, registry, client, cfg)

    issues = detect_all(results, config=cfg) if enable_issue_detection else []
    scores = score_all(results, cfg)
    comparisons, ranking = compare_regions(scores, issues)
    if not enable_visual_comparison:
        comparisons = []
    recommendations = synthesize_recommendations(issues, scores, cfg)

    report = assemble_report(
        url=request.url,
        results=results,
        issues=issues,
        scores=scores,
        comparisons=comparisons,
        ranking=ranking,
        recommendations=recommendations,
    )
    logger.info(
        "Analysis of %s done: %d/%d regions, %d issues, best=%s worst=%s",
        report.url, len(report.succeeded_regions), len(report.requested_regions),
        len(report.issues), report.best_region, report.worst_region,
    )

    if kv_optimized:
        return kv_optimize(report, cfg.kv_max_regions)
    return report


async def analyze_visual_issues(
    url: str,
    regions: Iterable[str] | None = None,
    issue_types: Iterable[str] | None = None,
    severity_filter: str | None = "low",
    *,
    client: CaptureClient | None = None,
    config: AnalysisConfig | None = None,
    registry: RegionRegistry | None = None,
) -> IssueAnalysis:
    """Issues per succeeded region, limited to issue_types at or above severity_filter."""
    cfg = config or DEFAULT_ANALYSIS_CONFIG
    types = validate_issue_types(issue_types)
    severity = validate_severity(severity_filter)
    request, region_names, registry = _prepare(url, regions, None, None, None, None, cfg, registry)

    results = await _capture(request, region_names, registry, client, cfg)
    issues = detect_all(results, types, severity, cfg)

    grouped = {
        r.region: tuple(i for i in issues if i.region == r.region)
        for r in results
        if r.succeeded
    }
    return IssueAnalysis(
        url=request.url,
        timestamp=utc_timestamp(),
        issues_by_region=grouped,
        failed_regions=_failed_regions(results),
    )


async def compare_regional_performance(
    url: str,
    regions: Iterable[str] | None,
    include_network_analysis: bool = False,
    generate_recommendations: bool = True,
    *,
    client: CaptureClient | None = None,
    config: AnalysisConfig | None = None,
    registry: RegionRegistry | None = None,
) -> PerformanceComparison:
    """Scores, ranking and pairwise comparisons, with optional network summaries and recommendations."""
    cfg = config or DEFAULT_ANALYSIS_CONFIG
    request, region_names, registry = _prepare(url, regions, None, None, None, None, cfg, registry)

    results = await _capture(request, region_names, registry, client, cfg)
    issues = detect_all(results, config=cfg)
    scores = score_all(results, cfg)
    comparisons, ranking = compare_regions(scores, issues)

    network = None
    if include_network_analysis:
        network = {r.region: summarize_network(r) for r in results if r.succeeded}

    recommendations = None
    if generate_recommendations:
        recommendations = tuple(synthesize_recommendations(issues, scores, cfg))

    return PerformanceComparison(
        url=request.url,
        timestamp=utc_timestamp(),
        scores=tuple(scores),
        ranking=tuple(ranking),
        comparisons=tuple(comparisons),
        best_region=ranking[0] if ranking else None,
        worst_region=ranking[-1] if ranking else None,
        network_summaries=network,
        recommendations=recommendations,
        failed_regions=_failed_regions(results),
    )
