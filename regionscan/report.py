"""
Report assembly and the two views over a finished report: a human-readable
markdown document and the reduced payload used where storage size matters
("KV-optimized"). Both views are pure projections of an AnalysisReport.
"""

from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any, Iterable

import pandas as pd

from .models import AnalysisReport, CaptureResult, ComparisonPair, Issue, PerformanceScore
from .settings import DEFAULT_ANALYSIS_CONFIG


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def assemble_report(
    url: str,
    results: Iterable[CaptureResult],
    issues: Iterable[Issue] = (),
    scores: Iterable[PerformanceScore] = (),
    comparisons: Iterable[ComparisonPair] = (),
    ranking: Iterable[str] = (),
    recommendations: Iterable[str] = (),
    timestamp: str | None = None,
) -> AnalysisReport:
    results = tuple(results)
    ranking = tuple(ranking)
    return AnalysisReport(
        url=url,
        timestamp=timestamp or utc_timestamp(),
        requested_regions=tuple(r.region for r in results),
        region_results=results,
        issues=tuple(issues),
        scores=tuple(scores),
        comparisons=tuple(comparisons),
        ranking=ranking,
        best_region=ranking[0] if ranking else None,
        worst_region=ranking[-1] if ranking else None,
        recommendations=tuple(recommendations),
    )


def region_frame(report: AnalysisReport) -> pd.DataFrame:
    """One row per requested region, failures included."""
    scores = {s.region: s.score for s in report.scores}
    rows = []
    for r in report.region_results:
        rows.append(
            {
                "region": r.region,
                "status": "ok" if r.succeeded else f"failed ({r.error.kind})" if r.error else "failed",
                "score": scores.get(r.region),
                "issues": sum(1 for i in report.issues if i.region == r.region) if r.succeeded else None,
                "load_ms": round(r.timing.load_time_ms) if r.succeeded else None,
                "lcp_ms": round(r.timing.largest_contentful_paint_ms) if r.succeeded else None,
                "requests": len(r.network_entries) if r.succeeded else None,
            }
        )
    df = pd.DataFrame(rows, columns=["region", "status", "score", "issues", "load_ms", "lcp_ms", "requests"])
    return df.astype({c: "Int64" for c in ("score", "issues", "load_ms", "lcp_ms", "requests")})


def render_markdown(report: AnalysisReport) -> str:
    lines = [
        f"# Multi-region analysis: {report.url}",
        "",
        f"Generated: {report.timestamp}",
        f"Regions: {len(report.succeeded_regions)}/{len(report.requested_regions)} succeeded",
    ]
    if report.best_region:
        lines.append(f"Best region: {report.best_region} | Worst region: {report.worst_region}")

    lines += ["", "## Regions", "", "```", region_frame(report).to_string(index=False, na_rep="-"), "```"]

    failed = [r for r in report.region_results if not r.succeeded]
    if failed:
        lines += ["", "## Failed regions", ""]
        lines += [f"- **{r.region}**: {r.error.kind}: {r.error.message}" if r.error else f"- **{r.region}**" for r in failed]

    lines += ["", "## Issues", ""]
    if report.issues:
        for i in report.issues:
            lines.append(f"- [{i.severity.upper()}] {i.region} / {i.type}: {i.message}")
    else:
        lines.append("No issues detected.")

    if report.comparisons:
        lines += ["", "## Comparisons", ""]
        for c in report.comparisons:
            lines.append(f"- {c.region_a} vs {c.region_b}: {c.similarity_percent}% similar")
            lines += [f"  - {d}" for d in c.differences]

    lines += ["", "## Recommendations", ""]
    if report.recommendations:
        lines += [f"{n}. {text}" for n, text in enumerate(report.recommendations, start=1)]
    else:
        lines.append("No recommendations.")

    return "\n".join(lines) + "\n"


def _compact_result(r: CaptureResult) -> dict[str, Any]:
    return {
        "region": r.region,
        "succeeded": r.succeeded,
        "screenshot_ref": r.screenshot_ref,
        "console_count": len(r.console_entries),
        "console_errors": sum(1 for c in r.console_entries if c.level == "error"),
        "network_count": len(r.network_entries),
        "failed_requests": sum(1 for n in r.network_entries if n.is_failed),
        "timing": asdict(r.timing),
        "error": asdict(r.error) if r.error else None,
    }


def kv_optimize(report: AnalysisReport, max_regions: int | None = None) -> dict[str, Any]:
    """
    Reduced, JSON-ready form of a report.

    - raw console/network entries are replaced by counts
    - only the first max_regions requested regions are kept; the rest are
      listed under truncated_regions
    - issues, scores and comparisons are limited to the kept regions
    - ranking, best/worst and recommendations are kept as computed over the
      full run, so they may name regions listed under truncated_regions
      (ranking_scope says so explicitly)
    """
    if max_regions is None:
        max_regions = DEFAULT_ANALYSIS_CONFIG.kv_max_regions
    kept = report.requested_regions[: max(max_regions, 0)]
    kept_set = set(kept)

    return {
        "url": report.url,
        "timestamp": report.timestamp,
        "requested_regions": list(report.requested_regions),
        "truncated_regions": [name for name in report.requested_regions if name not in kept_set],
        "regions": [_compact_result(r) for r in report.region_results if r.region in kept_set],
        "issues": [asdict(i) for i in report.issues if i.region in kept_set],
        "scores": [{"region": s.region, "score": s.score} for s in report.scores if s.region in kept_set],
        "comparisons": [
            {"region_a": c.region_a, "region_b": c.region_b, "similarity_percent": c.similarity_percent}
            for c in report.comparisons
            if c.region_a in kept_set and c.region_b in kept_set
        ],
        "ranking_scope": "all_regions",
        "ranking": list(report.ranking),
        "best_region": report.best_region,
        "worst_region": report.worst_region,
        "recommendations": list(report.recommendations),
    }
