"""
Performance scoring: one region's telemetry reduced to a 0-100 score.

Additive deductions from 100:
- slow load        : (loadTime - 3000ms) / 100, capped at 40
- failed requests  : 5 per 4xx/5xx request
- slow LCP         : (LCP - 2500ms) / 100, capped at 20
- console errors   : 2 per console error

Thresholds, caps and per-item amounts come from AnalysisConfig.
"""

from .models import CaptureResult, Deduction, PerformanceScore
from .settings import AnalysisConfig, DEFAULT_ANALYSIS_CONFIG
from .utils import clamp, round_half_up


def score_capture(result: CaptureResult, config: AnalysisConfig | None = None) -> PerformanceScore:
    cfg = config or DEFAULT_ANALYSIS_CONFIG
    timing = result.timing

    failed_requests = sum(1 for n in result.network_entries if n.is_failed)
    console_errors = sum(1 for c in result.console_entries if c.level == "error")

    penalties = [
        (
            f"Slow page load ({timing.load_time_ms:.0f}ms > {cfg.slow_load_threshold_ms:.0f}ms)",
            clamp((timing.load_time_ms - cfg.slow_load_threshold_ms) / 100, 0, cfg.load_penalty_cap),
        ),
        (
            f"{failed_requests} failed network request(s)",
            cfg.failed_request_penalty * failed_requests,
        ),
        (
            f"Slow largest contentful paint ({timing.largest_contentful_paint_ms:.0f}ms > {cfg.lcp_threshold_ms:.0f}ms)",
            clamp((timing.largest_contentful_paint_ms - cfg.lcp_threshold_ms) / 100, 0, cfg.lcp_penalty_cap),
        ),
        (
            f"{console_errors} console error(s)",
            cfg.console_error_penalty * console_errors,
        ),
    ]

    deductions = tuple(Deduction(reason=reason, amount=round(amount, 2)) for reason, amount in penalties if amount > 0)
    total = sum(amount for _, amount in penalties)

    return PerformanceScore(
        region=result.region,
        score=round_half_up(clamp(100 - total, 0, 100)),
        deductions=deductions,
    )


def score_all(results, config: AnalysisConfig | None = None) -> list[PerformanceScore]:
    """Scores for every succeeded region, in input order."""
    return [score_capture(r, config) for r in results if r.succeeded]
