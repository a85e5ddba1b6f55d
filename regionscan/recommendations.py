"""
Recommendation engine.

The rules are:
- explicit
- configurable
- easily auditable

Each rule reads the aggregated issues and scores and contributes at most
one recommendation. Output follows table order, not discovery order.
"""

from dataclasses import dataclass
from typing import Callable, Iterable

from .models import Issue, PerformanceScore
from .settings import AnalysisConfig, DEFAULT_ANALYSIS_CONFIG


@dataclass(frozen=True)
class RecommendationContext:
    issues: tuple[Issue, ...]
    scores: tuple[PerformanceScore, ...]
    config: AnalysisConfig

    def regions_with(self, issue_type: str) -> list[str]:
        return list(dict.fromkeys(i.region for i in self.issues if i.type == issue_type))

    @property
    def score_spread(self) -> int:
        if len(self.scores) < 2:
            return 0
        values = [s.score for s in self.scores]
        return max(values) - min(values)


def _missing_resources(ctx: RecommendationContext) -> str | None:
    regions = ctx.regions_with("missing_resource")
    if len(regions) < 2:
        return None
    return (
        f"Resources fail to load in {len(regions)} regions ({', '.join(regions)}). "
        "Verify asset URLs and CDN availability for every edge location."
    )


def _slow_loading(ctx: RecommendationContext) -> str | None:
    regions = ctx.regions_with("performance")
    if len(regions) < 2:
        return None
    return (
        f"Slow loading detected in {len(regions)} regions ({', '.join(regions)}). "
        "Reduce page weight: compress images, minify and split scripts, and defer non-critical resources."
    )


def _low_scoring_regions(ctx: RecommendationContext) -> str | None:
    threshold = ctx.config.low_score_threshold
    low = [s for s in ctx.scores if s.score < threshold]
    if not low:
        return None
    named = ", ".join(f"{s.region} ({s.score})" for s in low)
    return (
        f"CRITICAL: Performance score below {threshold} in {named}. "
        "Review hosting infrastructure and CDN coverage for these regions."
    )


def _score_spread(ctx: RecommendationContext) -> str | None:
    spread = ctx.score_spread
    if spread <= ctx.config.score_spread_threshold:
        return None
    return (
        f"Performance varies by {spread} points across regions. "
        "Consider regional CDN optimization or additional edge locations."
    )


def _many_issues(ctx: RecommendationContext) -> str | None:
    total = len(ctx.issues)
    if total <= ctx.config.total_issue_threshold:
        return None
    return f"{total} issues detected across all regions. Run a general review of page resources, scripts and markup."


RecommendationRule = Callable[[RecommendationContext], str | None]

RECOMMENDATION_RULES: tuple[tuple[str, RecommendationRule], ...] = (
    ("missing_resources", _missing_resources),
    ("slow_loading", _slow_loading),
    ("low_scoring_regions", _low_scoring_regions),
    ("score_spread", _score_spread),
    ("many_issues", _many_issues),
)


def generate_recommendations(
    issues: Iterable[Issue],
    scores: Iterable[PerformanceScore],
    config: AnalysisConfig | None = None,
) -> list[str]:
    ctx = RecommendationContext(
        issues=tuple(issues),
        scores=tuple(scores),
        config=config or DEFAULT_ANALYSIS_CONFIG,
    )
    recommendations = []
    for _, rule in RECOMMENDATION_RULES:
        text = rule(ctx)
        if text is not None:
            recommendations.append(text)
    return recommendations
