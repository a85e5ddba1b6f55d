"""
Region comparator: pairwise similarity and a best-to-worst ranking.

Similarity starts at 100. Each SimilarityRule looks at a pair of regions
and, when it sees a difference, deducts its fixed amount and records a
human-readable line, so every point lost is accounted for in
ComparisonPair.differences. The rule table is a plain tuple; pass another
one to compare_regions to change the policy.
"""

from dataclasses import dataclass
from itertools import combinations
from typing import Callable, Iterable

from .models import ComparisonPair, Issue, PerformanceScore
from .utils import clamp


@dataclass(frozen=True)
class RegionSummary:
    name: str
    score: int
    issue_count: int
    has_critical: bool


@dataclass(frozen=True)
class SimilarityRule:
    """
    describe(a, b, threshold) returns the difference text, or None when the
    pair does not differ on this factor.
    """
    name: str
    threshold: float
    deduction: int
    describe: Callable[[RegionSummary, RegionSummary, float], str | None]


def _score_gap(a: RegionSummary, b: RegionSummary, threshold: float) -> str | None:
    gap = abs(a.score - b.score)
    if gap < threshold:
        return None
    return f"Performance score differs by {gap} points ({a.name}: {a.score}, {b.name}: {b.score})"


def _issue_count_gap(a: RegionSummary, b: RegionSummary, threshold: float) -> str | None:
    gap = abs(a.issue_count - b.issue_count)
    if gap < threshold:
        return None
    return f"Issue count differs by {gap} ({a.name}: {a.issue_count}, {b.name}: {b.issue_count})"


def _critical_presence(a: RegionSummary, b: RegionSummary, threshold: float) -> str | None:
    if a.has_critical == b.has_critical:
        return None
    affected = a.name if a.has_critical else b.name
    return f"Critical issues present only in {affected}"


DEFAULT_SIMILARITY_RULES: tuple[SimilarityRule, ...] = (
    SimilarityRule("score_gap", threshold=10, deduction=30, describe=_score_gap),
    SimilarityRule("issue_count_gap", threshold=3, deduction=20, describe=_issue_count_gap),
    SimilarityRule("critical_presence", threshold=1, deduction=25, describe=_critical_presence),
)


def summarize_regions(scores: Iterable[PerformanceScore], issues: Iterable[Issue]) -> list[RegionSummary]:
    issues = list(issues)
    summaries = []
    for s in scores:
        own = [i for i in issues if i.region == s.region]
        summaries.append(
            RegionSummary(
                name=s.region,
                score=s.score,
                issue_count=len(own),
                has_critical=any(i.severity == "critical" for i in own),
            )
        )
    return summaries


def compare_pair(
    a: RegionSummary,
    b: RegionSummary,
    rules: Iterable[SimilarityRule] = DEFAULT_SIMILARITY_RULES,
) -> ComparisonPair:
    similarity = 100
    differences = []
    for rule in rules:
        text = rule.describe(a, b, rule.threshold)
        if text is None:
            continue
        similarity -= rule.deduction
        differences.append(text)

    return ComparisonPair(
        region_a=a.name,
        region_b=b.name,
        similarity_percent=int(clamp(similarity, 0, 100)),
        differences=tuple(differences),
    )


def rank_regions(summaries: Iterable[RegionSummary]) -> list[str]:
    """Best first: higher score, then fewer issues, then name."""
    ordered = sorted(summaries, key=lambda s: (-s.score, s.issue_count, s.name))
    return [s.name for s in ordered]


def compare_regions(
    scores: Iterable[PerformanceScore],
    issues: Iterable[Issue],
    rules: Iterable[SimilarityRule] = DEFAULT_SIMILARITY_RULES,
) -> tuple[list[ComparisonPair], list[str]]:
    """
    All unordered pairs (input order) plus the ranking.

    Both are empty when fewer than two regions are given: there is
    nothing to compare, which is not an error.
    """
    summaries = summarize_regions(scores, issues)
    if len(summaries) < 2:
        return [], []

    rules = tuple(rules)
    pairs = [compare_pair(a, b, rules) for a, b in combinations(summaries, 2)]
    return pairs, rank_regions(summaries)
