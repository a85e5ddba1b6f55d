from dataclasses import replace

from regionscan.detector import detect_all, detect_issues
from regionscan.models import CaptureResult, ConsoleEntry, LayoutFinding, NetworkEntry, Timing
from regionscan.settings import AnalysisConfig
from regionscan.utils import failed_capture

CONFIG = AnalysisConfig()


def make_result(**overrides) -> CaptureResult:
    """Helper: start from a 'clean success' and override fields."""
    base = CaptureResult(
        region="us-east",
        succeeded=True,
        timing=Timing(load_time_ms=1500, largest_contentful_paint_ms=1200),
    )
    return replace(base, **overrides)


def test_clean_capture_has_no_issues():
    assert detect_issues(make_result(), config=CONFIG) == []


def test_missing_resource_severity_by_status_and_type():
    r = make_result(
        network_entries=(
            NetworkEntry(url="https://example.com/a.png", resource_type="image", status=404),
            NetworkEntry(url="https://example.com/a.css", resource_type="stylesheet", status=404),
            NetworkEntry(url="https://example.com/a.js", resource_type="script", status=403),
            NetworkEntry(url="https://example.com/font.woff2", resource_type="font", status=502),
        )
    )
    issues = detect_issues(r, config=CONFIG)
    assert [i.severity for i in issues] == ["medium", "high", "high", "high"]
    assert all(i.type == "missing_resource" for i in issues)
    assert issues[0].message == "Failed to load image: https://example.com/a.png"
    assert "HTTP 404" in issues[0].evidence


def test_successful_redirected_and_unknown_status_are_ignored():
    r = make_result(
        network_entries=(
            NetworkEntry(url="https://example.com/", status=200),
            NetworkEntry(url="https://example.com/old", status=301),
            NetworkEntry(url="https://example.com/pending", status=None),
        )
    )
    assert detect_issues(r, config=CONFIG) == []


def test_console_errors_and_warnings():
    r = make_result(
        console_entries=(
            ConsoleEntry(level="info", text="== DEBUG MODE =="),
            ConsoleEntry(level="error", text="Uncaught ReferenceError: x is not defined"),
            ConsoleEntry(level="warning", text="Mixed content"),
        )
    )
    issues = detect_issues(r, config=CONFIG)
    assert [(i.type, i.severity) for i in issues] == [("rendering", "high"), ("rendering", "low")]


def test_slow_load_is_high_then_critical_beyond_twice_threshold():
    high = detect_issues(make_result(timing=Timing(load_time_ms=4500)), config=CONFIG)
    assert [(i.type, i.severity) for i in high] == [("performance", "high")]

    critical = detect_issues(make_result(timing=Timing(load_time_ms=6500)), config=CONFIG)
    assert [i.severity for i in critical] == ["critical"]

    assert detect_issues(make_result(timing=Timing(load_time_ms=3000)), config=CONFIG) == []


def test_slow_lcp_is_a_separate_medium_issue():
    r = make_result(timing=Timing(load_time_ms=4000, largest_contentful_paint_ms=2600))
    issues = detect_issues(r, config=CONFIG)
    assert [i.severity for i in issues] == ["high", "medium"]
    assert "contentful paint" in issues[1].message


def test_layout_findings_pass_through():
    r = make_result(layout_findings=(LayoutFinding(message="Horizontal overflow", severity="high", evidence="body 1480px"),))
    (issue,) = detect_issues(r, config=CONFIG)
    assert issue.type == "layout"
    assert issue.severity == "high"
    assert issue.evidence == "body 1480px"


def test_unknown_layout_severity_is_treated_as_medium():
    r = make_result(layout_findings=(LayoutFinding(message="Overlap", severity="severe"),))
    (issue,) = detect_issues(r, config=CONFIG)
    assert issue.severity == "medium"
    assert detect_issues(r, min_severity="high", config=CONFIG) == []


def test_issues_are_ordered_by_category_then_discovery():
    r = make_result(
        timing=Timing(load_time_ms=5000),
        console_entries=(ConsoleEntry(level="error", text="boom"),),
        network_entries=(
            NetworkEntry(url="https://example.com/1.png", resource_type="image", status=404),
            NetworkEntry(url="https://example.com/2.png", resource_type="image", status=410),
        ),
        layout_findings=(LayoutFinding(message="Overlap"),),
    )
    issues = detect_issues(r, config=CONFIG)
    assert [i.type for i in issues] == ["layout", "missing_resource", "missing_resource", "rendering", "performance"]
    assert issues[1].message.endswith("1.png")
    assert issues[2].message.endswith("2.png")


def test_severity_filter_drops_lower_issues_only():
    r = make_result(
        timing=Timing(load_time_ms=7000, largest_contentful_paint_ms=3000),
        console_entries=(ConsoleEntry(level="warning", text="w"), ConsoleEntry(level="error", text="e")),
    )
    everything = detect_issues(r, config=CONFIG)
    high = detect_issues(r, min_severity="high", config=CONFIG)

    assert all(i.severity in {"high", "critical"} for i in high)
    assert high == [i for i in everything if i.severity in {"high", "critical"}]


def test_issue_type_filter():
    r = make_result(
        timing=Timing(load_time_ms=5000),
        console_entries=(ConsoleEntry(level="error", text="e"),),
    )
    issues = detect_issues(r, issue_types=["rendering"], config=CONFIG)
    assert [i.type for i in issues] == ["rendering"]


def test_detect_all_groups_by_region_and_skips_failures():
    results = [
        make_result(region="us-west", console_entries=(ConsoleEntry(level="error", text="a"),)),
        failed_capture("eu-west", "network", "ClientConnectorError"),
        make_result(region="ap-southeast", timing=Timing(load_time_ms=4000)),
    ]
    issues = detect_all(results, config=CONFIG)
    assert [i.region for i in issues] == ["us-west", "ap-southeast"]
