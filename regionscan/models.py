from dataclasses import dataclass, field, asdict
from typing import Any

ISSUE_TYPES = ("layout", "missing_resource", "rendering", "performance")

SEVERITIES = ("low", "medium", "high", "critical")
SEVERITY_RANK = {name: rank for rank, name in enumerate(SEVERITIES)}


@dataclass(frozen=True)
class Region:
    """
    A named capture endpoint.

    Fields:
        name     : Unique identifier, e.g. "us-east".
        endpoint : Address of the rendering provider instance for this region.
        location : Human-readable location label, e.g. "Virginia, USA".
    """
    name: str
    endpoint: str
    location: str


@dataclass(frozen=True)
class CaptureRequest:
    """What the rendering provider is asked to do for one region."""
    url: str
    width: int = 1280
    height: int = 800
    full_page: bool = True
    timeout_ms: int = 60_000


@dataclass(frozen=True)
class ConsoleEntry:
    level: str
    text: str
    timestamp: str | None = None


@dataclass(frozen=True)
class NetworkEntry:
    url: str
    method: str = "GET"
    resource_type: str = "other"
    status: int | None = None
    duration_ms: float | None = None

    @property
    def is_failed(self) -> bool:
        return self.status is not None and 400 <= self.status <= 599


@dataclass(frozen=True)
class Timing:
    load_time_ms: float = 0
    dom_content_loaded_ms: float = 0
    largest_contentful_paint_ms: float = 0
    network_latency_ms: float = 0
    dom_processing_ms: float = 0


@dataclass(frozen=True)
class LayoutFinding:
    """Structural anomaly reported as-is by the rendering provider."""
    message: str
    severity: str = "medium"
    evidence: str = ""


@dataclass(frozen=True)
class CaptureError:
    """
    Failure descriptor for one region.

    kind is one of: "timeout", "network", "malformed_response", "provider_error".
    """
    kind: str
    message: str


@dataclass(frozen=True)
class CaptureResult:
    """
    Normalized per-region capture, successful or not.

    Fields:
        region          : Region name the capture was requested from.
        succeeded       : False when the provider call failed for any reason.
        screenshot_ref  : Provider reference (URL or key) to the screenshot.
        console_entries : Console messages in emission order.
        network_entries : Network requests in issue order.
        timing          : Page timing metrics in milliseconds.
        layout_findings : Structural anomalies reported by the provider.
        page_title      : Document title, if the provider reported one.
        error           : Failure descriptor when succeeded is False.
    """
    region: str
    succeeded: bool
    screenshot_ref: str | None = None
    console_entries: tuple[ConsoleEntry, ...] = ()
    network_entries: tuple[NetworkEntry, ...] = ()
    timing: Timing = field(default_factory=Timing)
    layout_findings: tuple[LayoutFinding, ...] = ()
    page_title: str | None = None
    error: CaptureError | None = None


@dataclass(frozen=True)
class Issue:
    type: str
    severity: str
    message: str
    evidence: str
    region: str


@dataclass(frozen=True)
class Deduction:
    reason: str
    amount: float


@dataclass(frozen=True)
class PerformanceScore:
    region: str
    score: int
    deductions: tuple[Deduction, ...] = ()


@dataclass(frozen=True)
class ComparisonPair:
    region_a: str
    region_b: str
    similarity_percent: int
    differences: tuple[str, ...] = ()


@dataclass(frozen=True)
class NetworkSummary:
    region: str
    total_requests: int
    failed_requests: int
    by_resource_type: dict[str, int] = field(default_factory=dict)
    average_duration_ms: float | None = None
    slowest_url: str | None = None
    slowest_duration_ms: float | None = None


@dataclass(frozen=True)
class AnalysisReport:
    """
    Root aggregate of one analysis run.

    region_results holds exactly one entry per requested region, in request
    order. issues and scores only cover regions that succeeded. comparisons
    and ranking are empty and best/worst are None when fewer than two
    regions succeeded.
    """
    url: str
    timestamp: str
    requested_regions: tuple[str, ...]
    region_results: tuple[CaptureResult, ...]
    issues: tuple[Issue, ...] = ()
    scores: tuple[PerformanceScore, ...] = ()
    comparisons: tuple[ComparisonPair, ...] = ()
    ranking: tuple[str, ...] = ()
    best_region: str | None = None
    worst_region: str | None = None
    recommendations: tuple[str, ...] = ()

    @property
    def succeeded_regions(self) -> tuple[str, ...]:
        return tuple(r.region for r in self.region_results if r.succeeded)

    @property
    def failed_regions(self) -> tuple[str, ...]:
        return tuple(r.region for r in self.region_results if not r.succeeded)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
