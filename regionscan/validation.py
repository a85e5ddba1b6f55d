"""
Argument validation for analysis entry points.

Everything here runs before any capture is attempted: a validation error
aborts the whole invocation and no partial report is produced.
"""

from urllib.parse import urlparse

from .models import ISSUE_TYPES, SEVERITIES

MIN_VIEWPORT = 320
MAX_VIEWPORT_WIDTH = 3840
MAX_VIEWPORT_HEIGHT = 4320
MIN_TIMEOUT_MS = 1_000
MAX_TIMEOUT_MS = 300_000


class AnalysisInputError(ValueError):
    """Raised for invalid arguments to an analysis invocation."""


class UnknownRegionError(AnalysisInputError):
    """Raised when a requested region is not in the registry."""


def validate_url(url: str) -> str:
    if url is None:
        url = ""
    if not isinstance(url, str):
        raise AnalysisInputError(f"URL must be a string, got {type(url).__name__}")
    url = url.strip()
    parsed = urlparse(url)
    if parsed.scheme not in {"http", "https"} or not parsed.hostname:
        raise AnalysisInputError(f"URL must be an absolute http(s) URL, got {url!r}")
    return url


def validate_viewport(width: int, height: int) -> tuple[int, int]:
    if not isinstance(width, int) or not MIN_VIEWPORT <= width <= MAX_VIEWPORT_WIDTH:
        raise AnalysisInputError(f"width must be between {MIN_VIEWPORT} and {MAX_VIEWPORT_WIDTH}, got {width!r}")
    if not isinstance(height, int) or not MIN_VIEWPORT <= height <= MAX_VIEWPORT_HEIGHT:
        raise AnalysisInputError(f"height must be between {MIN_VIEWPORT} and {MAX_VIEWPORT_HEIGHT}, got {height!r}")
    return width, height


def validate_timeout(timeout_ms: int) -> int:
    if isinstance(timeout_ms, bool) or not isinstance(timeout_ms, (int, float)):
        raise AnalysisInputError(f"timeout must be a number of milliseconds, got {timeout_ms!r}")
    if not MIN_TIMEOUT_MS <= timeout_ms <= MAX_TIMEOUT_MS:
        raise AnalysisInputError(f"timeout must be between {MIN_TIMEOUT_MS} and {MAX_TIMEOUT_MS} ms, got {timeout_ms}")
    return int(timeout_ms)


def validate_issue_types(issue_types) -> tuple[str, ...]:
    """None or empty means every category. A bare string is a single category."""
    if issue_types is None:
        return ISSUE_TYPES
    if isinstance(issue_types, str):
        issue_types = [issue_types]
    else:
        try:
            issue_types = list(issue_types)
        except TypeError:
            raise AnalysisInputError(f"issue types must be a list of names, got {issue_types!r}") from None
    if not issue_types:
        return ISSUE_TYPES
    unknown = [t for t in issue_types if t not in ISSUE_TYPES]
    if unknown:
        raise AnalysisInputError(f"Unknown issue type(s): {', '.join(map(str, unknown))}")
    wanted = set(issue_types)
    return tuple(t for t in ISSUE_TYPES if t in wanted)


def validate_severity(severity: str | None) -> str:
    if severity is None:
        return "low"
    if severity not in SEVERITIES:
        raise AnalysisInputError(f"severity must be one of {', '.join(SEVERITIES)}, got {severity!r}")
    return severity
