import logging
import os
from pathlib import Path
from urllib.parse import urlparse
from pydantic import BaseModel
from dataclasses import dataclass, fields
import yaml

PROJECT_ROOT = Path(__file__).resolve().parents[1]

RENDERER_BASE_URL_ENV = "RENDERER_BASE_URL"
DEFAULT_RENDERER_BASE_URL = "http://localhost:8787"

logger = logging.getLogger(__name__)


class RendererSettings(BaseModel):
    base_url: str = DEFAULT_RENDERER_BASE_URL

    def endpoint_for(self, region_name: str) -> str:
        """
        Address of the rendering provider instance serving one region.

        The provider exposes one instance per region under the base address:
            http://renderer.example.com/us-east
        """
        return f"{self.base_url.rstrip('/')}/{region_name}"


def load_renderer_settings(environ: dict | None = None) -> RendererSettings:
    """
    Load the rendering provider address from the environment.

    Falls back to the local default when the variable is unset, empty,
    or does not look like an http(s) URL.
    """
    env = os.environ if environ is None else environ
    raw = (env.get(RENDERER_BASE_URL_ENV) or "").strip().strip('"').strip("'")
    if not raw:
        return RendererSettings()

    parsed = urlparse(raw)
    if parsed.scheme not in {"http", "https"} or not parsed.hostname:
        logger.warning("[config] %s does not look like a URL: %s", RENDERER_BASE_URL_ENV, raw)
        return RendererSettings()

    return RendererSettings(base_url=raw.rstrip("/"))


@dataclass
class AnalysisConfig:
    """
    Central configuration for capture, detection, scoring and recommendations.

    Values can be overridden via analysis_config.yaml at the project root.
    """

    # Capture defaults (per-call arguments override these)
    default_timeout_ms: int = 60_000
    viewport_width: int = 1280
    viewport_height: int = 800
    full_page: bool = True

    # Provider retries (only within the per-region timeout)
    max_retries: int = 1
    retry_base_delay_s: float = 0.1
    retry_jitter_s: float = 0.2

    # Detection thresholds
    slow_load_threshold_ms: float = 3000
    lcp_threshold_ms: float = 2500

    # Scoring
    load_penalty_cap: float = 40
    lcp_penalty_cap: float = 20
    failed_request_penalty: float = 5
    console_error_penalty: float = 2

    # Recommendations
    low_score_threshold: int = 75
    score_spread_threshold: int = 15
    total_issue_threshold: int = 10

    # KV-optimized projection
    kv_max_regions: int = 3

    # Optional region catalog override: list of {name, location, endpoint?}
    regions: list | None = None


def load_analysis_config(path: str | Path | None = None) -> AnalysisConfig:
    """
    Load AnalysisConfig from YAML if present; otherwise use defaults.

    By default, looks for `analysis_config.yaml` at the project root.
    """

    if path is None:
        path = PROJECT_ROOT / "analysis_config.yaml"

    path = Path(path)

    if not path.exists():
        logger.info("[config] YAML not found at %s, using defaults", path)
        return AnalysisConfig()

    raw = path.read_text(encoding="utf-8")
    data = yaml.safe_load(raw) or {}

    if not isinstance(data, dict):
        logger.warning("[config] Expected mapping in %s, got %s, using defaults", path, type(data))
        return AnalysisConfig()

    allowed_keys = {f.name for f in fields(AnalysisConfig)}
    ignored = sorted(k for k in data if k not in allowed_keys)
    if ignored:
        logger.warning("[config] Ignoring unknown keys in %s: %s", path, ", ".join(map(str, ignored)))
    filtered = {k: v for k, v in data.items() if k in allowed_keys}

    return AnalysisConfig(**filtered)

DEFAULT_ANALYSIS_CONFIG = load_analysis_config()
