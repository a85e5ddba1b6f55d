import asyncio, logging, random, time
import aiohttp
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from .models import (
    SEVERITIES,
    CaptureRequest,
    CaptureResult,
    ConsoleEntry,
    LayoutFinding,
    NetworkEntry,
    Region,
    Timing,
)
from .settings import AnalysisConfig, DEFAULT_ANALYSIS_CONFIG
from .utils import RETRYABLE_ERRORS, failed_capture

logger = logging.getLogger(__name__)


class ProviderError(Exception):
    """The rendering provider answered, but with an explicit failure."""


class ConsolePayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    level: str = Field(default="log", validation_alias=AliasChoices("level", "type"))
    text: str = ""
    timestamp: str | None = Field(default=None, validation_alias=AliasChoices("timestamp", "time"))

    @field_validator("level", mode="before")
    @classmethod
    def _normalize_level(cls, v):
        v = str(v or "log").lower()
        return "warning" if v == "warn" else v

    @field_validator("timestamp", mode="before")
    @classmethod
    def _stringify_timestamp(cls, v):
        return None if v is None else str(v)


class NetworkPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    url: str
    method: str = "GET"
    resource_type: str = Field(default="other", validation_alias=AliasChoices("resourceType", "resource_type", "type"))
    status: int | None = None
    duration_ms: float | None = Field(default=None, validation_alias=AliasChoices("durationMs", "duration_ms", "duration"))


class TimingPayload(BaseModel):
    """Accepts both the provider's names and the plain performance.timing names."""
    model_config = ConfigDict(extra="ignore")

    load_time_ms: float = Field(default=0, validation_alias=AliasChoices("loadTimeMs", "loadTime"))
    dom_content_loaded_ms: float = Field(default=0, validation_alias=AliasChoices("domContentLoadedMs", "domContentLoaded"))
    largest_contentful_paint_ms: float = Field(
        default=0, validation_alias=AliasChoices("largestContentfulPaintMs", "largestContentfulPaint", "lcp")
    )
    network_latency_ms: float = Field(default=0, validation_alias=AliasChoices("networkLatencyMs", "networkLatency"))
    dom_processing_ms: float = Field(default=0, validation_alias=AliasChoices("domProcessingMs", "domProcessingTime"))

    @field_validator("*", mode="before")
    @classmethod
    def _missing_is_zero(cls, v):
        return 0 if v is None else v


class LayoutPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    message: str
    severity: str = "medium"
    evidence: str = ""

    @field_validator("severity", mode="before")
    @classmethod
    def _known_severity(cls, v):
        v = str(v or "").lower()
        return v if v in SEVERITIES else "medium"


class RenderResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    screenshot: str | None = Field(default=None, validation_alias=AliasChoices("screenshotRef", "screenshot", "screenshotUrl"))
    console: list[ConsolePayload] = Field(default_factory=list, validation_alias=AliasChoices("consoleEntries", "console"))
    network: list[NetworkPayload] = Field(default_factory=list, validation_alias=AliasChoices("networkEntries", "network"))
    timing: TimingPayload = Field(default_factory=TimingPayload, validation_alias=AliasChoices("timing", "performance"))
    layout: list[LayoutPayload] = Field(default_factory=list, validation_alias=AliasChoices("layoutFindings", "layout"))
    title: str | None = None

    def to_result(self, region: str) -> CaptureResult:
        return CaptureResult(
            region=region,
            succeeded=True,
            screenshot_ref=self.screenshot,
            console_entries=tuple(ConsoleEntry(**c.model_dump()) for c in self.console),
            network_entries=tuple(NetworkEntry(**n.model_dump()) for n in self.network),
            timing=Timing(**self.timing.model_dump()),
            layout_findings=tuple(LayoutFinding(**f.model_dump()) for f in self.layout),
            page_title=self.title,
        )


class RenderingClient:
    """
    Adapter to the remote rendering provider, built on aiohttp.

    - One POST per region to `{region.endpoint}/capture`
    - Parses the provider payload with pydantic; anything that does not fit
      is a malformed response
    - Never raises for regional failures: every outcome is a CaptureResult
    - Retries transient transport errors (see RETRYABLE_ERRORS)
    """
    name = "renderer"

    def __init__(self, session: aiohttp.ClientSession, config: AnalysisConfig | None = None):
        self.session = session
        self.config = config or DEFAULT_ANALYSIS_CONFIG

    async def capture(self, region: Region, request: CaptureRequest) -> CaptureResult:
        """
        Capture one URL from one region.

        Returns:
            CaptureResult with telemetry on success, or a failed result
            carrying the failure kind and message.
        """
        t0 = time.perf_counter()
        attempt = 0

        while True:
            try:
                payload = await self._request(region, request)
                result = payload.to_result(region.name)
                logger.debug("[%s] captured %s in %.2fs", region.name, request.url, time.perf_counter() - t0)
                return result

            except ProviderError as e:
                return failed_capture(region.name, "provider_error", str(e))

            except asyncio.TimeoutError:
                return failed_capture(region.name, "timeout", f"No response within {request.timeout_ms} ms")

            except aiohttp.ContentTypeError as e:
                return failed_capture(region.name, "malformed_response", f"{type(e).__name__}: {e}")

            except aiohttp.ClientError as e:
                error_type = type(e).__name__
                if error_type in RETRYABLE_ERRORS and attempt < self.config.max_retries:
                    attempt += 1
                    delay = self.config.retry_base_delay_s * attempt + random.uniform(0, self.config.retry_jitter_s)
                    logger.info("[%s] %s, retrying in %.2fs (attempt %d)", region.name, error_type, delay, attempt)
                    await asyncio.sleep(delay)
                    continue
                return failed_capture(region.name, "network", f"{error_type}: {e}")

            except ValueError as e:
                # JSON decoding and pydantic validation; InvalidURL is a ClientError and is handled above
                return failed_capture(region.name, "malformed_response", f"{type(e).__name__}: {e}")

    async def _request(self, region: Region, request: CaptureRequest) -> RenderResponse:
        body = {
            "url": request.url,
            "viewport": {"width": request.width, "height": request.height},
            "fullPage": request.full_page,
            "timeout": request.timeout_ms,
        }
        endpoint = f"{region.endpoint.rstrip('/')}/capture"
        timeout = aiohttp.ClientTimeout(total=request.timeout_ms / 1000)

        async with self.session.post(endpoint, json=body, timeout=timeout) as resp:
            if resp.status >= 400:
                text = await resp.text()
                raise ProviderError(f"HTTP {resp.status} from {endpoint}: {text[:200]}")
            data = await resp.json(content_type=None)

        if not isinstance(data, dict):
            raise ValueError(f"expected a JSON object, got {type(data).__name__}")
        if data.get("error"):
            raise ProviderError(str(data["error"]))

        return RenderResponse.model_validate(data)
