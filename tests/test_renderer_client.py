import asyncio
import json

import aiohttp
from aiohttp import web
from aiohttp.test_utils import TestServer as ProviderServer

from regionscan.models import CaptureRequest, Region
from regionscan.renderer_client import RenderingClient
from regionscan.settings import AnalysisConfig

REQUEST = CaptureRequest(url="https://example.com", width=1024, height=768, full_page=False, timeout_ms=2000)

PROVIDER_PAYLOAD = {
    "screenshotRef": "screenshots/us-east/page.png",
    "title": "Example Domain",
    "consoleEntries": [
        {"level": "error", "text": "Uncaught TypeError", "timestamp": "2025-01-01T00:00:00Z"},
        {"level": "warn", "text": "Deprecated API"},
    ],
    "networkEntries": [
        {"url": "https://example.com/", "method": "GET", "resourceType": "document", "status": 200, "durationMs": 120},
        {"url": "https://example.com/app.js", "method": "GET", "resourceType": "script", "status": 404},
    ],
    "timing": {
        "loadTimeMs": 3500,
        "domContentLoadedMs": 1200,
        "largestContentfulPaintMs": 2100,
        "networkLatencyMs": 80,
        "domProcessingMs": 400,
    },
    "layoutFindings": [{"message": "Horizontal overflow", "severity": "bogus"}],
}

# Shape of the plain debug report: console[].type, performance.loadTime, no statuses
DEBUG_REPORT_PAYLOAD = {
    "screenshot": "page-2025.png",
    "console": [{"type": "warning", "text": "This is a warning message", "time": "2025-01-01T00:00:00Z"}],
    "network": [{"url": "https://example.com/", "method": "GET", "resourceType": "document"}],
    "performance": {
        "loadTime": 900,
        "domContentLoaded": 600,
        "firstPaint": 300,
        "networkLatency": 50,
        "domProcessingTime": None,
    },
}


def capture_with(handler, config: AnalysisConfig | None = None, request: CaptureRequest = REQUEST):
    async def _run():
        app = web.Application()
        app.router.add_post("/{region}/capture", handler)
        server = ProviderServer(app)
        await server.start_server()
        try:
            region = Region(name="us-east", endpoint=str(server.make_url("/us-east")), location="Virginia, USA")
            async with aiohttp.ClientSession() as session:
                client = RenderingClient(session, config or AnalysisConfig(max_retries=0))
                return await client.capture(region, request)
        finally:
            await server.close()

    return asyncio.run(_run())


def test_provider_payload_is_normalized():
    seen = {}

    async def handler(request):
        seen["region"] = request.match_info["region"]
        seen["body"] = await request.json()
        return web.json_response(PROVIDER_PAYLOAD)

    result = capture_with(handler)

    assert seen["region"] == "us-east"
    assert seen["body"] == {
        "url": "https://example.com",
        "viewport": {"width": 1024, "height": 768},
        "fullPage": False,
        "timeout": 2000,
    }

    assert result.succeeded and result.error is None
    assert result.region == "us-east"
    assert result.page_title == "Example Domain"
    assert [c.level for c in result.console_entries] == ["error", "warning"]
    assert result.network_entries[1].resource_type == "script"
    assert result.network_entries[1].is_failed
    assert result.network_entries[0].duration_ms == 120
    assert result.timing.load_time_ms == 3500
    assert result.timing.largest_contentful_paint_ms == 2100
    assert result.layout_findings[0].severity == "medium"


def test_debug_report_shape_is_accepted():
    async def handler(request):
        return web.json_response(DEBUG_REPORT_PAYLOAD)

    result = capture_with(handler)

    assert result.succeeded
    assert result.screenshot_ref == "page-2025.png"
    assert result.console_entries[0].level == "warning"
    assert result.console_entries[0].timestamp == "2025-01-01T00:00:00Z"
    assert result.network_entries[0].status is None
    assert result.timing.load_time_ms == 900
    assert result.timing.dom_processing_ms == 0
    assert result.timing.largest_contentful_paint_ms == 0


def test_http_error_is_a_provider_error():
    async def handler(request):
        return web.Response(status=502, text="bad gateway")

    result = capture_with(handler)
    assert not result.succeeded
    assert result.error.kind == "provider_error"
    assert "502" in result.error.message


def test_error_body_is_a_provider_error():
    async def handler(request):
        return web.json_response({"error": "Navigation timeout of 60000 ms exceeded"})

    result = capture_with(handler)
    assert result.error.kind == "provider_error"
    assert "Navigation timeout" in result.error.message


def test_non_json_body_is_malformed():
    async def handler(request):
        return web.Response(text="<html>oops</html>", content_type="text/html")

    assert capture_with(handler).error.kind == "malformed_response"


def test_json_that_is_not_an_object_is_malformed():
    async def handler(request):
        return web.json_response([1, 2, 3])

    assert capture_with(handler).error.kind == "malformed_response"


def test_schema_violation_is_malformed():
    async def handler(request):
        return web.json_response({"networkEntries": [{"method": "GET"}]})

    result = capture_with(handler)
    assert result.error.kind == "malformed_response"
    assert "ValidationError" in result.error.message


def test_slow_provider_times_out():
    async def handler(request):
        await asyncio.sleep(0.5)
        return web.json_response(PROVIDER_PAYLOAD)

    result = capture_with(handler, request=CaptureRequest(url="https://example.com", timeout_ms=100))
    assert result.error.kind == "timeout"


def test_unreachable_provider_is_a_network_error():
    async def _run():
        region = Region(name="eu-west", endpoint="http://127.0.0.1:9/eu-west", location="London, UK")
        async with aiohttp.ClientSession() as session:
            return await RenderingClient(session, AnalysisConfig(max_retries=0)).capture(region, REQUEST)

    result = asyncio.run(_run())
    assert not result.succeeded
    assert result.error.kind == "network"


def test_unusable_endpoint_is_a_network_error():
    async def _run():
        region = Region(name="eu-west", endpoint="renderer-without-scheme/eu-west", location="London, UK")
        async with aiohttp.ClientSession() as session:
            return await RenderingClient(session, AnalysisConfig(max_retries=0)).capture(region, REQUEST)

    result = asyncio.run(_run())
    assert not result.succeeded
    assert result.error.kind == "network"
    assert "InvalidU" in result.error.message


class _FakeResponse:
    status = 200

    def __init__(self, data):
        self._data = data

    async def json(self, content_type=None):
        return self._data

    async def text(self):
        return json.dumps(self._data)


class _FakeRequestContext:
    def __init__(self, resp):
        self.resp = resp

    async def __aenter__(self):
        return self.resp

    async def __aexit__(self, *exc):
        return False


class FlakySession:
    """Drops the connection `failures` times, then answers."""

    def __init__(self, failures: int, data: dict):
        self.failures = failures
        self.data = data
        self.calls = 0

    def post(self, url, json=None, timeout=None):
        self.calls += 1
        if self.calls <= self.failures:
            raise aiohttp.ServerDisconnectedError()
        return _FakeRequestContext(_FakeResponse(self.data))


def test_transient_disconnects_are_retried():
    cfg = AnalysisConfig(max_retries=2, retry_base_delay_s=0, retry_jitter_s=0)
    session = FlakySession(failures=2, data=PROVIDER_PAYLOAD)
    region = Region(name="us-east", endpoint="http://renderer.test/us-east", location="Virginia, USA")

    result = asyncio.run(RenderingClient(session, cfg).capture(region, REQUEST))

    assert result.succeeded
    assert session.calls == 3


def test_retries_are_bounded():
    cfg = AnalysisConfig(max_retries=1, retry_base_delay_s=0, retry_jitter_s=0)
    session = FlakySession(failures=5, data=PROVIDER_PAYLOAD)
    region = Region(name="us-east", endpoint="http://renderer.test/us-east", location="Virginia, USA")

    result = asyncio.run(RenderingClient(session, cfg).capture(region, REQUEST))

    assert result.error.kind == "network"
    assert "ServerDisconnectedError" in result.error.message
    assert session.calls == 2
