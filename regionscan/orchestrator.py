"""
Capture orchestrator: one concurrent capture per requested region.

Every requested region ends up with exactly one CaptureResult. A region
that times out, fails, or hands back something that is not a CaptureResult
becomes a failed result for that region only; siblings keep running and
the join waits for all of them.
"""

import asyncio
import logging
import time
from typing import Iterable, Protocol

from .models import CaptureRequest, CaptureResult, Region
from .regions import RegionRegistry
from .utils import failed_capture

logger = logging.getLogger(__name__)


class CaptureClient(Protocol):
    async def capture(self, region: Region, request: CaptureRequest) -> CaptureResult: ...


class CaptureOrchestrator:
    def __init__(self, client: CaptureClient, registry: RegionRegistry):
        self.client = client
        self.registry = registry

    def resolve(self, region_names: Iterable[str] | None) -> list[Region]:
        """Validation step; raises UnknownRegionError before anything is sent."""
        return self.registry.resolve(region_names)

    async def capture_all(
        self,
        request: CaptureRequest,
        region_names: Iterable[str] | None = None,
        timeout_s: float | None = None,
    ) -> list[CaptureResult]:
        """
        Capture request.url from every requested region.

        Returns results in request order (after de-duplication). timeout_s
        bounds each region independently and defaults to request.timeout_ms.
        """
        regions = self.resolve(region_names)
        if timeout_s is None:
            timeout_s = request.timeout_ms / 1000

        logger.info("Capturing %s from %d region(s): %s", request.url, len(regions), ", ".join(r.name for r in regions))
        t0 = time.perf_counter()

        results = await asyncio.gather(
            *(self._capture_one(region, request, timeout_s) for region in regions)
        )

        failed = [r.region for r in results if not r.succeeded]
        logger.info(
            "Capture finished in %.2fs: %d succeeded, %d failed%s",
            time.perf_counter() - t0,
            len(results) - len(failed),
            len(failed),
            f" ({', '.join(failed)})" if failed else "",
        )
        return list(results)

    async def _capture_one(self, region: Region, request: CaptureRequest, timeout_s: float) -> CaptureResult:
        try:
            result = await asyncio.wait_for(self.client.capture(region, request), timeout=timeout_s)
        except asyncio.TimeoutError:
            logger.warning("[%s] timed out after %.1fs", region.name, timeout_s)
            return failed_capture(region.name, "timeout", f"No response within {timeout_s * 1000:.0f} ms")
        except Exception as e:
            logger.warning("[%s] capture failed: %s: %s", region.name, type(e).__name__, e)
            return failed_capture(region.name, "network", f"{type(e).__name__}: {e}")

        if not isinstance(result, CaptureResult):
            logger.warning("[%s] client returned %s instead of a CaptureResult", region.name, type(result).__name__)
            return failed_capture(region.name, "malformed_response", f"Unexpected result type {type(result).__name__}")

        # Each region owns exactly one slot
        if result.region != region.name:
            return failed_capture(
                region.name, "malformed_response", f"Result labelled {result.region!r} for region {region.name!r}"
            )

        if result.error is not None:
            logger.warning("[%s] %s: %s", region.name, result.error.kind, result.error.message)
        return result
