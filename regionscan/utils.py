import math

from .models import CaptureError, CaptureResult

def failed_capture(region: str, kind: str, message: str) -> CaptureResult:
    """
    Convenience factory for a CaptureResult representing a regional failure.
    Used by the adapter and the orchestrator so that the rest of the
    pipeline can treat a failed region like any other CaptureResult row.
    """
    return CaptureResult(
        region=region,
        succeeded=False,
        error=CaptureError(kind=kind, message=message),
    )

def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))

def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))

# Error types for which it is reasonable to retry the provider request.
RETRYABLE_ERRORS = {
    "ClientConnectorError",
    "ServerDisconnectedError",
    "ClientPayloadError",
    "ClientOSError",
}
