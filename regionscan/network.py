import pandas as pd

from .models import CaptureResult, NetworkSummary


def network_frame(result: CaptureResult) -> pd.DataFrame:
    """One row per network request of a capture."""
    return pd.DataFrame(
        [
            {
                "url": n.url,
                "method": n.method,
                "resource_type": n.resource_type,
                "status": n.status,
                "duration_ms": n.duration_ms,
                "failed": n.is_failed,
            }
            for n in result.network_entries
        ],
        columns=["url", "method", "resource_type", "status", "duration_ms", "failed"],
    )


def summarize_network(result: CaptureResult) -> NetworkSummary:
    """
    Aggregate one region's requests: totals, failures, counts per resource
    type, mean duration and the slowest request (when durations are known).
    """
    df = network_frame(result)
    if df.empty:
        return NetworkSummary(region=result.region, total_requests=0, failed_requests=0)

    by_type = df.groupby("resource_type").size().sort_index()
    durations = pd.to_numeric(df["duration_ms"], errors="coerce")

    average = slowest_url = slowest_duration = None
    if durations.notna().any():
        average = round(float(durations.mean()), 1)
        idx = durations.idxmax()
        slowest_url = str(df.loc[idx, "url"])
        slowest_duration = float(durations.loc[idx])

    return NetworkSummary(
        region=result.region,
        total_requests=int(len(df)),
        failed_requests=int(df["failed"].sum()),
        by_resource_type={str(k): int(v) for k, v in by_type.items()},
        average_duration_ms=average,
        slowest_url=slowest_url,
        slowest_duration_ms=slowest_duration,
    )
