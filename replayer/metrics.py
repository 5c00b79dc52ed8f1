"""Run summary over a list of Outcomes."""

from collections import Counter

from replayer.models import Outcome, OutcomeKind


def percentile(data: list[float], p: float) -> float:
    """Linear-interpolated percentile of already sorted ``data``."""
    if not data:
        return 0.0
    k = (len(data) - 1) * (p / 100.0)
    f = int(k)
    c = f + 1
    if c >= len(data):
        return data[-1]
    return data[f] + (k - f) * (data[c] - data[f])


def summarize(outcomes: list[Outcome]) -> dict:
    kinds = Counter(o.kind for o in outcomes)
    statuses = Counter(o.response.status_code for o in outcomes if o.response is not None)
    latencies = sorted(o.response.elapsed_ms for o in outcomes if o.response is not None)

    summary = {
        "total": len(outcomes),
        "responses": kinds[OutcomeKind.RESPONSE],
        "deadline_elapsed": kinds[OutcomeKind.DEADLINE_ELAPSED],
        "transport_errors": kinds[OutcomeKind.TRANSPORT_ERROR],
        "cancelled": kinds[OutcomeKind.CANCELLED],
        "failures": len(outcomes) - kinds[OutcomeKind.RESPONSE],
        "status_counts": {str(code): count for code, count in sorted(statuses.items())},
    }

    if not latencies:
        summary.update({
            "latency_avg_ms": 0.0,
            "latency_min_ms": 0.0,
            "latency_max_ms": 0.0,
            "latency_p50_ms": 0.0,
            "latency_p95_ms": 0.0,
            "latency_p99_ms": 0.0,
        })
        return summary

    summary.update({
        "latency_avg_ms": round(sum(latencies) / len(latencies), 3),
        "latency_min_ms": round(latencies[0], 3),
        "latency_max_ms": round(latencies[-1], 3),
        "latency_p50_ms": round(percentile(latencies, 50), 3),
        "latency_p95_ms": round(percentile(latencies, 95), 3),
        "latency_p99_ms": round(percentile(latencies, 99), 3),
    })
    return summary
