"""Prometheus metrics for collaborator calls and action sync."""

from prometheus_client import Counter, Histogram

# Collaborator execution metrics
collaborator_latency_ms = Histogram(
    "collaborator_latency_ms",
    "External collaborator call latency in milliseconds",
    ["collaborator", "outcome"],
    buckets=[10, 50, 100, 200, 500, 1000, 2000, 4000, 8000],
)

collaborator_errors_total = Counter(
    "collaborator_errors_total",
    "Total external collaborator errors",
    ["collaborator", "reason"],
)

# Sync metrics
sync_actions_total = Counter(
    "sync_actions_total",
    "AI actions processed by the action resolver",
    ["kind", "outcome"],
)

place_resolution_total = Counter(
    "place_resolution_total",
    "Coordinate resolution attempts",
    ["outcome"],
)


class PrometheusCollaboratorMetrics:
    """Prometheus-based collaborator metrics implementation."""

    def record_latency(self, collaborator: str, outcome: str, latency_ms: float) -> None:
        """Record collaborator call latency."""
        collaborator_latency_ms.labels(collaborator=collaborator, outcome=outcome).observe(
            latency_ms
        )

    def inc_error(self, collaborator: str, reason: str) -> None:
        """Increment error counter."""
        collaborator_errors_total.labels(collaborator=collaborator, reason=reason).inc()


def record_sync_action(kind: str, outcome: str) -> None:
    """Count one processed action."""
    sync_actions_total.labels(kind=kind, outcome=outcome).inc()


def record_place_resolution(outcome: str) -> None:
    """Count one coordinate resolution outcome (resolved, cache_hit, miss)."""
    place_resolution_total.labels(outcome=outcome).inc()
