"""Prometheus metrics for itinerary mutations."""

from prometheus_client import Counter

# Derived accommodation items
sync_items_total = Counter(
    "itinerary_sync_items_total",
    "Derived accommodation items created or deleted",
    ["action", "kind"],
)

# Server-side reorder commits
reorders_total = Counter(
    "itinerary_reorders_total",
    "Reorder requests by outcome",
    ["outcome"],
)

mutation_errors_total = Counter(
    "itinerary_mutation_errors_total",
    "Failed itinerary mutations by error class",
    ["error"],
)


class PrometheusItineraryMetrics:
    """Prometheus-based itinerary metrics implementation."""

    def inc_sync_items(self, action: str, kind: str, count: int = 1) -> None:
        """Count derived items created or deleted."""
        if count:
            sync_items_total.labels(action=action, kind=kind).inc(count)

    def inc_reorder(self, outcome: str) -> None:
        """Count a reorder request outcome (committed or rejected)."""
        reorders_total.labels(outcome=outcome).inc()

    def inc_error(self, error: str) -> None:
        """Count a failed mutation by error class name."""
        mutation_errors_total.labels(error=error).inc()


metrics = PrometheusItineraryMetrics()
