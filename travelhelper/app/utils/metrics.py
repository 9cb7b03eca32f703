"""Prometheus metrics for provider calls, chat turns and itinerary generation."""

from prometheus_client import Counter, Histogram

# Provider call metrics
provider_latency_ms = Histogram(
    "provider_latency_ms",
    "Provider call latency in milliseconds",
    ["kind", "outcome"],
    buckets=[10, 50, 100, 200, 500, 1000, 2000, 4000, 8000, 30000],
)

provider_errors_total = Counter(
    "provider_errors_total",
    "Total provider call errors",
    ["kind", "reason"],
)

provider_fallbacks_total = Counter(
    "provider_fallbacks_total",
    "Total fallback payloads served instead of live provider data",
    ["kind", "reason"],
)

# Conversation metrics
chat_turns_total = Counter(
    "chat_turns_total",
    "Total user chat turns processed",
    ["outcome"],
)

itinerary_generations_total = Counter(
    "itinerary_generations_total",
    "Total itinerary generations by result source",
    ["source"],
)


class PrometheusProviderMetrics:
    """Prometheus-based provider metrics implementation."""

    def record_latency(self, kind: str, outcome: str, latency_ms: float) -> None:
        """Record provider call latency."""
        provider_latency_ms.labels(kind=kind, outcome=outcome).observe(latency_ms)

    def inc_error(self, kind: str, reason: str) -> None:
        """Increment error counter."""
        provider_errors_total.labels(kind=kind, reason=reason).inc()

    def inc_fallback(self, kind: str, reason: str) -> None:
        """Increment fallback counter."""
        provider_fallbacks_total.labels(kind=kind, reason=reason).inc()
