"""
Shared metrics configuration for the Lighthouse client.
"""

from typing import Dict, Any, Optional

from prometheus_client import Counter, CollectorRegistry, Info


class MetricsCollector:
    """Centralized metrics collector for the client."""

    def __init__(self, client_name: str, registry: Optional[CollectorRegistry] = None):
        self.client_name = client_name
        # A private registry keeps several clients in one process from colliding
        self.registry = registry if registry is not None else CollectorRegistry()
        self._metrics: Dict[str, Any] = {}
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up client metrics."""

        self._metrics["client_info"] = Info(
            "lighthouse_client",
            "Client information",
            registry=self.registry
        )
        self._metrics["client_info"].info({
            "client": self.client_name,
            "version": "1.0.0"
        })

        self._metrics["requests_total"] = Counter(
            "lighthouse_requests_total",
            "Total HTTP requests sent to the backend",
            ["method", "status_code"],
            registry=self.registry
        )

        self._metrics["token_refresh_total"] = Counter(
            "lighthouse_token_refresh_total",
            "Total access token refresh attempts",
            ["status"],
            registry=self.registry
        )

        self._metrics["queued_requests_total"] = Counter(
            "lighthouse_queued_requests_total",
            "Requests suspended while a token refresh was in flight",
            registry=self.registry
        )

        self._metrics["session_expired_total"] = Counter(
            "lighthouse_session_expired_total",
            "Sessions torn down because credentials could not be refreshed",
            registry=self.registry
        )

    def record_request(self, method: str, status_code: int):
        """Record a completed HTTP request."""
        self._metrics["requests_total"].labels(
            method=method,
            status_code=str(status_code)
        ).inc()

    def record_refresh(self, status: str):
        """Record a refresh outcome: success, failure or missing."""
        self._metrics["token_refresh_total"].labels(status=status).inc()

    def record_queued(self):
        """Record a request parked in the waiters queue."""
        self._metrics["queued_requests_total"].inc()

    def record_session_expired(self):
        """Record a session teardown."""
        self._metrics["session_expired_total"].inc()

    def get_sample(self, name: str, labels: Optional[Dict[str, str]] = None) -> float:
        """Return the current value of a sample, 0.0 when never observed."""
        value = self.registry.get_sample_value(name, labels or {})
        return value if value is not None else 0.0


_collectors: Dict[str, MetricsCollector] = {}


def get_metrics_collector(client_name: str) -> MetricsCollector:
    """Get or create the metrics collector for a client name."""
    if client_name not in _collectors:
        _collectors[client_name] = MetricsCollector(client_name)
    return _collectors[client_name]
