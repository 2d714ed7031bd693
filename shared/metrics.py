"""
Prometheus metrics for the storefront services.
"""

from typing import Any, Dict, Optional, Sequence, Tuple

from prometheus_client import CollectorRegistry, Counter, Histogram, Info, generate_latest


# name -> (help text, label names)
COUNTERS: Dict[str, Tuple[str, Sequence[str]]] = {
    "http_requests_total": ("Total HTTP requests", ("method", "endpoint", "status_code")),
    "errors_total": ("Total errors", ("error_type", "service")),
    "rate_limit_rejections_total": ("Requests rejected by the rate limiter", ()),
    "cache_hits_total": ("Response cache hits", ("cache_type",)),
    "cache_misses_total": ("Response cache misses", ("cache_type",)),
    "cache_invalidations_total": ("Response cache invalidations", ("cache_type",)),
    "orders_created_total": ("Orders persisted", ()),
}


class MetricsCollector:
    """Metrics for one service instance.

    Each collector owns its registry, so several service instances (one per
    test, for example) never collide on metric names.
    """

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry if registry is not None else CollectorRegistry()
        self._metrics: Dict[str, Any] = {}
        self._setup_metrics()

    def _setup_metrics(self):
        info = Info("service_info", "Service information", registry=self.registry)
        info.info({"service": self.service_name, "version": "1.0.0"})
        self._metrics["service_info"] = info

        for name, (documentation, labels) in COUNTERS.items():
            self._metrics[name] = Counter(name, documentation, list(labels), registry=self.registry)

        self._metrics["http_request_duration_seconds"] = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["method", "endpoint"],
            registry=self.registry
        )

    def get_metric(self, name: str):
        return self._metrics.get(name)

    def record_http_request(self, method: str, endpoint: str, status_code: int, duration: float):
        self._metrics["http_requests_total"].labels(
            method=method, endpoint=endpoint, status_code=str(status_code)
        ).inc()
        self._metrics["http_request_duration_seconds"].labels(method=method, endpoint=endpoint).observe(duration)

    def record_error(self, error_type: str, service: Optional[str] = None):
        self._metrics["errors_total"].labels(error_type=error_type, service=service or self.service_name).inc()

    def increment_counter(self, metric_name: str, **labels):
        """Increment a counter by name; unknown names are ignored."""
        metric = self._metrics.get(metric_name)
        if metric is None:
            return
        (metric.labels(**labels) if labels else metric).inc()

    def render(self) -> bytes:
        """Registry contents in Prometheus text format."""
        return generate_latest(self.registry)


def get_metrics_collector(service_name: str, registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    return MetricsCollector(service_name, registry)
