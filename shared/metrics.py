"""
Shared metrics configuration for the ISIL Tagger.
"""

from typing import Any, Dict, Optional
import threading

from prometheus_client import CollectorRegistry, Counter, Histogram


class MetricsCollector:
    """Metrics collector owning its registry.

    Every collector registers into its own ``CollectorRegistry`` so that
    several engines (or tests) in one process never share counters.
    """
    
    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry or CollectorRegistry()
        self._metrics: Dict[str, Any] = {}
        self._lock = threading.Lock()
        self._setup_metrics()
    
    def _setup_metrics(self):
        """Set up the tagger metrics."""
        self._metrics["records_total"] = Counter(
            "tagger_records_total",
            "Total records evaluated",
            ["outcome"],
            registry=self.registry
        )
        
        self._metrics["attachments_total"] = Counter(
            "tagger_attachments_total",
            "Total institution attachments by attachment case",
            ["case"],
            registry=self.registry
        )
        
        self._metrics["holdings_downloads_total"] = Counter(
            "tagger_holdings_downloads_total",
            "Total holdings file downloads",
            ["status"],
            registry=self.registry
        )
        
        self._metrics["config_queries_total"] = Counter(
            "tagger_config_queries_total",
            "Total configuration store queries",
            ["result"],
            registry=self.registry
        )
        
        self._metrics["holdings_parse_duration_seconds"] = Histogram(
            "tagger_holdings_parse_duration_seconds",
            "Holdings file parse duration in seconds",
            registry=self.registry
        )
    
    def increment_counter(self, metric_name: str, **labels):
        """Increment a counter metric."""
        if metric_name in self._metrics:
            self._metrics[metric_name].labels(**labels).inc()
    
    def observe_histogram(self, metric_name: str, value: float, **labels):
        """Observe a histogram metric."""
        if metric_name in self._metrics:
            metric = self._metrics[metric_name]
            if labels:
                metric = metric.labels(**labels)
            metric.observe(value)
    
    def counter_value(self, metric_name: str, **labels) -> float:
        """Return the current value of a counter, 0.0 if never incremented."""
        metric = self._metrics.get(metric_name)
        if metric is None:
            return 0.0
        value = self.registry.get_sample_value(f"{metric._name}_total", labels)
        return value or 0.0
    
    def counter_values(self, metric_name: str, label: str) -> Dict[str, int]:
        """Return all series of a single-label counter as a plain dict."""
        metric = self._metrics.get(metric_name)
        if metric is None:
            return {}
        result: Dict[str, int] = {}
        with self._lock:
            for family in metric.collect():
                for sample in family.samples:
                    if sample.name.endswith("_total") and label in sample.labels:
                        result[sample.labels[label]] = int(sample.value)
        return result


def get_metrics_collector(service_name: str, registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    """Get a metrics collector for a service."""
    return MetricsCollector(service_name, registry)
