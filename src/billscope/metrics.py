from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, Histogram


class DashboardMetrics:
    """
    self-observability for the dashboard core: malformed input,
    failed queries and the live sample stream.
    """

    def __init__(self, registry: "CollectorRegistry" = REGISTRY) -> "None":
        self._malformed_records: "Counter" = Counter(
            "billscope_malformed_records_total",
            "Usage record fields that could not be parsed as numbers",
            ["field"],
            registry=registry,
        )
        self._query_errors: "Counter" = Counter(
            "billscope_query_errors_total",
            "Total number of failed backend queries by service and query",
            ["service", "query"],
            registry=registry,
        )
        self._query_duration: "Histogram" = Histogram(
            "billscope_query_duration_seconds",
            "Duration of backend queries including aggregation",
            ["query"],
            registry=registry,
        )
        self._samples: "Counter" = Counter(
            "billscope_samples_total",
            "Metric samples appended to a live window",
            ["metric"],
            registry=registry,
        )
        self._samples_rejected: "Counter" = Counter(
            "billscope_samples_rejected_total",
            "Metric samples rejected before reaching a live window",
            ["metric"],
            registry=registry,
        )
        self._latest_value: "Gauge" = Gauge(
            "billscope_metric_latest_value",
            "Most recent value appended per live metric",
            ["metric"],
            registry=registry,
        )

    def inc_malformed_record(self, field: "str") -> "None":
        self._malformed_records.labels(field=field).inc()

    def inc_query_error(self, service: "str", query: "str") -> "None":
        self._query_errors.labels(service=service, query=query).inc()

    def observe_query_duration(self, query: "str", duration_seconds: "float") -> "None":
        self._query_duration.labels(query=query).observe(duration_seconds)

    def record_sample(self, metric: "str", value: "float") -> "None":
        """
        counts an appended sample and exposes it as the latest value.
        """
        self._samples.labels(metric=metric).inc()
        self._latest_value.labels(metric=metric).set(value)

    def inc_sample_rejected(self, metric: "str") -> "None":
        self._samples_rejected.labels(metric=metric).inc()
