import pytest
from prometheus_client import CollectorRegistry

from billscope.metrics import DashboardMetrics


@pytest.fixture()
def registry() -> "CollectorRegistry":
    """
    fresh Prometheus registry to avoid cross-test state.
    """
    return CollectorRegistry()


@pytest.fixture()
def metrics(registry: "CollectorRegistry") -> "DashboardMetrics":
    return DashboardMetrics(registry=registry)
