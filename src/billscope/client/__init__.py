from billscope.client.analytics import AnalyticsClient
from billscope.client.billing import BillingClient

__all__ = ["AnalyticsClient", "BillingClient"]
