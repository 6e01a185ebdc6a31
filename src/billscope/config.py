import os
from dataclasses import dataclass

from billscope.client.analytics import ANALYTICS_BASE_URL
from billscope.client.billing import BILLING_BASE_URL

DEMO_CUSTOMER_ID = "550e8400-e29b-41d4-a716-446655440000"


@dataclass
class Config:
    billing_url: "str" = BILLING_BASE_URL
    analytics_url: "str" = ANALYTICS_BASE_URL
    customer_id: "str" = DEMO_CUSTOMER_ID

    # listen_address: format ":9186" or
    # "0.0.0.0:9186", empty to disable the exporter
    listen_address: "str" = ":9186"
    # samples kept per live metric
    window_size: "int" = 20
    # seconds between live samples
    sample_interval: "float" = 2.0
    log_level: "str" = "info"

    @classmethod
    def from_env(cls) -> "Config":
        return cls(
            billing_url=os.environ.get("BILLSCOPE_BILLING_URL", BILLING_BASE_URL),
            analytics_url=os.environ.get("BILLSCOPE_ANALYTICS_URL", ANALYTICS_BASE_URL),
            customer_id=os.environ.get("BILLSCOPE_CUSTOMER_ID", DEMO_CUSTOMER_ID),
        )
