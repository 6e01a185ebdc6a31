from collections.abc import Mapping
from typing import Any

import httpx
import structlog

from billscope.client.base import request_json
from billscope.exceptions import QueryFailure
from billscope.models import BillingPage, BillingRecord

logger = structlog.get_logger()

BILLING_BASE_URL = "http://localhost:8080/api"


class BillingClient:
    """
    BillingClient talks to the billing service: paginated billing
    records per customer and usage event ingestion.
    """

    service = "billing"

    def __init__(
        self,
        base_url: "str" = BILLING_BASE_URL,
        timeout: "float" = 10.0,
    ) -> "None":
        self._base_url = base_url.rstrip("/")
        self._client: "httpx.AsyncClient" = httpx.AsyncClient(
            timeout=timeout,
            headers={"Content-Type": "application/json"},
        )

    async def close(self) -> "None":
        """
        closes the underlying HTTP client.
        """
        await self._client.aclose()

    async def fetch_billing_records(
        self,
        customer_id: "str",
        page: "int" = 0,
        size: "int" = 10,
    ) -> "BillingPage":
        """
        fetches one page of billing records for a customer. The page
        comes back already paginated from the backend.
        """
        if page < 0:
            raise ValueError(f"page must be >= 0, got {page}")
        if size < 1:
            raise ValueError(f"size must be > 0, got {size}")

        data = await request_json(
            self._client,
            self.service,
            "billing_records",
            "GET",
            f"{self._base_url}/billing/customer/{customer_id}",
            params={"page": page, "size": size},
        )
        if not isinstance(data, Mapping):
            raise QueryFailure(self.service, "billing_records", "expected a page object")

        try:
            content = tuple(BillingRecord.from_payload(r) for r in data.get("content") or [])
            total = int(data.get("totalElements", len(content)))
        except (KeyError, TypeError, ValueError, ArithmeticError) as e:
            raise QueryFailure(self.service, "billing_records", f"bad record: {e}") from e

        logger.debug(
            "billing_records_done",
            customer_id=customer_id,
            page=page,
            record_count=len(content),
            total_elements=total,
        )
        return BillingPage(content=content, total_elements=total, page=page, size=size)

    async def ingest_usage_event(self, event: "Mapping[str, Any]") -> "None":
        """
        posts a single usage event. The backend accepts it
        asynchronously and answers 202 with no body.
        """
        await request_json(
            self._client,
            self.service,
            "ingest_usage",
            "POST",
            f"{self._base_url}/billing/usage",
            json=dict(event),
        )
