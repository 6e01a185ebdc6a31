from datetime import date
from typing import Any, Protocol

import httpx
import structlog

from billscope.exceptions import QueryFailure
from billscope.models import BillingPage, CostTrend, UsageRecord

logger = structlog.get_logger()


class BillingQuery(Protocol):
    """
    paginated access to a customer's billing records.
    """

    async def fetch_billing_records(
        self,
        customer_id: "str",
        page: "int" = 0,
        size: "int" = 10,
    ) -> "BillingPage": ...

    async def close(self) -> "None": ...


class AnalyticsQuery(Protocol):
    """
    date-range usage and cost trend queries.
    """

    async def fetch_daily_usage(
        self,
        customer_id: "str",
        start_date: "date",
        end_date: "date",
    ) -> "list[UsageRecord]": ...

    async def fetch_cost_trend(self, days: "int" = 30) -> "CostTrend": ...

    async def close(self) -> "None": ...


async def request_json(
    client: "httpx.AsyncClient",
    service: "str",
    query: "str",
    method: "str",
    url: "str",
    **kwargs: "Any",
) -> "Any":
    """
    sends a request and decodes the JSON body. Transport errors,
    non-2xx statuses and undecodable bodies are raised as
    QueryFailure; nothing is retried here. Returns None for an
    empty body.
    """
    logger.debug("backend_request", service=service, query=query, url=url)
    try:
        resp = await client.request(method, url, **kwargs)
        resp.raise_for_status()
    except httpx.HTTPStatusError as e:
        raise QueryFailure(
            service, query, f"status {e.response.status_code}"
        ) from e
    except httpx.HTTPError as e:
        raise QueryFailure(service, query, str(e) or type(e).__name__) from e

    if not resp.content:
        return None

    try:
        return resp.json()
    except ValueError as e:
        raise QueryFailure(service, query, "invalid JSON body") from e
