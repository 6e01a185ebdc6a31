from collections.abc import Mapping, Sequence
from datetime import date
from decimal import Decimal

import httpx
import structlog

from billscope.client.base import request_json
from billscope.exceptions import QueryFailure
from billscope.models import CostTrend, UsageRecord

logger = structlog.get_logger()

ANALYTICS_BASE_URL = "http://localhost:8081/api"


class AnalyticsClient:
    """
    AnalyticsClient talks to the analytics service, which serves the
    daily usage summary and the overall cost trend.
    """

    service = "analytics"

    def __init__(
        self,
        base_url: "str" = ANALYTICS_BASE_URL,
        timeout: "float" = 10.0,
    ) -> "None":
        self._base_url = base_url.rstrip("/")
        self._client: "httpx.AsyncClient" = httpx.AsyncClient(
            timeout=timeout,
            headers={"Content-Type": "application/json"},
        )

    async def close(self) -> "None":
        await self._client.aclose()

    async def fetch_daily_usage(
        self,
        customer_id: "str",
        start_date: "date",
        end_date: "date",
    ) -> "list[UsageRecord]":
        """
        fetches the per-day, per-resource-type usage summary for a
        customer between two dates, both inclusive.
        """
        if start_date > end_date:
            raise ValueError(f"start_date {start_date} is after end_date {end_date}")

        data = await request_json(
            self._client,
            self.service,
            "daily_usage",
            "GET",
            f"{self._base_url}/analytics/usage/daily",
            params={
                "customerId": customer_id,
                "startDate": start_date.isoformat(),
                "endDate": end_date.isoformat(),
            },
        )
        if data is None:
            return []
        if not isinstance(data, Sequence) or isinstance(data, str):
            raise QueryFailure(self.service, "daily_usage", "expected a list of rows")

        try:
            records = [UsageRecord.from_payload(row) for row in data]
        except (KeyError, TypeError, ValueError) as e:
            raise QueryFailure(self.service, "daily_usage", f"bad row: {e}") from e

        logger.debug(
            "daily_usage_done",
            customer_id=customer_id,
            record_count=len(records),
        )
        return records

    async def fetch_cost_trend(self, days: "int" = 30) -> "CostTrend":
        """
        fetches the total cost per day over the last `days` days.
        """
        if days < 1:
            raise ValueError(f"days must be > 0, got {days}")

        data = await request_json(
            self._client,
            self.service,
            "cost_trend",
            "GET",
            f"{self._base_url}/analytics/cost/trend",
            params={"days": days},
        )
        if not isinstance(data, Mapping):
            raise QueryFailure(self.service, "cost_trend", "expected a trend object")

        labels = data.get("labels") or []
        values = data.get("values") or []
        if len(labels) != len(values):
            raise QueryFailure(
                self.service,
                "cost_trend",
                f"{len(labels)} labels for {len(values)} values",
            )

        try:
            trend = CostTrend(
                labels=tuple(str(label) for label in labels),
                values=tuple(Decimal(str(v)) for v in values),
            )
        except ArithmeticError as e:
            raise QueryFailure(self.service, "cost_trend", f"bad value: {e}") from e
        return trend
