import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import date
from typing import Generic, TypeVar

import structlog

from billscope.buffer import MetricStreams
from billscope.client.base import AnalyticsQuery, BillingQuery
from billscope.exceptions import QueryFailure
from billscope.metrics import DashboardMetrics
from billscope.models import (
    BillingPage,
    CostTrend,
    MetricSample,
    PivotedSeriesRow,
    UsageRecord,
)
from billscope.pivot import DuplicatePolicy, pivot, pivot_quantity

logger = structlog.get_logger()

T = TypeVar("T")


@dataclass(frozen=True)
class QueryResult(Generic[T]):
    """
    QueryResult is what the UI renders: either data, or the reason
    the data is unavailable.
    """

    data: "T | None" = None
    error: "str | None" = None

    @property
    def available(self) -> "bool":
        return self.error is None

    @classmethod
    def unavailable(cls, reason: "str") -> "QueryResult[T]":
        return cls(data=None, error=reason)


class Dashboard:
    """
    Dashboard is the UI-facing query layer. It owns the pivoted usage
    series (rebuilt on every query) and the live metric windows
    (mutated in place by a SampleProducer). Backend failures become
    unavailable results and are never passed on as partial data.
    """

    def __init__(
        self,
        billing: "BillingQuery",
        analytics: "AnalyticsQuery",
        metrics: "DashboardMetrics",
        streams: "MetricStreams | None" = None,
    ) -> "None":
        self._billing = billing
        self._analytics = analytics
        self._metrics = metrics
        self.streams = streams or MetricStreams()

    async def close(self) -> "None":
        await self._billing.close()
        await self._analytics.close()

    async def _query(
        self,
        query: "str",
        fetch: "Callable[[], Awaitable[T]]",
    ) -> "QueryResult[T]":
        start = time.monotonic()
        try:
            data = await fetch()
        except QueryFailure as e:
            logger.exception(
                "query_failed",
                service=e.service,
                query=e.query,
                reason=e.reason,
            )
            self._metrics.inc_query_error(e.service, e.query)
            return QueryResult.unavailable(str(e))
        finally:
            self._metrics.observe_query_duration(query, time.monotonic() - start)

        return QueryResult(data=data)

    async def usage_series(
        self,
        customer_id: "str",
        start_date: "date",
        end_date: "date",
        *,
        sort_by_date: "bool" = False,
        duplicates: "DuplicatePolicy" = DuplicatePolicy.LAST_WRITE_WINS,
    ) -> "QueryResult[tuple[PivotedSeriesRow, ...]]":
        """
        fetches daily usage and pivots total_cost into one column per
        resource type.
        """

        async def _fetch() -> "tuple[PivotedSeriesRow, ...]":
            records = await self._analytics.fetch_daily_usage(
                customer_id, start_date, end_date
            )
            return pivot(
                records,
                duplicates=duplicates,
                sort_by_date=sort_by_date,
                on_malformed=self._on_malformed("total_cost"),
            )

        return await self._query("usage_series", _fetch)

    async def usage_quantity_series(
        self,
        customer_id: "str",
        start_date: "date",
        end_date: "date",
        *,
        sort_by_date: "bool" = False,
        duplicates: "DuplicatePolicy" = DuplicatePolicy.LAST_WRITE_WINS,
    ) -> "QueryResult[tuple[PivotedSeriesRow, ...]]":
        async def _fetch() -> "tuple[PivotedSeriesRow, ...]":
            records = await self._analytics.fetch_daily_usage(
                customer_id, start_date, end_date
            )
            return pivot_quantity(
                records,
                duplicates=duplicates,
                sort_by_date=sort_by_date,
                on_malformed=self._on_malformed("quantity"),
            )

        return await self._query("usage_quantity_series", _fetch)

    async def billing_records(
        self,
        customer_id: "str",
        page: "int" = 0,
        size: "int" = 10,
    ) -> "QueryResult[BillingPage]":
        return await self._query(
            "billing_records",
            lambda: self._billing.fetch_billing_records(customer_id, page, size),
        )

    async def cost_trend(self, days: "int" = 30) -> "QueryResult[CostTrend]":
        return await self._query(
            "cost_trend",
            lambda: self._analytics.fetch_cost_trend(days),
        )

    def live_metrics(self) -> "dict[str, tuple[MetricSample, ...]]":
        return self.streams.snapshots()

    def _on_malformed(self, field: "str") -> "Callable[[UsageRecord], None]":
        def _count(record: "UsageRecord") -> "None":
            self._metrics.inc_malformed_record(field)

        return _count
