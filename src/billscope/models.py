import enum
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from types import MappingProxyType
from typing import Any

import structlog

logger = structlog.get_logger()

DATE_KEY = "date"


def parse_date(raw: "Any") -> "date":
    """
    parses a backend date. Accepts ISO strings ("2024-01-01", or a
    datetime string whose first ten characters are the date), date
    objects and the [year, month, day] arrays Jackson emits when
    dates are not serialized as strings.
    """
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    if isinstance(raw, str):
        return date.fromisoformat(raw.strip()[:10])
    if isinstance(raw, (list, tuple)) and len(raw) >= 3:
        return date(int(raw[0]), int(raw[1]), int(raw[2]))

    raise ValueError(f"unsupported date value: {raw!r}")


def _optional_date(raw: "Any") -> "date | None":
    if raw is None or raw == "":
        return None
    return parse_date(raw)


def _lenient_int(name: "str", raw: "Any") -> "int":
    """
    parses an informational integer field, falling back to 0 so a bad
    value never costs the whole row.
    """
    if raw is None or raw == "":
        return 0
    try:
        return int(raw)
    except (TypeError, ValueError):
        logger.warning("invalid_optional_field", field=name, value=repr(raw))
        return 0


@dataclass(frozen=True, slots=True)
class UsageRecord:
    """
    UsageRecord is one row of the daily usage summary: the cost and
    quantity of a single resource type on a single day. Several
    records usually share a usage_date, one per resource type.
    """

    usage_date: "date"
    resource_type: "str"
    # raw wire value, parsed by the aggregator
    total_cost: "Any"
    # raw wire value, parsed by the aggregator
    quantity: "Any" = None
    customer_id: "str" = ""
    event_count: "int" = 0

    @classmethod
    def from_payload(cls, payload: "Mapping[str, Any]") -> "UsageRecord":
        """
        builds a record from the analytics service wire shape. Raises
        KeyError or ValueError when the row can't be placed on a date
        and category.
        """
        resource_type = payload["resource_type"]
        if not isinstance(resource_type, str) or not resource_type:
            raise ValueError(f"invalid resource_type: {resource_type!r}")

        return cls(
            usage_date=parse_date(payload["usage_date"]),
            resource_type=resource_type,
            total_cost=payload.get("total_cost"),
            quantity=payload.get("total_quantity", payload.get("quantity")),
            customer_id=str(payload.get("customer_id") or ""),
            event_count=_lenient_int("event_count", payload.get("event_count")),
        )


class BillingStatus(str, enum.Enum):
    PAID = "PAID"
    PENDING = "PENDING"
    OVERDUE = "OVERDUE"
    OTHER = "OTHER"

    @classmethod
    def parse(cls, raw: "Any") -> "BillingStatus":
        try:
            return cls(str(raw).upper())
        except ValueError:
            return cls.OTHER


@dataclass(frozen=True, slots=True)
class BillingRecord:
    """
    BillingRecord is a single invoice as returned by the billing
    service. It is only rendered, never aggregated.
    """

    id: "str"
    invoice_number: "str"
    customer_name: "str"
    billing_period_start: "date"
    billing_period_end: "date"
    total_amount: "Decimal"
    status: "BillingStatus"
    # status as sent by the backend, kept for statuses mapped to OTHER
    status_raw: "str" = ""
    due_date: "date | None" = None
    paid_date: "date | None" = None
    customer_id: "str" = ""

    @classmethod
    def from_payload(cls, payload: "Mapping[str, Any]") -> "BillingRecord":
        status_raw = str(payload.get("status") or "")
        return cls(
            id=str(payload["id"]),
            invoice_number=str(payload.get("invoice_number") or ""),
            customer_name=str(payload.get("customer_name") or ""),
            billing_period_start=parse_date(payload["billing_period_start"]),
            billing_period_end=parse_date(payload["billing_period_end"]),
            total_amount=Decimal(str(payload["total_amount"])),
            status=BillingStatus.parse(status_raw),
            status_raw=status_raw,
            due_date=_optional_date(payload.get("due_date")),
            paid_date=_optional_date(payload.get("paid_date")),
            customer_id=str(payload.get("customer_id") or ""),
        )


@dataclass(frozen=True, slots=True)
class BillingPage:
    content: "tuple[BillingRecord, ...]"
    total_elements: "int"
    page: "int" = 0
    size: "int" = 0


@dataclass(frozen=True, slots=True)
class CostTrend:
    """
    CostTrend is a pre-pivoted daily cost series: labels[i] is the
    day and values[i] the total cost for it.
    """

    labels: "tuple[str, ...]"
    values: "tuple[Decimal, ...]"

    def points(self) -> "list[tuple[str, Decimal]]":
        return list(zip(self.labels, self.values))


@dataclass(frozen=True, slots=True)
class PivotedSeriesRow(Mapping):
    """
    PivotedSeriesRow is one date of a pivoted series. It reads like
    the flat chart row {"date": ..., "<category>": value, ...}:
    row["date"] is the date and row[category] the value for that
    category. Categories that had no input for the date are absent,
    never zero.
    """

    date: "date"
    values: "Mapping[str, Decimal]" = field(default_factory=dict)

    def __post_init__(self) -> "None":
        if DATE_KEY in self.values:
            raise ValueError(f"category name {DATE_KEY!r} collides with the date column")
        # freeze a private copy so the row can't change under a chart
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))

    def __hash__(self) -> "int":
        return hash((self.date, frozenset(self.values.items())))

    def __getitem__(self, key: "str") -> "Any":
        if key == DATE_KEY:
            return self.date
        return self.values[key]

    def __iter__(self) -> "Iterator[str]":
        yield DATE_KEY
        yield from self.values

    def __len__(self) -> "int":
        return len(self.values) + 1

    def categories(self) -> "tuple[str, ...]":
        return tuple(self.values)

    def as_dict(self) -> "dict[str, Any]":
        return {DATE_KEY: self.date, **self.values}


@dataclass(frozen=True, slots=True)
class MetricSample:
    """
    MetricSample is a single observation of a live metric.
    """

    timestamp: "datetime"
    value: "float"
