import enum
from collections.abc import Callable, Iterable, Sequence
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any

import structlog

from billscope.exceptions import MalformedRecord
from billscope.models import DATE_KEY, PivotedSeriesRow, UsageRecord

logger = structlog.get_logger()


class DuplicatePolicy(str, enum.Enum):
    """
    how to resolve two records with the same usage_date and
    resource_type.
     - LAST_WRITE_WINS: the later record in iteration order replaces
     the earlier one. This is what the usage charts have always done.
     - SUM: values are added up, which is what a billing total
     usually wants.
    """

    LAST_WRITE_WINS = "last_write_wins"
    SUM = "sum"


def parse_decimal(raw: "Any") -> "Decimal":
    """
    parses a textual or numeric decimal. Raises MalformedRecord for
    None, booleans, non-numeric text and non-finite values.
    """
    if raw is None or isinstance(raw, bool):
        raise MalformedRecord(f"not a number: {raw!r}")

    try:
        if isinstance(raw, Decimal):
            value = raw
        elif isinstance(raw, str):
            value = Decimal(raw.strip())
        else:
            # go through str so floats keep their short repr
            value = Decimal(str(raw))
    except (InvalidOperation, ValueError, TypeError) as e:
        raise MalformedRecord(f"not a number: {raw!r}") from e

    if not value.is_finite():
        raise MalformedRecord(f"not a finite number: {raw!r}")
    return value


def _pivot_field(
    records: "Iterable[UsageRecord]",
    field_name: "str",
    duplicates: "DuplicatePolicy",
    sort_by_date: "bool",
    on_malformed: "Callable[[UsageRecord], None] | None",
) -> "tuple[PivotedSeriesRow, ...]":
    # dicts keep insertion order, which gives first-seen date order
    table: "dict[date, dict[str, Decimal]]" = {}

    for record in records:
        row = table.setdefault(record.usage_date, {})

        try:
            if record.resource_type == DATE_KEY:
                raise MalformedRecord(
                    f"resource_type {DATE_KEY!r} collides with the date column"
                )
            value = parse_decimal(getattr(record, field_name))
        except MalformedRecord as e:
            logger.warning(
                "malformed_usage_record",
                field=field_name,
                usage_date=record.usage_date.isoformat(),
                resource_type=record.resource_type,
                error=str(e),
            )
            if on_malformed is not None:
                on_malformed(record)
            continue

        if duplicates is DuplicatePolicy.SUM and record.resource_type in row:
            row[record.resource_type] += value
        else:
            row[record.resource_type] = value

    rows = [PivotedSeriesRow(date=d, values=v) for d, v in table.items()]
    if sort_by_date:
        rows.sort(key=lambda r: r.date)
    return tuple(rows)


def pivot(
    records: "Iterable[UsageRecord]",
    *,
    duplicates: "DuplicatePolicy" = DuplicatePolicy.LAST_WRITE_WINS,
    sort_by_date: "bool" = False,
    on_malformed: "Callable[[UsageRecord], None] | None" = None,
) -> "tuple[PivotedSeriesRow, ...]":
    """
    pivots usage records into one row per distinct usage_date, with
    one total_cost column per resource_type seen on that date.

    Rows come out in the order their date was first seen unless
    sort_by_date is set. A cost that can't be parsed is left out of
    its row (the row itself is still emitted), logged, and reported
    through on_malformed. The input is never mutated.
    """
    return _pivot_field(records, "total_cost", duplicates, sort_by_date, on_malformed)


def pivot_quantity(
    records: "Iterable[UsageRecord]",
    *,
    duplicates: "DuplicatePolicy" = DuplicatePolicy.LAST_WRITE_WINS,
    sort_by_date: "bool" = False,
    on_malformed: "Callable[[UsageRecord], None] | None" = None,
) -> "tuple[PivotedSeriesRow, ...]":
    """
    same as pivot() but over the quantity field.
    """
    return _pivot_field(records, "quantity", duplicates, sort_by_date, on_malformed)


def categories(rows: "Sequence[PivotedSeriesRow]") -> "tuple[str, ...]":
    """
    returns every category across rows, in first-seen order.
    """
    seen: "dict[str, None]" = {}
    for row in rows:
        for name in row.values:
            seen.setdefault(name, None)
    return tuple(seen)
