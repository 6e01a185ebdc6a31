from datetime import date, datetime
from decimal import Decimal

import pytest

from billscope.models import (
    BillingRecord,
    BillingStatus,
    CostTrend,
    PivotedSeriesRow,
    UsageRecord,
    parse_date,
)


class TestParseDate:
    @pytest.mark.parametrize(
        "raw",
        ["2024-01-05", "2024-01-05T00:00:00", [2024, 1, 5], date(2024, 1, 5)],
    )
    def test_accepts_backend_shapes(self, raw: "object") -> "None":
        assert parse_date(raw) == date(2024, 1, 5)

    def test_datetime_becomes_date(self) -> "None":
        assert parse_date(datetime(2024, 1, 5, 13, 0)) == date(2024, 1, 5)

    @pytest.mark.parametrize("raw", [None, 20240105, "yesterday"])
    def test_rejects_others(self, raw: "object") -> "None":
        with pytest.raises(ValueError):
            parse_date(raw)


class TestUsageRecordFromPayload:
    def test_requires_resource_type(self) -> "None":
        with pytest.raises(ValueError):
            UsageRecord.from_payload({"usage_date": "2024-01-01", "resource_type": ""})

    def test_requires_usage_date(self) -> "None":
        with pytest.raises(KeyError):
            UsageRecord.from_payload({"resource_type": "compute"})

    def test_keeps_raw_cost(self) -> "None":
        record = UsageRecord.from_payload(
            {"usage_date": "2024-01-01", "resource_type": "compute", "total_cost": "x"}
        )
        assert record.total_cost == "x"
        assert record.quantity is None


class TestBillingStatus:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("PAID", BillingStatus.PAID),
            ("pending", BillingStatus.PENDING),
            ("OVERDUE", BillingStatus.OVERDUE),
            ("VOID", BillingStatus.OTHER),
            (None, BillingStatus.OTHER),
        ],
    )
    def test_parse(self, raw: "object", expected: "BillingStatus") -> "None":
        assert BillingStatus.parse(raw) is expected


class TestPivotedSeriesRow:
    def test_reads_like_a_flat_row(self) -> "None":
        row = PivotedSeriesRow(
            date=date(2024, 1, 1),
            values={"compute": Decimal("1"), "storage": Decimal("2")},
        )
        assert row["date"] == date(2024, 1, 1)
        assert row["compute"] == Decimal("1")
        assert list(row) == ["date", "compute", "storage"]
        assert len(row) == 3
        assert row.categories() == ("compute", "storage")
        assert dict(row) == row.as_dict()

    def test_copies_input_mapping(self) -> "None":
        values = {"compute": Decimal("1")}
        row = PivotedSeriesRow(date=date(2024, 1, 1), values=values)
        values["compute"] = Decimal("9")
        assert row["compute"] == Decimal("1")


class TestCostTrend:
    def test_points(self) -> "None":
        trend = CostTrend(labels=("a", "b"), values=(Decimal("1"), Decimal("2")))
        assert trend.points() == [("a", Decimal("1")), ("b", Decimal("2"))]


class TestPivotedSeriesRowContract:
    def test_rejects_date_category(self) -> "None":
        with pytest.raises(ValueError):
            PivotedSeriesRow(date=date(2024, 1, 1), values={"date": Decimal("5")})

    def test_keys_are_unique(self) -> "None":
        row = PivotedSeriesRow(date=date(2024, 1, 1), values={"compute": Decimal("1")})
        assert len(row) == len(set(row)) == 2

    def test_equal_rows_hash_equal(self) -> "None":
        a = PivotedSeriesRow(
            date=date(2024, 1, 1),
            values={"compute": Decimal("1"), "storage": Decimal("2")},
        )
        b = PivotedSeriesRow(
            date=date(2024, 1, 1),
            values={"storage": Decimal("2"), "compute": Decimal("1")},
        )
        assert a == b
        assert hash(a) == hash(b)
        assert len({a, b}) == 1


class TestBillingRecordFromPayload:
    def test_keeps_customer_id(self) -> "None":
        record = BillingRecord.from_payload(
            {
                "id": "b1",
                "customer_id": "550e8400-e29b-41d4-a716-446655440000",
                "customer_name": "Acme",
                "invoice_number": "INV-001",
                "billing_period_start": "2024-01-01",
                "billing_period_end": "2024-01-31",
                "total_amount": "10.00",
                "status": "PAID",
            }
        )
        assert record.customer_id == "550e8400-e29b-41d4-a716-446655440000"
        assert record.due_date is None


class TestUsageRecordLenientFields:
    @pytest.mark.parametrize("raw", ["n/a", [1], {}])
    def test_bad_event_count_falls_back_to_zero(self, raw: "object") -> "None":
        record = UsageRecord.from_payload(
            {
                "usage_date": "2024-01-01",
                "resource_type": "compute",
                "total_cost": "1",
                "event_count": raw,
            }
        )
        assert record.event_count == 0
