from datetime import date
from decimal import Decimal

import pytest

from billscope.exceptions import MalformedRecord
from billscope.models import UsageRecord
from billscope.pivot import (
    DuplicatePolicy,
    categories,
    parse_decimal,
    pivot,
    pivot_quantity,
)

JAN_1 = date(2024, 1, 1)
JAN_2 = date(2024, 1, 2)
JAN_3 = date(2024, 1, 3)


def _record(
    day: "date",
    resource_type: "str",
    total_cost: "object",
    quantity: "object" = "1",
) -> "UsageRecord":
    return UsageRecord(
        usage_date=day,
        resource_type=resource_type,
        total_cost=total_cost,
        quantity=quantity,
    )


class TestPivot:
    def test_example_scenario(self) -> "None":
        records = [
            _record(JAN_1, "compute", "10.50"),
            _record(JAN_1, "storage", "2.00"),
            _record(JAN_2, "compute", "11.00"),
        ]

        rows = pivot(records)

        assert [r.as_dict() for r in rows] == [
            {"date": JAN_1, "compute": Decimal("10.50"), "storage": Decimal("2.00")},
            {"date": JAN_2, "compute": Decimal("11.00")},
        ]

    def test_empty_input_returns_empty(self) -> "None":
        assert pivot([]) == ()

    def test_rows_follow_first_seen_date_order(self) -> "None":
        records = [
            _record(JAN_3, "compute", "1"),
            _record(JAN_1, "compute", "2"),
            _record(JAN_3, "storage", "3"),
            _record(JAN_2, "compute", "4"),
        ]

        rows = pivot(records)

        assert [r.date for r in rows] == [JAN_3, JAN_1, JAN_2]

    def test_sort_by_date(self) -> "None":
        records = [
            _record(JAN_3, "compute", "1"),
            _record(JAN_1, "compute", "2"),
            _record(JAN_2, "compute", "4"),
        ]

        rows = pivot(records, sort_by_date=True)

        assert [r.date for r in rows] == [JAN_1, JAN_2, JAN_3]

    def test_every_date_appears_exactly_once(self) -> "None":
        records = [
            _record(JAN_1, "compute", "1"),
            _record(JAN_2, "network", "2"),
            _record(JAN_1, "storage", "3"),
            _record(JAN_2, "compute", "4"),
            _record(JAN_1, "network", "5"),
        ]

        rows = pivot(records)

        assert sorted(r.date for r in rows) == [JAN_1, JAN_2]

    def test_missing_category_is_absent_not_zero(self) -> "None":
        records = [
            _record(JAN_1, "compute", "1"),
            _record(JAN_1, "storage", "2"),
            _record(JAN_2, "compute", "3"),
        ]

        rows = pivot(records)

        assert "storage" not in rows[1]
        with pytest.raises(KeyError):
            rows[1]["storage"]

    def test_duplicates_last_write_wins(self) -> "None":
        records = [
            _record(JAN_1, "compute", "10.00"),
            _record(JAN_1, "compute", "7.25"),
        ]

        rows = pivot(records)

        assert rows[0]["compute"] == Decimal("7.25")

    def test_duplicates_sum(self) -> "None":
        records = [
            _record(JAN_1, "compute", "10.00"),
            _record(JAN_1, "storage", "1.00"),
            _record(JAN_1, "compute", "7.25"),
        ]

        rows = pivot(records, duplicates=DuplicatePolicy.SUM)

        assert rows[0]["compute"] == Decimal("17.25")
        assert rows[0]["storage"] == Decimal("1.00")

    def test_is_deterministic(self) -> "None":
        records = [
            _record(JAN_2, "compute", "1"),
            _record(JAN_1, "storage", 2.5),
            _record(JAN_2, "network", "3"),
        ]

        first = [r.as_dict() for r in pivot(records)]
        second = [r.as_dict() for r in pivot(records)]

        assert first == second
        assert [list(r) for r in pivot(records)] == [
            ["date", "compute", "network"],
            ["date", "storage"],
        ]

    def test_does_not_mutate_input(self) -> "None":
        records = [_record(JAN_1, "compute", "1"), _record(JAN_1, "compute", "2")]
        before = list(records)

        pivot(records)

        assert records == before

    def test_accepts_numeric_costs(self) -> "None":
        records = [
            _record(JAN_1, "compute", 3),
            _record(JAN_1, "storage", 0.1),
            _record(JAN_1, "network", Decimal("4.5")),
        ]

        row = pivot(records)[0]

        assert row["compute"] == Decimal("3")
        assert row["storage"] == Decimal("0.1")
        assert row["network"] == Decimal("4.5")

    def test_malformed_cost_is_skipped_and_reported(self) -> "None":
        records = [
            _record(JAN_1, "compute", "abc"),
            _record(JAN_1, "storage", "2.00"),
            _record(JAN_2, "compute", None),
        ]
        seen: "list[UsageRecord]" = []

        rows = pivot(records, on_malformed=seen.append)

        assert [r.as_dict() for r in rows] == [
            {"date": JAN_1, "storage": Decimal("2.00")},
            {"date": JAN_2},
        ]
        assert seen == [records[0], records[2]]

    def test_malformed_duplicate_keeps_earlier_value(self) -> "None":
        records = [
            _record(JAN_1, "compute", "5"),
            _record(JAN_1, "compute", "n/a"),
        ]

        rows = pivot(records)

        assert rows[0]["compute"] == Decimal("5")

    def test_rows_are_read_only(self) -> "None":
        rows = pivot([_record(JAN_1, "compute", "1")])

        with pytest.raises(TypeError):
            rows[0].values["compute"] = Decimal("2")  # type: ignore[index]

    def test_pivot_quantity_uses_quantity_field(self) -> "None":
        records = [
            _record(JAN_1, "compute", "10.50", quantity="120"),
            _record(JAN_1, "storage", "2.00", quantity="500.5"),
        ]

        rows = pivot_quantity(records)

        assert rows[0].as_dict() == {
            "date": JAN_1,
            "compute": Decimal("120"),
            "storage": Decimal("500.5"),
        }

    def test_categories_in_first_seen_order(self) -> "None":
        rows = pivot(
            [
                _record(JAN_1, "storage", "1"),
                _record(JAN_2, "compute", "1"),
                _record(JAN_2, "storage", "1"),
                _record(JAN_3, "network", "1"),
            ]
        )

        assert categories(rows) == ("storage", "compute", "network")


class TestParseDecimal:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("10.50", Decimal("10.50")),
            (" 3 ", Decimal("3")),
            (7, Decimal("7")),
            (0.1, Decimal("0.1")),
            ("-1e2", Decimal("-100")),
        ],
    )
    def test_parses_numbers(self, raw: "object", expected: "Decimal") -> "None":
        assert parse_decimal(raw) == expected

    @pytest.mark.parametrize(
        "raw",
        [None, "", "abc", "NaN", "Infinity", float("nan"), True, [1], object()],
    )
    def test_rejects_non_numbers(self, raw: "object") -> "None":
        with pytest.raises(MalformedRecord):
            parse_decimal(raw)


class TestPivotDateCategory:
    def test_date_category_is_reported_as_malformed(self) -> "None":
        records = [
            _record(JAN_1, "date", "5"),
            _record(JAN_1, "compute", "1"),
        ]
        seen: "list[UsageRecord]" = []

        rows = pivot(records, on_malformed=seen.append)

        assert rows[0].as_dict() == {"date": JAN_1, "compute": Decimal("1")}
        assert rows[0]["date"] == JAN_1
        assert seen == [records[0]]
