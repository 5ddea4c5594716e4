"""
Pure reporting functions: stock classification, overdue borrows, cost
aggregation and the dashboard summaries.
"""

from datetime import date, datetime
from types import SimpleNamespace

import pytest

from hkinv.services.records import ItemRecord, TransactionRecord
from hkinv.services.reporting_service import (
    aggregate_costs,
    cost_summary,
    dashboard_summary,
    is_overdue,
    last_log_update,
    location_totals,
    low_stock_items,
    notifications,
    overdue_borrows,
    stock_status,
    transaction_report,
)
from hkinv.validation import ValidationError


def item(id=1, code="BT", name="Bath Towel", current=10, minimum=5, location=None, status="active"):
    return ItemRecord.from_row({
        "id": id,
        "code": code,
        "name": name,
        "unit": "pcs",
        "min_stock": minimum,
        "current_stock": current,
        "price": 0,
        "status": status,
        "location": location,
    })


def tx(id=1, type="in", item_id=1, quantity=1, status="completed", on="2024-03-05", due=None, supplier_id=None):
    return TransactionRecord.from_row({
        "id": id,
        "type": type,
        "item_id": item_id,
        "quantity": quantity,
        "user_id": 1,
        "supplier_id": supplier_id,
        "status": status,
        "date": on,
        "due_date": due,
    })


def log(item_id, on, out=0, pending=0, returned=0, returned_on=None):
    return SimpleNamespace(
        item_id=item_id,
        date=date.fromisoformat(on),
        out_quantity=out,
        pending_quantity=pending,
        returned_quantity=returned,
        returned_date=date.fromisoformat(returned_on) if returned_on else None,
    )


class TestStock:
    def test_low_stock_set(self):
        items = [
            SimpleNamespace(min_stock=5, current_stock=5),
            SimpleNamespace(min_stock=5, current_stock=6),
            SimpleNamespace(min_stock=10, current_stock=3),
        ]

        assert low_stock_items(items) == [items[0], items[2]]

    def test_low_stock_limit(self):
        items = [SimpleNamespace(min_stock=5, current_stock=0) for _ in range(8)]

        assert len(low_stock_items(items, limit=5)) == 5
        assert len(low_stock_items(items)) == 8

    @pytest.mark.parametrize(
        "current, minimum, expected",
        [
            (10, 10, "low"),
            (15, 10, "medium"),
            (16, 10, "high"),
            (0, 0, "low"),
            (1, 0, "high"),
            (11, 10, "medium"),
            # 1.5 x 5 = 7.5
            (7, 5, "medium"),
            (8, 5, "high"),
        ],
    )
    def test_stock_status_boundaries(self, current, minimum, expected):
        assert stock_status(SimpleNamespace(current_stock=current, min_stock=minimum)) == expected

    def test_location_totals(self):
        items = [
            item(id=1, current=4, location="Linen Room"),
            item(id=2, current=6, location="Linen Room"),
            item(id=3, current=2, location=""),
            item(id=4, current=1, location="Basement"),
        ]

        assert location_totals(items) == [
            {"location": "Basement", "item_count": 1, "total_stock": 1},
            {"location": "Linen Room", "item_count": 2, "total_stock": 10},
            {"location": "Unassigned", "item_count": 1, "total_stock": 2},
        ]

    def test_numeric_strings_decode_but_non_ascii_digits_do_not(self):
        assert item(current="12").current_stock == 12

        with pytest.raises(ValidationError, match="items.current_stock"):
            item(current="²")


class TestOverdue:
    def test_pending_borrow_past_due_is_overdue(self):
        borrow = tx(type="borrow", status="pending", due="2024-01-01")
        assert is_overdue(borrow, now=date(2024, 6, 1))

    def test_completed_borrow_is_not_overdue(self):
        borrow = tx(type="borrow", status="completed", due="2024-01-01")
        assert not is_overdue(borrow, now=date(2024, 6, 1))

    def test_needs_borrow_type_and_due_date(self):
        assert not is_overdue(tx(type="out", status="pending", due="2024-01-01"), now=date(2024, 6, 1))
        assert not is_overdue(tx(type="borrow", status="pending", due=None), now=date(2024, 6, 1))

    def test_due_date_is_midnight_of_that_day(self):
        borrow = tx(type="borrow", status="approved", due="2024-06-01")

        assert not is_overdue(borrow, now=date(2024, 6, 1))
        assert not is_overdue(borrow, now=datetime(2024, 6, 1, 0, 0))
        assert is_overdue(borrow, now=datetime(2024, 6, 1, 15, 0))

    def test_due_today_is_overdue_later_that_day(self):
        borrow = SimpleNamespace(type="borrow", status="pending", due_date=date(2024, 6, 1))
        assert is_overdue(borrow, now=datetime(2024, 6, 1, 15, 0))

    def test_overdue_borrows_filters(self):
        rows = [
            tx(id=1, type="borrow", status="pending", due="2024-01-01"),
            tx(id=2, type="borrow", status="completed", due="2024-01-01"),
        ]
        assert [t.id for t in overdue_borrows(rows, now=date(2024, 6, 1))] == [1]


class TestCostAggregation:
    definitions = [
        SimpleNamespace(id=1, name="Bath Towel Baru", price=2600),
        SimpleNamespace(id=2, name="Bath Mat", price=2400),
    ]

    def test_month_filter(self):
        entries = [log(1, "2024-03-05", out=10), log(1, "2024-04-01", out=7)]

        march = aggregate_costs(entries, self.definitions, 3, 2024)
        april = aggregate_costs(entries, self.definitions, 4, 2024)

        assert (march[0].qty_pick_up, march[0].total_cost) == (10, 26000)
        assert (april[0].qty_pick_up, april[0].total_cost) == (7, 18200)

    def test_year_must_match(self):
        entries = [log(1, "2023-03-05", out=10)]
        assert aggregate_costs(entries, self.definitions, 3, 2024)[0].qty_pick_up == 0

    def test_rows_follow_definitions(self):
        rows = aggregate_costs([], self.definitions, 3, 2024)

        assert [r.item_id for r in rows] == [1, 2]
        assert rows[1].pick_up_date == "-"
        assert rows[1].total_cost == 0

    def test_pending_displayed_never_negative(self):
        entries = [
            log(1, "2024-03-05", out=4, pending=2, returned=5),
            log(2, "2024-03-06", out=1, pending=3, returned=1),
        ]

        rows = aggregate_costs(entries, self.definitions, 3, 2024)

        assert rows[0].pending_displayed == 0
        assert rows[1].pending_displayed == 2
        assert rows[0].pick_up_date == "2024-03-05"

    def test_summary(self):
        entries = [log(1, "2024-03-05", out=3), log(2, "2024-03-09", out=1, pending=2)]
        rows = aggregate_costs(entries, self.definitions, 3, 2024)

        summary = cost_summary(rows)

        assert summary["total_cost"] == 3 * 2600 + 2400
        assert summary["total_processed"] == 4
        assert summary["total_pending"] == 2
        # 10200 / 4 = 2550
        assert summary["average_cost_per_piece"] == 2550

    def test_average_rounds_half_up(self):
        rows = aggregate_costs([log(1, "2024-03-05", out=1), log(2, "2024-03-05", out=1)],
                               [SimpleNamespace(id=1, name="A", price=1), SimpleNamespace(id=2, name="B", price=2)],
                               3, 2024)
        # 3 / 2 = 1.5
        assert cost_summary(rows)["average_cost_per_piece"] == 2

    def test_empty_summary(self):
        assert cost_summary([])["average_cost_per_piece"] == 0

    def test_last_update_prefers_returned_date(self):
        entries = [log(1, "2024-03-05"), log(1, "2024-03-01", returned_on="2024-03-20")]
        assert last_log_update(entries) == "2024-03-20"
        assert last_log_update([]) is None


class TestSummaries:
    def test_transaction_report_range_and_names(self):
        items = [item(id=1, code="BT", name="Bath Towel")]
        suppliers = [SimpleNamespace(id=9, name="Laundry Co")]
        rows = [
            tx(id=1, on="2024-03-01", supplier_id=9),
            tx(id=2, on="2024-03-15"),
            tx(id=3, on="2024-04-01"),
        ]

        report = transaction_report(rows, items, suppliers, start=date(2024, 3, 1), end=date(2024, 3, 31))

        assert [r["id"] for r in report] == [1, 2]
        assert report[0]["item_name"] == "Bath Towel"
        assert report[0]["supplier_name"] == "Laundry Co"
        assert report[1]["supplier_name"] is None

    def test_dashboard(self):
        items = [item(id=i, current=0, minimum=5) for i in range(1, 8)] + [item(id=8, current=50)]
        rows = [
            tx(id=1, type="in", quantity=5, on="2024-03-01"),
            tx(id=2, type="out", quantity=2, on="2024-03-02"),
            tx(id=3, type="out", quantity=1, on="2024-03-03"),
        ]

        summary = dashboard_summary(items=items, transactions=rows, low_stock_limit=5)

        assert summary["counts"]["items"] == 8
        assert summary["total_in"] == 5
        assert summary["total_out"] == 3
        assert summary["transactions_by_type"] == {"in": 1, "out": 2, "borrow": 0, "return": 0}
        assert len(summary["low_stock"]) == 5
        assert summary["low_stock_total"] == 7
        assert summary["low_stock"][0]["stock_status"] == "low"
        assert [t["id"] for t in summary["recent_transactions"]] == [3, 2, 1]

    def test_notifications(self):
        items = [item(id=1, current=1, minimum=5), item(id=2, current=50)]
        rows = [
            tx(id=1, type="borrow", status="pending", due="2024-01-01"),
            tx(id=2, type="in", status="pending"),
        ]

        notes = notifications(items, rows, now=date(2024, 6, 1))

        assert [n.kind for n in notes] == ["low_stock", "overdue_borrow", "pending_transactions"]
        assert notes[0].ref_id == 1
        assert "2 transaction(s)" in notes[2].message
