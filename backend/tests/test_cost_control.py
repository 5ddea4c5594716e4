"""
Laundry cost control: unit prices, log book and the monthly report.
"""

import pytest

from hkinv.models import DEFAULT_COST_ITEMS
from hkinv.services import cost_control_service
from hkinv.validation import MAX_PRICE, ValidationError


def _cost_item(name: str):
    return next(c for c in cost_control_service.list_cost_items() if c.name == name)


def _log(item, on: str, **quantities):
    result = cost_control_service.create_log_entry({"item_id": item.id, "date": on, **quantities})
    assert result.success, result.message
    return result.payload


@pytest.fixture
def seeded(db_session):
    cost_control_service.seed_cost_items()
    return cost_control_service.list_cost_items()


def test_seed_is_idempotent(db_session):
    assert cost_control_service.seed_cost_items() == len(DEFAULT_COST_ITEMS)
    assert cost_control_service.seed_cost_items() == 0
    assert len(cost_control_service.list_cost_items()) == len(DEFAULT_COST_ITEMS)


@pytest.mark.smoke
def test_monthly_totals_only_count_selected_month(seeded):
    towel = _cost_item("Bath Towel Baru")
    _log(towel, "2024-03-05", out_quantity=10)
    _log(towel, "2024-04-01", out_quantity=7)

    march = cost_control_service.cost_report(3, 2024)
    april = cost_control_service.cost_report(4, 2024)

    march_row = next(r for r in march["rows"] if r["item_id"] == towel.id)
    april_row = next(r for r in april["rows"] if r["item_id"] == towel.id)
    assert (march_row["qty_pick_up"], march_row["total_cost"]) == (10, 26000)
    assert (april_row["qty_pick_up"], april_row["total_cost"]) == (7, 18200)
    assert march["summary"]["total_cost"] == 26000
    assert march["summary"]["average_cost_per_piece"] == 2600
    assert march["last_update"] == "2024-04-01"


def test_report_has_a_row_per_definition(seeded):
    report = cost_control_service.cost_report("3", "2024")

    assert len(report["rows"]) == len(DEFAULT_COST_ITEMS)
    assert all(r["pick_up_date"] == "-" for r in report["rows"])
    assert report["summary"]["average_cost_per_piece"] == 0


@pytest.mark.parametrize("month, year", [(0, 2024), (13, 2024), ("x", 2024), (3, None)])
def test_invalid_period(month, year):
    with pytest.raises(ValidationError):
        cost_control_service.validate_period(month, year)


def test_pending_is_shown_net_of_returns(seeded):
    mat = _cost_item("Bath Mat")
    _log(mat, "2024-03-02", out_quantity=6, pending_quantity=3)
    _log(mat, "2024-03-09", returned_quantity=1, returned_date="2024-03-09")

    row = next(r for r in cost_control_service.cost_report(3, 2024)["rows"] if r["item_id"] == mat.id)

    assert row["pending"] == 3
    assert row["returned"] == 1
    assert row["pending_displayed"] == 2
    assert row["pick_up_date"] == "2024-03-09"


class TestPrices:
    def test_update_price(self, seeded):
        towel = _cost_item("Bath Towel Baru")

        result = cost_control_service.update_cost_item_price(towel.id, "3000")

        assert result.success
        assert _cost_item("Bath Towel Baru").price == 3000

    def test_negative_price_clamps_to_zero(self, seeded):
        towel = _cost_item("Bath Towel Baru")

        result = cost_control_service.update_cost_item_price(towel.id, -50)

        assert result.success
        assert result.payload.price == 0

    def test_price_above_max_fails(self, seeded):
        towel = _cost_item("Bath Towel Baru")

        result = cost_control_service.update_cost_item_price(towel.id, MAX_PRICE + 1)

        assert not result.success
        assert result.error == "validation_error"
        assert _cost_item("Bath Towel Baru").price == 2600

    def test_non_numeric_price_fails(self, seeded):
        towel = _cost_item("Bath Towel Baru")
        assert cost_control_service.update_cost_item_price(towel.id, "12.5").error == "validation_error"

    def test_unknown_item(self, db_session):
        assert cost_control_service.update_cost_item_price(999, 100).error == "not_found"

    def test_create_duplicate_name(self, seeded):
        result = cost_control_service.create_cost_item({"name": "Bath Mat", "price": 1})
        assert result.error == "conflict"

    def test_create_cost_item(self, seeded):
        result = cost_control_service.create_cost_item({"name": "Apron", "price": 900})

        assert result.success
        assert result.http_status == 201
        assert _cost_item("Apron").price == 900


class TestPriceImport:
    def test_good_rows_apply_and_bad_rows_are_reported(self, seeded):
        towel = _cost_item("Bath Towel Baru")
        mat = _cost_item("Bath Mat")
        text = f"itemId,price\n{towel.id},3100\nabc,100\n{mat.id},oops\n"

        result = cost_control_service.import_prices_csv(text)

        assert result.success
        report = result.payload
        assert len(report.imported) == 1
        assert [e["row"] for e in report.errors] == [3, 4]
        assert _cost_item("Bath Towel Baru").price == 3100
        assert _cost_item("Bath Mat").price == 2400

    def test_headers_are_case_insensitive(self, seeded):
        towel = _cost_item("Bath Towel Baru")

        result = cost_control_service.import_prices_csv(f"ItemID,Price\n{towel.id},2700\n")

        assert result.success
        assert _cost_item("Bath Towel Baru").price == 2700

    def test_missing_header(self, seeded):
        result = cost_control_service.import_prices_csv("id,price\n1,100\n")

        assert not result.success
        assert "itemId,price" in result.message

    def test_nothing_valid(self, seeded):
        result = cost_control_service.import_prices_csv("itemId,price\n999,100\n")

        assert not result.success
        assert result.message == "No valid price rows found"
        assert result.to_dict()["report"]["failed"] == 1

    def test_non_ascii_digit_item_id_is_a_row_error(self, seeded):
        towel = _cost_item("Bath Towel Baru")
        text = f"itemId,price\n{towel.id},2900\n²,100\n"

        result = cost_control_service.import_prices_csv(text)

        assert result.success
        assert len(result.payload.imported) == 1
        assert result.payload.errors == [
            {"row": 3, "message": "Invalid itemId: '²'", "error": "validation_error"}
        ]
        assert _cost_item("Bath Towel Baru").price == 2900


class TestLogBook:
    def test_unknown_cost_item(self, seeded):
        result = cost_control_service.create_log_entry({"item_id": 99999, "date": "2024-03-01"})
        assert result.error == "not_found"

    def test_negative_quantity(self, seeded):
        towel = _cost_item("Bath Towel Baru")
        result = cost_control_service.create_log_entry(
            {"item_id": towel.id, "date": "2024-03-01", "out_quantity": -1}
        )
        assert result.error == "validation_error"

    def test_defaults_to_zero(self, seeded):
        entry = _log(_cost_item("Napkin"), "2024-03-01")
        assert (entry.out_quantity, entry.in_quantity, entry.pending_quantity, entry.returned_quantity) == (0, 0, 0, 0)

    def test_update_and_delete(self, seeded):
        entry = _log(_cost_item("Napkin"), "2024-03-01", out_quantity=2)

        updated = cost_control_service.update_log_entry(entry.id, {"out_quantity": 5, "in_quantity": ""})
        assert updated.success
        assert updated.payload.out_quantity == 5

        assert cost_control_service.delete_log_entry(entry.id).success
        assert cost_control_service.delete_log_entry(entry.id).error == "not_found"
        assert cost_control_service.list_log_entries() == []
