"""
CSV export/parse and the bulk item import.
"""

import csv
import io

from hkinv.services import csv_service, items_service


def test_export_then_parse_gives_back_the_rows():
    rows = [
        {"code": "BT-01", "name": "Bath Towel", "unit": "pcs", "min_stock": 5},
        {"code": "BM-01", "name": 'Mat, "Large"', "unit": "pcs", "min_stock": 2},
    ]
    columns = {"Code": "code", "Name": "name", "Unit": "unit", "MinStock": "min_stock"}

    text = csv_service.export_csv(rows, list(columns), columns)
    parsed = csv_service.parse_csv(text, columns)

    assert parsed == [{k: str(v) for k, v in row.items()} for row in rows]


def test_export_header_first_and_none_is_empty():
    text = csv_service.export_csv([{"a": 1, "b": None}], ["a", "b"])

    assert text.splitlines() == ["a,b", "1,"]


def test_export_quotes_delimiters_and_newlines():
    text = csv_service.export_csv([{"note": "line one\nline, two"}], ["note"])

    assert list(csv.reader(io.StringIO(text))) == [["note"], ["line one\nline, two"]]


def test_export_kind_uses_header_names():
    text = csv_service.export_kind("categories", [{"id": 1, "code": "LIN", "name": "Linen", "description": ""}])

    assert text.splitlines()[0] == "ID,Code,Name,Description"
    assert text.splitlines()[1] == "1,LIN,Linen,"


def test_cost_control_headers():
    header = csv_service.export_kind("cost-control", []).strip()
    assert header == "No,Item,PickUpDate,QtyPickUp,Pending,Returned,Price,TotalCost"


def test_parse_matches_headers_case_insensitively_and_ignores_extras():
    text = "\ufeffcode, NAME ,Colour\nBT-01, Bath Towel ,white\n\n"

    rows = csv_service.parse_csv(text, csv_service.ITEM_CSV_COLUMNS)

    assert rows == [{"code": "BT-01", "name": "Bath Towel"}]


def test_missing_headers():
    assert csv_service.missing_headers("itemId,cost\n", csv_service.PRICE_CSV_COLUMNS, ["itemId", "price"]) == ["price"]
    assert csv_service.missing_headers("", csv_service.PRICE_CSV_COLUMNS, ["itemId"]) == ["itemId"]


class TestItemImport:
    def test_bad_row_fails_alone(self, db_session):
        text = (
            "Code,Name,Unit,MinStock,CurrentStock\n"
            "BT-01,Bath Towel,pcs,5,20\n"
            "BT-02,Hand Towel,pcs,five,20\n"
            "BT-03,Face Towel,pcs,2,\n"
        )

        report = csv_service.import_items_csv(text)

        assert len(report.imported) == 2
        assert report.to_dict()["failed"] == 1
        assert report.errors[0]["row"] == 3
        assert report.errors[0]["error"] == "validation_error"
        assert [i.code for i in items_service.list_items()] == ["BT-01", "BT-03"]

    def test_duplicate_code_is_reported(self, db_session, make_item):
        make_item(code="BT-01")

        report = csv_service.import_items_csv("Code,Name,Unit\nBT-01,Bath Towel,pcs\n")

        assert report.imported == []
        assert report.errors[0]["error"] == "conflict"

    def test_round_trip_through_export(self, db_session, make_item):
        make_item(code="BT-01", name="Bath Towel", location="Linen Room")
        exported = csv_service.export_kind("items", items_service.list_items())

        rows = csv_service.parse_csv(exported, csv_service.ITEM_CSV_COLUMNS)

        assert rows[0]["code"] == "BT-01"
        assert rows[0]["location"] == "Linen Room"
        assert rows[0]["supplier_id"] == ""
