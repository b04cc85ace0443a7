import io
import sys
from pathlib import Path

import pytest
from openpyxl import load_workbook

sys.path.append(str(Path(__file__).resolve().parents[1]))

from bundle_wizard.domain import TableRow
from bundle_wizard.exporters.review_table import export_rows


ROWS = [
    TableRow("InsurancePlan", "plan-1", "active", "Gold, Family"),
    TableRow("Organization", "org-1", "", "Insurer"),
]


def test_csv_export_quotes_and_orders_columns():
    filename, content = export_rows(ROWS, "csv")

    assert filename == "review-entries.csv"
    lines = content.decode("utf-8").splitlines()
    assert lines == [
        "resourceType,id,status,name",
        'InsurancePlan,plan-1,active,"Gold, Family"',
        "Organization,org-1,,Insurer",
    ]


def test_xlsx_export_writes_entries_sheet():
    filename, content = export_rows(ROWS, "XLSX")

    assert filename == "review-entries.xlsx"
    workbook = load_workbook(io.BytesIO(content))
    sheet = workbook["entries"]
    values = [list(row) for row in sheet.iter_rows(values_only=True)]
    assert values[0] == ["resourceType", "id", "status", "name"]
    assert values[1] == ["InsurancePlan", "plan-1", "active", "Gold, Family"]
    assert values[2][:2] == ["Organization", "org-1"]


def test_empty_table_exports_header_only():
    _, content = export_rows([], "csv")

    assert content.decode("utf-8").strip() == "resourceType,id,status,name"


def test_unknown_format_is_rejected():
    with pytest.raises(ValueError):
        export_rows(ROWS, "pdf")
