from __future__ import annotations

import io
from typing import Iterable

import pandas as pd

from bundle_wizard.domain import TableRow

COLUMNS = ["resourceType", "id", "status", "name"]

MEDIA_TYPES = {
    "csv": "text/csv",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}


def rows_to_frame(rows: Iterable[TableRow]) -> pd.DataFrame:
    return pd.DataFrame([row.as_dict() for row in rows], columns=COLUMNS)


def export_rows(rows: Iterable[TableRow], fmt: str) -> tuple[str, bytes]:
    """Serialise the review table as CSV or XLSX, returning filename and content."""

    fmt = fmt.lower()
    df = rows_to_frame(rows)
    if fmt == "csv":
        return "review-entries.csv", df.to_csv(index=False).encode("utf-8")
    if fmt == "xlsx":
        buffer = io.BytesIO()
        df.to_excel(buffer, index=False, sheet_name="entries", engine="openpyxl")
        return "review-entries.xlsx", buffer.getvalue()
    raise ValueError(f"unsupported export format: {fmt}")
