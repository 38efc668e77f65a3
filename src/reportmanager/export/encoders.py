"""Format encoders: ExportData → file bytes (CSV, JSON, XLSX)."""

import csv
import json
import re
from datetime import date, datetime
from decimal import Decimal
from io import BytesIO, StringIO
from typing import Any

from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter

from reportmanager.domain.enums import ExportFormat
from reportmanager.domain.models import ExportData
from reportmanager.exceptions import UnsupportedFormatError

UTF8_BOM = b"\xef\xbb\xbf"

CONTENT_TYPES: dict[str, str] = {
    ExportFormat.CSV.value: "text/csv; charset=utf-8",
    ExportFormat.JSON.value: "application/json",
    ExportFormat.XLSX.value: "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}

MAX_SHEET_TITLE = 31
_ILLEGAL_SHEET_CHARS = re.compile(r"[\\/*?\[\]:]")

HEADER_FONT = Font(bold=True)
HEADER_FILL = PatternFill(fill_type="solid", start_color="E5E7EB", end_color="E5E7EB")


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d %H:%M:%S")
    return str(value)


def encode_csv(
    data: ExportData,
    delimiter: str = ",",
    enclosure: str = '"',
    include_bom: bool = True,
) -> bytes:
    buf = StringIO()
    writer = csv.writer(buf, delimiter=delimiter, quotechar=enclosure, lineterminator="\n")
    writer.writerow(data.headers)
    for row in data.rows:
        writer.writerow([_text(v) for v in row])
    body = buf.getvalue().encode("utf-8")
    return UTF8_BOM + body if include_bom else body


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    return str(value)


def encode_json(data: ExportData) -> bytes:
    """Array of objects keyed by header; missing cells become null."""
    records = [
        {header: (row[idx] if idx < len(row) else None) for idx, header in enumerate(data.headers)}
        for row in data.rows
    ]
    return json.dumps(records, indent=4, ensure_ascii=False, default=_json_default).encode("utf-8")


def sheet_title(name: str | None) -> str:
    """Worksheet title: max 31 chars, characters Excel forbids replaced by '_'."""
    title = (name or "Export")[:MAX_SHEET_TITLE]
    return _ILLEGAL_SHEET_CHARS.sub("_", title) or "Export"


def _cell_value(value: Any) -> Any:
    if isinstance(value, str):
        # openpyxl refuses control characters that CSV and JSON carry fine
        value = ILLEGAL_CHARACTERS_RE.sub("", value)
    if value == "":
        return None
    if value is None or isinstance(value, (str, int, float, Decimal, datetime, date, bool)):
        return value
    return str(value)


def _write_cell(ws, row: int, column: int, value: Any):
    cell = ws.cell(row=row, column=column, value=_cell_value(value))
    if cell.data_type == "f":
        # Exported data is text, never a formula
        cell.data_type = "s"
    return cell


def encode_xlsx(data: ExportData, title: str | None = None) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = sheet_title(title)

    for col_idx, header in enumerate(data.headers, start=1):
        cell = _write_cell(ws, 1, col_idx, header)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL

    for row_idx, row in enumerate(data.rows, start=2):
        for col_idx, value in enumerate(row, start=1):
            _write_cell(ws, row_idx, col_idx, value)

    _auto_fit_columns(ws)
    ws.freeze_panes = "A2"

    buf = BytesIO()
    wb.save(buf)
    return buf.getvalue()


def _auto_fit_columns(ws) -> None:
    """Set column widths based on content (approximate)."""
    for col_cells in ws.columns:
        max_len = 0
        col_letter = get_column_letter(col_cells[0].column)
        for cell in col_cells:
            if cell.value is not None:
                max_len = max(max_len, len(str(cell.value)))
        ws.column_dimensions[col_letter].width = min(max_len + 3, 60)


def encode_export(
    fmt: str,
    data: ExportData,
    *,
    title: str | None = None,
    delimiter: str = ",",
    enclosure: str = '"',
    include_bom: bool = True,
) -> bytes:
    """Encode *data* in *fmt*. Input rows are never modified."""
    if fmt == ExportFormat.CSV.value:
        return encode_csv(data, delimiter=delimiter, enclosure=enclosure, include_bom=include_bom)
    if fmt == ExportFormat.JSON.value:
        return encode_json(data)
    if fmt == ExportFormat.XLSX.value:
        return encode_xlsx(data, title=title)
    raise UnsupportedFormatError(fmt)


def ensure_supported(fmt: str) -> None:
    if fmt not in CONTENT_TYPES:
        raise UnsupportedFormatError(fmt)
