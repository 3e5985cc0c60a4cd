"""
Spreadsheet input/output for batches.

Input: first sheet, first column, header row skipped.
Output: one ``Resultados`` sheet with one row per consulted document.
"""
from __future__ import annotations

import io
import json
from typing import Any, Iterable

from openpyxl import Workbook, load_workbook

from app.schemas.batch import BatchItemResult

RESULT_HEADER = ["documentNumber", "provider", "balance", "errorMessage"]
RESULT_SHEET = "Resultados"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def cell_to_document_number(value: Any) -> str:
    if value is None:
        return ""
    # Numeric identifiers typed into a sheet come back as floats
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def balance_cell(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, (str, int, float, bool)):
        return value
    # Structured balances are written as JSON text
    return json.dumps(value, ensure_ascii=False, default=str)


def extract_document_numbers(data: bytes) -> list[str]:
    """Document numbers in file order. Blank cells are dropped."""
    workbook = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    try:
        sheet = workbook.worksheets[0]
        numbers = []
        for row in sheet.iter_rows(min_row=2, values_only=True):
            if not row:
                continue
            number = cell_to_document_number(row[0])
            if number:
                numbers.append(number)
        return numbers
    finally:
        workbook.close()


def build_result_workbook(results: Iterable[BatchItemResult]) -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = RESULT_SHEET
    sheet.append(RESULT_HEADER)
    for item in results:
        sheet.append([
            item.document_number,
            item.provider,
            balance_cell(item.balance),
            item.error_message or "",
        ])
    buf = io.BytesIO()
    workbook.save(buf)
    return buf.getvalue()
