"""Read rota input from a single XLSX workbook.

The workbook mirrors the CSV input directory, one worksheet per table:

  Rota          key/value rows (start, shift_count, profile, ...)
  Volunteers    VOLUNTEERS_COLS
  Availability  AVAILABILITY_COLS
  History       HISTORY_COLS (optional)

Header names are matched case-insensitively with spaces read as underscores,
so a spreadsheet export with "Volunteer ID" headers loads as-is.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from .reader import RotaInput, build_input
from .schemas import AVAILABILITY_COLS, HISTORY_COLS, VOLUNTEERS_COLS, require_columns

ROTA_SHEET = "Rota"
VOLUNTEERS_SHEET = "Volunteers"
AVAILABILITY_SHEET = "Availability"
HISTORY_SHEET = "History"


def _get_openpyxl():
    try:
        from openpyxl import load_workbook
        return load_workbook
    except ImportError as exc:
        raise ImportError("openpyxl is required for XLSX input: pip install openpyxl") from exc


def _header_key(value: Any) -> str:
    return str(value or "").strip().lower().replace(" ", "_")


def _sheet_rows(ws, columns: list[str]) -> list[dict[str, Any]]:
    """Worksheet -> list of dicts keyed by normalised header; blank rows dropped."""
    rows = ws.iter_rows(values_only=True)
    try:
        header = [_header_key(v) for v in next(rows)]
    except StopIteration:
        return []
    require_columns(header, columns, f"worksheet {ws.title!r}")
    out = []
    for values in rows:
        if values is None or all(v is None or str(v).strip() == "" for v in values):
            continue
        out.append({h: v for h, v in zip(header, values) if h})
    return out


def _key_values(ws) -> dict[str, Any]:
    meta: dict[str, Any] = {}
    for values in ws.iter_rows(values_only=True):
        if not values or values[0] is None:
            continue
        key = _header_key(values[0])
        if key in ("key", "setting"):
            continue
        meta[key] = values[1] if len(values) > 1 else None
    return meta


def load_input_xlsx(path: Path) -> RotaInput:
    """Read a workbook -> RotaInput.

    Raises FileNotFoundError if the workbook is missing, KeyError if a
    required worksheet is absent, ValueError if a worksheet lacks a
    required column.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Required file not found: {path}")

    load_workbook = _get_openpyxl()
    wb = load_workbook(path, read_only=True, data_only=True)
    try:
        for name in (ROTA_SHEET, VOLUNTEERS_SHEET, AVAILABILITY_SHEET):
            if name not in wb.sheetnames:
                raise KeyError(f"worksheet not found: {name}")
        meta = _key_values(wb[ROTA_SHEET])
        volunteers = _sheet_rows(wb[VOLUNTEERS_SHEET], VOLUNTEERS_COLS)
        availability = _sheet_rows(wb[AVAILABILITY_SHEET], AVAILABILITY_COLS)
        history = _sheet_rows(wb[HISTORY_SHEET], HISTORY_COLS) if HISTORY_SHEET in wb.sheetnames else []
    finally:
        wb.close()

    return build_input(meta, volunteers, availability, history)
