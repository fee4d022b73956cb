"""Tabular input loading.

Reads a workbook sheet or CSV file into plain row mappings. Cell values are
normalized here, at the boundary, into a closed set of types (``str``,
``int``, ``float`` or the empty string) so downstream code never inspects
pandas or spreadsheet types.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Any, Iterable, Mapping, Union

import numpy as np
import pandas as pd

from flowviz.log_config import get_logger

logger = get_logger(__name__)

Cell = Union[str, int, float]
Row = Mapping[str, Cell]

EXCEL_SUFFIXES = {".xlsx", ".xlsm", ".xls"}
CSV_SUFFIXES = {".csv", ".txt"}

# Only blank cells are missing; text such as "NA" or "None" is a real value.
MISSING_CELLS = [""]


@dataclass(frozen=True)
class RowSet:
    """Rows loaded from one sheet, plus the discovered column names."""

    headers: list[str]
    rows: list[dict[str, Cell]]
    sheet: str | None = None
    sheet_names: list[str] = field(default_factory=list)
    source: str = ""

    def __len__(self) -> int:
        return len(self.rows)

    @property
    def status_message(self) -> str:
        return f"Loaded: {len(self.rows)} rows, {len(self.headers)} columns"


def normalize_cell(value: Any) -> Cell:
    """Map an arbitrary cell value to ``str``, ``int``, ``float`` or ``""``.

    Missing values (None, NaN, NaT) become ``""``. Integral floats become
    ``int`` so that identifiers such as ``101.0`` read back as ``101``.
    Booleans are rendered the way spreadsheets display them.
    """
    if value is None:
        return ""
    if isinstance(value, (bool, np.bool_)):
        return "TRUE" if value else "FALSE"
    if isinstance(value, (np.integer, int)):
        return int(value)
    if isinstance(value, (np.floating, float)):
        fval = float(value)
        if math.isnan(fval):
            return ""
        if math.isfinite(fval) and fval.is_integer():
            return int(fval)
        return fval
    if value is pd.NaT:
        return ""
    if isinstance(value, (pd.Timestamp, datetime, date)):
        return value.isoformat()
    if isinstance(value, str):
        return value
    return str(value)


def rows_from_records(records: Iterable[Mapping[str, Any]]) -> RowSet:
    """Build a RowSet from in-memory records.

    Headers are taken from the first record, as a workbook reader does.
    """
    rows = [{str(k): normalize_cell(v) for k, v in rec.items()} for rec in records]
    headers = list(rows[0].keys()) if rows else []
    return RowSet(headers=headers, rows=rows)


def rows_from_dataframe(
    df: pd.DataFrame, *, sheet: str | None = None, sheet_names: list[str] | None = None
) -> RowSet:
    """Convert a DataFrame into a RowSet with normalized cells."""
    headers = [str(c) for c in df.columns]
    rows: list[dict[str, Cell]] = []
    for record in df.itertuples(index=False, name=None):
        rows.append({h: normalize_cell(v) for h, v in zip(headers, record)})
    return RowSet(
        headers=headers,
        rows=rows,
        sheet=sheet,
        sheet_names=list(sheet_names or []),
    )


def list_sheets(path: Path) -> list[str]:
    """Return sheet names of a workbook, or ``[]`` for CSV input."""
    path = Path(path)
    if path.suffix.lower() in CSV_SUFFIXES:
        return []
    with pd.ExcelFile(path) as book:
        return [str(name) for name in book.sheet_names]


def load_rows(path: Path, sheet: str | None = None) -> RowSet:
    """Load rows from a workbook sheet or CSV file.

    Args:
        path: Input file (.xlsx/.xlsm/.xls or .csv/.txt).
        sheet: Sheet name for workbooks; defaults to the first sheet.

    Returns:
        RowSet with headers from the first row and one mapping per data row.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If the format is unsupported, the sheet is unknown, or
            the sheet contains no data.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")

    suffix = path.suffix.lower()
    logger.info(f"Loading rows from {path}")

    if suffix in CSV_SUFFIXES:
        df = pd.read_csv(
            path, dtype=object, keep_default_na=False, na_values=MISSING_CELLS
        )
        sheet_names: list[str] = []
        chosen = None
    elif suffix in EXCEL_SUFFIXES:
        sheet_names = list_sheets(path)
        if not sheet_names:
            raise ValueError("File is empty or contains no data.")
        chosen = sheet if sheet is not None else sheet_names[0]
        if chosen not in sheet_names:
            raise ValueError(
                f"Sheet {chosen!r} not found; available sheets: {sheet_names}"
            )
        if sheet is None and len(sheet_names) > 1:
            logger.info(
                f"Workbook has {len(sheet_names)} sheets; using first sheet {chosen!r}"
            )
        df = pd.read_excel(
            path,
            sheet_name=chosen,
            keep_default_na=False,
            na_values=MISSING_CELLS,
        )
    else:
        raise ValueError(
            f"Unsupported input format {suffix!r}; expected one of "
            f"{sorted(EXCEL_SUFFIXES | CSV_SUFFIXES)}"
        )

    if df.empty or len(df.columns) == 0:
        logger.warning(f"No data rows found in {path}")
        raise ValueError("File is empty or contains no data.")

    row_set = rows_from_dataframe(df, sheet=chosen, sheet_names=sheet_names)
    logger.info(
        f"Loaded {len(row_set.rows):,} rows with {len(row_set.headers)} columns"
    )
    return RowSet(
        headers=row_set.headers,
        rows=row_set.rows,
        sheet=row_set.sheet,
        sheet_names=row_set.sheet_names,
        source=str(path),
    )
