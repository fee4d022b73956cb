"""Tests for tabular input loading."""

import math
from datetime import datetime

import numpy as np
import pandas as pd
import pytest

from flowviz.ingestion import (
    list_sheets,
    load_rows,
    normalize_cell,
    rows_from_dataframe,
    rows_from_records,
)


@pytest.mark.parametrize(
    "value,expected",
    [
        (None, ""),
        (float("nan"), ""),
        (pd.NaT, ""),
        (True, "TRUE"),
        (np.bool_(False), "FALSE"),
        (np.int64(7), 7),
        (101.0, 101),
        (2.5, 2.5),
        ("text", "text"),
        (datetime(2024, 1, 2, 3, 4, 5), "2024-01-02T03:04:05"),
    ],
)
def test_normalize_cell(value, expected) -> None:
    assert normalize_cell(value) == expected


def test_normalize_cell_keeps_infinity() -> None:
    assert math.isinf(normalize_cell(float("inf")))


def test_rows_from_records() -> None:
    row_set = rows_from_records([{"a": 1.0, "b": None}, {"a": "x", "b": 2}])
    assert row_set.headers == ["a", "b"]
    assert row_set.rows == [{"a": 1, "b": ""}, {"a": "x", "b": 2}]
    assert row_set.status_message == "Loaded: 2 rows, 2 columns"


def test_rows_from_empty_records() -> None:
    row_set = rows_from_records([])
    assert row_set.headers == []
    assert len(row_set) == 0


def test_rows_from_dataframe() -> None:
    df = pd.DataFrame({"o": ["A", None], "w": [1.5, np.nan]})
    row_set = rows_from_dataframe(df, sheet="Sheet1", sheet_names=["Sheet1"])
    assert row_set.rows == [{"o": "A", "w": 1.5}, {"o": "", "w": ""}]
    assert row_set.sheet == "Sheet1"


def test_load_csv(referral_csv) -> None:
    row_set = load_rows(referral_csv)

    assert row_set.headers[:3] == ["Origin", "Destination", "Referrals"]
    assert len(row_set) == 6
    assert row_set.rows[0]["Origin"] == "Clinic North"
    assert row_set.rows[4]["OLat"] == ""
    assert row_set.sheet is None
    assert row_set.sheet_names == []
    assert row_set.source == str(referral_csv)
    assert list_sheets(referral_csv) == []


def test_load_missing_file(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        load_rows(tmp_path / "missing.csv")


def test_load_unsupported_format(tmp_path) -> None:
    path = tmp_path / "data.json"
    path.write_text("{}")
    with pytest.raises(ValueError, match="Unsupported input format"):
        load_rows(path)


def test_load_header_only_csv(tmp_path) -> None:
    path = tmp_path / "empty.csv"
    path.write_text("Origin,Destination\n")
    with pytest.raises(ValueError, match="empty or contains no data"):
        load_rows(path)


def test_load_excel_sheets(tmp_path, referral_records) -> None:
    pytest.importorskip("openpyxl")
    path = tmp_path / "referrals.xlsx"
    with pd.ExcelWriter(path) as writer:
        pd.DataFrame({"x": [1]}).to_excel(writer, sheet_name="Notes", index=False)
        pd.DataFrame(referral_records).to_excel(writer, sheet_name="Data", index=False)

    assert list_sheets(path) == ["Notes", "Data"]

    first = load_rows(path)
    assert first.sheet == "Notes"
    assert first.headers == ["x"]

    data = load_rows(path, sheet="Data")
    assert data.sheet == "Data"
    assert data.sheet_names == ["Notes", "Data"]
    assert data.rows[0]["Referrals"] == 12
    assert data.rows[0]["OLat"] == 40

    with pytest.raises(ValueError, match="not found"):
        load_rows(path, sheet="Missing")


def test_csv_keeps_na_like_names(tmp_path) -> None:
    from flowviz.aggregator import aggregate_edges
    from flowviz.config import ColumnMapping

    path = tmp_path / "countries.csv"
    path.write_text(
        "Origin,Destination,Trips\nNA,Madrid,2\nNone,Paris,3\nnull,Rome,1\nN/A,,4\n"
    )

    row_set = load_rows(path)
    assert [row["Origin"] for row in row_set.rows] == ["NA", "None", "null", "N/A"]
    assert row_set.rows[3]["Destination"] == ""

    result = aggregate_edges(
        row_set.rows, ColumnMapping(origin="Origin", destination="Destination", weight="Trips")
    )
    assert [(e.source, e.target, e.value) for e in result.edges] == [
        ("NA", "Madrid", 2.0),
        ("None", "Paris", 3.0),
        ("null", "Rome", 1.0),
    ]
    assert result.rows_used == 3


def test_excel_keeps_na_like_names(tmp_path) -> None:
    pytest.importorskip("openpyxl")
    path = tmp_path / "countries.xlsx"
    pd.DataFrame(
        {"Origin": ["NA", "nan", None], "Destination": ["Madrid", "Paris", "Rome"]}
    ).to_excel(path, index=False)

    row_set = load_rows(path)
    assert [row["Origin"] for row in row_set.rows] == ["NA", "nan", ""]
