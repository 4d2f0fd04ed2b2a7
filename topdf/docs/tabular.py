"""CSV and Excel readers built on pandas.

Both produce Table blocks with one row per input row. Spreadsheet values are
turned into display strings here so the renderer only ever sees text.
"""

from __future__ import annotations

import datetime as dt
import io
import math
from typing import Any, List

import numpy as np
import pandas as pd

from topdf.errors import ParseError

from .model import Document, Paragraph, Table
from .txt import decode_text


def format_cell(value: Any) -> str:
    """Render one spreadsheet value as display text.

    Doxygen:
    - @param value: Cell value as produced by pandas/openpyxl.
    - @return: Text for the cell; empty string for missing values.
    """
    # NaT subclasses datetime and must not reach the datetime branches
    if value is None or value is pd.NaT:
        return ""
    if isinstance(value, (bool, np.bool_)):
        return "TRUE" if value else "FALSE"
    if isinstance(value, pd.Timestamp):
        if pd.isna(value):
            return ""
        value = value.to_pydatetime()
    if isinstance(value, dt.datetime):
        if value.time() == dt.time(0, 0):
            return value.strftime("%Y-%m-%d")
        return value.strftime("%Y-%m-%d %H:%M:%S")
    if isinstance(value, dt.date):
        return value.strftime("%Y-%m-%d")
    if isinstance(value, dt.time):
        return value.strftime("%H:%M:%S")
    if isinstance(value, pd.Timedelta):
        return str(value)
    if isinstance(value, (float, np.floating)):
        if math.isnan(value):
            return ""
        if math.isinf(value):
            return "-inf" if value < 0 else "inf"
        if float(value).is_integer() and abs(value) < 1e15:
            return str(int(value))
        return format(float(value), ".10g")
    if isinstance(value, (int, np.integer)):
        return str(int(value))
    return str(value).strip()


def frame_to_rows(df: pd.DataFrame) -> List[List[str]]:
    df = df.dropna(how="all").dropna(axis=1, how="all")
    return [[format_cell(v) for v in row] for row in df.itertuples(index=False, name=None)]


def read_csv(data: bytes) -> Document:
    text = decode_text(data, "CSV")
    if not text.strip():
        return Document(blocks=[Table(rows=[])])
    try:
        df = pd.read_csv(
            io.StringIO(text),
            header=None,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
        )
    except (pd.errors.ParserError, pd.errors.EmptyDataError, ValueError) as exc:
        raise ParseError("CSV", str(exc).strip()) from exc
    # short rows are padded with NaN
    rows = [[format_cell(v) for v in row] for row in df.itertuples(index=False, name=None)]
    return Document(blocks=[Table(rows=rows, header=len(rows) > 1)])


def read_excel(data: bytes) -> Document:
    try:
        sheets = pd.read_excel(io.BytesIO(data), sheet_name=None, header=None, engine="openpyxl")
    except Exception as exc:
        # openpyxl and zipfile raise a wide range of exception types on corrupt workbooks
        raise ParseError("Excel", f"{type(exc).__name__}: {exc}") from exc

    doc = Document()
    for name, df in sheets.items():
        rows = frame_to_rows(df)
        if len(sheets) > 1:
            doc.add(Paragraph.of(str(name), level=2))
        doc.add(Table(rows=rows, header=len(rows) > 1))
    return doc
