"""
Tabular import reader.

Only the first sheet of a workbook is read. Every cell comes back as a plain
Python value: blanks as "", integral floats as ints, dates as ISO strings.
"""

import datetime
import io
import logging
import math
import os
from typing import Any, Dict, List

import pandas as pd

logger = logging.getLogger(__name__)

# Legacy .xls workbooks need xlrd; anything else is left to pandas to sniff
EXCEL_ENGINES = {".xlsx": "openpyxl", ".xls": "xlrd"}


class SpreadsheetError(ValueError):
    pass


def _clean_cell(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return int(value)
        return value
    if isinstance(value, (pd.Timestamp, datetime.datetime, datetime.date)):
        if pd.isna(value):
            return ""
        return value.isoformat()
    try:
        if pd.isna(value):
            return ""
    except (TypeError, ValueError):
        pass
    if hasattr(value, "item"):
        # numpy scalar
        return _clean_cell(value.item())
    return value


def read_rows(content: bytes, filename: str = "") -> List[Dict[str, Any]]:
    """
    Parse spreadsheet bytes into a list of row dicts.

    Keys are the header cells lowercased and trimmed; columns without a header are
    dropped. Raises SpreadsheetError when the file cannot be parsed.
    """
    ext = os.path.splitext(filename or "")[1].lower()
    try:
        if ext == ".csv":
            df = pd.read_csv(io.BytesIO(content), dtype=object, keep_default_na=False)
        else:
            # First sheet only
            df = pd.read_excel(io.BytesIO(content), sheet_name=0, engine=EXCEL_ENGINES.get(ext))
    except Exception as e:
        logger.warning(f"Could not read spreadsheet {filename!r}: {e}")
        raise SpreadsheetError("Could not read spreadsheet") from e

    columns = []
    for col in df.columns:
        name = str(col).strip().lower()
        columns.append(None if not name or name.startswith("unnamed:") else name)

    rows = []
    for record in df.itertuples(index=False, name=None):
        row = {}
        for key, value in zip(columns, record):
            if key is None or key in row:
                continue
            row[key] = _clean_cell(value)
        rows.append(row)

    logger.info(f"Read {len(rows)} rows from {filename or 'spreadsheet'}")
    return rows
