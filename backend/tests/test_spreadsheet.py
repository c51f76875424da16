import datetime
import io

import pandas as pd
import pytest

import utils.spreadsheet as spreadsheet
from utils.spreadsheet import SpreadsheetError, read_rows


def _xlsx_bytes(rows):
    buf = io.BytesIO()
    pd.DataFrame(rows).to_excel(buf, index=False)
    return buf.getvalue()


class TestReadRows:
    """Test spreadsheet parsing into row dicts"""

    def test_xlsx_cells_are_cleaned(self):
        content = _xlsx_bytes([
            {" Title ": "Lotus", "Floors": 14, "Launch": datetime.datetime(2024, 5, 1), "Rera": None},
            {" Title ": "Bay View", "Floors": 7.5, "Launch": None, "Rera": "P5210"},
        ])
        rows = read_rows(content, "projects.xlsx")

        assert rows[0] == {"title": "Lotus", "floors": 14, "launch": "2024-05-01T00:00:00", "rera": ""}
        assert rows[1]["floors"] == 7.5
        assert rows[1]["launch"] == ""
        assert rows[1]["rera"] == "P5210"

    def test_csv_keeps_text(self):
        rows = read_rows(b"Title,City,Units\nLotus,Pune,0120\n", "projects.csv")
        assert rows == [{"title": "Lotus", "city": "Pune", "units": "0120"}]

    def test_unnamed_columns_are_dropped(self):
        rows = read_rows(b"title,,city\nLotus,x,Pune\n", "projects.csv")
        assert rows == [{"title": "Lotus", "city": "Pune"}]

    def test_unreadable_file_raises(self):
        with pytest.raises(SpreadsheetError):
            read_rows(b"not a workbook", "projects.xlsx")

    def test_legacy_xls_is_read_with_xlrd(self, monkeypatch):
        seen = {}

        def fake_read_excel(buf, sheet_name=0, engine=None):
            seen["engine"] = engine
            seen["sheet_name"] = sheet_name
            return pd.DataFrame([{"Title": "Lotus", "City": "Pune"}])

        monkeypatch.setattr(spreadsheet.pd, "read_excel", fake_read_excel)
        rows = read_rows(b"\xd0\xcf\x11\xe0", "legacy.XLS")

        assert seen == {"engine": "xlrd", "sheet_name": 0}
        assert rows == [{"title": "Lotus", "city": "Pune"}]

    def test_xls_engine_is_installed(self):
        import xlrd
        assert int(xlrd.__version__.split(".")[0]) >= 2
