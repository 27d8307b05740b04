"""Tests for tradejournal.transfer: spreadsheet import and export."""

import io
from datetime import date, datetime

import pandas as pd
import pytest

from tradejournal.api_errors import ErrorCode, ValidationError
from tradejournal.transfer import (
    EXPORT_COLUMNS,
    export_filename,
    export_trades,
    export_trades_bytes,
    import_trades,
    parse_date,
    parse_trade_rows,
    prepare_export_rows,
)


@pytest.fixture
def trades():
    return [
        {"trade_date": datetime(2025, 3, 2, 9), "amount": -40.0, "trade_type": "loss", "tags": ["Setup:A"]},
        {
            "trade_date": datetime(2025, 3, 1, 9),
            "amount": 100.0,
            "trade_type": "win",
            "name": "Opening drive",
            "tags": ["a", "b"],
            "risk_to_reward": 2,
            "session": "London",
        },
    ]


class TestExportRows:
    def test_sorted_with_running_totals(self, trades):
        rows = prepare_export_rows(trades, initial_balance=1000.0)

        assert [row["Date"] for row in rows] == ["03/01/2025", "03/02/2025"]
        assert rows[0]["P&L"] == "+100.00"
        assert rows[0]["Type"] == "Win"
        assert rows[0]["Tags"] == "a, b"
        assert rows[0]["Risk to Reward"] == "2.00"
        assert rows[1]["P&L"] == "-40.00"
        assert rows[1]["Cumulative P&L"] == "+60.00"
        assert rows[1]["Account Balance"] == "1060.00"
        assert list(rows[0]) == EXPORT_COLUMNS


class TestExportFiles:
    def test_csv_file(self, trades, tmp_path):
        path = tmp_path / "trades.csv"

        assert export_trades(trades, str(path), 1000.0, file_format="csv") == str(path)

        frame = pd.read_csv(path)
        assert list(frame.columns) == EXPORT_COLUMNS
        assert len(frame) == 2

    def test_xlsx_bytes(self, trades):
        data = export_trades_bytes(trades, 1000.0)
        assert data[:2] == b"PK"

    def test_empty_export(self):
        assert export_trades([], io.BytesIO()) is None
        assert export_trades_bytes([]) is None

    def test_unknown_format(self, trades):
        with pytest.raises(ValidationError):
            export_trades(trades, io.BytesIO(), file_format="pdf")

    def test_filename(self):
        assert export_filename("csv", today=date(2025, 3, 7)) == "trades_2025-03-07.csv"


class TestParseDate:
    @pytest.mark.parametrize("value", [
        "03/07/2025",
        "3/7/2025",
        "2025-03-07",
        "2025/03/07",
        "March 7, 2025",
        "Mar 7, 2025",
        "March 7th, 2025",
        date(2025, 3, 7),
        pd.Timestamp("2025-03-07"),
    ])
    def test_formats(self, value):
        assert parse_date(value).date() == date(2025, 3, 7)

    def test_day_first_fallback(self):
        assert parse_date("25/03/2025").date() == date(2025, 3, 25)

    def test_unparseable(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_date("not a date")
        assert exc_info.value.error_code == ErrorCode.INVALID_IMPORT_FILE


class TestParseTradeRows:
    def test_fields_and_extra_columns(self):
        rows = [
            {
                "Date": "03/07/2025",
                "Amount": "1,250.50",
                "Type": "",
                "Tags": "a, b",
                "Setup": "Breakout",
                "Unnamed: 5": "junk",
                "Notes": "hello",
                "Entry Price": "1.0850",
            },
            {"Date": "", "Amount": "10"},
            {"Date": "2025-03-08", "Amount": "", "Type": "Loss"},
        ]

        trades = parse_trade_rows(rows)

        assert len(trades) == 2
        first, second = trades
        assert first["amount"] == 1250.5
        assert first["trade_type"] == "win"
        assert first["tags"] == ["a", "b", "Setup:Breakout"]
        assert first["notes"] == "hello"
        assert first["entry_price"] == 1.085
        assert second["amount"] == 0.0
        assert second["trade_type"] == "loss"

    def test_pnl_column_and_bad_amount(self):
        trades = parse_trade_rows([
            {"Date": "2025-03-07", "P&L": "-20"},
            {"Date": "2025-03-07", "Amount": "abc"},
        ])
        assert [t["amount"] for t in trades] == [-20.0, 0.0]
        assert [t["trade_type"] for t in trades] == ["loss", "breakeven"]

    def test_multi_value_extra_column(self):
        trades = parse_trade_rows([{"Date": "2025-03-07", "Amount": 5, "Confluence": "FVG, OB"}])
        assert trades[0]["tags"] == ["Confluence:FVG", "Confluence:OB"]


class TestImportFiles:
    def test_csv_buffer(self):
        content = b"Date,Amount,Tags\n03/07/2025,50,a\n03/08/2025,-10,\n"
        trades = import_trades(io.BytesIO(content), filename="trades.csv")
        assert [t["amount"] for t in trades] == [50.0, -10.0]
        assert trades[0]["tags"] == ["a"]

    def test_exported_workbook_reads_back(self, trades):
        data = export_trades_bytes(trades, 1000.0)

        imported = import_trades(io.BytesIO(data), filename="export.xlsx")

        assert [t["amount"] for t in imported] == [100.0, -40.0]
        assert imported[0]["trade_date"] == datetime(2025, 3, 1)
        assert imported[0]["tags"] == ["a", "b"]
        assert imported[0]["name"] == "Opening drive"

    def test_missing_date_column(self):
        with pytest.raises(ValidationError) as exc_info:
            import_trades(io.BytesIO(b"Amount\n5\n"), filename="x.csv")
        assert exc_info.value.error_code == ErrorCode.INVALID_IMPORT_FILE

    def test_no_rows(self):
        with pytest.raises(ValidationError):
            import_trades(io.BytesIO(b"Date,Amount\n,5\n"), filename="x.csv")
