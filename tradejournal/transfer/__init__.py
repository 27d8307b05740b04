"""Spreadsheet import and export."""

from tradejournal.transfer.spreadsheet import (
    EXPORT_COLUMNS,
    export_filename,
    export_trades,
    export_trades_bytes,
    import_trades,
    parse_date,
    parse_trade_rows,
    prepare_export_rows,
)

__all__ = [
    "EXPORT_COLUMNS",
    "export_filename",
    "export_trades",
    "export_trades_bytes",
    "import_trades",
    "parse_date",
    "parse_trade_rows",
    "prepare_export_rows",
]
