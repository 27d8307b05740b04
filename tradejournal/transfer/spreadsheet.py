"""Spreadsheet import and export of trades.

Exports write one row per trade with running P&L and balance columns.
Imports accept CSV or Excel files with at least a ``Date`` column; columns
that are not trade fields become ``Column:Value`` tags.
"""

import io
import logging
import re
from datetime import date, datetime
from pathlib import Path
from typing import Any, BinaryIO, Iterable, Optional, Union

import pandas as pd
from dateutil import parser as date_parser

from tradejournal.api_errors import ErrorCode, ValidationError
from tradejournal.settings import get_settings

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = [
    "Date",
    "Name",
    "Type",
    "Amount",
    "P&L",
    "Cumulative P&L",
    "Account Balance",
    "Entry Price",
    "Exit Price",
    "Tags",
    "Risk to Reward",
    "Session",
    "Notes",
]

# Excel column widths, in characters
COLUMN_WIDTHS = [12, 25, 8, 10, 10, 15, 15, 15, 15, 30, 12, 12, 50]

EXPORT_FORMATS = ("xlsx", "csv")

# Columns read as trade fields; anything else becomes tags
KNOWN_COLUMNS = {
    "id", "date", "Date", "amount", "Amount", "P&L", "type", "Type", "name", "Name",
    "entry", "Entry Price", "exit", "Exit Price", "tags", "Tags", "riskToReward",
    "Risk to Reward", "partialsTaken", "Partials Taken", "session", "Session",
    "notes", "Notes", "images", "Images", "Cumulative P&L", "Account Balance",
}

DATE_FORMATS = [
    "%m/%d/%Y",  # 01/31/2023, 1/31/2023
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%d/%m/%Y",
    "%d-%m-%Y",
    "%m-%d-%Y",  # 01-31-2023, 1-31-2023
    "%B %d, %Y",  # March 7, 2025
    "%b %d, %Y",  # Mar 7, 2025
]

MONTHS = [
    "january", "february", "march", "april", "may", "june",
    "july", "august", "september", "october", "november", "december",
]

_MONTH_NAME_RE = re.compile(
    r"(January|February|March|April|May|June|July|August|September|October|November|December)"
    r"\s+(\d{1,2})(?:st|nd|rd|th)?(?:,)?\s+(\d{4})",
    re.IGNORECASE,
)

TRADE_TYPES = ("win", "loss", "breakeven")

PathOrBuffer = Union[str, Path, BinaryIO]


# =============================================================================
# Export
# =============================================================================


def _field(trade, name: str, default: Any = None) -> Any:
    if isinstance(trade, dict):
        return trade.get(name, default)
    return getattr(trade, name, default)


def _signed(value: float) -> str:
    return f"+{value:.2f}" if value > 0 else f"{value:.2f}"


def prepare_export_rows(trades: Iterable, initial_balance: float = 0.0) -> list[dict]:
    """Build export rows sorted by trade date with running totals.

    Args:
        trades: Trade records or dicts.
        initial_balance: Account balance before the first trade.

    Returns:
        One dict per trade keyed by ``EXPORT_COLUMNS``.
    """
    date_format = get_settings().export_date_format
    ordered = sorted(trades, key=lambda t: _field(t, "trade_date"))

    rows = []
    cumulative = 0.0
    balance = initial_balance or 0.0
    for trade in ordered:
        amount = float(_field(trade, "amount") or 0.0)
        cumulative += amount
        balance += amount
        trade_type = _field(trade, "trade_type") or ""
        risk_to_reward = _field(trade, "risk_to_reward")

        rows.append({
            "Date": _field(trade, "trade_date").strftime(date_format),
            "Name": _field(trade, "name") or "",
            "Type": trade_type[:1].upper() + trade_type[1:],
            "Amount": amount,
            "P&L": _signed(amount),
            "Cumulative P&L": _signed(cumulative),
            "Account Balance": f"{balance:.2f}",
            "Entry Price": _field(trade, "entry_price") or "",
            "Exit Price": _field(trade, "exit_price") or "",
            "Tags": ", ".join(_field(trade, "tags") or []),
            "Risk to Reward": f"{risk_to_reward:.2f}" if risk_to_reward else "",
            "Session": _field(trade, "session") or "",
            "Notes": _field(trade, "notes") or "",
        })
    return rows


def _write(frame: pd.DataFrame, target: PathOrBuffer, file_format: str) -> None:
    if file_format == "csv":
        frame.to_csv(target, index=False)
        return

    with pd.ExcelWriter(target, engine="openpyxl") as writer:
        frame.to_excel(writer, index=False, sheet_name="Trades")
        sheet = writer.sheets["Trades"]
        for column, width in zip(sheet.columns, COLUMN_WIDTHS):
            sheet.column_dimensions[column[0].column_letter].width = width


def export_trades(
    trades: Iterable,
    path: PathOrBuffer,
    initial_balance: float = 0.0,
    file_format: str = "xlsx",
) -> Optional[PathOrBuffer]:
    """Write trades to an Excel or CSV file.

    Args:
        trades: Trade records or dicts.
        path: Destination file path or writable binary buffer.
        initial_balance: Account balance before the first trade.
        file_format: ``"xlsx"`` or ``"csv"``.

    Returns:
        ``path``, or None when there was nothing to export.

    Raises:
        ValidationError: Unsupported format.
    """
    if file_format not in EXPORT_FORMATS:
        raise ValidationError(f"Unsupported export format: {file_format}", field="format")

    rows = prepare_export_rows(trades, initial_balance)
    if not rows:
        return None

    frame = pd.DataFrame(rows, columns=EXPORT_COLUMNS)
    if file_format == "csv" and not isinstance(path, (str, Path)):
        path.write(frame.to_csv(index=False).encode("utf-8"))
    else:
        _write(frame, path, file_format)

    logger.info("Exported %d trades as %s", len(rows), file_format, extra={"trade_count": len(rows)})
    return path


def export_trades_bytes(trades: Iterable, initial_balance: float = 0.0, file_format: str = "xlsx") -> Optional[bytes]:
    """Export to an in-memory file and return its content."""
    buffer = io.BytesIO()
    if export_trades(trades, buffer, initial_balance, file_format) is None:
        return None
    return buffer.getvalue()


def export_filename(file_format: str, today: Optional[date] = None) -> str:
    return f"trades_{(today or date.today()).isoformat()}.{file_format}"


# =============================================================================
# Import
# =============================================================================


def parse_date(value: Any) -> datetime:
    """Parse a spreadsheet date cell.

    Tries the known formats, then a month-name pattern that tolerates
    ordinal suffixes ("March 7th, 2025"), then dateutil.

    Raises:
        ValidationError: The value is not a recognizable date.
    """
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime().replace(tzinfo=None)
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if isinstance(value, date):
        return datetime.combine(value, datetime.min.time())

    text = str(value).strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue

    match = _MONTH_NAME_RE.search(text)
    if match:
        month, day, year = match.groups()
        try:
            return datetime(int(year), MONTHS.index(month.lower()) + 1, int(day))
        except ValueError:
            pass

    try:
        return date_parser.parse(text).replace(tzinfo=None)
    except (ValueError, OverflowError) as e:
        raise ValidationError(
            f"Could not parse date: {text}",
            error_code=ErrorCode.INVALID_IMPORT_FILE,
            field="Date",
        ) from e


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and pd.isna(value):
        return True
    return isinstance(value, str) and not value.strip()


def _to_float(value: Any) -> Optional[float]:
    if _is_blank(value):
        return None
    try:
        return float(str(value).replace(",", "").strip()) if isinstance(value, str) else float(value)
    except ValueError:
        return None


def _text(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def parse_trade_rows(rows: Iterable[dict]) -> list[dict]:
    """Turn spreadsheet rows into trade field dicts.

    Rows without a ``Date`` are skipped. The amount comes from ``Amount``
    or, failing that, ``P&L``. Unknown non-empty columns are added as
    ``Column:Value`` tags, one per comma-separated value.
    """
    trades = []
    for index, row in enumerate(rows):
        if _is_blank(row.get("Date")):
            continue

        raw_amount = row.get("Amount")
        if _is_blank(raw_amount):
            raw_amount = row.get("P&L")
        amount = _to_float(raw_amount)
        if amount is None:
            if not _is_blank(raw_amount):
                logger.warning("Could not parse amount %r in row %d, using 0", raw_amount, index + 1)
            amount = 0.0

        tags = []
        if not _is_blank(row.get("Tags")):
            tags = [tag.strip() for tag in str(row["Tags"]).split(",") if tag.strip()]
        for header, value in row.items():
            header = str(header).strip()
            if not header or header.startswith("Unnamed:") or header in KNOWN_COLUMNS or _is_blank(value):
                continue
            for part in _text(value).split(","):
                if part.strip():
                    tags.append(f"{header}:{part.strip()}")

        type_value = row.get("Type")
        trade_type = type_value.strip().lower() if isinstance(type_value, str) else ""
        if trade_type not in TRADE_TYPES:
            trade_type = "win" if amount > 0 else "loss" if amount < 0 else "breakeven"

        trade = {
            "trade_date": parse_date(row["Date"]),
            "amount": amount,
            "trade_type": trade_type,
            "tags": tags,
        }
        for column, key in (("Name", "name"), ("Session", "session"), ("Notes", "notes")):
            if not _is_blank(row.get(column)):
                trade[key] = _text(row[column])
        for column, key in (("Entry Price", "entry_price"), ("Exit Price", "exit_price"), ("Risk to Reward", "risk_to_reward")):
            number = _to_float(row.get(column))
            if number is not None:
                trade[key] = number
        trades.append(trade)
    return trades


def _read_frame(source: PathOrBuffer, filename: Optional[str]) -> pd.DataFrame:
    name = filename or (str(source) if isinstance(source, (str, Path)) else "")
    if name.lower().endswith(".csv"):
        return pd.read_csv(source, dtype=str, keep_default_na=False, skip_blank_lines=True)
    return pd.read_excel(source, sheet_name=0, engine="openpyxl")


def import_trades(source: PathOrBuffer, filename: Optional[str] = None) -> list[dict]:
    """Read trades from a CSV or Excel file (first sheet).

    Args:
        source: File path or readable binary buffer.
        filename: Name used to detect the format when ``source`` is a buffer.

    Returns:
        Trade field dicts ready for ``TradeService.import_trades``.

    Raises:
        ValidationError: Unreadable file, missing ``Date`` column, no data
            rows, or an unparseable date. Uses ``INVALID_IMPORT_FILE``.
    """
    try:
        frame = _read_frame(source, filename)
    except (ValueError, OSError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise ValidationError(
            f"Failed to parse import file. {e}",
            error_code=ErrorCode.INVALID_IMPORT_FILE,
        ) from e

    frame.columns = [str(column).strip() for column in frame.columns]
    if "Date" not in frame.columns:
        raise ValidationError(
            'Import file must contain a "Date" column',
            error_code=ErrorCode.INVALID_IMPORT_FILE,
            field="Date",
        )

    rows = frame.astype(object).where(pd.notna(frame), None).to_dict(orient="records")
    trades = parse_trade_rows(rows)
    if not trades:
        raise ValidationError("No valid data rows found in the import file", error_code=ErrorCode.INVALID_IMPORT_FILE)

    logger.info("Parsed %d trades from import file", len(trades), extra={"trade_count": len(trades)})
    return trades
