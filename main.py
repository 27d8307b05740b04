"""CLI entry point: python main.py <command> ..."""

import argparse
import sys

from tradejournal.api_errors import TradeJournalError
from tradejournal.calendars import CalendarService, TrashService
from tradejournal.db import SessionLocal, init_db
from tradejournal.db.queries import calendar_trades
from tradejournal.logging_config import configure_logging
from tradejournal.trades import TradeService
from tradejournal.transfer import export_trades, import_trades


def cmd_serve(args, session):
    import uvicorn

    from tradejournal.api.app import create_app

    uvicorn.run(create_app(), host=args.host, port=args.port)


def cmd_init_db(args, session):
    init_db()
    print("Database schema created")


def cmd_import(args, session):
    rows = import_trades(args.file)
    created = TradeService(session).import_trades(args.calendar, args.user, rows)
    print(f"Imported {len(created)} trades into calendar {args.calendar}")


def cmd_export(args, session):
    calendar = CalendarService(session).get_calendar(args.calendar, args.user)
    file_format = args.format or ("csv" if args.output.lower().endswith(".csv") else "xlsx")
    written = export_trades(calendar_trades(session, calendar.id), args.output, calendar.account_balance, file_format)
    if written is None:
        print("No trades to export")
    else:
        print(f"Exported trades to {args.output}")


def cmd_stats(args, session):
    service = CalendarService(session)
    service.get_calendar(args.calendar, args.user)
    stats = service.recalculate_stats(args.calendar)

    print("=" * 60)
    print(f"CALENDAR {args.calendar}")
    print("=" * 60)
    print(f"  Trades:         {stats.total_trades} ({stats.win_count} W / {stats.loss_count} L)")
    print(f"  Total P&L:      {stats.total_pnl:,.2f}")
    print(f"  Win rate:       {stats.win_rate:.2f}%")
    print(f"  Profit factor:  {stats.profit_factor:.2f}")
    print(f"  Max drawdown:   {stats.max_drawdown:.2f}%")
    print(f"  Balance:        {stats.current_balance:,.2f}")
    print(f"  Week / Month / Year P&L: {stats.weekly_pnl:,.2f} / {stats.monthly_pnl:,.2f} / {stats.yearly_pnl:,.2f}")


def cmd_purge_trash(args, session):
    purged = TrashService(session).purge_expired()
    print(f"Purged {purged} calendar(s) from trash")


def main():
    parser = argparse.ArgumentParser(
        description="Trade Journal - trade calendars, statistics and spreadsheet transfer"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    p_serve = subparsers.add_parser("serve", help="Run the REST API")
    p_serve.add_argument("--host", default="127.0.0.1")
    p_serve.add_argument("--port", type=int, default=8000)

    subparsers.add_parser("init-db", help="Create the database schema")

    p_import = subparsers.add_parser("import", help="Import trades from a CSV or Excel file")
    p_import.add_argument("file", help="Spreadsheet to import")
    p_import.add_argument("--calendar", required=True, help="Target calendar id")
    p_import.add_argument("--user", required=True, help="Owner user id")

    p_export = subparsers.add_parser("export", help="Export trades to a CSV or Excel file")
    p_export.add_argument("output", help="Destination file")
    p_export.add_argument("--calendar", required=True, help="Calendar id")
    p_export.add_argument("--user", required=True, help="Owner user id")
    p_export.add_argument("--format", choices=["xlsx", "csv"], default=None,
                          help="File format (default: from the file extension)")

    p_stats = subparsers.add_parser("stats", help="Recalculate and print calendar statistics")
    p_stats.add_argument("--calendar", required=True, help="Calendar id")
    p_stats.add_argument("--user", required=True, help="Owner user id")

    subparsers.add_parser("purge-trash", help="Delete calendars whose trash retention expired")

    args = parser.parse_args()
    configure_logging()

    commands = {
        "serve": cmd_serve,
        "init-db": cmd_init_db,
        "import": cmd_import,
        "export": cmd_export,
        "stats": cmd_stats,
        "purge-trash": cmd_purge_trash,
    }

    session = SessionLocal()()
    try:
        commands[args.command](args, session)
    except TradeJournalError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        sys.exit(1)
    finally:
        session.close()


if __name__ == "__main__":
    main()
