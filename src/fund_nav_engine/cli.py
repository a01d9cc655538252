"""Command-line interface for the Fund NAV Engine."""

import argparse
import sys
from datetime import date
from decimal import Decimal
from pathlib import Path
from uuid import UUID

from fund_nav_engine import __version__
from fund_nav_engine.config import get_settings
from fund_nav_engine.container import Container
from fund_nav_engine.domain.exchange_rates import ExchangeRate
from fund_nav_engine.domain.nav import NAVCalculation
from fund_nav_engine.domain.value_objects import PeriodType
from fund_nav_engine.exceptions import FundNavEngineError
from fund_nav_engine.logging_config import configure_logging
from fund_nav_engine.repositories.sqlite import SQLiteDatabase


def get_db_path(args: argparse.Namespace) -> Path:
    return Path(args.database) if args.database else Path(get_settings().sqlite_path)


def open_container(args: argparse.Namespace) -> Container | None:
    db_path = get_db_path(args)
    if not db_path.exists():
        print(f"Database not found: {db_path}")
        print("Run 'fne init' to create a new database")
        return None
    settings = get_settings().model_copy(update={"sqlite_path": db_path})
    return Container(settings=settings)


def _format_nav(calc: NAVCalculation) -> str:
    return (
        f"{calc.valuation_date}  v{calc.version}  NAV {calc.net_asset_value:>18,.2f}  "
        f"per share {calc.nav_per_share}  [{calc.status.value}]"
    )


def cmd_init(args: argparse.Namespace) -> int:
    """Initialize a new database."""
    db_path = get_db_path(args)

    if db_path.exists() and not args.force:
        print(f"Database already exists at {db_path}")
        print("Use --force to reinitialize (WARNING: will delete existing data)")
        return 1

    if db_path.exists() and args.force:
        db_path.unlink()

    db_path.parent.mkdir(parents=True, exist_ok=True)
    db = SQLiteDatabase(str(db_path))
    db.initialize()
    db.close()

    print(f"Initialized database at {db_path}")
    return 0


def cmd_status(args: argparse.Namespace) -> int:
    """Show funds, share classes and latest approved NAVs."""
    container = open_container(args)
    if container is None:
        return 1

    with container:
        funds = container.fund_service.list_funds()
        print(f"Database: {get_db_path(args)}")
        print(f"Funds: {len(funds)}")
        for fund in funds:
            accounts = container.fund_service.list_capital_accounts(fund.id)
            print(
                f"  - {fund.code} {fund.name} ({fund.base_currency}) "
                f"[{fund.status.value}]: {len(accounts)} capital accounts"
            )
            latest = container.nav_service.get_latest_nav(fund.id)
            if latest is not None:
                print(f"      latest NAV {_format_nav(latest)}")
    return 0


def cmd_version(args: argparse.Namespace) -> int:
    print(f"fund-nav-engine {__version__}")
    return 0


def cmd_nav_latest(args: argparse.Namespace) -> int:
    """Show the latest approved NAV."""
    container = open_container(args)
    if container is None:
        return 1

    with container:
        share_class_id = UUID(args.share_class) if args.share_class else None
        latest = container.nav_service.get_latest_nav(UUID(args.fund), share_class_id)
        if latest is None:
            print("No approved NAV found")
            return 1
        print(_format_nav(latest))
    return 0


def cmd_nav_history(args: argparse.Namespace) -> int:
    """List approved NAVs in date order."""
    container = open_container(args)
    if container is None:
        return 1

    try:
        with container:
            history = container.nav_service.get_nav_history(
                UUID(args.fund),
                UUID(args.share_class) if args.share_class else None,
                date.fromisoformat(args.start) if args.start else None,
                date.fromisoformat(args.end) if args.end else None,
            )
            if not history:
                print("No approved NAVs in range")
                return 0
            for calc in history:
                print(_format_nav(calc))
        return 0
    except FundNavEngineError as e:
        print(f"Error [{e.kind}]: {e.message}")
        return 1


def cmd_performance(args: argparse.Namespace) -> int:
    """Calculate and store fund performance for a period."""
    container = open_container(args)
    if container is None:
        return 1

    try:
        with container:
            metric = container.performance_service.calculate_performance(
                UUID(args.fund),
                PeriodType(args.period),
                date.fromisoformat(args.as_of) if args.as_of else date.today(),
                share_class_id=UUID(args.share_class) if args.share_class else None,
                capital_account_id=UUID(args.account) if args.account else None,
            )
    except FundNavEngineError as e:
        print(f"Error [{e.kind}]: {e.message}")
        return 1

    print(f"Period: {metric.period_start} to {metric.metric_date} ({metric.period_type.value})")
    print(f"Beginning NAV:       {metric.beginning_nav:>18,.2f}")
    print(f"Ending NAV:          {metric.ending_nav:>18,.2f}")
    print(f"Net contributions:   {metric.net_contributions:>18,.2f}")
    print(f"Net distributions:   {metric.net_distributions:>18,.2f}")
    print(f"Total return:        {metric.total_return_amount:>18,.2f} ({metric.total_return_percent}%)")
    print(f"DPI {metric.dpi}  RVPI {metric.rvpi}  TVPI {metric.tvpi}  MOIC {metric.moic}")
    return 0


def cmd_rates_add(args: argparse.Namespace) -> int:
    """Add an exchange rate."""
    container = open_container(args)
    if container is None:
        return 1

    try:
        with container:
            rate = ExchangeRate(
                from_currency=args.from_currency,
                to_currency=args.to_currency,
                rate=Decimal(args.rate),
                rate_date=date.fromisoformat(args.date),
                source=args.source,
            )
            container.currency_service.add_rate(rate)
    except FundNavEngineError as e:
        print(f"Error [{e.kind}]: {e.message}")
        return 1

    print(
        f"Added rate: {rate.from_currency}/{rate.to_currency} = {rate.rate} "
        f"(as of {rate.rate_date})"
    )
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    """Run the HTTP API."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "fund_nav_engine.api.app:app",
        host=args.host or settings.api_host,
        port=args.port or settings.api_port,
        reload=args.reload,
    )
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="fne",
        description="Fund NAV Engine - NAV, capital accounts, redemptions and performance",
    )
    parser.add_argument(
        "--database",
        "-d",
        help="Path to SQLite database file",
        default=None,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # init command
    init_parser = subparsers.add_parser("init", help="Initialize a new database")
    init_parser.add_argument(
        "--force",
        "-f",
        action="store_true",
        help="Force reinitialization (deletes existing data)",
    )
    init_parser.set_defaults(func=cmd_init)

    status_parser = subparsers.add_parser("status", help="Show database status")
    status_parser.set_defaults(func=cmd_status)

    version_parser = subparsers.add_parser("version", help="Show version")
    version_parser.set_defaults(func=cmd_version)

    # nav command group
    nav_parser = subparsers.add_parser("nav", help="NAV queries")
    nav_subparsers = nav_parser.add_subparsers(dest="nav_command")

    nav_latest_parser = nav_subparsers.add_parser("latest", help="Latest approved NAV")
    nav_latest_parser.add_argument("--fund", required=True, help="Fund ID")
    nav_latest_parser.add_argument("--share-class", default=None, help="Share class ID")
    nav_latest_parser.set_defaults(func=cmd_nav_latest)

    nav_history_parser = nav_subparsers.add_parser("history", help="Approved NAV history")
    nav_history_parser.add_argument("--fund", required=True, help="Fund ID")
    nav_history_parser.add_argument("--share-class", default=None, help="Share class ID")
    nav_history_parser.add_argument("--start", default=None, help="Start date (YYYY-MM-DD)")
    nav_history_parser.add_argument("--end", default=None, help="End date (YYYY-MM-DD)")
    nav_history_parser.set_defaults(func=cmd_nav_history)

    # performance command
    performance_parser = subparsers.add_parser(
        "performance", help="Calculate fund performance"
    )
    performance_parser.add_argument("--fund", required=True, help="Fund ID")
    performance_parser.add_argument(
        "--period",
        choices=[p.value for p in PeriodType],
        default=PeriodType.INCEPTION_TO_DATE.value,
        help="Period type (default: inception_to_date)",
    )
    performance_parser.add_argument("--as-of", default=None, help="As-of date (YYYY-MM-DD)")
    performance_parser.add_argument("--share-class", default=None, help="Share class ID")
    performance_parser.add_argument("--account", default=None, help="Capital account ID")
    performance_parser.set_defaults(func=cmd_performance)

    # rates command group
    rates_parser = subparsers.add_parser("rates", help="Exchange rate commands")
    rates_subparsers = rates_parser.add_subparsers(dest="rates_command")
    rates_add_parser = rates_subparsers.add_parser("add", help="Add an exchange rate")
    rates_add_parser.add_argument("--from", dest="from_currency", required=True)
    rates_add_parser.add_argument("--to", dest="to_currency", required=True)
    rates_add_parser.add_argument("--rate", required=True)
    rates_add_parser.add_argument(
        "--date", default=date.today().isoformat(), help="Rate date (YYYY-MM-DD)"
    )
    rates_add_parser.add_argument("--source", default="manual")
    rates_add_parser.set_defaults(func=cmd_rates_add)

    # serve command
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default=None)
    serve_parser.add_argument("--port", type=int, default=None)
    serve_parser.add_argument("--reload", action="store_true", help="Enable auto reload")
    serve_parser.set_defaults(func=cmd_serve)

    args = parser.parse_args(argv)
    configure_logging(get_settings())

    if args.command is None:
        parser.print_help()
        return 0

    if args.command == "nav" and getattr(args, "nav_command", None) is None:
        nav_parser.print_help()
        return 0

    if args.command == "rates" and getattr(args, "rates_command", None) is None:
        rates_parser.print_help()
        return 0

    result: int = args.func(args)
    return result


if __name__ == "__main__":
    sys.exit(main())
