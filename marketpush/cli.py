"""
CLI commands for MarketPush operators.
"""

import argparse
import sys
from datetime import timedelta
from decimal import Decimal, InvalidOperation
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

from marketpush.database.connection import Database
from marketpush.database.models import DIRECTIONS, LEDGER_TYPES, PriceAlert
from marketpush.database.repository import (
    NotificationRepository,
    PriceAlertRepository,
    SentNotificationRepository,
)


def parse_target_price(value: str) -> Decimal:
    """Parse a target price, rejecting non-numeric and non-positive values."""
    try:
        price = Decimal(value)
    except InvalidOperation:
        raise ValueError(f"Invalid target price: {value}")
    if not price.is_finite() or price <= 0:
        raise ValueError(f"Target price must be positive: {value}")
    return price


def add_alert(
    db: Database,
    user_id: int,
    symbol: str,
    target_price: str,
    direction: str,
) -> PriceAlert:
    """
    Create a price alert.

    Raises:
        ValueError: If the price or direction is invalid, or an identical
            pending alert already exists
    """
    if direction not in DIRECTIONS:
        raise ValueError(f"Direction must be one of {', '.join(DIRECTIONS)}")
    price = parse_target_price(target_price)
    symbol = symbol.strip().upper()

    repo = PriceAlertRepository(db)
    existing = repo.find_pending_duplicate(user_id, symbol, price, direction)
    if existing:
        raise ValueError(f"Alert already exists with ID: {existing.id}")

    alert = PriceAlert(
        user_id=user_id,
        symbol=symbol,
        target_price=price,
        direction=direction,
    )
    return repo.create(alert)


def toggle_alert(db: Database, alert_id: int) -> Optional[PriceAlert]:
    """Flip an alert between active and inactive. Returns None if missing."""
    repo = PriceAlertRepository(db)
    alert = repo.get_by_id(alert_id)
    if not alert:
        return None
    repo.set_active(alert_id, not alert.is_active)
    return repo.get_by_id(alert_id)


def purge_ledger(db: Database, days: int) -> int:
    """Delete ledger rows older than the given number of days."""
    repo = SentNotificationRepository(db)
    return repo.purge_older_than(timedelta(days=days))


def _alert_status(alert: PriceAlert) -> str:
    if alert.is_triggered:
        return "triggered"
    return "active" if alert.is_active else "inactive"


def main(argv=None) -> int:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="MarketPush CLI")
    parser.add_argument("--db", default="data/marketpush.db", help="Database path")

    subparsers = parser.add_subparsers(dest="command", help="Command")

    # Alert commands
    alerts_parser = subparsers.add_parser("alerts", help="Price alert management")
    alerts_subparsers = alerts_parser.add_subparsers(dest="action")

    add_alert_parser = alerts_subparsers.add_parser("add", help="Add price alert")
    add_alert_parser.add_argument("--user", type=int, required=True, help="User ID")
    add_alert_parser.add_argument("--symbol", required=True, help="Ticker symbol")
    add_alert_parser.add_argument("--price", required=True, help="Target price")
    add_alert_parser.add_argument("--direction", required=True, choices=DIRECTIONS)

    list_alerts_parser = alerts_subparsers.add_parser("list", help="List alerts")
    list_alerts_parser.add_argument("--user", type=int, required=True, help="User ID")
    list_alerts_parser.add_argument(
        "--active", action="store_true", help="Only pending alerts"
    )

    toggle_parser = alerts_subparsers.add_parser("toggle", help="Toggle alert")
    toggle_parser.add_argument("id", type=int, help="Alert ID")

    delete_parser = alerts_subparsers.add_parser("delete", help="Delete alert")
    delete_parser.add_argument("id", type=int, help="Alert ID")

    inbox_parser = alerts_subparsers.add_parser(
        "inbox", help="Show in-app notifications"
    )
    inbox_parser.add_argument("--user", type=int, required=True, help="User ID")

    # Ledger commands
    ledger_parser = subparsers.add_parser("ledger", help="Sent notification ledger")
    ledger_subparsers = ledger_parser.add_subparsers(dest="action")

    list_ledger_parser = ledger_subparsers.add_parser("list", help="List entries")
    list_ledger_parser.add_argument("--type", choices=LEDGER_TYPES)
    list_ledger_parser.add_argument("--limit", type=int, default=50)

    purge_parser = ledger_subparsers.add_parser("purge", help="Delete old entries")
    purge_parser.add_argument("--days", type=int, default=7, help="Retention days")

    # DB commands
    db_parser = subparsers.add_parser("db", help="Database management")
    db_subparsers = db_parser.add_subparsers(dest="action")
    db_subparsers.add_parser("migrate", help="Create tables and indexes")

    args = parser.parse_args(argv)

    # Initialize database
    db = Database(args.db)
    db.initialize()

    exit_code = 0

    # Handle commands
    if args.command == "alerts":
        repo = PriceAlertRepository(db)
        if args.action == "add":
            try:
                alert = add_alert(
                    db, args.user, args.symbol, args.price, args.direction
                )
                print(f"Created alert with ID: {alert.id}")
            except ValueError as e:
                print(f"Error: {e}", file=sys.stderr)
                exit_code = 1
        elif args.action == "list":
            for alert in repo.list_for_user(args.user, active_only=args.active):
                print(
                    f"ID: {alert.id}, {alert.symbol} {alert.direction} "
                    f"${alert.target_price} ({_alert_status(alert)})"
                )
        elif args.action == "toggle":
            alert = toggle_alert(db, args.id)
            if alert:
                print(f"Alert {alert.id} is now {_alert_status(alert)}")
            else:
                print(f"Alert not found: {args.id}", file=sys.stderr)
                exit_code = 1
        elif args.action == "delete":
            if repo.get_by_id(args.id):
                repo.delete(args.id)
                print(f"Deleted alert {args.id}")
            else:
                print(f"Alert not found: {args.id}", file=sys.stderr)
                exit_code = 1
        elif args.action == "inbox":
            for n in NotificationRepository(db).list_for_user(args.user):
                marker = " " if n.is_read else "*"
                print(f"{marker} {n.created_at:%Y-%m-%d %H:%M} {n.message}")

    elif args.command == "ledger":
        if args.action == "list":
            repo = SentNotificationRepository(db)
            for entry in repo.list_recent(args.type, limit=args.limit):
                print(
                    f"{entry.sent_at:%Y-%m-%d %H:%M} [{entry.type}] "
                    f"{entry.external_id}: {entry.title}"
                )
        elif args.action == "purge":
            removed = purge_ledger(db, args.days)
            print(f"Purged {removed} entries")

    elif args.command == "db":
        if args.action == "migrate":
            print("Migrations applied")

    else:
        parser.print_help()

    db.close()
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
