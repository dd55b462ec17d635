#!/usr/bin/env python
"""
Daily Reminder Job

Runs once a day to:
1. Send reminders for bills whose reminder offsets fall on the run date
2. Flag overdue bills
3. Alert on budgets that crossed a notification threshold

Usage:
    python scripts/reminder_job.py [--date YYYY-MM-DD] [--user-id ID]

Options:
    --date: Evaluate as of this date at 00:00 UTC (default: now)
    --user-id: Process only specific user (default: all users)
"""
import sys
from pathlib import Path
from datetime import datetime
from argparse import ArgumentParser

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from src.db.core import session_local
from src.logging_config import setup_logging
from src.services.clock import utc_now
from src.services.notifications import LoggingNotifier
from src.services.reminders import run_daily_checks


def main():
    parser = ArgumentParser(description="Send bill reminders and budget alerts")

    parser.add_argument(
        '--date',
        type=str,
        help='Evaluation date (YYYY-MM-DD), defaults to now'
    )

    parser.add_argument(
        '--user-id',
        type=int,
        help='Process only specific user ID'
    )

    args = parser.parse_args()
    logger = setup_logging()

    if args.date:
        try:
            now = datetime.strptime(args.date, '%Y-%m-%d')
        except ValueError:
            logger.error(f"Invalid date format: {args.date}. Use YYYY-MM-DD")
            sys.exit(1)
    else:
        now = utc_now()

    db = session_local()
    try:
        summary = run_daily_checks(db, LoggingNotifier(), now, user_id=args.user_id)
    finally:
        db.close()

    if summary.errors:
        sys.exit(1)


if __name__ == "__main__":
    main()
