"""
Refresh every active budget (projection, alerts, status) once and exit

Usage:
    python refresh_budgets.py                 # as of now
    python refresh_budgets.py --as-of 2026-01-01
"""
import argparse
import logging
import sys
from datetime import datetime
from zoneinfo import ZoneInfo

from wardrobe.config import get_settings
from wardrobe.infrastructure.db.session import session_scope
from wardrobe.application.budgets import refresh_active_budgets

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("refresh_budgets")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Refresh active budgets")
    parser.add_argument("--as-of", help="evaluation instant (ISO date or datetime), default now")
    args = parser.parse_args(argv)

    now = None
    if args.as_of:
        now = datetime.fromisoformat(args.as_of)
        if now.tzinfo is None:
            now = now.replace(tzinfo=ZoneInfo(get_settings().TIMEZONE))

    with session_scope() as db:
        try:
            stats = refresh_active_budgets(db, now)
        except Exception:
            logger.exception("Budget refresh failed")
            return 1

    logger.info(
        "Done: %d checked, %d status changes, %d alerts raised, %d conflicts",
        stats["checked"], stats["status_changed"], stats["alerts_raised"], stats["conflicts"],
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
