"""
Background scheduler - runs the periodic budget refresh inside the API process.

Jobs:
  - Budget refresh (00:05, TIMEZONE): projection, alerts and status of every
    active budget, so periods that ended overnight become completed.
"""
import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from wardrobe.config import get_settings

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler(daemon=True)


def _run_budget_refresh():
    from wardrobe.infrastructure.db.session import session_scope
    from wardrobe.application.budgets import refresh_active_budgets

    with session_scope() as db:
        try:
            refresh_active_budgets(db)
        except Exception:
            logger.exception("Budget refresh job failed")


def start_scheduler():
    """Start the background scheduler with the periodic jobs."""
    scheduler.add_job(
        _run_budget_refresh,
        CronTrigger(hour=0, minute=5, timezone=get_settings().TIMEZONE),
        id="budget_refresh",
        replace_existing=True,
    )

    scheduler.start()
    logger.info("Scheduler started: budget_refresh (00:05 %s)", get_settings().TIMEZONE)


def shutdown_scheduler():
    """Gracefully stop the scheduler."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
