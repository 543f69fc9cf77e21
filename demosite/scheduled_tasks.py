"""
Scheduled background tasks for the demo site.

The scheduler emits a ``tick_1h`` event every hour; modules observe it to
do their periodic housekeeping (the demo module purges stale demo content).
"""

import logging

from demosite import hooks
from demosite.acl import anonymous


TICK_1H = 'tick_1h'


def tick_1h_job():
    """
    Scheduled job that notifies all ``tick_1h`` observers.

    Each observer runs on its own; a failing observer is logged and its
    transaction rolled back, and the remaining observers still run. Whatever
    an observer left undone is retried on the next tick.
    """
    from demosite.extensions import db

    logger = logging.getLogger('scheduled_tasks')
    logger.info("Starting hourly tick")

    ctx = anonymous()
    failed = 0
    for handler in hooks.get_hooks().observers(TICK_1H):
        try:
            handler(ctx)
        except Exception as e:
            failed += 1
            logger.error(f"Hourly tick observer {handler.__module__}.{handler.__name__} failed: {e}", exc_info=True)
            db.session.rollback()

    logger.info(f"Hourly tick completed with {failed} failed observers")
    return failed


def init_scheduled_tasks(app):
    """
    Initialize and start scheduled tasks.

    Args:
        app: Flask application instance
    """
    from demosite.extensions import scheduler

    logger = logging.getLogger('scheduled_tasks')

    # Wrapper function that runs the job with Flask app context
    def run_with_context():
        with app.app_context():
            tick_1h_job()

    scheduler.add_job(
        func=run_with_context,
        trigger='interval',
        hours=1,
        id='tick_1h',
        name='Hourly tick',
        replace_existing=True,
        max_instances=1  # Prevent overlapping executions
    )

    if not scheduler.running:
        scheduler.start()
        logger.info("Scheduled tasks initialized. Hourly tick will run every hour.")
    else:
        logger.info("Scheduler already running")
