"""
Daily user data cleanup job.

Meant to be run once a day by cron (or any external scheduler):
    jobtrack-daily-cleanup
    python -m jobtrack.jobs.daily_cleanup

Exits 0 when every eligible user was cleaned up, 1 if any user failed
or the run could not start. Exits 0 without doing anything when another
run already holds the cleanup lock. Per-user failures never stop the run.
"""
import sys
import logging

from sqlalchemy.exc import SQLAlchemyError

from jobtrack.core import config
from jobtrack.core.logging_config import setup_logging, sanitize_log_data
from jobtrack.services.cleanup_service import CleanupAlreadyRunningError, run_daily_cleanup

logger = logging.getLogger(__name__)


def main() -> int:
    setup_logging(log_file="daily_cleanup.log")
    settings = sanitize_log_data({"database_url": config.DATABASE_URL, "log_level": config.LOG_LEVEL})
    logger.info(f"Daily cleanup starting: {settings}")

    try:
        report = run_daily_cleanup()
    except CleanupAlreadyRunningError:
        logger.warning("Another daily cleanup run is in progress, exiting")
        return 0
    except SQLAlchemyError:
        logger.exception("Daily cleanup could not select eligible users")
        return 1

    if not report.ok:
        logger.error(f"Daily cleanup finished with failures for users: {sorted(report.failed)}")
        return 1

    logger.info(f"Daily cleanup succeeded: {report.to_dict()}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
