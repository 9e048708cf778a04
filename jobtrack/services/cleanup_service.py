"""
Daily cleanup of expired premium subscriptions.

Selects users whose premium plan expired and whose grace period ended
before today, trims their records to the free tier limits and deletes
their subscription row. Each user is processed in its own session and
committed on its own; a failure for one user is logged and the run
continues with the next.

Not safe to run concurrently with itself. On PostgreSQL a run holds an
advisory lock for its whole duration and a second run refuses to start.
Repeated runs are idempotent: users already cleaned up have no
subscription row and are not selected.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Callable, Dict, List, Optional

from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from jobtrack.core.plan_limits import CLEANUP_ORDER, FREE_TIER_LIMITS, GRACE_PERIOD_DAYS
from jobtrack.db.models.subscription import UserSubscription
from jobtrack.db.session import SessionLocal
from jobtrack.services.reclaim_service import (
    delete_follow_ups_for_job_openings,
    delete_job_opening_contacts_for_job_openings,
    find_excess_ids,
    reclaim,
)

logger = logging.getLogger(__name__)

CLEANUP_LOCK_ID = 912873466


class CleanupAlreadyRunningError(RuntimeError):
    """Raised when another cleanup run holds the run lock."""

    def __init__(self):
        super().__init__("Another daily cleanup run is in progress")


@dataclass
class UserCleanupResult:
    user_id: int
    deleted: Dict[str, int] = field(default_factory=dict)
    subscription_deleted: bool = False
    skipped: bool = False


@dataclass
class CleanupReport:
    """Outcome of one daily cleanup run."""
    run_date: date
    processed: List[int] = field(default_factory=list)
    skipped: List[int] = field(default_factory=list)
    failed: Dict[int, str] = field(default_factory=dict)
    deleted: Dict[str, int] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed

    def add_result(self, result: UserCleanupResult) -> None:
        if result.skipped:
            self.skipped.append(result.user_id)
            return
        self.processed.append(result.user_id)
        for entity_type, count in result.deleted.items():
            self.deleted[entity_type] = self.deleted.get(entity_type, 0) + count

    def to_dict(self) -> Dict:
        return {
            "run_date": self.run_date.isoformat(),
            "processed": list(self.processed),
            "skipped": list(self.skipped),
            "failed": {str(user_id): error for user_id, error in self.failed.items()},
            "deleted": dict(self.deleted),
            "ok": self.ok,
        }


def _eligibility_cutoff(today: date) -> date:
    # expiry + GRACE_PERIOD_DAYS < today  <=>  expiry < today - GRACE_PERIOD_DAYS
    return today - timedelta(days=GRACE_PERIOD_DAYS)


def _eligible_query(db: Session, today: date):
    return db.query(UserSubscription).filter(
        UserSubscription.tier == "premium",
        UserSubscription.plan_expiry_date.isnot(None),
        UserSubscription.plan_expiry_date < _eligibility_cutoff(today),
    )


def select_eligible_user_ids(db: Session, today: Optional[date] = None) -> List[int]:
    """
    Ids of users whose premium grace period ended strictly before today.

    On the grace period's last day the subscription resolver still reports
    the user as in grace (0 days left); users are only selected from the
    following day on.
    """
    today = today or date.today()
    rows = (
        _eligible_query(db, today)
        .with_entities(UserSubscription.user_id)
        .order_by(UserSubscription.user_id.asc())
        .all()
    )
    return [row.user_id for row in rows]


def run_cleanup_sequence(db: Session, user_id: int, today: Optional[date] = None) -> UserCleanupResult:
    """
    Trim one user's records to the free tier limits and delete their subscription.

    Steps run in a fixed order: follow-ups and contact links of excess job
    openings, then job openings, contacts, companies, then the subscription row.
    Flushes but does not commit.
    """
    today = today or date.today()
    result = UserCleanupResult(user_id=user_id)

    # Re-check inside this user's session; the plan may have been renewed since selection
    subscription = _eligible_query(db, today).filter(UserSubscription.user_id == user_id).first()
    if subscription is None:
        logger.info(f"User {user_id} no longer eligible for cleanup, skipping")
        result.skipped = True
        return result

    logger.info(
        f"Processing cleanup for user {user_id}: premium plan expired {subscription.plan_expiry_date}, "
        f"grace period ended"
    )

    excess_job_openings = find_excess_ids(db, user_id, "job_openings", FREE_TIER_LIMITS["job_openings"])
    result.deleted["follow_ups"] = delete_follow_ups_for_job_openings(db, user_id, excess_job_openings)
    result.deleted["job_opening_contacts"] = delete_job_opening_contacts_for_job_openings(
        db, user_id, excess_job_openings
    )

    for entity_type in CLEANUP_ORDER:
        result.deleted[entity_type] = reclaim(db, user_id, entity_type, FREE_TIER_LIMITS[entity_type])

    db.delete(subscription)
    db.flush()
    result.subscription_deleted = True

    logger.info(f"User {user_id} subscription record deleted after data cleanup: {result.deleted}")
    return result


def _acquire_run_lock(bind: Engine) -> Optional[Connection]:
    """
    Take the PostgreSQL advisory lock that keeps cleanup runs single-instance.

    Returns the connection holding the lock, or None on other databases.
    Raises CleanupAlreadyRunningError if another run holds the lock.
    """
    if bind.dialect.name != "postgresql":
        return None

    lock_conn = bind.connect()
    acquired = lock_conn.execute(text(f"SELECT pg_try_advisory_lock({CLEANUP_LOCK_ID})")).scalar()
    lock_conn.commit()
    if not acquired:
        lock_conn.close()
        raise CleanupAlreadyRunningError()
    logger.info("Cleanup run lock acquired")
    return lock_conn


def _release_run_lock(lock_conn: Optional[Connection]) -> None:
    if lock_conn is None:
        return
    try:
        lock_conn.execute(text(f"SELECT pg_advisory_unlock({CLEANUP_LOCK_ID})"))
        lock_conn.commit()
    except SQLAlchemyError as unlock_error:
        logger.warning(f"Could not release cleanup run lock: {unlock_error}")
    finally:
        lock_conn.close()


def _rollback_user(db: Session, user_id: int) -> None:
    try:
        db.rollback()
    except SQLAlchemyError as rollback_error:
        logger.error(f"Rollback failed for user {user_id}: {rollback_error}")


def run_daily_cleanup(
    session_factory: Callable[[], Session] = SessionLocal,
    today: Optional[date] = None
) -> CleanupReport:
    """
    Run the daily cleanup over all eligible users.

    Args:
        session_factory: Callable returning a new Session (one per user)
        today: Run date (defaults to date.today())

    Returns:
        CleanupReport. Per-user errors are recorded in `failed`
        and do not stop the run.

    Raises:
        CleanupAlreadyRunningError: another run holds the run lock
    """
    today = today or date.today()
    report = CleanupReport(run_date=today)

    db = session_factory()
    try:
        lock_conn = _acquire_run_lock(db.get_bind())
        try:
            user_ids = select_eligible_user_ids(db, today)
        except Exception:
            _release_run_lock(lock_conn)
            raise
    finally:
        db.close()

    logger.info(f"Daily user data cleanup started: run_date={today}, eligible_users={len(user_ids)}")

    try:
        for user_id in user_ids:
            db = session_factory()
            try:
                result = run_cleanup_sequence(db, user_id, today)
                db.commit()
                report.add_result(result)
            except Exception as e:
                _rollback_user(db, user_id)
                logger.exception(f"Cleanup failed for user {user_id}, continuing with next user")
                report.failed[user_id] = str(e)
            finally:
                db.close()
    finally:
        _release_run_lock(lock_conn)

    logger.info(
        f"Daily user data cleanup finished: processed={len(report.processed)}, "
        f"skipped={len(report.skipped)}, failed={len(report.failed)}, deleted={report.deleted}"
    )
    return report
