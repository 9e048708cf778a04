"""
Account data purge.

Deletes everything a user owns, children before parents.
"""
import logging
from typing import Dict

from sqlalchemy.orm import Session

from jobtrack.db.models.company import Company
from jobtrack.db.models.contact import Contact
from jobtrack.db.models.follow_up import FollowUp
from jobtrack.db.models.job_opening import JobOpening, JobOpeningContact
from jobtrack.db.models.subscription import UserSubscription

logger = logging.getLogger(__name__)

PURGE_ORDER = [
    ("follow_ups", FollowUp),
    ("job_opening_contacts", JobOpeningContact),
    ("job_openings", JobOpening),
    ("contacts", Contact),
    ("companies", Company),
    ("user_subscriptions", UserSubscription),
]


def purge_user_data(db: Session, user_id: int) -> Dict[str, int]:
    """
    Delete all of a user's records in dependency order and commit.

    Returns:
        Mapping of table name to deleted row count

    Raises:
        SQLAlchemyError: after rolling back, if any delete fails
    """
    deleted = {}
    try:
        for table_name, model in PURGE_ORDER:
            deleted[table_name] = (
                db.query(model)
                .filter(model.user_id == user_id)
                .delete(synchronize_session=False)
            )
        db.commit()
    except Exception:
        db.rollback()
        logger.exception(f"Account data purge failed for user_id={user_id}")
        raise

    logger.info(f"Account data purged: user_id={user_id}, deleted={deleted}")
    return deleted
