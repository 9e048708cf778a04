"""
Quota service for record limits.

Counts a user's quota-bound records, reports them against the limits of the
user's effective tier and decides whether a new record may be created.
Capacity checks fail closed: when the tier cannot be resolved the free
limits apply, and when records cannot be counted the write is denied.
"""
import logging
from datetime import date
from typing import Dict, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from jobtrack.core.plan_limits import GRACE_PERIOD_DAYS, QUOTA_ENTITIES, get_plan_limit
from jobtrack.services.reclaim_service import get_entity_model
from jobtrack.services.subscription_service import FREE_STATE, get_subscription_state_for_user

logger = logging.getLogger(__name__)


def count_entities(db: Session, user_id: int, entity_type: str) -> int:
    """Count the user's records of a quota-bound entity type."""
    model = get_entity_model(entity_type)
    return db.query(func.count(model.id)).filter(model.user_id == user_id).scalar() or 0


def get_limits_for_response(db: Session, user_id: int, today: Optional[date] = None) -> Dict:
    """
    Get subscription state and per-entity limits for GET /me/limits.

    Args:
        db: Database session
        user_id: User ID
        today: Current date (defaults to date.today())

    Returns:
        Dictionary with effective_tier, grace period fields and an entities dict
    """
    state = get_subscription_state_for_user(db, user_id, today)

    entities = {}
    for entity_type in QUOTA_ENTITIES:
        limit = get_plan_limit(state.effective_tier, entity_type)
        used = count_entities(db, user_id, entity_type)

        if limit is None:
            unlimited = True
            remaining = None
            over_limit = False
        else:
            unlimited = False
            remaining = max(0, limit - used)
            over_limit = used > limit

        entities[entity_type] = {
            "limit": limit,
            "used": used,
            "remaining": remaining,
            "unlimited": unlimited,
            "over_limit": over_limit,
        }

    return {
        "effective_tier": state.effective_tier,
        "is_in_grace_period": state.is_in_grace_period,
        "days_left_in_grace_period": state.days_left_in_grace_period,
        "grace_period_days": GRACE_PERIOD_DAYS,
        "entities": entities,
    }


def check_entity_capacity(
    db: Session,
    user_id: int,
    entity_type: str,
    amount: int = 1,
    today: Optional[date] = None
) -> Tuple[int, Optional[int], bool]:
    """
    Check whether the user may create `amount` more records of entity_type.

    Args:
        db: Database session
        user_id: User ID
        entity_type: companies, contacts or job_openings
        amount: Number of records about to be created (default: 1)
        today: Current date (defaults to date.today())

    Returns:
        Tuple of (used: int, limit: Optional[int], allowed: bool)
        - used: Current record count (-1 if it could not be counted)
        - limit: Tier limit (None for unlimited)
        - allowed: Whether the write may proceed

    Raises:
        UnknownEntityTypeError: entity_type is not quota-bound
    """
    get_entity_model(entity_type)

    try:
        state = get_subscription_state_for_user(db, user_id, today)
    except Exception as e:
        logger.error(f"Tier resolution failed for user_id={user_id}, applying free limits: {e}")
        state = FREE_STATE

    limit = get_plan_limit(state.effective_tier, entity_type)

    try:
        used = count_entities(db, user_id, entity_type)
    except SQLAlchemyError as e:
        logger.error(f"Could not count {entity_type} for user_id={user_id}, denying write: {e}")
        db.rollback()
        return (-1, limit, False)

    if limit is None:
        return (used, None, True)

    allowed = used + amount <= limit
    if not allowed:
        logger.info(
            f"Record limit reached: user_id={user_id}, entity={entity_type}, "
            f"used={used}, limit={limit}, tier={state.effective_tier}"
        )
    return (used, limit, allowed)
