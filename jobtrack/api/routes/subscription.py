"""
Subscription status and record limit endpoints.

Provides the effective tier, grace period state and per-entity limits
for the authenticated user.
"""
import logging
from fastapi import APIRouter, Depends, status, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from jobtrack.db.session import get_db
from jobtrack.db.models.user import User
from jobtrack.core.auth_dependency import get_current_user_obj
from jobtrack.core.quota_guard import enforce_entity_limit
from jobtrack.schemas.subscription import (
    SubscriptionStatusResponse,
    LimitsResponse,
    CapacityCheckResponse,
)
from jobtrack.services.subscription_service import get_subscription_state_for_user
from jobtrack.services.quota_service import get_limits_for_response
from jobtrack.services.account_service import purge_user_data

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/me", tags=["Subscription"])


@router.get("/subscription", response_model=SubscriptionStatusResponse)
def get_subscription_status(
    user: User = Depends(get_current_user_obj),
    db: Session = Depends(get_db)
):
    """
    Get the effective tier and grace period status for the authenticated user.

    An expired premium plan reports the free tier immediately, with
    is_in_grace_period set until the grace period's last day.
    """
    state = get_subscription_state_for_user(db, user.id)
    return state.to_dict()


@router.get("/limits", response_model=LimitsResponse)
def get_limits(
    user: User = Depends(get_current_user_obj),
    db: Session = Depends(get_db)
):
    """
    Get record limits and current counts for the authenticated user.

    Returns:
    - effective_tier, is_in_grace_period, days_left_in_grace_period, grace_period_days
    - entities: companies, contacts and job_openings, each with
      limit, used, remaining, unlimited and over_limit
    """
    limits = get_limits_for_response(db, user.id)
    logger.debug(f"Limits requested: user_id={user.id}, tier={limits['effective_tier']}")
    return limits


@router.post("/limits/{entity_type}/check", response_model=CapacityCheckResponse)
def check_capacity(
    entity_type: str,
    amount: int = 1,
    user: User = Depends(get_current_user_obj),
    db: Session = Depends(get_db)
):
    """
    Check whether `amount` more records of entity_type can be created.

    Returns 402 with a limit_reached payload when the limit would be exceeded.
    """
    if amount < 1:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="amount must be at least 1")
    return enforce_entity_limit(db, user, entity_type, amount)


@router.delete("/data", status_code=status.HTTP_200_OK)
def delete_my_data(
    user: User = Depends(get_current_user_obj),
    db: Session = Depends(get_db)
):
    """Permanently delete all records owned by the authenticated user."""
    try:
        deleted = purge_user_data(db, user.id)
    except SQLAlchemyError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete account data"
        )
    return {"message": "Account data deleted", "deleted": deleted}
