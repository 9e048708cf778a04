"""
Record limit enforcement for create endpoints.

This module provides:
1. enforce_entity_limit() for handlers that already hold a user and session
2. require_entity_capacity() dependency that authenticates the user,
   checks the tier limit and raises HTTPException if the limit is reached
"""
import logging
from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from jobtrack.db.session import get_db
from jobtrack.db.models.user import User
from jobtrack.core.auth_dependency import get_current_user_obj
from jobtrack.services.quota_service import check_entity_capacity
from jobtrack.services.reclaim_service import UnknownEntityTypeError

logger = logging.getLogger(__name__)


def enforce_entity_limit(db: Session, user: User, entity_type: str, amount: int = 1) -> dict:
    """
    Raise if creating `amount` records of entity_type would exceed the user's limit.

    Returns:
        Dict with entity, limit, used and remaining (None for unlimited)

    Raises:
        HTTPException 400: Unknown entity type
        HTTPException 402: Limit reached, with structured error detail
    """
    try:
        used, limit, allowed = check_entity_capacity(db, user.id, entity_type, amount)
    except UnknownEntityTypeError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if not allowed:
        logger.warning(
            f"Record limit enforced: user_id={user.id}, entity={entity_type}, "
            f"limit={limit}, used={used}"
        )
        raise HTTPException(
            status_code=status.HTTP_402_PAYMENT_REQUIRED,
            detail={
                "error": "limit_reached",
                "entity": entity_type,
                "limit": limit,
                "used": used,
                "remaining": 0,
                "message": f"You have reached the limit of {limit} {entity_type.replace('_', ' ')}. "
                           f"Upgrade to Premium to add more.",
            }
        )

    return {
        "entity": entity_type,
        "limit": limit,
        "used": used,
        "remaining": None if limit is None else limit - used,
    }


def require_entity_capacity(entity_type: str, amount: int = 1):
    """
    Dependency that enforces the record limit before a create endpoint runs.

    Args:
        entity_type: companies, contacts or job_openings
        amount: Records about to be created (default: 1)

    Returns:
        User object if the limit allows the write
    """
    def capacity_checker(
        user: User = Depends(get_current_user_obj),
        db: Session = Depends(get_db)
    ) -> User:
        enforce_entity_limit(db, user, entity_type, amount)
        return user

    return capacity_checker
