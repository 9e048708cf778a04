"""
Subscription state resolution.

Derives the effective tier and grace-period status from a user's stored
subscription row and the current date. Resolution is a pure function of
(row, today) so it can be re-derived at any time; only the loaders below
touch the database.
"""
import logging
from dataclasses import dataclass, asdict
from datetime import date, datetime, timedelta
from typing import Any, Dict, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from jobtrack.core.plan_limits import GRACE_PERIOD_DAYS
from jobtrack.db.models.subscription import UserSubscription

logger = logging.getLogger(__name__)

DateLike = Union[date, datetime, str, None]


@dataclass(frozen=True)
class SubscriptionState:
    """Resolved view of a user's subscription for a given day."""
    effective_tier: str = "free"
    is_in_grace_period: bool = False
    days_left_in_grace_period: Optional[int] = None
    grace_period_ended: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


FREE_STATE = SubscriptionState()


def _to_date(value: DateLike) -> Optional[date]:
    """Normalize a stored date value to day granularity."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return datetime.fromisoformat(value).date()
    raise TypeError(f"Unsupported date value: {value!r}")


def _field(subscription: Any, name: str) -> Any:
    if isinstance(subscription, dict):
        return subscription.get(name)
    return getattr(subscription, name, None)


def grace_period_end(expiry_date: DateLike) -> Optional[date]:
    """Last day of the grace period for a plan expiring on expiry_date."""
    expiry = _to_date(expiry_date)
    if expiry is None:
        return None
    return expiry + timedelta(days=GRACE_PERIOD_DAYS)


def resolve_subscription_state(subscription: Any, today: Optional[date] = None) -> SubscriptionState:
    """
    Resolve the effective tier and grace-period status of a subscription.

    Args:
        subscription: UserSubscription row, any object with tier/status/plan_expiry_date
            attributes, a mapping with those keys, or None
        today: Current date (defaults to date.today())

    Returns:
        SubscriptionState. Missing or malformed data resolves to free with no grace period.

    Note:
        An expired premium plan reverts to free immediately; the grace period
        only delays data cleanup. The grace period is still active on its last
        day (grace_end == today).
    """
    today = _to_date(today) or date.today()

    if subscription is None:
        return FREE_STATE

    try:
        tier = (_field(subscription, "tier") or "").lower()
        status = (_field(subscription, "status") or "").lower()
        expiry = _to_date(_field(subscription, "plan_expiry_date"))
    except (TypeError, ValueError, AttributeError) as e:
        logger.warning(f"Malformed subscription record, resolving to free: {e}")
        return FREE_STATE

    if tier != "premium" or status != "active":
        return FREE_STATE

    if expiry is None:
        # Premium without an expiry date carries no grace countdown
        logger.warning(
            f"Active premium subscription without plan_expiry_date "
            f"(user_id={_field(subscription, 'user_id')}), resolving to free"
        )
        return FREE_STATE

    if expiry > today:
        return SubscriptionState(effective_tier="premium")

    grace_end = grace_period_end(expiry)
    if grace_end >= today:
        return SubscriptionState(
            effective_tier="free",
            is_in_grace_period=True,
            days_left_in_grace_period=max(0, (grace_end - today).days),
        )

    return SubscriptionState(effective_tier="free", grace_period_ended=True)


def get_subscription_for_user(db: Session, user_id: int) -> Optional[UserSubscription]:
    """Load a user's subscription row, or None if they are on the implicit free tier."""
    return db.query(UserSubscription).filter(UserSubscription.user_id == user_id).first()


def get_subscription_state_for_user(
    db: Session,
    user_id: int,
    today: Optional[date] = None
) -> SubscriptionState:
    """
    Load and resolve a user's subscription state.

    Store errors are logged and resolve to the free state so callers
    enforce the stricter limits.
    """
    try:
        subscription = get_subscription_for_user(db, user_id)
    except SQLAlchemyError as e:
        logger.error(f"Failed to load subscription for user_id={user_id}, assuming free tier: {e}")
        db.rollback()
        return FREE_STATE

    return resolve_subscription_state(subscription, today)
