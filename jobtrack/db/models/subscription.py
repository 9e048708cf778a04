from sqlalchemy import Column, Integer, String, DateTime, Date, ForeignKey
from sqlalchemy.sql import func
from jobtrack.db.base import Base


class UserSubscription(Base):
    """
    At most one subscription row per user.

    No row means the user is on the implicit free tier. The daily cleanup
    job deletes the row once a premium plan's grace period has fully elapsed.
    """
    __tablename__ = "user_subscriptions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)

    tier = Column(String, default="free", nullable=False)  # free | premium
    status = Column(String, default="active", nullable=False)  # active | cancelled | past_due ...

    plan_start_date = Column(Date, nullable=True)
    plan_expiry_date = Column(Date, nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
