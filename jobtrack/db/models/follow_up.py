from sqlalchemy import Column, Integer, String, Text, Date, DateTime, ForeignKey
from sqlalchemy.sql import func
from jobtrack.db.base import Base

class FollowUp(Base):
    __tablename__ = "follow_ups"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    job_opening_id = Column(Integer, ForeignKey("job_openings.id"), nullable=False, index=True)
    follow_up_date = Column(Date, nullable=True)
    email_subject = Column(String, nullable=True)
    email_body = Column(Text, nullable=True)
    status = Column(String, default="Pending")  # Pending | Sent | Skipped
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
