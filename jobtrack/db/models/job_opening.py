from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index
from sqlalchemy.sql import func
from jobtrack.db.base import Base


class JobOpening(Base):
    """
    A tracked job opening.

    Follow-ups and contact links reference job openings without a cascade,
    so they must be deleted before the opening itself.
    """
    __tablename__ = "job_openings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    company_id = Column(Integer, ForeignKey("companies.id", ondelete="SET NULL"), nullable=True)
    title = Column(String, nullable=False)
    status = Column(String, default="Watching")  # Watching | Applied | Interviewing | Offer | Rejected
    job_url = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("idx_job_openings_user_created", "user_id", "created_at"),
    )


class JobOpeningContact(Base):
    __tablename__ = "job_opening_contacts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    job_opening_id = Column(Integer, ForeignKey("job_openings.id"), nullable=False, index=True)
    contact_id = Column(Integer, ForeignKey("contacts.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
