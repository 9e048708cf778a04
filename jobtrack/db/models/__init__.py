"""
Database models module.

This module imports all database models to ensure they are registered with SQLAlchemy's Base.metadata
before table creation.

All models must be imported here to be included in database migrations and table creation.
"""
from jobtrack.db.models.user import User
from jobtrack.db.models.subscription import UserSubscription
from jobtrack.db.models.company import Company
from jobtrack.db.models.contact import Contact
from jobtrack.db.models.job_opening import JobOpening, JobOpeningContact
from jobtrack.db.models.follow_up import FollowUp

__all__ = [
    "User",
    "UserSubscription",
    "Company",
    "Contact",
    "JobOpening",
    "JobOpeningContact",
    "FollowUp",
]
