"""
Shared test fixtures.

Every test gets a fresh in-memory SQLite database with foreign keys enforced,
so deleting a job opening before its follow-ups fails the same way it would
on PostgreSQL.
"""
from datetime import datetime, timedelta

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from jobtrack.db.base import Base
from jobtrack.db.session import enable_sqlite_foreign_keys
import jobtrack.db.models  # noqa: F401
from jobtrack.db.models.user import User
from jobtrack.db.models.subscription import UserSubscription
from jobtrack.db.models.company import Company
from jobtrack.db.models.contact import Contact
from jobtrack.db.models.job_opening import JobOpening, JobOpeningContact
from jobtrack.db.models.follow_up import FollowUp


BASE_TIME = datetime(2025, 1, 1, 9, 0, 0)

# Setup in-memory SQLite database for testing
TEST_DATABASE_URL = "sqlite:///:memory:"
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


event.listen(test_engine, "connect", enable_sqlite_foreign_keys)


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test."""
    Base.metadata.create_all(bind=test_engine)
    db = TestSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def session_factory(db):
    """Session factory bound to the test database (tables created by `db`)."""
    return TestSessionLocal


@pytest.fixture
def make_user(db):
    """Create users with unique emails."""
    def _make_user(email: str = "test@example.com") -> User:
        user = User(full_name="Test User", email=email)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make_user


@pytest.fixture
def test_user(make_user):
    return make_user()


@pytest.fixture
def make_subscription(db):
    """Create a subscription row for a user."""
    def _make_subscription(user, tier="premium", status="active", expiry=None, start=None) -> UserSubscription:
        sub = UserSubscription(
            user_id=user.id,
            tier=tier,
            status=status,
            plan_start_date=start,
            plan_expiry_date=expiry,
        )
        db.add(sub)
        db.commit()
        db.refresh(sub)
        return sub
    return _make_subscription


@pytest.fixture
def add_companies(db):
    def _add(user, count, start=BASE_TIME):
        rows = [
            Company(user_id=user.id, name=f"Company {i}", created_at=start + timedelta(minutes=i))
            for i in range(count)
        ]
        db.add_all(rows)
        db.commit()
        return rows
    return _add


@pytest.fixture
def add_contacts(db):
    def _add(user, count, start=BASE_TIME):
        rows = [
            Contact(user_id=user.id, name=f"Contact {i}", created_at=start + timedelta(minutes=i))
            for i in range(count)
        ]
        db.add_all(rows)
        db.commit()
        return rows
    return _add


@pytest.fixture
def add_job_openings(db):
    def _add(user, count, start=BASE_TIME):
        rows = [
            JobOpening(user_id=user.id, title=f"Engineer {i}", created_at=start + timedelta(minutes=i))
            for i in range(count)
        ]
        db.add_all(rows)
        db.commit()
        return rows
    return _add


@pytest.fixture
def add_follow_up(db):
    def _add(user, job_opening):
        row = FollowUp(
            user_id=user.id,
            job_opening_id=job_opening.id,
            email_subject=f"Following up on {job_opening.title}",
            created_at=BASE_TIME,
        )
        db.add(row)
        db.commit()
        return row
    return _add


@pytest.fixture
def add_contact_link(db):
    def _add(user, job_opening, contact):
        row = JobOpeningContact(
            user_id=user.id,
            job_opening_id=job_opening.id,
            contact_id=contact.id,
            created_at=BASE_TIME,
        )
        db.add(row)
        db.commit()
        return row
    return _add
