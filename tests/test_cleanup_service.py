"""
Tests for the daily cleanup job.
Tests eligibility cutoff, per-user cleanup sequence, idempotence and failure isolation.
"""
from datetime import date, timedelta

import pytest
from sqlalchemy.exc import OperationalError

from jobtrack.db.models.company import Company
from jobtrack.db.models.contact import Contact
from jobtrack.db.models.follow_up import FollowUp
from jobtrack.db.models.job_opening import JobOpening, JobOpeningContact
from jobtrack.db.models.subscription import UserSubscription
from jobtrack.services import cleanup_service
from jobtrack.services.cleanup_service import (
    CleanupAlreadyRunningError,
    run_cleanup_sequence,
    run_daily_cleanup,
    select_eligible_user_ids,
)
from jobtrack.services.subscription_service import resolve_subscription_state

TODAY = date(2026, 10, 19)


def count(db, model, user_id):
    return db.query(model).filter(model.user_id == user_id).count()


def test_select_eligible_users_cutoff(db, make_user, make_subscription):
    expired_long_ago = make_user("a@example.com")
    day_after_grace = make_user("b@example.com")
    last_grace_day = make_user("c@example.com")
    still_premium = make_user("d@example.com")
    free_with_old_expiry = make_user("e@example.com")
    premium_no_expiry = make_user("f@example.com")

    make_subscription(expired_long_ago, expiry=TODAY - timedelta(days=30))
    make_subscription(day_after_grace, expiry=TODAY - timedelta(days=8))
    make_subscription(last_grace_day, expiry=TODAY - timedelta(days=7))
    make_subscription(still_premium, expiry=TODAY + timedelta(days=20))
    make_subscription(free_with_old_expiry, tier="free", expiry=TODAY - timedelta(days=30))
    make_subscription(premium_no_expiry, expiry=None)

    assert select_eligible_user_ids(db, TODAY) == [expired_long_ago.id, day_after_grace.id]


def test_job_waits_until_day_after_last_grace_day(db, test_user, make_subscription):
    sub = make_subscription(test_user, expiry=TODAY - timedelta(days=7))

    # Resolver still shows the last grace day; the job must not act yet
    state = resolve_subscription_state(sub, TODAY)
    assert state.is_in_grace_period is True
    assert state.days_left_in_grace_period == 0
    assert select_eligible_user_ids(db, TODAY) == []

    tomorrow = TODAY + timedelta(days=1)
    assert resolve_subscription_state(sub, tomorrow).grace_period_ended is True
    assert select_eligible_user_ids(db, tomorrow) == [test_user.id]


def test_end_to_end_scenario(
    db, session_factory, test_user, make_subscription,
    add_companies, add_contacts, add_job_openings, add_follow_up, add_contact_link
):
    make_subscription(test_user, expiry=TODAY - timedelta(days=10))
    add_companies(test_user, 40)
    contacts = add_contacts(test_user, 20)
    openings = add_job_openings(test_user, 35)

    retained, removed = openings[:30], openings[30:]
    for i, opening in enumerate(removed):
        add_follow_up(test_user, opening)
        add_contact_link(test_user, opening, contacts[i])
    for i, opening in enumerate(retained[:3]):
        add_follow_up(test_user, opening)
        add_contact_link(test_user, opening, contacts[10 + i])
    retained_ids = {o.id for o in retained}

    report = run_daily_cleanup(session_factory, today=TODAY)
    db.expire_all()

    assert report.ok
    assert report.processed == [test_user.id]
    assert count(db, Company, test_user.id) == 25
    assert count(db, Contact, test_user.id) == 20
    assert count(db, JobOpening, test_user.id) == 30
    assert db.query(UserSubscription).filter(UserSubscription.user_id == test_user.id).first() is None

    follow_ups = db.query(FollowUp).filter(FollowUp.user_id == test_user.id).all()
    links = db.query(JobOpeningContact).filter(JobOpeningContact.user_id == test_user.id).all()
    assert len(follow_ups) == 3
    assert len(links) == 3
    assert all(f.job_opening_id in retained_ids for f in follow_ups)
    assert all(link.job_opening_id in retained_ids for link in links)

    assert report.deleted == {
        "follow_ups": 5,
        "job_opening_contacts": 5,
        "job_openings": 5,
        "contacts": 0,
        "companies": 15,
    }


def test_thirty_five_openings_each_with_follow_up(
    db, session_factory, test_user, make_subscription, add_job_openings, add_follow_up
):
    make_subscription(test_user, expiry=TODAY - timedelta(days=9))
    for opening in add_job_openings(test_user, 35):
        add_follow_up(test_user, opening)

    run_daily_cleanup(session_factory, today=TODAY)
    db.expire_all()

    kept = {row.id for row in db.query(JobOpening.id).filter(JobOpening.user_id == test_user.id)}
    follow_ups = db.query(FollowUp).filter(FollowUp.user_id == test_user.id).all()
    assert len(kept) == 30
    assert len(follow_ups) == 30
    assert all(f.job_opening_id in kept for f in follow_ups)


def test_second_run_is_noop(db, session_factory, test_user, make_subscription, add_companies):
    make_subscription(test_user, expiry=TODAY - timedelta(days=10))
    add_companies(test_user, 30)

    first = run_daily_cleanup(session_factory, today=TODAY)
    second = run_daily_cleanup(session_factory, today=TODAY)

    assert first.processed == [test_user.id]
    assert second.processed == []
    assert second.deleted == {}
    assert second.ok


def test_under_limit_user_only_loses_subscription(db, session_factory, test_user, make_subscription, add_companies):
    make_subscription(test_user, expiry=TODAY - timedelta(days=10))
    add_companies(test_user, 5)

    report = run_daily_cleanup(session_factory, today=TODAY)
    db.expire_all()

    assert report.deleted["companies"] == 0
    assert count(db, Company, test_user.id) == 5
    assert count(db, UserSubscription, test_user.id) == 0


def test_in_grace_and_active_users_untouched(
    db, session_factory, make_user, make_subscription, add_companies
):
    in_grace = make_user("grace@example.com")
    active = make_user("active@example.com")
    make_subscription(in_grace, expiry=TODAY - timedelta(days=3))
    make_subscription(active, expiry=TODAY + timedelta(days=3))
    add_companies(in_grace, 30)
    add_companies(active, 30)

    report = run_daily_cleanup(session_factory, today=TODAY)
    db.expire_all()

    assert report.processed == []
    assert count(db, Company, in_grace.id) == 30
    assert count(db, Company, active.id) == 30
    assert count(db, UserSubscription, in_grace.id) == 1


def test_failure_for_one_user_does_not_stop_run(
    db, session_factory, make_user, make_subscription, add_job_openings, add_follow_up,
    add_companies, monkeypatch
):
    broken = make_user("broken@example.com")
    healthy = make_user("healthy@example.com")
    for user in (broken, healthy):
        make_subscription(user, expiry=TODAY - timedelta(days=10))
        for opening in add_job_openings(user, 32):
            add_follow_up(user, opening)
        add_companies(user, 26)

    broken_id = broken.id
    real_reclaim = cleanup_service.reclaim

    def flaky_reclaim(db, user_id, entity_type, limit):
        if user_id == broken_id and entity_type == "job_openings":
            raise OperationalError("DELETE FROM job_openings", {}, Exception("connection reset"))
        return real_reclaim(db, user_id, entity_type, limit)

    monkeypatch.setattr(cleanup_service, "reclaim", flaky_reclaim)

    report = run_daily_cleanup(session_factory, today=TODAY)
    db.expire_all()

    assert not report.ok
    assert list(report.failed) == [broken.id]
    assert report.processed == [healthy.id]

    # Broken user's work was rolled back, including dependent deletions
    assert count(db, FollowUp, broken.id) == 32
    assert count(db, JobOpening, broken.id) == 32
    assert count(db, UserSubscription, broken.id) == 1

    assert count(db, JobOpening, healthy.id) == 30
    assert count(db, Company, healthy.id) == 25
    assert count(db, UserSubscription, healthy.id) == 0

    # Next run picks the broken user up again and finishes the job
    monkeypatch.setattr(cleanup_service, "reclaim", real_reclaim)
    retry = run_daily_cleanup(session_factory, today=TODAY)
    db.expire_all()

    assert retry.processed == [broken.id]
    assert count(db, JobOpening, broken.id) == 30
    assert count(db, FollowUp, broken.id) == 30


def test_cleanup_sequence_skips_user_no_longer_eligible(db, test_user, make_subscription, add_companies):
    make_subscription(test_user, expiry=TODAY + timedelta(days=365))
    add_companies(test_user, 30)

    result = run_cleanup_sequence(db, test_user.id, TODAY)

    assert result.skipped is True
    assert result.subscription_deleted is False
    assert count(db, Company, test_user.id) == 30


def test_report_to_dict(db, session_factory, test_user, make_subscription):
    make_subscription(test_user, expiry=TODAY - timedelta(days=10))
    payload = run_daily_cleanup(session_factory, today=TODAY).to_dict()

    assert payload["run_date"] == "2026-10-19"
    assert payload["processed"] == [test_user.id]
    assert payload["failed"] == {}
    assert payload["ok"] is True


def test_unexpected_error_for_one_user_does_not_stop_run(
    db, session_factory, make_user, make_subscription, add_companies, monkeypatch
):
    broken = make_user("broken@example.com")
    healthy = make_user("healthy@example.com")
    for user in (broken, healthy):
        make_subscription(user, expiry=TODAY - timedelta(days=10))
        add_companies(user, 27)

    broken_id = broken.id
    real_reclaim = cleanup_service.reclaim

    def buggy_reclaim(db, user_id, entity_type, limit):
        if user_id == broken_id:
            raise RuntimeError("unexpected failure")
        return real_reclaim(db, user_id, entity_type, limit)

    monkeypatch.setattr(cleanup_service, "reclaim", buggy_reclaim)

    report = run_daily_cleanup(session_factory, today=TODAY)
    db.expire_all()

    assert report.failed == {broken.id: "unexpected failure"}
    assert report.processed == [healthy.id]
    assert count(db, Company, broken.id) == 27
    assert count(db, Company, healthy.id) == 25


def test_failed_rollback_does_not_stop_run(
    db, session_factory, make_user, make_subscription, add_companies, monkeypatch
):
    broken = make_user("broken@example.com")
    healthy = make_user("healthy@example.com")
    for user in (broken, healthy):
        make_subscription(user, expiry=TODAY - timedelta(days=10))
        add_companies(user, 27)

    broken_id = broken.id
    real_reclaim = cleanup_service.reclaim

    def flaky_reclaim(db, user_id, entity_type, limit):
        if user_id == broken_id:
            raise OperationalError("DELETE FROM companies", {}, Exception("connection reset"))
        return real_reclaim(db, user_id, entity_type, limit)

    def dead_connection_factory():
        session = session_factory()
        real_rollback = session.rollback

        def failing_rollback():
            real_rollback()
            raise OperationalError("ROLLBACK", {}, Exception("server closed the connection"))

        session.rollback = failing_rollback
        return session

    monkeypatch.setattr(cleanup_service, "reclaim", flaky_reclaim)

    report = run_daily_cleanup(dead_connection_factory, today=TODAY)
    db.expire_all()

    assert list(report.failed) == [broken.id]
    assert report.processed == [healthy.id]
    assert count(db, Company, healthy.id) == 25


def test_run_refuses_to_start_while_lock_is_held(db, session_factory, test_user, make_subscription, monkeypatch):
    make_subscription(test_user, expiry=TODAY - timedelta(days=10))

    def lock_held(bind):
        raise CleanupAlreadyRunningError()

    monkeypatch.setattr(cleanup_service, "_acquire_run_lock", lock_held)

    with pytest.raises(CleanupAlreadyRunningError):
        run_daily_cleanup(session_factory, today=TODAY)

    assert count(db, UserSubscription, test_user.id) == 1


def test_run_lock_is_released_after_run(db, session_factory, test_user, make_subscription, monkeypatch):
    make_subscription(test_user, expiry=TODAY - timedelta(days=10))
    events = []

    monkeypatch.setattr(cleanup_service, "_acquire_run_lock", lambda bind: events.append("acquire") or "lock")
    monkeypatch.setattr(cleanup_service, "_release_run_lock", lambda conn: events.append(f"release:{conn}"))

    report = run_daily_cleanup(session_factory, today=TODAY)

    assert report.processed == [test_user.id]
    assert events == ["acquire", "release:lock"]


def test_no_run_lock_outside_postgresql(session_factory):
    session = session_factory()
    try:
        assert cleanup_service._acquire_run_lock(session.get_bind()) is None
    finally:
        session.close()
