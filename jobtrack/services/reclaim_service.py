"""
Excess record reclaimer.

Deletes a user's newest records of a quota-bound entity type beyond a limit,
keeping the oldest ones. Records are ranked by (created_at, id) ascending so
the deleted set is reproducible when creation timestamps tie.

Functions here flush but never commit; the caller owns the transaction.
"""
import logging
from typing import Dict, List, Optional, Type

from sqlalchemy.orm import Session

from jobtrack.db.base import Base
from jobtrack.db.models.company import Company
from jobtrack.db.models.contact import Contact
from jobtrack.db.models.job_opening import JobOpening, JobOpeningContact
from jobtrack.db.models.follow_up import FollowUp

logger = logging.getLogger(__name__)

# Static entity tag -> model mapping. No table names are built at runtime.
ENTITY_MODELS: Dict[str, Type[Base]] = {
    "companies": Company,
    "contacts": Contact,
    "job_openings": JobOpening,
}


class UnknownEntityTypeError(ValueError):
    """Raised for an entity type with no quota-bound model."""

    def __init__(self, entity_type: str):
        self.entity_type = entity_type
        super().__init__(f"Unknown entity type: {entity_type!r}")


def get_entity_model(entity_type: str) -> Type[Base]:
    try:
        return ENTITY_MODELS[entity_type]
    except KeyError:
        raise UnknownEntityTypeError(entity_type) from None


def find_excess_ids(db: Session, user_id: int, entity_type: str, limit: int) -> List[int]:
    """
    Return ids of the user's records ranked past `limit`.

    Rank 1 is the oldest record. Every record with rank > limit is excess.
    """
    model = get_entity_model(entity_type)
    ranked = (
        db.query(model.id)
        .filter(model.user_id == user_id)
        .order_by(model.created_at.asc(), model.id.asc())
        .all()
    )
    return [row.id for row in ranked[limit:]]


def delete_follow_ups_for_job_openings(db: Session, user_id: int, job_opening_ids: List[int]) -> int:
    """Delete the user's follow-ups attached to the given job openings."""
    if not job_opening_ids:
        return 0
    deleted = (
        db.query(FollowUp)
        .filter(FollowUp.job_opening_id.in_(job_opening_ids), FollowUp.user_id == user_id)
        .delete(synchronize_session=False)
    )
    db.flush()
    logger.info(f"Deleted {deleted} follow_ups for excess job openings: user_id={user_id}")
    return deleted


def delete_job_opening_contacts_for_job_openings(db: Session, user_id: int, job_opening_ids: List[int]) -> int:
    """Delete the user's job-opening/contact links attached to the given job openings."""
    if not job_opening_ids:
        return 0
    deleted = (
        db.query(JobOpeningContact)
        .filter(JobOpeningContact.job_opening_id.in_(job_opening_ids), JobOpeningContact.user_id == user_id)
        .delete(synchronize_session=False)
    )
    db.flush()
    logger.info(f"Deleted {deleted} job_opening_contacts for excess job openings: user_id={user_id}")
    return deleted


def delete_job_opening_contacts_for_contacts(db: Session, user_id: int, contact_ids: List[int]) -> int:
    """Delete the user's job-opening/contact links attached to the given contacts."""
    if not contact_ids:
        return 0
    deleted = (
        db.query(JobOpeningContact)
        .filter(JobOpeningContact.contact_id.in_(contact_ids), JobOpeningContact.user_id == user_id)
        .delete(synchronize_session=False)
    )
    db.flush()
    logger.info(f"Deleted {deleted} job_opening_contacts for excess contacts: user_id={user_id}")
    return deleted


def detach_company_references(db: Session, user_id: int, company_ids: List[int]) -> int:
    """Clear company_id on the user's contacts and job openings that point at the given companies."""
    if not company_ids:
        return 0
    detached = 0
    for model in (Contact, JobOpening):
        detached += (
            db.query(model)
            .filter(model.company_id.in_(company_ids), model.user_id == user_id)
            .update({model.company_id: None}, synchronize_session=False)
        )
    db.flush()
    logger.info(f"Detached {detached} records from excess companies: user_id={user_id}")
    return detached


def reclaim(db: Session, user_id: int, entity_type: str, limit: Optional[int]) -> int:
    """
    Delete the user's newest records of entity_type beyond limit.

    Args:
        db: Database session
        user_id: Owner of the records
        entity_type: companies, contacts or job_openings
        limit: Number of oldest records to keep (None for unlimited)

    Returns:
        Number of records deleted (0 when at or under limit)

    Raises:
        UnknownEntityTypeError: entity_type has no model
        ValueError: limit is negative

    For job openings, dependent follow-ups and contact links of the excess
    openings are deleted first. For contacts, their links are deleted first.
    For companies, contacts and job openings referencing them are detached
    (company_id set to NULL), not deleted.
    """
    model = get_entity_model(entity_type)

    if limit is None:
        return 0
    if limit < 0:
        raise ValueError(f"limit must be non-negative, got {limit}")

    excess_ids = find_excess_ids(db, user_id, entity_type, limit)
    if not excess_ids:
        logger.info(f"No excess {entity_type} for user_id={user_id} (limit={limit})")
        return 0

    if model is JobOpening:
        delete_follow_ups_for_job_openings(db, user_id, excess_ids)
        delete_job_opening_contacts_for_job_openings(db, user_id, excess_ids)
    elif model is Contact:
        delete_job_opening_contacts_for_contacts(db, user_id, excess_ids)
    elif model is Company:
        detach_company_references(db, user_id, excess_ids)

    deleted = (
        db.query(model)
        .filter(model.id.in_(excess_ids), model.user_id == user_id)
        .delete(synchronize_session=False)
    )
    db.flush()

    logger.info(
        f"Reclaimed {entity_type}: user_id={user_id}, deleted={deleted}, kept={limit}"
    )
    return deleted
