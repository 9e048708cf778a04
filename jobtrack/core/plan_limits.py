"""
Tier-based record limits configuration.

Single source of truth for how many companies, contacts and job openings
a user may keep per subscription tier, plus the grace period that applies
after a premium plan expires. The real-time limit checks and the daily
cleanup job both read from here.
None means unlimited for that entity type.
"""
from typing import Dict, Optional, List

GRACE_PERIOD_DAYS: int = 7

# Entity types that carry a per-user quota
QUOTA_ENTITIES: List[str] = [
    "companies",
    "contacts",
    "job_openings",
]

FREE_TIER_LIMITS: Dict[str, int] = {
    "companies": 25,
    "contacts": 25,
    "job_openings": 30,
}

PLAN_LIMITS: Dict[str, Dict[str, Optional[int]]] = {
    "free": dict(FREE_TIER_LIMITS),
    "premium": {
        "companies": None,  # Unlimited
        "contacts": None,
        "job_openings": None,
    },
}

# Job openings first: they carry follow-ups and contact links
CLEANUP_ORDER: List[str] = [
    "job_openings",
    "contacts",
    "companies",
]


def get_plan_limit(tier: str, entity_type: str) -> Optional[int]:
    """
    Get the record limit for an entity type in a given tier.

    Args:
        tier: Subscription tier (free, premium)
        entity_type: Entity type (companies, contacts, job_openings)

    Returns:
        Maximum number of records (int) or None for unlimited
    """
    tier = tier.lower() if tier else "free"
    limits = PLAN_LIMITS.get(tier, PLAN_LIMITS["free"])
    return limits.get(entity_type)


def has_unlimited_quota(tier: str, entity_type: str) -> bool:
    """Check if the tier has no record limit for an entity type."""
    return get_plan_limit(tier, entity_type) is None


def get_all_plan_limits(tier: str) -> Dict[str, Optional[int]]:
    """Get a copy of all limits for a tier."""
    tier = tier.lower() if tier else "free"
    return dict(PLAN_LIMITS.get(tier, PLAN_LIMITS["free"]))
