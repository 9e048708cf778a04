"""
Pydantic schemas for subscription, limits and cleanup endpoints.
"""
from typing import Optional, Dict, List
from pydantic import BaseModel, Field


class SubscriptionStatusResponse(BaseModel):
    """Response schema for GET /me/subscription."""
    effective_tier: str = Field(..., description="Tier whose limits currently apply (free, premium)")
    is_in_grace_period: bool = Field(..., description="Premium plan expired but data is not yet cleaned up")
    days_left_in_grace_period: Optional[int] = Field(None, description="Days until cleanup becomes possible")
    grace_period_ended: bool = Field(False, description="Grace period is over; excess data will be deleted")

    class Config:
        json_schema_extra = {
            "example": {
                "effective_tier": "free",
                "is_in_grace_period": True,
                "days_left_in_grace_period": 6,
                "grace_period_ended": False
            }
        }


class EntityLimitDetail(BaseModel):
    """Limit details for a single entity type."""
    limit: Optional[int] = Field(None, description="Maximum records (None for unlimited)")
    used: int = Field(..., description="Current record count")
    remaining: Optional[int] = Field(None, description="Records that can still be created (None for unlimited)")
    unlimited: bool = Field(..., description="Whether this entity type has no limit")
    over_limit: bool = Field(..., description="Whether the user holds more records than the limit")


class LimitsResponse(BaseModel):
    """Response schema for GET /me/limits."""
    effective_tier: str
    is_in_grace_period: bool
    days_left_in_grace_period: Optional[int] = None
    grace_period_days: int
    entities: Dict[str, EntityLimitDetail]

    class Config:
        json_schema_extra = {
            "example": {
                "effective_tier": "free",
                "is_in_grace_period": False,
                "days_left_in_grace_period": None,
                "grace_period_days": 7,
                "entities": {
                    "companies": {"limit": 25, "used": 12, "remaining": 13, "unlimited": False, "over_limit": False}
                }
            }
        }


class CapacityCheckResponse(BaseModel):
    """Response schema for POST /me/limits/{entity_type}/check."""
    entity: str
    limit: Optional[int] = None
    used: int
    remaining: Optional[int] = None


class CleanupReportResponse(BaseModel):
    """Response schema for POST /system/cleanup."""
    run_date: str
    processed: List[int]
    skipped: List[int]
    failed: Dict[str, str]
    deleted: Dict[str, int]
    ok: bool
