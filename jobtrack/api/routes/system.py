import hmac
import logging
from typing import Optional

from fastapi import APIRouter, Header, HTTPException, status
from sqlalchemy import text

from jobtrack.core import config
from jobtrack.db.session import SessionLocal
from jobtrack.schemas.subscription import CleanupReportResponse
from jobtrack.services import cleanup_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/system", tags=["System"])


@router.get("/health")
def system_health():
    db_ok = True
    try:
        db = SessionLocal()
        db.execute(text("SELECT 1"))
        db.close()
    except Exception as e:
        logger.warning(f"Database health check failed: {e}")
        db_ok = False

    return {
        "status": "ok",
        "database": "connected" if db_ok else "error",
        "api_version": "1.0.0",
        "service": "Jobtrack API"
    }


@router.post("/cleanup", response_model=CleanupReportResponse)
def trigger_cleanup(x_admin_token: Optional[str] = Header(None)):
    """
    Run the daily data cleanup now.

    Requires the X-Admin-Token header to match CLEANUP_ADMIN_TOKEN.
    Disabled (503) when no token is configured. Returns 409 while another
    run holds the cleanup lock.
    """
    if not config.CLEANUP_ADMIN_TOKEN:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Cleanup trigger is not configured"
        )
    if not x_admin_token or not hmac.compare_digest(x_admin_token, config.CLEANUP_ADMIN_TOKEN):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid admin token")

    logger.info("Daily cleanup triggered over HTTP")
    try:
        report = cleanup_service.run_daily_cleanup()
    except cleanup_service.CleanupAlreadyRunningError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return report.to_dict()
