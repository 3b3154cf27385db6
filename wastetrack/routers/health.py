# wastetrack/routers/health.py
"""
System health check endpoint.
Returns status of backend + DB + throttle store.
"""

from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from wastetrack.database import get_db
from wastetrack.services.throttle_service import ThrottleStore, get_throttle_store

router = APIRouter()


@router.get("/health", summary="System health check")
def health_check(db: Session = Depends(get_db), throttle: ThrottleStore = Depends(get_throttle_store)):
    """
    Returns:
    - Backend status
    - Database connectivity
    - Throttle store reachability (a dead Redis only degrades, declarations still work)
    """
    result = {
        "status": "ok",
        "timestamp": datetime.utcnow().isoformat(),
        "database": "unknown",
        "throttleStore": throttle.ping(),
    }

    # Check database
    try:
        db.execute(text("SELECT 1"))
        result["database"] = "ok"
    except SQLAlchemyError as e:
        result["database"] = f"error: {str(e)}"
        result["status"] = "degraded"

    return result
