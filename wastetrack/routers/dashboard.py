# wastetrack/routers/dashboard.py
"""Manager dashboard: stats, stale-full alerts and rotation metrics per center."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from wastetrack.config import settings
from wastetrack.database import get_db
from wastetrack.dependencies import require_management
from wastetrack.models.user import User
from wastetrack.services import dashboard_service

router = APIRouter(prefix="/dashboard")


@router.get("/centers/{center_id}/stats", summary="Container counts, fill rate, activity")
def get_center_stats(center_id: int, db: Session = Depends(get_db), user: User = Depends(require_management)):
    return dashboard_service.center_stats(db, center_id, user)


@router.get("/centers/{center_id}/alerts", summary="Containers full for too long")
def get_alerts(
    center_id: int,
    alert_threshold_hours: int = Query(settings.ALERT_THRESHOLD_HOURS, alias="alertThresholdHours", ge=1),
    db: Session = Depends(get_db),
    user: User = Depends(require_management),
):
    return dashboard_service.full_container_alerts(db, center_id, user, alert_threshold_hours)


@router.get("/centers/{center_id}/rotation-metrics", summary="Average time between state changes")
def get_rotation_metrics(
    center_id: int,
    days: int = Query(settings.ROTATION_WINDOW_DAYS, ge=1, le=365),
    db: Session = Depends(get_db),
    user: User = Depends(require_management),
):
    return dashboard_service.rotation_metrics(db, center_id, user, days)
