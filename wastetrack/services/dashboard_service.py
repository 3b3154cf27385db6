# wastetrack/services/dashboard_service.py
"""
Read-only dashboard views derived from containers and the status event log:
  - center stats   (counts per state, fill rate, activity)
  - alerts         (containers full for longer than a threshold)
  - rotation       (average empty→full and full→empty durations)
Nothing here writes.
"""

import math
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from wastetrack.constants import ContainerState, Role
from wastetrack.exceptions import AuthorizationError, NotFoundError
from wastetrack.models.center import RecyclingCenter
from wastetrack.models.container import Container
from wastetrack.models.container_type import ContainerType
from wastetrack.models.status_event import StatusEvent
from wastetrack.models.user import User


def _center_for(db: Session, center_id: int, user: User) -> RecyclingCenter:
    center = db.query(RecyclingCenter).filter(RecyclingCenter.id == center_id).first()
    if not center:
        raise NotFoundError(f"Center {center_id} not found")
    if Role(user.role) == Role.MANAGER and center_id not in (user.center_ids or []):
        raise AuthorizationError("Access to this center is denied")
    return center


def _active_ids(db: Session, center_id: int):
    return [cid for (cid,) in db.query(Container.id)
            .filter(Container.center_id == center_id, Container.active.is_(True)).all()]


def _severity(hours_full: int, threshold_hours: int) -> str:
    if hours_full > threshold_hours * 2:
        return "critical"
    if hours_full > threshold_hours:
        return "warning"
    return "info"


def center_stats(db: Session, center_id: int, user: User, now: Optional[datetime] = None) -> dict:
    center = _center_for(db, center_id, user)
    now = now or datetime.utcnow()

    counts = {s.value: 0 for s in ContainerState}
    rows = (db.query(Container.state, func.count(Container.id))
            .filter(Container.center_id == center_id, Container.active.is_(True))
            .group_by(Container.state).all())
    for state, n in rows:
        counts[state] = n
    total = sum(counts.values())
    fill_rate = round(counts["full"] / total * 100, 1) if total else 0.0

    def _count_state(state):
        return func.sum(case((Container.state == state, 1), else_=0))

    by_type = (db.query(ContainerType.id, ContainerType.label, func.count(Container.id),
                        _count_state("empty"), _count_state("full"), _count_state("maintenance"))
               .join(Container, Container.type_id == ContainerType.id)
               .filter(Container.center_id == center_id, Container.active.is_(True))
               .group_by(ContainerType.id, ContainerType.label)
               .order_by(ContainerType.label.asc()).all())

    ids = _active_ids(db, center_id)
    today_start = now.replace(hour=0, minute=0, second=0, microsecond=0)

    def _activity(since):
        if not ids:
            return 0
        return (db.query(StatusEvent)
                .filter(StatusEvent.container_id.in_(ids), StatusEvent.created_at >= since).count())

    return {
        "centerId": center.id,
        "centerName": center.name,
        "summary": {
            "totalContainers": total,
            "emptyContainers": counts["empty"],
            "fullContainers": counts["full"],
            "maintenanceContainers": counts["maintenance"],
            "fillRate": fill_rate,
        },
        "byType": [
            {"typeId": tid, "typeName": label, "total": n,
             "empty": int(e or 0), "full": int(f or 0), "maintenance": int(m or 0)}
            for tid, label, n, e, f, m in by_type
        ],
        "activity": {
            "today": _activity(today_start),
            "last7Days": _activity(now - timedelta(days=7)),
        },
    }


def full_container_alerts(db: Session, center_id: int, user: User, threshold_hours: int,
                          now: Optional[datetime] = None) -> dict:
    center = _center_for(db, center_id, user)
    now = now or datetime.utcnow()
    threshold_date = now - timedelta(hours=threshold_hours)

    full_containers = (db.query(Container)
                       .filter(Container.center_id == center_id,
                               Container.state == ContainerState.FULL.value,
                               Container.active.is_(True)).all())
    alerts = []
    for container in full_containers:
        last_full = (db.query(StatusEvent)
                     .filter(StatusEvent.container_id == container.id,
                             StatusEvent.new_state == ContainerState.FULL.value)
                     .order_by(StatusEvent.created_at.desc(), StatusEvent.id.desc())
                     .first())
        if not last_full or last_full.created_at > threshold_date:
            continue
        hours_full = math.floor((now - last_full.created_at).total_seconds() / 3600)
        author = last_full.author
        alerts.append({
            "containerId": container.id,
            "containerLabel": container.label,
            "containerType": {"id": container.type.id, "label": container.type.label,
                              "icon": container.type.icon, "color": container.type.color}
            if container.type else None,
            "location": container.location_hint,
            "fullSince": last_full.created_at.isoformat(),
            "hoursFull": hours_full,
            "declaredBy": {"id": author.id, "email": author.email} if author else None,
            "severity": _severity(hours_full, threshold_hours),
        })

    alerts.sort(key=lambda a: a["hoursFull"], reverse=True)
    return {
        "centerId": center.id,
        "centerName": center.name,
        "alertThresholdHours": threshold_hours,
        "totalAlerts": len(alerts),
        "critical": sum(1 for a in alerts if a["severity"] == "critical"),
        "warning": sum(1 for a in alerts if a["severity"] == "warning"),
        "alerts": alerts,
    }


def _avg(values):
    return round(sum(values) / len(values), 1) if values else 0.0


def rotation_metrics(db: Session, center_id: int, user: User, days: int,
                     now: Optional[datetime] = None) -> dict:
    """Durations between consecutive opposite declarations, per container."""
    center = _center_for(db, center_id, user)
    now = now or datetime.utcnow()
    start = now - timedelta(days=days)

    containers = {c.id: c for c in db.query(Container)
                  .filter(Container.center_id == center_id, Container.active.is_(True)).all()}
    events = []
    if containers:
        events = (db.query(StatusEvent)
                  .filter(StatusEvent.container_id.in_(list(containers)), StatusEvent.created_at >= start)
                  .order_by(StatusEvent.container_id.asc(), StatusEvent.created_at.asc(), StatusEvent.id.asc())
                  .all())

    fill_times = defaultdict(list)    # empty → full
    empty_times = defaultdict(list)   # full → empty
    previous = {}
    for event in events:
        prev = previous.get(event.container_id)
        if prev is not None and prev.new_state != event.new_state:
            hours = (event.created_at - prev.created_at).total_seconds() / 3600
            if event.new_state == ContainerState.FULL.value:
                fill_times[event.container_id].append(hours)
            else:
                empty_times[event.container_id].append(hours)
        previous[event.container_id] = event

    all_fill = [h for hs in fill_times.values() for h in hs]
    all_empty = [h for hs in empty_times.values() for h in hs]
    by_container = []
    for cid in sorted(set(fill_times) | set(empty_times)):
        by_container.append({
            "containerId": cid,
            "containerLabel": containers[cid].label,
            "fillCount": len(fill_times[cid]),
            "emptyCount": len(empty_times[cid]),
            "avgFillTimeHours": _avg(fill_times[cid]),
            "avgEmptyTimeHours": _avg(empty_times[cid]),
        })

    return {
        "centerId": center.id,
        "centerName": center.name,
        "period": {"days": days, "startDate": start.isoformat(), "endDate": now.isoformat()},
        "overall": {
            "totalTransitions": len(all_fill) + len(all_empty),
            "fillTransitions": len(all_fill),
            "emptyTransitions": len(all_empty),
            "avgFillTimeHours": _avg(all_fill),
            "avgEmptyTimeHours": _avg(all_empty),
        },
        "byContainer": by_container,
    }
