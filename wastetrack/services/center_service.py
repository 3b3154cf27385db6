# wastetrack/services/center_service.py
"""Recycling center CRUD with audit trail. Deletion is a soft delete (active=False)."""

from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from wastetrack.constants import MANAGEMENT_ROLES, AuditAction, EntityType, Role
from wastetrack.exceptions import AuthorizationError, NotFoundError
from wastetrack.models.center import RecyclingCenter
from wastetrack.models.user import User
from wastetrack.services.audit_service import record_audit


def list_centers(db: Session, user: User, include_inactive: bool = False, mine: bool = False) -> List[RecyclingCenter]:
    role = Role(user.role)
    q = db.query(RecyclingCenter)
    if not (role == Role.SUPERADMIN and include_inactive):
        q = q.filter(RecyclingCenter.active.is_(True))
    if not role.at_least(Role.AGENT):
        q = q.filter(RecyclingCenter.public_visibility.is_(True))
    if role == Role.MANAGER and mine and user.center_ids:
        q = q.filter(RecyclingCenter.id.in_(user.center_ids))
    return q.order_by(RecyclingCenter.name.asc()).all()


def get_center(db: Session, center_id: int, user: Optional[User] = None) -> RecyclingCenter:
    center = db.query(RecyclingCenter).filter(RecyclingCenter.id == center_id).first()
    if not center:
        raise NotFoundError(f"Center {center_id} not found")
    if user is not None and not center.public_visibility and Role(user.role) not in MANAGEMENT_ROLES:
        raise AuthorizationError("Access to this center is denied")
    return center


def create_center(db: Session, actor_id, name: str, address: str, lat: float, lng: float,
                  description: Optional[str] = None, public_visibility: bool = True,
                  opening_hours: Optional[list] = None) -> RecyclingCenter:
    now = datetime.utcnow()
    center = RecyclingCenter(name=name, address=address, description=description, lat=lat, lng=lng,
                             public_visibility=public_visibility, opening_hours=opening_hours or [],
                             active=True, created_at=now, updated_at=now)
    db.add(center)
    db.commit()
    db.refresh(center)
    record_audit(db, actor_id, AuditAction.CENTER_CREATED, EntityType.CENTER, center.id, {"name": center.name})
    return center


def update_center(db: Session, center_id: int, actor_id, changes: dict) -> RecyclingCenter:
    center = get_center(db, center_id)
    geo = changes.pop("geo", None)
    if geo:
        center.lat, center.lng = geo["lat"], geo["lng"]
    for field in ("name", "address", "description", "public_visibility", "opening_hours", "active"):
        if field in changes and changes[field] is not None:
            setattr(center, field, changes[field])
    center.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(center)
    record_audit(db, actor_id, AuditAction.CENTER_UPDATED, EntityType.CENTER, center.id, {"name": center.name})
    return center


def delete_center(db: Session, center_id: int, actor_id) -> RecyclingCenter:
    center = get_center(db, center_id)
    center.active = False
    center.updated_at = datetime.utcnow()
    db.commit()
    record_audit(db, actor_id, AuditAction.CENTER_DELETED, EntityType.CENTER, center.id, {"name": center.name})
    return center
