# wastetrack/services/container_service.py
"""
Container state machine and container management.

States: empty, full, maintenance.
  - empty/full are entered by status declarations (any role from `user` up).
  - maintenance is entered/left only through the maintenance toggle
    (manager/superadmin); leaving it always resets to empty.

A declaration goes through, in order: state validation, container lookup,
active check, maintenance lock, throttle. On success it writes the StatusEvent,
updates the container, arms the throttle, writes the audit row and notifies the
center room. These are independent writes with no enclosing transaction; the
event log is the source of truth and container.state is its latest snapshot
(last write wins between different actors).
"""

import asyncio
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from wastetrack.config import settings
from wastetrack.constants import (
    DECLARABLE_STATES, MANAGEMENT_ROLES, STATUS_UPDATED_EVENT,
    AuditAction, ContainerState, EntityType, Role, source_for_role,
)
from wastetrack.exceptions import (
    AppError, AuthorizationError, ConflictError, DependencyError, NotFoundError,
    UnprocessableError, ValidationError,
)
from wastetrack.models.center import RecyclingCenter
from wastetrack.models.container import Container
from wastetrack.models.container_type import ContainerType
from wastetrack.models.status_event import StatusEvent
from wastetrack.models.user import User
from wastetrack.services.audit_service import record_audit
from wastetrack.services.broadcaster import EventBroadcaster
from wastetrack.services.throttle_service import ThrottleStore, throttle_key
from wastetrack.utils.logger import get_logger

logger = get_logger(__name__)

MAX_COMMENT_LENGTH = 500
MAX_HISTORY_LIMIT = 500


@dataclass
class ContainerFilter:
    """Criteria for the management container listing."""

    search: Optional[str] = None
    center_id: Optional[int] = None
    type_id: Optional[int] = None
    state: Optional[str] = None
    page: int = 1
    limit: int = 50

    def validate(self):
        if self.state is not None and self.state not in {s.value for s in ContainerState}:
            raise ValidationError(f"Invalid state filter: {self.state}")
        if self.page < 1:
            raise ValidationError("page must be >= 1")
        if not 1 <= self.limit <= 200:
            raise ValidationError("limit must be between 1 and 200")
        return self


def _naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """created_at is stored as naive UTC; aware bounds are converted to match."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


@dataclass
class HistoryFilter:
    limit: int = settings.HISTORY_DEFAULT_LIMIT
    from_date: Optional[datetime] = None
    to_date: Optional[datetime] = None

    def validate(self):
        self.from_date = _naive_utc(self.from_date)
        self.to_date = _naive_utc(self.to_date)
        if not 1 <= self.limit <= MAX_HISTORY_LIMIT:
            raise ValidationError(f"limit must be between 1 and {MAX_HISTORY_LIMIT}")
        if self.from_date and self.to_date and self.from_date > self.to_date:
            raise ValidationError("'from' must be before 'to'")
        return self


def _require_management(role):
    if Role(role) not in MANAGEMENT_ROLES:
        raise AuthorizationError("Insufficient permissions")


def _load(db: Session, container_id: int) -> Container:
    container = db.query(Container).filter(Container.id == container_id).first()
    if not container:
        raise NotFoundError(f"Container {container_id} not found")
    return container


# ── Status declaration ───────────────────────────────────────────────────────
async def declare_status(
    db: Session,
    container_id: int,
    actor_id: int,
    actor_role,
    requested_state: str,
    comment: Optional[str] = None,
    *,
    throttle: ThrottleStore,
    broadcaster: Optional[EventBroadcaster] = None,
) -> Container:
    role = Role(actor_role)
    if not role.at_least(Role.USER):
        raise AuthorizationError("Visitors cannot declare container status")
    if requested_state not in {s.value for s in DECLARABLE_STATES}:
        raise ValidationError('Invalid state. Must be "empty" or "full"')
    if comment is not None and len(comment) > MAX_COMMENT_LENGTH:
        raise ValidationError(f"Comment exceeds {MAX_COMMENT_LENGTH} characters")

    container = _load(db, container_id)
    if not container.active:
        raise UnprocessableError("This container is deactivated")
    if container.state == ContainerState.MAINTENANCE.value and role not in MANAGEMENT_ROLES:
        raise UnprocessableError("This container is under maintenance. Only managers can declare its state.")

    key = throttle_key(actor_id, container_id)
    if throttle.exists(key):
        retry_after = throttle.remaining_ttl(key) or throttle.ttl_seconds
        raise ConflictError(
            f"You already declared this container recently. Please wait {retry_after} seconds.",
            retry_after=retry_after,
        )

    now = datetime.utcnow()
    previous_state = container.state

    db.add(StatusEvent(
        container_id=container.id,
        new_state=requested_state,
        author_id=actor_id,
        source=source_for_role(role).value,
        comment=comment or None,
        confidence=1.0,
        created_at=now,
    ))
    _commit(db, "status event")

    container.state = requested_state
    container.updated_at = now
    _commit(db, "container state")

    throttle.set_with_ttl(key)

    record_audit(
        db, actor_id,
        AuditAction.CONTAINER_SET_FULL if requested_state == ContainerState.FULL.value
        else AuditAction.CONTAINER_SET_EMPTY,
        EntityType.CONTAINER, container.id,
        {"label": container.label, "previousState": previous_state, "newState": requested_state},
    )
    logger.info(f"Container {container.id} ({container.label}) {previous_state} → {requested_state} by user {actor_id}")

    if broadcaster is not None:
        _schedule_notification(broadcaster, container)
    return container


def _commit(db: Session, what: str):
    """Commit one write of the declaration path. Earlier commits stay in place."""
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"❌ Writing {what} failed: {e}", exc_info=True)
        raise DependencyError(f"Could not save {what}") from e


# Keeps running notifications referenced until they finish
_pending_notifications = set()


def _schedule_notification(broadcaster: EventBroadcaster, container: Container):
    """Fan-out runs in the background; slow subscribers never delay the declaration."""
    payload = {
        "containerId": container.id,
        "containerLabel": container.label,
        "centerId": container.center_id,
        "state": container.state,
        "updatedAt": container.updated_at.isoformat(),
    }
    task = asyncio.create_task(_notify_status(broadcaster, container.center_id, payload))
    _pending_notifications.add(task)
    task.add_done_callback(_pending_notifications.discard)
    return task


async def _notify_status(broadcaster: EventBroadcaster, center_id, payload: dict):
    try:
        await broadcaster.publish(center_id, STATUS_UPDATED_EVENT, payload)
    except Exception as e:
        logger.error(f"Status broadcast failed for container {payload['containerId']}: {e}", exc_info=True)


# ── Maintenance / deactivation ───────────────────────────────────────────────
def _apply_maintenance(db: Session, container: Container, actor_id, enable: bool, bulk=False) -> Container:
    if not container.active:
        raise UnprocessableError("This container is deactivated")
    previous_state = container.state
    container.state = ContainerState.MAINTENANCE.value if enable else ContainerState.EMPTY.value
    container.updated_at = datetime.utcnow()
    db.commit()

    metadata = {"label": container.label, "previousState": previous_state}
    if bulk:
        metadata["bulk"] = True
    record_audit(db, actor_id,
                 AuditAction.CONTAINER_MAINTENANCE_ON if enable else AuditAction.CONTAINER_MAINTENANCE_OFF,
                 EntityType.CONTAINER, container.id, metadata)
    return container


def _apply_deactivate(db: Session, container: Container, actor_id, bulk=False) -> Container:
    if not container.active:
        return container
    container.active = False
    db.commit()

    metadata = {"label": container.label}
    if bulk:
        metadata["bulk"] = True
    record_audit(db, actor_id, AuditAction.CONTAINER_DEACTIVATED, EntityType.CONTAINER, container.id, metadata)
    return container


def set_maintenance(db: Session, container_id: int, actor_id, actor_role, enable: bool) -> Container:
    _require_management(actor_role)
    container = _apply_maintenance(db, _load(db, container_id), actor_id, enable)
    logger.info(f"Container {container.id} maintenance {'ON' if enable else 'OFF'} by user {actor_id}")
    return container


def deactivate(db: Session, container_id: int, actor_id, actor_role) -> Container:
    _require_management(actor_role)
    return _apply_deactivate(db, _load(db, container_id), actor_id)


def _bulk(db: Session, container_ids: Iterable[int], apply) -> dict:
    container_ids = list(container_ids or [])
    if not container_ids:
        raise ValidationError("Container id list is required")

    success = failed = 0
    for container_id in container_ids:
        try:
            container = db.query(Container).filter(Container.id == container_id).first()
            if container is None:
                failed += 1
                continue
            apply(container)
            success += 1
        except (AppError, SQLAlchemyError) as e:
            db.rollback()
            logger.warning(f"Bulk item {container_id} failed: {e}")
            failed += 1
    return {"success": success, "failed": failed}


def bulk_set_maintenance(db: Session, container_ids: List[int], actor_id, actor_role, enable: bool) -> dict:
    _require_management(actor_role)
    result = _bulk(db, container_ids, lambda c: _apply_maintenance(db, c, actor_id, enable, bulk=True))
    logger.info(f"Bulk maintenance {'ON' if enable else 'OFF'}: {result}")
    return result


def bulk_delete_containers(db: Session, container_ids: List[int], actor_id, actor_role) -> dict:
    _require_management(actor_role)
    result = _bulk(db, container_ids, lambda c: _apply_deactivate(db, c, actor_id, bulk=True))
    logger.info(f"Bulk deactivate: {result}")
    return result


# ── Metadata CRUD ────────────────────────────────────────────────────────────
def _check_refs(db: Session, center_id=None, type_id=None):
    if center_id is not None and not db.query(RecyclingCenter).filter(RecyclingCenter.id == center_id).first():
        raise NotFoundError(f"Center {center_id} not found")
    if type_id is not None and not db.query(ContainerType).filter(ContainerType.id == type_id).first():
        raise NotFoundError(f"Container type {type_id} not found")


def create_container(db: Session, actor_id, center_id: int, type_id: int, label: str,
                     capacity_liters: Optional[int] = None, location_hint: Optional[str] = None) -> Container:
    if capacity_liters is not None and capacity_liters < 0:
        raise ValidationError("capacityLiters must be >= 0")
    _check_refs(db, center_id, type_id)

    now = datetime.utcnow()
    container = Container(center_id=center_id, type_id=type_id, label=label.strip(),
                          capacity_liters=capacity_liters, location_hint=location_hint,
                          state=ContainerState.EMPTY.value, active=True,
                          created_at=now, updated_at=now)
    db.add(container)
    db.commit()
    db.refresh(container)
    record_audit(db, actor_id, AuditAction.CONTAINER_CREATED, EntityType.CONTAINER, container.id,
                 {"label": container.label})
    return container


UPDATABLE_FIELDS = ("label", "center_id", "type_id", "capacity_liters", "location_hint")
REQUIRED_FIELDS = {"label": "label", "center_id": "centerId", "type_id": "typeId"}


def update_container(db: Session, container_id: int, actor_id, changes: dict) -> Container:
    """Partial metadata update. Never touches state."""
    container = _load(db, container_id)
    changes = {k: v for k, v in changes.items() if k in UPDATABLE_FIELDS}
    for field, name in REQUIRED_FIELDS.items():
        if field in changes and changes[field] is None:
            raise ValidationError(f"{name} cannot be null")
    if changes.get("capacity_liters") is not None and changes["capacity_liters"] < 0:
        raise ValidationError("capacityLiters must be >= 0")
    _check_refs(db, changes.get("center_id"), changes.get("type_id"))

    for field, value in changes.items():
        setattr(container, field, value)
    container.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(container)
    record_audit(db, actor_id, AuditAction.CONTAINER_UPDATED, EntityType.CONTAINER, container.id,
                 {"label": container.label, "centerId": container.center_id, "typeId": container.type_id})
    return container


# ── Reads ────────────────────────────────────────────────────────────────────
def get_container(db: Session, container_id: int) -> Container:
    return _load(db, container_id)


def list_containers(db: Session, criteria: ContainerFilter, user: User) -> dict:
    criteria.validate()
    q = db.query(Container).filter(Container.active.is_(True))
    if criteria.search:
        q = q.filter(Container.label.ilike(f"%{criteria.search}%"))
    if criteria.center_id is not None:
        q = q.filter(Container.center_id == criteria.center_id)
    if criteria.type_id is not None:
        q = q.filter(Container.type_id == criteria.type_id)
    if criteria.state:
        q = q.filter(Container.state == criteria.state)
    # Managers only see their assigned centers in listings
    if Role(user.role) == Role.MANAGER:
        q = q.filter(Container.center_id.in_(user.center_ids or []))

    total = q.count()
    containers = (q.order_by(Container.label.asc(), Container.id.asc())
                  .offset((criteria.page - 1) * criteria.limit)
                  .limit(criteria.limit)
                  .all())
    return {
        "containers": containers,
        "count": len(containers),
        "total": total,
        "page": criteria.page,
        "pages": math.ceil(total / criteria.limit),
    }


def list_by_center(db: Session, center_id: int, state: Optional[str] = None) -> List[Container]:
    q = db.query(Container).filter(Container.center_id == center_id, Container.active.is_(True))
    if state is not None:
        if state not in {s.value for s in ContainerState}:
            raise ValidationError(f"Invalid state filter: {state}")
        q = q.filter(Container.state == state)
    return q.order_by(Container.label.asc(), Container.id.asc()).all()


def get_status_history(db: Session, container_id: int, criteria: HistoryFilter) -> List[StatusEvent]:
    """Events for one container, newest first."""
    criteria.validate()
    _load(db, container_id)
    q = db.query(StatusEvent).filter(StatusEvent.container_id == container_id)
    if criteria.from_date:
        q = q.filter(StatusEvent.created_at >= criteria.from_date)
    if criteria.to_date:
        q = q.filter(StatusEvent.created_at <= criteria.to_date)
    return q.order_by(StatusEvent.created_at.desc(), StatusEvent.id.desc()).limit(criteria.limit).all()
