# wastetrack/services/type_service.py
"""Container type catalogue (glass, paper, green waste…)."""

from datetime import datetime
from typing import List

from sqlalchemy.orm import Session

from wastetrack.constants import AuditAction, EntityType
from wastetrack.exceptions import ConflictError, NotFoundError
from wastetrack.models.container import Container
from wastetrack.models.container_type import ContainerType
from wastetrack.services.audit_service import record_audit

DEFAULT_COLOR = "#666666"


def list_types(db: Session) -> List[ContainerType]:
    return db.query(ContainerType).order_by(ContainerType.label.asc()).all()


def get_type(db: Session, type_id: int) -> ContainerType:
    ctype = db.query(ContainerType).filter(ContainerType.id == type_id).first()
    if not ctype:
        raise NotFoundError(f"Container type {type_id} not found")
    return ctype


def count_containers(db: Session, type_id: int) -> int:
    return db.query(Container).filter(Container.type_id == type_id).count()


def create_type(db: Session, actor_id, label: str, icon: str = None, color: str = None) -> ContainerType:
    label = label.strip()
    if db.query(ContainerType).filter(ContainerType.label == label).first():
        raise ConflictError(f"A container type labelled '{label}' already exists")
    ctype = ContainerType(label=label, icon=icon or "", color=color or DEFAULT_COLOR,
                          created_at=datetime.utcnow())
    db.add(ctype)
    db.commit()
    db.refresh(ctype)
    record_audit(db, actor_id, AuditAction.CONTAINER_TYPE_CREATED, EntityType.TYPE, ctype.id, {"label": ctype.label})
    return ctype


def update_type(db: Session, type_id: int, actor_id, changes: dict) -> ContainerType:
    ctype = get_type(db, type_id)
    label = changes.get("label")
    if label is not None and label != ctype.label:
        if db.query(ContainerType).filter(ContainerType.label == label).first():
            raise ConflictError(f"A container type labelled '{label}' already exists")
    for field in ("label", "icon", "color"):
        if changes.get(field) is not None:
            setattr(ctype, field, changes[field])
    db.commit()
    db.refresh(ctype)
    record_audit(db, actor_id, AuditAction.CONTAINER_TYPE_UPDATED, EntityType.TYPE, ctype.id, {"label": ctype.label})
    return ctype


def delete_type(db: Session, type_id: int, actor_id) -> None:
    ctype = get_type(db, type_id)
    in_use = count_containers(db, type_id)
    if in_use:
        raise ConflictError(f"Cannot delete this type: {in_use} container(s) still use it")
    label = ctype.label
    db.delete(ctype)
    db.commit()
    record_audit(db, actor_id, AuditAction.CONTAINER_TYPE_DELETED, EntityType.TYPE, type_id, {"label": label})
