# wastetrack/routers/containers.py
"""
Containers: status declarations, history, maintenance, soft delete, bulk ops
and metadata management.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from wastetrack.config import settings
from wastetrack.database import get_db
from wastetrack.dependencies import require_management, require_user
from wastetrack.models.user import User
from wastetrack.schemas.container import (
    BulkDelete, BulkMaintenance, BulkResult, ContainerCreate, ContainerList, ContainerOut,
    ContainerPage, ContainerStateOut, ContainerUpdate, MaintenanceToggle, StatusDeclaration,
)
from wastetrack.schemas.status_event import StatusEventOut, StatusHistory
from wastetrack.services import container_service
from wastetrack.services.broadcaster import EventBroadcaster, get_broadcaster
from wastetrack.services.container_service import ContainerFilter, HistoryFilter
from wastetrack.services.throttle_service import ThrottleStore, get_throttle_store

router = APIRouter(prefix="/containers")


@router.get("", response_model=ContainerPage, summary="List containers (management)")
def list_containers(
    search: Optional[str] = None,
    center_id: Optional[int] = Query(None, alias="centerId"),
    type_id: Optional[int] = Query(None, alias="typeId"),
    state: Optional[str] = None,
    page: int = 1,
    limit: int = 50,
    db: Session = Depends(get_db),
    user: User = Depends(require_management),
):
    """Active containers, sorted by label. Managers only see their assigned centers."""
    criteria = ContainerFilter(search=search, center_id=center_id, type_id=type_id,
                               state=state, page=page, limit=limit)
    return container_service.list_containers(db, criteria, user)


@router.post("", response_model=ContainerOut, status_code=201, summary="Create a container")
def create_container(body: ContainerCreate, db: Session = Depends(get_db),
                     user: User = Depends(require_management)):
    return container_service.create_container(
        db, user.id, body.center_id, body.type_id, body.label,
        capacity_liters=body.capacity_liters, location_hint=body.location_hint,
    )


@router.post("/bulk/maintenance", response_model=BulkResult, summary="Toggle maintenance on many containers")
def bulk_maintenance(body: BulkMaintenance, db: Session = Depends(get_db),
                     user: User = Depends(require_management)):
    result = container_service.bulk_set_maintenance(db, body.container_ids, user.id, user.role, body.maintenance)
    return {"message": f"{result['success']} container(s) updated, {result['failed']} failed", **result}


@router.post("/bulk/delete", response_model=BulkResult, summary="Deactivate many containers")
def bulk_delete(body: BulkDelete, db: Session = Depends(get_db),
                user: User = Depends(require_management)):
    result = container_service.bulk_delete_containers(db, body.container_ids, user.id, user.role)
    return {"message": f"{result['success']} container(s) deactivated, {result['failed']} failed", **result}


@router.get("/center/{center_id}", response_model=ContainerList, summary="Active containers of a center")
def list_center_containers(center_id: int, state: Optional[str] = None,
                           db: Session = Depends(get_db), user: User = Depends(require_user)):
    containers = container_service.list_by_center(db, center_id, state)
    return {"containers": containers, "count": len(containers)}


@router.get("/{container_id}", response_model=ContainerOut)
def get_container(container_id: int, db: Session = Depends(get_db), user: User = Depends(require_user)):
    return container_service.get_container(db, container_id)


@router.put("/{container_id}", response_model=ContainerOut, summary="Update container metadata")
def update_container(container_id: int, body: ContainerUpdate, db: Session = Depends(get_db),
                     user: User = Depends(require_management)):
    return container_service.update_container(db, container_id, user.id, body.model_dump(exclude_unset=True))


@router.post("/{container_id}/status", summary="Declare a container empty or full")
async def declare_status(
    container_id: int,
    body: StatusDeclaration,
    db: Session = Depends(get_db),
    user: User = Depends(require_user),
    throttle: ThrottleStore = Depends(get_throttle_store),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    """
    Any authenticated user from role `user` up. One declaration per user and
    container per throttle window (409 with retryAfter otherwise).
    """
    container = await container_service.declare_status(
        db, container_id, user.id, user.role, body.new_state, body.comment,
        throttle=throttle, broadcaster=broadcaster,
    )
    return {
        "message": "Container state updated",
        "container": ContainerStateOut.model_validate(container).model_dump(by_alias=True),
    }


@router.get("/{container_id}/events", response_model=StatusHistory, summary="Status history, newest first")
def get_status_history(
    container_id: int,
    limit: int = settings.HISTORY_DEFAULT_LIMIT,
    from_date: Optional[datetime] = Query(None, alias="from"),
    to_date: Optional[datetime] = Query(None, alias="to"),
    db: Session = Depends(get_db),
    user: User = Depends(require_user),
):
    events = container_service.get_status_history(
        db, container_id, HistoryFilter(limit=limit, from_date=from_date, to_date=to_date))
    return {"events": [StatusEventOut.model_validate(e) for e in events], "count": len(events)}


@router.post("/{container_id}/maintenance", response_model=ContainerOut, summary="Toggle maintenance mode")
def set_maintenance(container_id: int, body: MaintenanceToggle, db: Session = Depends(get_db),
                    user: User = Depends(require_management)):
    return container_service.set_maintenance(db, container_id, user.id, user.role, body.maintenance)


@router.delete("/{container_id}", summary="Deactivate (soft delete) a container")
def deactivate_container(container_id: int, db: Session = Depends(get_db),
                         user: User = Depends(require_management)):
    container_service.deactivate(db, container_id, user.id, user.role)
    return {"message": "Container deactivated", "id": container_id}
