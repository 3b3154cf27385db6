# wastetrack/routers/centers.py
"""Recycling centers: listing (visibility-filtered) and management CRUD."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from wastetrack.constants import Role
from wastetrack.database import get_db
from wastetrack.dependencies import require_management, require_roles, require_user
from wastetrack.models.user import User
from wastetrack.schemas.center import CenterCreate, CenterOut, CenterUpdate
from wastetrack.services import center_service

router = APIRouter(prefix="/centers")


@router.get("", summary="List centers")
def list_centers(include_inactive: bool = Query(False, alias="includeInactive"), mine: bool = False,
                 db: Session = Depends(get_db), user: User = Depends(require_user)):
    centers = center_service.list_centers(db, user, include_inactive=include_inactive, mine=mine)
    return {"centers": [CenterOut.model_validate(c).model_dump(by_alias=True) for c in centers],
            "count": len(centers)}


@router.get("/{center_id}", response_model=CenterOut)
def get_center(center_id: int, db: Session = Depends(get_db), user: User = Depends(require_user)):
    return center_service.get_center(db, center_id, user)


@router.post("", response_model=CenterOut, status_code=201)
def create_center(body: CenterCreate, db: Session = Depends(get_db), user: User = Depends(require_management)):
    return center_service.create_center(
        db, user.id, body.name, body.address, body.geo.lat, body.geo.lng,
        description=body.description, public_visibility=body.public_visibility,
        opening_hours=[h.model_dump() for h in body.opening_hours],
    )


@router.put("/{center_id}", response_model=CenterOut)
def update_center(center_id: int, body: CenterUpdate, db: Session = Depends(get_db),
                  user: User = Depends(require_management)):
    changes = body.model_dump(exclude_unset=True)
    return center_service.update_center(db, center_id, user.id, changes)


@router.delete("/{center_id}", summary="Soft-delete a center (superadmin)")
def delete_center(center_id: int, db: Session = Depends(get_db),
                  user: User = Depends(require_roles(Role.SUPERADMIN))):
    center_service.delete_center(db, center_id, user.id)
    return {"message": "Center deleted", "id": center_id}
