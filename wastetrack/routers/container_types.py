# wastetrack/routers/container_types.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from wastetrack.database import get_db
from wastetrack.dependencies import require_management, require_user
from wastetrack.models.user import User
from wastetrack.schemas.container_type import ContainerTypeCreate, ContainerTypeOut, ContainerTypeUpdate
from wastetrack.services import type_service

router = APIRouter(prefix="/types")


@router.get("", summary="List container types")
def list_types(db: Session = Depends(get_db), user: User = Depends(require_user)):
    types = type_service.list_types(db)
    return {"types": [ContainerTypeOut.model_validate(t).model_dump(by_alias=True) for t in types],
            "count": len(types)}


@router.get("/{type_id}/count", summary="Number of containers using a type")
def count_containers(type_id: int, db: Session = Depends(get_db), user: User = Depends(require_user)):
    return {"count": type_service.count_containers(db, type_id)}


@router.post("", response_model=ContainerTypeOut, status_code=201)
def create_type(body: ContainerTypeCreate, db: Session = Depends(get_db),
                user: User = Depends(require_management)):
    return type_service.create_type(db, user.id, body.label, body.icon, body.color)


@router.put("/{type_id}", response_model=ContainerTypeOut)
def update_type(type_id: int, body: ContainerTypeUpdate, db: Session = Depends(get_db),
                user: User = Depends(require_management)):
    return type_service.update_type(db, type_id, user.id, body.model_dump(exclude_unset=True))


@router.delete("/{type_id}")
def delete_type(type_id: int, db: Session = Depends(get_db), user: User = Depends(require_management)):
    type_service.delete_type(db, type_id, user.id)
    return {"message": "Container type deleted", "id": type_id}
