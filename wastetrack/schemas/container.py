# wastetrack/schemas/container.py
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from wastetrack.schemas.base import CamelModel
from wastetrack.schemas.center import CenterBrief
from wastetrack.schemas.container_type import ContainerTypeBrief


class ContainerCreate(CamelModel):
    center_id: int
    type_id: int
    label: str = Field(min_length=1, max_length=100)
    capacity_liters: Optional[int] = Field(default=None, ge=0)
    location_hint: Optional[str] = None


class ContainerUpdate(CamelModel):
    label: Optional[str] = Field(default=None, min_length=1, max_length=100)
    center_id: Optional[int] = None
    type_id: Optional[int] = None
    capacity_liters: Optional[int] = Field(default=None, ge=0)
    location_hint: Optional[str] = None


class ContainerOut(CamelModel):
    id: int
    center_id: int
    type_id: int
    label: str
    capacity_liters: Optional[int] = None
    state: str
    location_hint: Optional[str] = None
    active: bool
    updated_at: datetime
    center: Optional[CenterBrief] = None
    type: Optional[ContainerTypeBrief] = None


class ContainerStateOut(CamelModel):
    id: int
    state: str
    updated_at: datetime


class ContainerPage(CamelModel):
    containers: List[ContainerOut]
    count: int
    total: int
    page: int
    pages: int


class ContainerList(CamelModel):
    containers: List[ContainerOut]
    count: int


class StatusDeclaration(CamelModel):
    new_state: str
    comment: Optional[str] = Field(default=None, max_length=500)


class MaintenanceToggle(CamelModel):
    maintenance: bool


class BulkMaintenance(CamelModel):
    container_ids: List[int]
    maintenance: bool


class BulkDelete(CamelModel):
    container_ids: List[int]


class BulkResult(CamelModel):
    message: str
    success: int
    failed: int
