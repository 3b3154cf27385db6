# wastetrack/schemas/container_type.py
from datetime import datetime
from typing import Optional

from pydantic import Field

from wastetrack.schemas.base import CamelModel

HEX_COLOR = r"^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$"


class ContainerTypeCreate(CamelModel):
    label: str = Field(min_length=1, max_length=100)
    icon: Optional[str] = None
    color: Optional[str] = Field(default=None, pattern=HEX_COLOR)


class ContainerTypeUpdate(CamelModel):
    label: Optional[str] = Field(default=None, min_length=1, max_length=100)
    icon: Optional[str] = None
    color: Optional[str] = Field(default=None, pattern=HEX_COLOR)


class ContainerTypeBrief(CamelModel):
    id: int
    label: str
    icon: Optional[str] = None
    color: Optional[str] = None


class ContainerTypeOut(ContainerTypeBrief):
    created_at: datetime
